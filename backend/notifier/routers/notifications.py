"""通知发送 API"""

from fastapi import APIRouter, Depends

from notifier.core.dependencies import get_dispatcher
from notifier.core.logging import get_logger
from notifier.schemas.notification import ApiResponse, SendNotificationRequest
from notifier.services.notification.dispatcher import NotificationDispatcher

router = APIRouter(prefix="/api/v1", tags=["notifications"])
logger = get_logger("router.notifications")


@router.post("/notifications", response_model=ApiResponse[str])
async def send_notification(
    request: SendNotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """发送通知

    失败时抛出的 NotifyError 由全局异常处理器转换为业务错误信封。
    """
    notification = request.to_notification()
    logger.debug("收到发送请求", channel=notification.channel.value, to=notification.to)

    await dispatcher.dispatch(notification)

    return ApiResponse(data="Notification sent successfully")
