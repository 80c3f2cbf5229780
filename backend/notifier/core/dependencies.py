"""FastAPI 依赖注入"""

from fastapi import Request

from notifier.services.notification.dispatcher import NotificationDispatcher


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """获取应用启动时创建的通知分发器"""
    return request.app.state.dispatcher
