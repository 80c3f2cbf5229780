"""通知相关 Schema"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from notifier.services.notification.base import ChannelType, Notification

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一成功响应"""

    code: int = 0
    message: str = "success"
    data: T | None = None


class SendNotificationRequest(BaseModel):
    """发送通知请求"""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(default="", alias="from", description="发送者（邮件时使用，可选）")
    to: str = Field(..., description="接收者（邮件地址/手机号）")
    subject: str = Field(default="", description="主题（邮件时使用，可选）")
    body: str = Field(..., description="消息内容")
    channel: ChannelType = Field(..., description="消息渠道类型")

    def to_notification(self) -> Notification:
        return Notification(
            from_=self.from_,
            to=self.to,
            subject=self.subject,
            body=self.body,
            channel=self.channel,
        )


class ChannelInfo(BaseModel):
    """渠道信息"""

    channel: ChannelType
    name: str
    supported: bool
