"""Pydantic 模型"""

from notifier.schemas.notification import ApiResponse, ChannelInfo, SendNotificationRequest

__all__ = [
    "ApiResponse",
    "ChannelInfo",
    "SendNotificationRequest",
]
