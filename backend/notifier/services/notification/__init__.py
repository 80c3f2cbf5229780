"""通知服务模块

多渠道通知分发：
- 邮件（SMTP）
- 短信（阿里云）
- 飞书机器人
- 钉钉机器人

企业微信、推送通知、站内消息为已识别但暂不支持的渠道。

使用方式：
    from notifier.services.notification import NotificationDispatcher

    dispatcher = NotificationDispatcher.from_settings(settings)
    await dispatcher.dispatch(notification)
"""

from notifier.services.notification.base import (
    BaseSender,
    ChannelType,
    Notification,
    SUPPORTED_CHANNELS,
)
from notifier.services.notification.dispatcher import NotificationDispatcher
from notifier.services.notification.inbound import handle_message, normalize_inbound

__all__ = [
    "BaseSender",
    "ChannelType",
    "Notification",
    "NotificationDispatcher",
    "SUPPORTED_CHANNELS",
    "handle_message",
    "normalize_inbound",
]
