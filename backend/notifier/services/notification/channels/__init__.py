"""通知渠道实现

每个渠道一个文件，便于维护和扩展。
"""

from notifier.services.notification.channels.dingding import DingdingSender
from notifier.services.notification.channels.email import EmailSender
from notifier.services.notification.channels.feishu import FeishuSender
from notifier.services.notification.channels.sms import SmsSender

__all__ = ["DingdingSender", "EmailSender", "FeishuSender", "SmsSender"]
