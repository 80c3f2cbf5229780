"""通知分发器

每个渠道至多持有一个发送器（未配置则为空），负责：
- 按通知的渠道类型选择发送器
- 渠道相关的默认值填充（邮件发件人）
- 未配置 / 不支持的渠道统一报配置错误

使用方式：
    dispatcher = NotificationDispatcher.from_settings(settings)
    await dispatcher.dispatch(notification)
"""

from notifier.core.config import Settings
from notifier.core.errors import ChannelConfigError
from notifier.core.logging import get_logger
from notifier.services.notification.base import BaseSender, ChannelType, Notification
from notifier.services.notification.channels import (
    DingdingSender,
    EmailSender,
    FeishuSender,
    SmsSender,
)

logger = get_logger("notification.dispatcher")

DEFAULT_EMAIL_FROM = "noreply@example.com"


class NotificationDispatcher:
    """通知分发器

    启动时创建一次，之后只读共享；并发的 dispatch 调用之间没有共享的可变状态。
    """

    def __init__(
        self,
        *,
        email: EmailSender | None = None,
        sms: SmsSender | None = None,
        feishu: FeishuSender | None = None,
        dingding: DingdingSender | None = None,
        default_email_from: str = DEFAULT_EMAIL_FROM,
    ) -> None:
        self.email = email
        self.sms = sms
        self.feishu = feishu
        self.dingding = dingding
        self.default_email_from = default_email_from

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationDispatcher":
        """根据配置创建分发器，渠道配置存在时才创建对应发送器"""
        timeout = settings.NOTIFY_HTTP_TIMEOUT
        email_config = settings.email_config
        sms_config = settings.sms_config
        feishu_config = settings.feishu_config
        dingding_config = settings.dingding_config

        dispatcher = cls(
            email=EmailSender(email_config) if email_config else None,
            sms=SmsSender(sms_config, timeout=timeout) if sms_config else None,
            feishu=FeishuSender(feishu_config, timeout=timeout) if feishu_config else None,
            dingding=DingdingSender(dingding_config, timeout=timeout) if dingding_config else None,
            default_email_from=settings.EMAIL_DEFAULT_FROM,
        )

        enabled = dispatcher.enabled_channels
        if enabled:
            logger.info("已启用通知渠道", channels=enabled)
        else:
            logger.warning("未配置任何通知渠道，所有通知都将失败")
        return dispatcher

    @property
    def senders(self) -> list[BaseSender]:
        return [s for s in (self.email, self.sms, self.feishu, self.dingding) if s is not None]

    @property
    def enabled_channels(self) -> list[str]:
        """已配置的渠道列表"""
        return [s.channel.value for s in self.senders]

    def with_defaults(self, notification: Notification) -> Notification:
        """填充渠道默认值，返回新的通知对象"""
        if notification.channel is ChannelType.EMAIL and not notification.from_:
            sender = self.email.config.smtp_user if self.email else ""
            return notification.model_copy(update={"from_": sender or self.default_email_from})
        return notification

    def resolve(self, channel: ChannelType) -> BaseSender:
        """查找渠道对应的发送器

        Raises:
            ChannelConfigError: 渠道未配置或暂不支持
        """
        match channel:
            case ChannelType.EMAIL:
                sender = self.email
            case ChannelType.SMS:
                sender = self.sms
            case ChannelType.IM_FEISHU:
                sender = self.feishu
            case ChannelType.IM_DINGDING:
                sender = self.dingding
            case ChannelType.IM_WECHAT | ChannelType.PUSH | ChannelType.SITE_MESSAGE:
                raise ChannelConfigError(
                    f"Unsupported channel type: {channel.value}",
                    data={"channel": channel.value},
                )

        if sender is None:
            raise ChannelConfigError(
                f"{channel.value} sender not configured",
                data={"channel": channel.value},
            )
        return sender

    async def dispatch(self, notification: Notification) -> None:
        """发送通知

        Raises:
            NotifyError: 渠道未配置或发送失败
        """
        sender = self.resolve(notification.channel)
        notification = self.with_defaults(notification)
        await sender.send(notification)
        logger.info(
            "通知发送成功",
            channel=notification.channel.value,
            to=notification.to,
        )

    async def aclose(self) -> None:
        """关闭所有发送器"""
        for sender in self.senders:
            await sender.aclose()
