"""邮件渠道

使用 aiosmtplib 通过 SMTP 发送纯文本邮件：
- 端口 465 使用隐式 TLS
- 其他端口（默认 587）使用 STARTTLS
"""

from email.message import EmailMessage
from email.utils import formataddr, parseaddr

import aiosmtplib
from email_validator import EmailNotValidError, validate_email

from notifier.core.config import EmailConfig
from notifier.core.errors import AddressError, BuildError, SmtpTransportError
from notifier.core.logging import get_logger
from notifier.services.notification.base import BaseSender, ChannelType, Notification

logger = get_logger("channel.email")

SMTPS_PORT = 465


def parse_mailbox(value: str) -> str:
    """解析邮箱地址，支持 "显示名 <addr@example.com>" 形式

    Returns:
        规范化后的邮箱头字符串

    Raises:
        AddressError: 地址格式不合法
    """
    name, addr = parseaddr(value)
    if not addr:
        raise AddressError(f"无法解析邮件地址: {value!r}", data={"address": value})
    try:
        validated = validate_email(addr, check_deliverability=False)
    except EmailNotValidError as e:
        raise AddressError(f"{value!r}: {e}", data={"address": value}) from e
    return formataddr((name, validated.normalized))


def build_email_message(notification: Notification) -> EmailMessage:
    """构建邮件

    Raises:
        AddressError: 收发件地址不合法
        BuildError: 邮件头或正文非法
    """
    sender = parse_mailbox(notification.from_)
    recipient = parse_mailbox(notification.to)

    message = EmailMessage()
    try:
        message["From"] = sender
        message["To"] = recipient
        message["Subject"] = notification.subject
        message.set_content(notification.body)
    except ValueError as e:
        raise BuildError(str(e), data={"to": notification.to}) from e
    return message


class EmailSender(BaseSender):
    """邮件发送器"""

    def __init__(self, config: EmailConfig) -> None:
        self.config = config
        logger.info(
            "SMTP 发送器已初始化",
            host=config.smtp_server,
            port=config.smtp_port,
            implicit_tls=config.smtp_port == SMTPS_PORT,
        )

    @property
    def channel(self) -> ChannelType:
        return ChannelType.EMAIL

    async def send(self, notification: Notification) -> None:
        message = build_email_message(notification)
        implicit_tls = self.config.smtp_port == SMTPS_PORT

        try:
            errors, response = await aiosmtplib.send(
                message,
                hostname=self.config.smtp_server,
                port=self.config.smtp_port,
                username=self.config.smtp_user,
                password=self.config.smtp_pass,
                use_tls=implicit_tls,
                start_tls=not implicit_tls,
                timeout=self.config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise SmtpTransportError(
                f"{type(e).__name__}: {e}", data={"host": self.config.smtp_server}
            ) from e

        if errors:
            raise SmtpTransportError(
                f"收件人被拒绝: {', '.join(errors)}",
                data={"rejected": {k: str(v) for k, v in errors.items()}},
            )

        logger.debug("SMTP 响应", to=notification.to, response=response)
