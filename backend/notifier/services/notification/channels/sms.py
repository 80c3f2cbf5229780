"""短信渠道（阿里云 SendSms）

Notification.to 为手机号，body 为模板参数 JSON 字符串。
请求以表单方式 POST 到配置的 endpoint，参数按阿里云 RPC 签名规则签名。

注意：目前只以 HTTP 状态判断是否成功，未解析响应体中的业务 Code。
"""

import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import httpx

from notifier.core.config import SmsConfig
from notifier.core.logging import get_logger
from notifier.services.notification.base import ChannelType, Notification
from notifier.services.notification.channels.http import HttpSender
from notifier.services.notification.signing import sms_sign

logger = get_logger("channel.sms")

SMS_ACTION = "SendSms"
SMS_API_VERSION = "2017-05-25"
DEFAULT_TEMPLATE_CODE = "SMS_123456789"


def format_timestamp(epoch: float) -> str:
    """ISO 8601 UTC 时间（YYYY-MM-DDTHH:MM:SSZ）"""
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SmsSender(HttpSender):
    """短信发送器"""

    def __init__(
        self,
        config: SmsConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self.config = config
        self._clock = clock
        self._nonce_factory = nonce_factory

    @property
    def channel(self) -> ChannelType:
        return ChannelType.SMS

    @property
    def template_code(self) -> str:
        return self.config.template_code or DEFAULT_TEMPLATE_CODE

    def build_params(self, phone: str, template_param: str) -> dict[str, str]:
        """构建带签名的请求参数，每次调用生成新的 nonce 和时间戳"""
        params = {
            "Action": SMS_ACTION,
            "Version": SMS_API_VERSION,
            "RegionId": self.config.region_id,
            "PhoneNumbers": phone,
            "SignName": self.config.sign_name,
            "TemplateCode": self.template_code,
            "TemplateParam": template_param,
            "AccessKeyId": self.config.access_key_id,
            "SignatureMethod": "HMAC-SHA1",
            "SignatureVersion": "1.0",
            "SignatureNonce": self._nonce_factory(),
            "Timestamp": format_timestamp(self._clock()),
        }
        params["Signature"] = sms_sign(self.config.access_key_secret, params)
        return params

    async def send(self, notification: Notification) -> None:
        params = self.build_params(notification.to, notification.body)
        response = await self._post(self.config.endpoint, data=params)
        logger.debug(
            "短信响应",
            status_code=response.status_code,
            to=notification.to,
            response=response.text[:500],
        )
