"""钉钉渠道

通过钉钉群机器人 Webhook 发送消息，消息体为 {"msgtype": T, T: {...}}。
"""

import time
from collections.abc import Callable
from typing import Any

import httpx

from notifier.core.config import DingdingConfig
from notifier.core.errors import SendError
from notifier.core.logging import get_logger
from notifier.services.notification.base import ChannelType, Notification
from notifier.services.notification.channels.http import HttpSender, response_json
from notifier.services.notification.messages import (
    DingdingMessageType,
    parse_incoming,
    resolve_dingding_type,
)
from notifier.services.notification.signing import sign_dingding_url

logger = get_logger("channel.dingding")


def build_dingding_payload(body: str) -> dict[str, Any]:
    """把通知 body 转换为钉钉机器人消息体"""
    incoming = parse_incoming(body)
    if incoming is None:
        return {"msgtype": DingdingMessageType.TEXT.value, "text": {"content": body}}

    msg_type = resolve_dingding_type(incoming.msg_type)
    if msg_type is DingdingMessageType.TEXT:
        text = incoming.nested_text("content")
        if text is None:
            text = incoming.text if incoming.text is not None else body
        return {"msgtype": msg_type.value, "text": {"content": text}}
    # 其余类型的内容键与 msgtype 同名
    return {"msgtype": msg_type.value, msg_type.value: incoming.content_or_empty()}


class DingdingSender(HttpSender):
    """钉钉发送器"""

    def __init__(
        self,
        config: DingdingConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self.config = config
        self._clock = clock

    @property
    def channel(self) -> ChannelType:
        return ChannelType.IM_DINGDING

    def build_url(self) -> str:
        """生成请求地址，配置了 secret 时附带毫秒时间戳和签名"""
        if not self.config.secret:
            return self.config.webhook
        return sign_dingding_url(self.config.webhook, self.config.secret, int(self._clock() * 1000))

    async def send(self, notification: Notification) -> None:
        payload = build_dingding_payload(notification.body)
        response = await self._post_json(self.build_url(), payload)

        result = response_json(response)
        logger.debug(
            "钉钉响应",
            status_code=response.status_code,
            msgtype=payload["msgtype"],
            response=result,
        )

        if result is not None and result.get("errcode", 0) != 0:
            raise SendError(
                f"钉钉返回错误 {result['errcode']}: {result.get('errmsg', '')}",
                data={"channel": self.channel.value, "errcode": result["errcode"]},
            )
