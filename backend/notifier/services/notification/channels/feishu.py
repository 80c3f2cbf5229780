"""飞书渠道

通过飞书群机器人 Webhook 发送消息。

支持：
- 纯文本 body 直接作为文本消息
- 结构化 body：{"msg_type": "...", "content": {...}}，interactive 类型使用 "card"
- 签名校验（配置了 secret 时）
"""

import time
from collections.abc import Callable
from typing import Any

import httpx

from notifier.core.config import FeishuConfig
from notifier.core.errors import SendError
from notifier.core.logging import get_logger
from notifier.services.notification.base import ChannelType, Notification
from notifier.services.notification.channels.http import HttpSender, response_json
from notifier.services.notification.messages import (
    FeishuMessageType,
    parse_incoming,
    resolve_feishu_type,
)
from notifier.services.notification.signing import sign_feishu_url

logger = get_logger("channel.feishu")


def build_feishu_payload(body: str) -> dict[str, Any]:
    """把通知 body 转换为飞书机器人消息体"""
    incoming = parse_incoming(body)
    if incoming is None:
        return {"msg_type": FeishuMessageType.TEXT.value, "content": {"text": body}}

    msg_type = resolve_feishu_type(incoming.msg_type)
    if msg_type is FeishuMessageType.TEXT:
        text = incoming.nested_text("text")
        if text is None:
            text = incoming.text if incoming.text is not None else body
        return {"msg_type": msg_type.value, "content": {"text": text}}
    if msg_type is FeishuMessageType.INTERACTIVE:
        return {"msg_type": msg_type.value, "card": incoming.card_or_empty()}
    return {"msg_type": msg_type.value, "content": incoming.content_or_empty()}


class FeishuSender(HttpSender):
    """飞书发送器"""

    def __init__(
        self,
        config: FeishuConfig,
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
        return ChannelType.IM_FEISHU

    def build_url(self) -> str:
        """生成请求地址，配置了 secret 时附带秒级时间戳和签名"""
        if not self.config.secret:
            return self.config.webhook
        return sign_feishu_url(self.config.webhook, self.config.secret, int(self._clock()))

    async def send(self, notification: Notification) -> None:
        payload = build_feishu_payload(notification.body)
        response = await self._post_json(self.build_url(), payload)

        result = response_json(response)
        logger.debug(
            "飞书响应",
            status_code=response.status_code,
            msg_type=payload["msg_type"],
            response=result,
        )

        # 飞书在 HTTP 200 时通过 code/StatusCode 返回业务结果
        if result is not None:
            code = result.get("code", result.get("StatusCode", 0))
            if code not in (0, None):
                raise SendError(
                    f"飞书返回错误 {code}: {result.get('msg', '')}",
                    data={"channel": self.channel.value, "code": code},
                )
