"""入站消息归一化

队列消息支持两种格式：
1. 直接是 Notification 格式：{"from", "to", "subject", "body", "channel"}
2. 信封格式：{"id", "timestamp", "source", "channel", "payload"}，payload 的字段随渠道变化：
   - email: to, subject, body 必填，from 可选
   - sms: to 必填，param 或 body 必填（作为模板参数）
   - im_feishu / im_dingding: text 或 body 必填

先尝试格式 1，失败再尝试格式 2。
"""

import json
from typing import Any

from pydantic import ValidationError

from notifier.core.errors import InboundParseError, NotifyError
from notifier.core.logging import get_logger
from notifier.services.notification.base import ChannelType, Notification
from notifier.services.notification.dispatcher import NotificationDispatcher

logger = get_logger("notification.inbound")


def _require_str(payload: dict[str, Any], *keys: str) -> str:
    """按顺序取第一个存在的字符串字段"""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str):
            return value
    raise InboundParseError(
        f"missing or invalid '{' or '.join(keys)}' field in payload",
        data={"keys": list(keys)},
    )


def parse_envelope(data: dict[str, Any]) -> Notification:
    """解析信封格式消息

    Raises:
        InboundParseError: 缺少字段或渠道不支持
    """
    try:
        channel = ChannelType(data.get("channel"))
    except ValueError:
        raise InboundParseError(
            "missing or invalid 'channel' field", data={"channel": data.get("channel")}
        ) from None

    payload = data.get("payload")
    if not isinstance(payload, dict):
        raise InboundParseError("missing 'payload' field")

    match channel:
        case ChannelType.EMAIL:
            # 缺省发件人留空，由分发器统一填充（SMTP 账号优先，其次 EMAIL_DEFAULT_FROM），
            # 与 HTTP 入口的行为一致，不在这里写死 noreply 地址
            from_ = payload.get("from")
            return Notification(
                from_=from_ if isinstance(from_, str) else "",
                to=_require_str(payload, "to"),
                subject=_require_str(payload, "subject"),
                body=_require_str(payload, "body"),
                channel=channel,
            )
        case ChannelType.SMS:
            return Notification(
                from_="",
                to=_require_str(payload, "to"),
                subject="",
                body=_require_str(payload, "param", "body"),
                channel=channel,
            )
        case ChannelType.IM_FEISHU | ChannelType.IM_DINGDING:
            return Notification(
                from_="",
                to="",
                subject="",
                body=_require_str(payload, "text", "body"),
                channel=channel,
            )
        case _:
            raise InboundParseError(
                f"Unsupported channel type: {channel.value}", data={"channel": channel.value}
            )


def normalize_inbound(data: Any) -> Notification:
    """把入站消息归一化为 Notification

    Raises:
        InboundParseError: 两种格式都无法解析
    """
    if not isinstance(data, dict):
        raise InboundParseError(f"message must be a JSON object, got {type(data).__name__}")

    try:
        return Notification.model_validate(data)
    except ValidationError:
        pass

    return parse_envelope(data)


def decode_message(raw: bytes | str | dict[str, Any]) -> Any:
    """把队列中的原始消息解码为 JSON 值"""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise InboundParseError(f"message is not valid JSON: {e}") from e


async def handle_message(
    dispatcher: NotificationDispatcher,
    raw: bytes | str | dict[str, Any],
    *,
    topic: str = "",
) -> bool:
    """处理一条队列消息

    解析或发送失败时记录日志并丢弃消息，不重试。

    Returns:
        是否发送成功
    """
    try:
        notification = normalize_inbound(decode_message(raw))
    except (InboundParseError, UnicodeDecodeError) as e:
        logger.warning("无法解析通知消息，已丢弃", topic=topic, error=str(e), data=raw)
        return False

    logger.info(
        "收到通知消息",
        topic=topic,
        channel=notification.channel.value,
        to=notification.to,
    )

    try:
        await dispatcher.dispatch(notification)
    except NotifyError as e:
        logger.error(
            "通知发送失败，已丢弃",
            topic=topic,
            channel=notification.channel.value,
            code=e.code,
            error=str(e),
        )
        return False
    return True
