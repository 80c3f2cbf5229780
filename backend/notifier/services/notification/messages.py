"""IM 消息类型与消息体解析

飞书、钉钉渠道的 body 支持两种格式：
1. JSON 对象格式：{"msg_type": "text|post|markdown|...", "content": {...}, "text": "..."}
2. 纯文本格式：直接作为文本消息发送

解析分两步进行：先尝试结构化解码，失败则走纯文本路径；
结构化解码成功但 msg_type 不在已知类型中时视为格式错误，不会退化为文本。
"""

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from notifier.core.errors import MessageFormatError


class FeishuMessageType(StrEnum):
    """飞书消息类型"""

    TEXT = "text"  # 文本
    POST = "post"  # 富文本
    IMAGE = "image"  # 图片
    FILE = "file"  # 文件
    AUDIO = "audio"  # 语音
    MEDIA = "media"  # 视频
    STICKER = "sticker"  # 表情包
    INTERACTIVE = "interactive"  # 卡片
    SHARE_CHAT = "share_chat"  # 分享群名片
    SHARE_USER = "share_user"  # 分享个人名片
    SYSTEM = "system"  # 系统消息


class DingdingMessageType(StrEnum):
    """钉钉消息类型（值即钉钉接口中的 msgtype）"""

    TEXT = "text"  # 文本
    MARKDOWN = "markdown"  # Markdown 富文本
    LINK = "link"  # 链接
    ACTION_CARD = "actionCard"  # 交互卡片
    FEED_CARD = "feedCard"  # 消息卡片
    IMAGE = "image"  # 图片
    FILE = "file"  # 文件
    AUDIO = "audio"  # 语音
    VIDEO = "video"  # 视频


_DINGDING_ALIASES: dict[str, DingdingMessageType] = {
    "action_card": DingdingMessageType.ACTION_CARD,
    "feed_card": DingdingMessageType.FEED_CARD,
}


@dataclass(frozen=True)
class IncomingMessage:
    """结构化消息体"""

    msg_type: str | None = None
    content: Any = None
    card: Any = None
    text: str | None = None

    def nested_text(self, key: str) -> str | None:
        """读取 content 中的文本字段"""
        if isinstance(self.content, dict):
            value = self.content.get(key)
            if isinstance(value, str):
                return value
        return None

    def content_or_empty(self) -> Any:
        return self.content if self.content is not None else {}

    def card_or_empty(self) -> Any:
        return self.card if self.card is not None else {}


def decode_json_object(body: str) -> dict[str, Any] | None:
    """把 body 解码为 JSON 对象，不是合法 JSON 对象时返回 None"""
    try:
        value = json.loads(body)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def parse_incoming(body: str) -> IncomingMessage | None:
    """解析结构化消息体

    Returns:
        IncomingMessage；body 不是结构化消息（非 JSON 对象或字段类型不符）时返回 None
    """
    obj = decode_json_object(body)
    if obj is None:
        return None

    msg_type = obj.get("msg_type")
    text = obj.get("text")
    if msg_type is not None and not isinstance(msg_type, str):
        return None
    if text is not None and not isinstance(text, str):
        return None

    return IncomingMessage(
        msg_type=msg_type,
        content=obj.get("content"),
        card=obj.get("card"),
        text=text,
    )


def resolve_feishu_type(name: str | None) -> FeishuMessageType:
    """解析飞书消息类型，缺省为 text"""
    if name is None:
        return FeishuMessageType.TEXT
    try:
        return FeishuMessageType(name)
    except ValueError:
        raise MessageFormatError(
            f"Invalid Feishu message type: {name}", data={"msg_type": name}
        ) from None


def resolve_dingding_type(name: str | None) -> DingdingMessageType:
    """解析钉钉消息类型，缺省为 text，兼容 action_card / feed_card 写法"""
    if name is None:
        return DingdingMessageType.TEXT
    if name in _DINGDING_ALIASES:
        return _DINGDING_ALIASES[name]
    try:
        return DingdingMessageType(name)
    except ValueError:
        raise MessageFormatError(
            f"Invalid Dingding message type: {name}", data={"msg_type": name}
        ) from None
