"""通知渠道抽象基类

定义通知记录、渠道类型和发送器的统一接口，所有具体实现（邮件、短信、飞书、钉钉）继承此基类。
"""

from abc import ABC, abstractmethod
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class ChannelType(StrEnum):
    """消息渠道类型"""

    EMAIL = "email"  # 邮件
    SMS = "sms"  # 短信
    IM_FEISHU = "im_feishu"  # 飞书
    IM_DINGDING = "im_dingding"  # 钉钉
    IM_WECHAT = "im_wechat"  # 企业微信（暂不支持）
    PUSH = "push"  # 推送通知（暂不支持）
    SITE_MESSAGE = "site_message"  # 站内消息（暂不支持）


SUPPORTED_CHANNELS: frozenset[ChannelType] = frozenset(
    {ChannelType.EMAIL, ChannelType.SMS, ChannelType.IM_FEISHU, ChannelType.IM_DINGDING}
)


class Notification(BaseModel):
    """通知消息

    body 的含义随渠道不同：
    - email: 邮件正文
    - sms: 模板参数 JSON 字符串
    - im_feishu / im_dingding: 纯文本，或 {"msg_type": ..., "content": {...}} 结构化消息
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: StrictStr = Field(alias="from", description="发送者（邮件时使用）")
    to: StrictStr = Field(description="接收者（邮件地址/手机号）")
    subject: StrictStr = Field(description="主题（邮件时使用）")
    body: StrictStr = Field(description="消息内容")
    channel: ChannelType = Field(description="消息渠道类型")

    def to_wire(self) -> dict[str, str]:
        """序列化为入站消息格式（使用 from 作为键）"""
        return self.model_dump(mode="json", by_alias=True)


class BaseSender(ABC):
    """消息发送器基类

    一次 send 只产生一次出站网络交换，失败直接抛出 NotifyError，不做重试。
    """

    @property
    @abstractmethod
    def channel(self) -> ChannelType:
        """发送器对应的渠道"""
        ...

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """发送通知

        Args:
            notification: 已完成默认值填充的通知

        Raises:
            NotifyError: 发送失败
        """
        ...

    async def aclose(self) -> None:
        """释放发送器持有的资源"""
        return None
