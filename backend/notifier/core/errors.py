"""统一错误处理

通知服务错误分为以下几类，每类对应一个独立的业务错误码：

| 类型 | 错误码 | HTTP 状态 |
|------|--------|-----------|
| SMTP 传输错误 | 5001 | 502 |
| 邮件地址错误 | 4001 | 400 |
| 消息构建错误 | 5002 | 400 |
| HTTP 传输错误 | 5003 | 502 |
| 通知配置错误 | 5004 | 400 |
| 通知发送失败 | 5005 | 502 |

适配器内部的第三方异常（httpx、aiosmtplib 等）统一包装为 NotifyError 子类向上抛出，
HTTP 层通过 create_error_response 渲染为业务错误信封，不暴露堆栈。
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import status
from pydantic import BaseModel


class ErrorCode:
    """业务错误码"""

    SUCCESS = 0
    INVALID_REQUEST = 4000
    EMAIL_ADDRESS_ERROR = 4001
    INTERNAL_ERROR = 5000
    SMTP_ERROR = 5001
    BUILD_ERROR = 5002
    HTTP_ERROR = 5003
    NOTIFY_CONFIG_ERROR = 5004
    NOTIFY_SEND_ERROR = 5005


class ErrorPayload(BaseModel):
    """标准错误响应结构"""

    code: int
    message: str
    data: dict[str, Any] | None = None
    timestamp: str


class NotifyError(Exception):
    """通知服务错误基类

    使用示例:
        raise ChannelConfigError("Email sender not configured", data={"channel": "email"})
    """

    code: int = ErrorCode.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    label: str = "通知服务错误"

    def __init__(self, message: str, *, data: dict[str, Any] | None = None) -> None:
        self.error_message = message
        self.data = data
        super().__init__(f"{self.label}: {message}")


class TransportError(NotifyError):
    """传输层错误（SMTP/HTTP 失败或远端返回非成功状态）"""

    status_code = status.HTTP_502_BAD_GATEWAY


class SmtpTransportError(TransportError):
    code = ErrorCode.SMTP_ERROR
    label = "SMTP 错误"


class HttpTransportError(TransportError):
    code = ErrorCode.HTTP_ERROR
    label = "HTTP 请求错误"


class AddressError(NotifyError):
    """收发件地址格式错误"""

    code = ErrorCode.EMAIL_ADDRESS_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    label = "邮件地址错误"


class BuildError(NotifyError):
    """出站消息构建错误"""

    code = ErrorCode.BUILD_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    label = "消息构建错误"


class MessageFormatError(BuildError):
    """消息体格式错误（如未知的消息类型）"""


class ChannelConfigError(NotifyError):
    """渠道未配置、不支持或密钥非法"""

    code = ErrorCode.NOTIFY_CONFIG_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    label = "通知配置错误"


class InboundParseError(ChannelConfigError):
    """入站消息无法解析为通知"""


class SendError(NotifyError):
    """远端返回成功状态但业务处理失败"""

    code = ErrorCode.NOTIFY_SEND_ERROR
    status_code = status.HTTP_502_BAD_GATEWAY
    label = "通知发送失败"


def create_error_response(
    code: int,
    message: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """创建标准错误响应"""
    return ErrorPayload(
        code=code,
        message=message,
        data=data,
        timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
    ).model_dump()
