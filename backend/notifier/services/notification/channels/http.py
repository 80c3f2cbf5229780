"""基于 HTTP 的发送器公共实现"""

import json
from typing import Any

import httpx

from notifier.core.errors import BuildError, HttpTransportError
from notifier.services.notification.base import BaseSender


class HttpSender(BaseSender):
    """持有一个长生命周期 httpx.AsyncClient 的发送器

    client 可由外部注入（测试时使用 httpx.MockTransport），
    未注入时自行创建并在 aclose 中关闭。
    """

    def __init__(self, *, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        """发送 POST 请求，非 2xx 状态视为传输错误"""
        try:
            response = await self._client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise HttpTransportError(
                f"{type(e).__name__}: {e}", data={"channel": self.channel.value}
            ) from e

        if not response.is_success:
            raise HttpTransportError(
                f"{self.channel.value} API 错误 {response.status_code}: {response.text[:500]}",
                data={"channel": self.channel.value, "status_code": response.status_code},
            )
        return response

    async def _post_json(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        """以 JSON 请求体发送 POST 请求"""
        return await self._post(
            url,
            content=encode_json(payload, channel=self.channel.value),
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def encode_json(payload: dict[str, Any], *, channel: str = "") -> bytes:
    """把消息体编码为 UTF-8 JSON

    Raises:
        BuildError: 消息体含有无法编码的字符（如孤立代理项）
    """
    try:
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except UnicodeEncodeError as e:
        raise BuildError(f"消息体无法编码为 UTF-8: {e.reason}", data={"channel": channel}) from e


def response_json(response: httpx.Response) -> dict[str, Any] | None:
    """尝试把响应体解析为 JSON 对象"""
    try:
        value = response.json()
    except ValueError:
        return None
    return value if isinstance(value, dict) else None
