"""请求签名

三个渠道的签名算法都基于 HMAC，但待签名字符串、摘要算法和编码方式各不相同，因此分别实现：

- 钉钉：HMAC-SHA256("{毫秒时间戳}\\n{secret}", key=secret) → base64 → URL 编码
- 飞书：HMAC-SHA256("{秒级时间戳}\\n{secret}", key=secret) → base64
- 短信：HMAC-SHA1("POST&%2F&{编码后的规范化查询串}", key="{AccessKeySecret}&") → base64
"""

import base64
import hashlib
import hmac
from collections.abc import Mapping
from urllib.parse import quote


def percent_encode(value: str) -> str:
    """RFC 3986 百分号编码（仅保留非保留字符 A-Z a-z 0-9 - _ . ~）"""
    return quote(value, safe="")


def _hmac_base64(key: str, message: str, digestmod) -> str:
    digest = hmac.new(key.encode("utf-8"), message.encode("utf-8"), digestmod).digest()
    return base64.b64encode(digest).decode("ascii")


def dingding_sign(secret: str, timestamp_ms: int) -> str:
    """钉钉机器人签名（返回 base64，未做 URL 编码）"""
    return _hmac_base64(secret, f"{timestamp_ms}\n{secret}", hashlib.sha256)


def feishu_sign(secret: str, timestamp: int) -> str:
    """飞书机器人签名（返回 base64）"""
    return _hmac_base64(secret, f"{timestamp}\n{secret}", hashlib.sha256)


def append_query(url: str, query: str) -> str:
    """把查询串追加到 URL 上，已有查询串时用 & 连接"""
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{query}"


def sign_dingding_url(webhook: str, secret: str, timestamp_ms: int) -> str:
    """生成带 timestamp/sign 参数的钉钉 webhook 地址"""
    sign = dingding_sign(secret, timestamp_ms)
    return append_query(webhook, f"timestamp={timestamp_ms}&sign={percent_encode(sign)}")


def sign_feishu_url(webhook: str, secret: str, timestamp: int) -> str:
    """生成带 timestamp/sign 参数的飞书 webhook 地址

    sign 以双引号包裹且不做 URL 编码。
    """
    sign = feishu_sign(secret, timestamp)
    return append_query(webhook, f'timestamp={timestamp}&sign="{sign}"')


def canonical_query_string(params: Mapping[str, str]) -> str:
    """阿里云规范化查询串：按键排序，键和值分别编码后以 & 连接"""
    return "&".join(
        f"{percent_encode(key)}={percent_encode(params[key])}" for key in sorted(params)
    )


def sms_string_to_sign(params: Mapping[str, str], method: str = "POST") -> str:
    """阿里云短信待签名字符串"""
    return f"{method}&{percent_encode('/')}&{percent_encode(canonical_query_string(params))}"


def sms_sign(access_key_secret: str, params: Mapping[str, str], method: str = "POST") -> str:
    """阿里云短信签名（HMAC-SHA1，签名密钥为 AccessKeySecret 加 &）"""
    return _hmac_base64(f"{access_key_secret}&", sms_string_to_sign(params, method), hashlib.sha1)
