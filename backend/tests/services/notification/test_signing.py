"""签名算法测试"""

import base64
import hashlib
import hmac
from urllib.parse import quote

from notifier.services.notification.signing import (
    append_query,
    canonical_query_string,
    dingding_sign,
    feishu_sign,
    percent_encode,
    sign_dingding_url,
    sign_feishu_url,
    sms_sign,
    sms_string_to_sign,
)


def _expected(key: str, message: str, digestmod) -> str:
    return base64.b64encode(hmac.new(key.encode(), message.encode(), digestmod).digest()).decode()


class TestDingdingSign:
    """测试钉钉签名"""

    def test_matches_hmac_sha256(self):
        """测试签名为 HMAC-SHA256(timestamp\\nsecret) 的 base64"""
        assert dingding_sign("s", 1700000000000) == _expected("s", "1700000000000\ns", hashlib.sha256)

    def test_deterministic(self):
        """测试相同输入签名一致"""
        assert dingding_sign("s", 1700000000000) == dingding_sign("s", 1700000000000)

    def test_timestamp_changes_signature(self):
        """测试时间戳变化签名随之变化"""
        assert dingding_sign("s", 1700000000000) != dingding_sign("s", 1700000000001)

    def test_url_sign_is_url_encoded(self):
        """测试 URL 中的签名经过 URL 编码"""
        url = sign_dingding_url("https://oapi.dingtalk.com/robot/send?access_token=abc", "s", 1700000000000)
        sign = dingding_sign("s", 1700000000000)
        assert url == (
            "https://oapi.dingtalk.com/robot/send?access_token=abc"
            f"&timestamp=1700000000000&sign={quote(sign, safe='')}"
        )


class TestFeishuSign:
    """测试飞书签名"""

    def test_matches_hmac_sha256(self):
        """测试签名为 HMAC-SHA256(timestamp\\nsecret) 的 base64"""
        assert feishu_sign("secret", 1700000000) == _expected("secret", "1700000000\nsecret", hashlib.sha256)

    def test_url_sign_is_quoted_not_encoded(self):
        """测试 URL 中的签名用双引号包裹且不做编码"""
        url = sign_feishu_url("https://open.feishu.cn/open-apis/bot/v2/hook/xyz", "secret", 1700000000)
        sign = feishu_sign("secret", 1700000000)
        assert url == f'https://open.feishu.cn/open-apis/bot/v2/hook/xyz?timestamp=1700000000&sign="{sign}"'


class TestAppendQuery:
    """测试查询串拼接"""

    def test_without_existing_query(self):
        assert append_query("https://h/p", "a=1") == "https://h/p?a=1"

    def test_with_existing_query(self):
        assert append_query("https://h/p?t=1", "a=1") == "https://h/p?t=1&a=1"


class TestSmsSign:
    """测试阿里云短信签名"""

    def test_canonical_query_sorted(self):
        """测试规范化查询串按键排序"""
        assert canonical_query_string({"B": "2", "A": "1"}) == "A=1&B=2"

    def test_string_to_sign(self):
        """测试待签名字符串"""
        assert sms_string_to_sign({"A": "1", "B": "2"}) == "POST&%2F&A%3D1%26B%3D2"

    def test_percent_encoding(self):
        """测试空格编码为 %20，~ 保持不变"""
        assert percent_encode("a b~*") == "a%20b~%2A"
        assert canonical_query_string({"TemplateParam": '{"code":"1"}'}) == "TemplateParam=%7B%22code%22%3A%221%22%7D"

    def test_signature_key_has_ampersand(self):
        """测试签名密钥为 AccessKeySecret 加 &"""
        params = {"A": "1", "B": "2"}
        assert sms_sign("secret", params) == _expected("secret&", "POST&%2F&A%3D1%26B%3D2", hashlib.sha1)
