"""渠道发送器测试

HTTP 渠道使用 httpx.MockTransport，邮件渠道 mock aiosmtplib.send。
"""

import json
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, unquote

import aiosmtplib
import httpx
import pytest

from notifier.core.config import DingdingConfig, EmailConfig, FeishuConfig, SmsConfig
from notifier.core.errors import (
    AddressError,
    BuildError,
    HttpTransportError,
    MessageFormatError,
    SendError,
    SmtpTransportError,
)
from notifier.services.notification.base import ChannelType, Notification
from notifier.services.notification.channels import (
    DingdingSender,
    EmailSender,
    FeishuSender,
    SmsSender,
)
from notifier.services.notification.channels.email import build_email_message, parse_mailbox
from notifier.services.notification.channels.sms import DEFAULT_TEMPLATE_CODE, format_timestamp
from notifier.services.notification.signing import feishu_sign, sign_dingding_url, sign_feishu_url, sms_sign

FIXED_NOW = 1700000000.0


class Recorder:
    """记录请求并返回固定响应的 MockTransport 处理器"""

    def __init__(self, status_code: int = 200, body: dict | str | None = None) -> None:
        self.status_code = status_code
        self.body = {"code": 0} if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_notification(channel: ChannelType, body: str = "hello", to: str = "") -> Notification:
    return Notification(from_="", to=to, subject="", body=body, channel=channel)


class TestFeishuSender:
    """测试飞书发送器"""

    @pytest.mark.anyio
    async def test_send_text(self):
        recorder = Recorder()
        sender = FeishuSender(FeishuConfig(webhook="https://open.feishu.cn/hook/x"), client=recorder.client())

        await sender.send(make_notification(ChannelType.IM_FEISHU))

        request = recorder.requests[0]
        assert str(request.url) == "https://open.feishu.cn/hook/x"
        assert json.loads(request.content) == {"msg_type": "text", "content": {"text": "hello"}}

    @pytest.mark.anyio
    async def test_signed_url(self):
        """测试配置了 secret 时 URL 带秒级时间戳和签名"""
        sender = FeishuSender(
            FeishuConfig(webhook="https://open.feishu.cn/hook/x", secret="s"),
            client=Recorder().client(),
            clock=lambda: FIXED_NOW,
        )
        assert sender.build_url() == sign_feishu_url("https://open.feishu.cn/hook/x", "s", 1700000000)

    @pytest.mark.anyio
    async def test_signed_request_on_wire(self):
        """测试签名请求实际发出的查询串带 timestamp 和双引号包裹的 sign"""
        recorder = Recorder()
        sender = FeishuSender(
            FeishuConfig(webhook="https://open.feishu.cn/hook/x", secret="s"),
            client=recorder.client(),
            clock=lambda: FIXED_NOW,
        )

        await sender.send(make_notification(ChannelType.IM_FEISHU))

        request = recorder.requests[0]
        assert request.url.path == "/hook/x"
        sign = feishu_sign("s", 1700000000)
        assert unquote(request.url.query.decode()) == f'timestamp=1700000000&sign="{sign}"'

    @pytest.mark.anyio
    async def test_unencodable_body_is_build_error(self):
        """测试含孤立代理项的消息体报构建错误且不发请求"""
        recorder = Recorder()
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=recorder.client())

        with pytest.raises(BuildError):
            await sender.send(make_notification(ChannelType.IM_FEISHU, body='{"text": "\\ud800"}'))
        assert recorder.requests == []

    @pytest.mark.anyio
    async def test_non_2xx_is_transport_error(self):
        recorder = Recorder(status_code=500, body="boom")
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=recorder.client())

        with pytest.raises(HttpTransportError) as exc_info:
            await sender.send(make_notification(ChannelType.IM_FEISHU))
        assert exc_info.value.data["status_code"] == 500

    @pytest.mark.anyio
    async def test_business_error_code(self):
        """测试 HTTP 200 但业务 code 非 0"""
        recorder = Recorder(body={"code": 19021, "msg": "sign match fail"})
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=recorder.client())

        with pytest.raises(SendError) as exc_info:
            await sender.send(make_notification(ChannelType.IM_FEISHU))
        assert exc_info.value.data["code"] == 19021

    @pytest.mark.anyio
    async def test_unknown_msg_type_sends_nothing(self):
        recorder = Recorder()
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=recorder.client())

        with pytest.raises(MessageFormatError):
            await sender.send(make_notification(ChannelType.IM_FEISHU, body='{"msg_type": "bogus"}'))
        assert recorder.requests == []

    @pytest.mark.anyio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=client)

        with pytest.raises(HttpTransportError):
            await sender.send(make_notification(ChannelType.IM_FEISHU))

    @pytest.mark.anyio
    async def test_injected_client_not_closed(self):
        client = Recorder().client()
        sender = FeishuSender(FeishuConfig(webhook="https://f"), client=client)
        await sender.aclose()
        assert not client.is_closed
        await client.aclose()


class TestDingdingSender:
    """测试钉钉发送器"""

    @pytest.mark.anyio
    async def test_send_markdown_signed(self):
        recorder = Recorder(body={"errcode": 0, "errmsg": "ok"})
        webhook = "https://oapi.dingtalk.com/robot/send?access_token=abc"
        sender = DingdingSender(
            DingdingConfig(webhook=webhook, secret="s"),
            client=recorder.client(),
            clock=lambda: FIXED_NOW,
        )
        body = json.dumps({"msg_type": "markdown", "content": {"title": "t", "text": "# x"}})

        await sender.send(make_notification(ChannelType.IM_DINGDING, body=body))

        request = recorder.requests[0]
        assert str(request.url) == str(httpx.URL(sign_dingding_url(webhook, "s", 1700000000000)))
        assert request.url.params["timestamp"] == "1700000000000"
        assert json.loads(request.content) == {"msgtype": "markdown", "markdown": {"title": "t", "text": "# x"}}

    @pytest.mark.anyio
    async def test_unsigned_url(self):
        sender = DingdingSender(DingdingConfig(webhook="https://d"), client=Recorder().client())
        assert sender.build_url() == "https://d"

    @pytest.mark.anyio
    async def test_errcode(self):
        recorder = Recorder(body={"errcode": 310000, "errmsg": "keywords not in content"})
        sender = DingdingSender(DingdingConfig(webhook="https://d"), client=recorder.client())

        with pytest.raises(SendError) as exc_info:
            await sender.send(make_notification(ChannelType.IM_DINGDING))
        assert exc_info.value.data["errcode"] == 310000


class TestSmsSender:
    """测试短信发送器"""

    @staticmethod
    def make_sender(recorder: Recorder, template_code: str | None = None) -> SmsSender:
        config = SmsConfig(
            endpoint="https://dysmsapi.aliyuncs.com",
            access_key_id="id",
            access_key_secret="secret",
            sign_name="签名",
            template_code=template_code,
        )
        return SmsSender(config, client=recorder.client(), clock=lambda: FIXED_NOW, nonce_factory=lambda: "nonce-1")

    def test_build_params(self):
        sender = self.make_sender(Recorder())
        params = sender.build_params("13800000000", '{"code":"1234"}')

        assert params["Action"] == "SendSms"
        assert params["Version"] == "2017-05-25"
        assert params["PhoneNumbers"] == "13800000000"
        assert params["TemplateParam"] == '{"code":"1234"}'
        assert params["TemplateCode"] == DEFAULT_TEMPLATE_CODE
        assert params["SignatureNonce"] == "nonce-1"
        assert params["Timestamp"] == "2023-11-14T22:13:20Z"

        unsigned = {k: v for k, v in params.items() if k != "Signature"}
        assert params["Signature"] == sms_sign("secret", unsigned)

    def test_configured_template_code(self):
        sender = self.make_sender(Recorder(), template_code="SMS_1")
        assert sender.build_params("1", "{}")["TemplateCode"] == "SMS_1"

    def test_format_timestamp(self):
        assert format_timestamp(0) == "1970-01-01T00:00:00Z"

    @pytest.mark.anyio
    async def test_send_posts_form(self):
        recorder = Recorder(body={"Code": "OK"})
        sender = self.make_sender(recorder)

        await sender.send(make_notification(ChannelType.SMS, body='{"code":"1234"}', to="13800000000"))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form["PhoneNumbers"] == "13800000000"
        assert "Signature" in form

    @pytest.mark.anyio
    async def test_non_2xx(self):
        sender = self.make_sender(Recorder(status_code=403, body={"Code": "SignatureDoesNotMatch"}))
        with pytest.raises(HttpTransportError):
            await sender.send(make_notification(ChannelType.SMS, to="1"))


class TestEmailBuild:
    """测试邮件构建"""

    def test_parse_mailbox_with_display_name(self):
        assert parse_mailbox("Bot <bot@example.com>") == "Bot <bot@example.com>"
        assert parse_mailbox("bot@example.com") == "bot@example.com"

    @pytest.mark.parametrize("value", ["", "not-an-address", "a@"])
    def test_invalid_address(self, value):
        with pytest.raises(AddressError):
            parse_mailbox(value)

    def test_build_message(self):
        notification = Notification(
            from_="bot@example.com",
            to="user@example.com",
            subject="主题",
            body="正文",
            channel=ChannelType.EMAIL,
        )
        message = build_email_message(notification)
        assert message["From"] == "bot@example.com"
        assert message["To"] == "user@example.com"
        assert message["Subject"] == "主题"
        assert message.get_content().strip() == "正文"


class TestEmailSender:
    """测试邮件发送器"""

    @staticmethod
    def make_notification(to: str = "user@example.com") -> Notification:
        return Notification(from_="bot@example.com", to=to, subject="s", body="b", channel=ChannelType.EMAIL)

    @pytest.mark.anyio
    async def test_starttls_on_587(self):
        sender = EmailSender(EmailConfig(smtp_server="smtp.example.com", smtp_user="u", smtp_pass="p"))
        with patch(
            "notifier.services.notification.channels.email.aiosmtplib.send",
            AsyncMock(return_value=({}, "OK")),
        ) as mock_send:
            await sender.send(self.make_notification())

        kwargs = mock_send.call_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 587
        assert kwargs["use_tls"] is False
        assert kwargs["start_tls"] is True

    @pytest.mark.anyio
    async def test_implicit_tls_on_465(self):
        sender = EmailSender(EmailConfig(smtp_server="smtp.example.com", smtp_user="u", smtp_pass="p", smtp_port=465))
        with patch(
            "notifier.services.notification.channels.email.aiosmtplib.send",
            AsyncMock(return_value=({}, "OK")),
        ) as mock_send:
            await sender.send(self.make_notification())

        kwargs = mock_send.call_args.kwargs
        assert kwargs["use_tls"] is True
        assert kwargs["start_tls"] is False

    @pytest.mark.anyio
    async def test_smtp_failure(self):
        sender = EmailSender(EmailConfig(smtp_server="smtp.example.com", smtp_user="u", smtp_pass="p"))
        with patch(
            "notifier.services.notification.channels.email.aiosmtplib.send",
            AsyncMock(side_effect=aiosmtplib.SMTPAuthenticationError(535, "auth failed")),
        ):
            with pytest.raises(SmtpTransportError):
                await sender.send(self.make_notification())

    @pytest.mark.anyio
    async def test_bad_address_never_connects(self):
        sender = EmailSender(EmailConfig(smtp_server="smtp.example.com", smtp_user="u", smtp_pass="p"))
        with patch(
            "notifier.services.notification.channels.email.aiosmtplib.send",
            AsyncMock(return_value=({}, "OK")),
        ) as mock_send:
            with pytest.raises(AddressError):
                await sender.send(self.make_notification(to="nobody"))
        mock_send.assert_not_called()
