"""Pytest 配置"""

import os

import pytest

# 测试环境不写日志文件，也不启用任何真实渠道和 Kafka。
# 这些值在导入 notifier.core.config 之前生效。
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_MODE", "simple")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("KAFKA_ENABLED", "false")
for _key in ("EMAIL_SMTP_SERVER", "SMS_ENDPOINT", "FEISHU_WEBHOOK", "DINGDING_WEBHOOK"):
    os.environ[_key] = ""


@pytest.fixture
def anyio_backend():
    return "asyncio"
