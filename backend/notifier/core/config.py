"""应用配置管理

通知渠道配置按块划分，每个渠道由一个"锚点"字段决定是否启用：
- 邮件：EMAIL_SMTP_SERVER
- 短信：SMS_ENDPOINT
- 飞书：FEISHU_WEBHOOK
- 钉钉：DINGDING_WEBHOOK

锚点为空表示该渠道未配置（禁用）；锚点已设置但缺少必填项时启动失败。
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class EmailConfig:
    """邮件配置"""

    smtp_server: str
    smtp_user: str
    smtp_pass: str
    smtp_port: int = 587
    timeout: float = 30.0


@dataclass(frozen=True)
class SmsConfig:
    """短信配置（阿里云）"""

    endpoint: str
    access_key_id: str
    access_key_secret: str
    sign_name: str
    template_code: str | None = None
    region_id: str = "cn-hangzhou"


@dataclass(frozen=True)
class FeishuConfig:
    """飞书机器人配置"""

    webhook: str
    secret: str | None = None


@dataclass(frozen=True)
class DingdingConfig:
    """钉钉机器人配置"""

    webhook: str
    secret: str | None = None


# 每个渠道块的必填字段（第一个为锚点）
_REQUIRED_CHANNEL_FIELDS: dict[str, tuple[str, ...]] = {
    "email": ("EMAIL_SMTP_SERVER", "EMAIL_SMTP_USER", "EMAIL_SMTP_PASS"),
    "sms": ("SMS_ENDPOINT", "SMS_ACCESS_KEY_ID", "SMS_ACCESS_KEY_SECRET", "SMS_SIGN_NAME"),
    "feishu": ("FEISHU_WEBHOOK",),
    "dingding": ("DINGDING_WEBHOOK",),
}


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "flare-notify"
    APP_VERSION: str = "0.1.0"

    # 服务配置
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "*"

    # 日志配置
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_MODE: str = "detailed"  # simple, detailed, json
    LOG_FILE: str = "./logs/notify.log"  # 日志文件路径
    LOG_FILE_ROTATION: str = "10 MB"
    LOG_FILE_RETENTION: str = "7 days"

    # ========== 邮件渠道 ==========
    EMAIL_SMTP_SERVER: str = ""
    EMAIL_SMTP_USER: str = ""
    EMAIL_SMTP_PASS: str = ""
    EMAIL_SMTP_PORT: int = 587
    EMAIL_SMTP_TIMEOUT: float = 30.0
    EMAIL_DEFAULT_FROM: str = "noreply@example.com"  # 未配置 SMTP 账号时的兜底发件人

    # ========== 短信渠道（阿里云） ==========
    SMS_ENDPOINT: str = ""
    SMS_ACCESS_KEY_ID: str = ""
    SMS_ACCESS_KEY_SECRET: str = ""
    SMS_SIGN_NAME: str = ""
    SMS_TEMPLATE_CODE: str | None = None
    SMS_REGION_ID: str = "cn-hangzhou"

    # ========== 飞书机器人 ==========
    FEISHU_WEBHOOK: str = ""
    FEISHU_SECRET: str | None = None

    # ========== 钉钉机器人 ==========
    DINGDING_WEBHOOK: str = ""
    DINGDING_SECRET: str | None = None

    # HTTP 请求超时（秒），作用于飞书/钉钉/短信
    NOTIFY_HTTP_TIMEOUT: float = 10.0

    # ========== Kafka 消费配置 ==========
    KAFKA_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPICS: str = "flare-messages"  # 逗号分隔
    KAFKA_GROUP_ID: str = "flare-workers"

    @model_validator(mode="after")
    def _check_channel_blocks(self) -> "Settings":
        """锚点字段已设置的渠道块必须完整"""
        for block, fields in _REQUIRED_CHANNEL_FIELDS.items():
            anchor, *rest = fields
            if not getattr(self, anchor):
                continue
            missing = [name for name in rest if not getattr(self, name)]
            if missing:
                raise ValueError(f"{block} 渠道配置不完整，缺少: {', '.join(missing)}")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS 允许的源列表（逗号分隔）"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def kafka_topics_list(self) -> list[str]:
        """Kafka 订阅的 topic 列表"""
        return [topic.strip() for topic in self.KAFKA_TOPICS.split(",") if topic.strip()]

    @property
    def email_config(self) -> EmailConfig | None:
        """邮件配置，未配置返回 None"""
        if not self.EMAIL_SMTP_SERVER:
            return None
        return EmailConfig(
            smtp_server=self.EMAIL_SMTP_SERVER,
            smtp_user=self.EMAIL_SMTP_USER,
            smtp_pass=self.EMAIL_SMTP_PASS,
            smtp_port=self.EMAIL_SMTP_PORT,
            timeout=self.EMAIL_SMTP_TIMEOUT,
        )

    @property
    def sms_config(self) -> SmsConfig | None:
        """短信配置，未配置返回 None"""
        if not self.SMS_ENDPOINT:
            return None
        return SmsConfig(
            endpoint=self.SMS_ENDPOINT,
            access_key_id=self.SMS_ACCESS_KEY_ID,
            access_key_secret=self.SMS_ACCESS_KEY_SECRET,
            sign_name=self.SMS_SIGN_NAME,
            template_code=self.SMS_TEMPLATE_CODE or None,
            region_id=self.SMS_REGION_ID,
        )

    @property
    def feishu_config(self) -> FeishuConfig | None:
        """飞书配置，未配置返回 None"""
        if not self.FEISHU_WEBHOOK:
            return None
        return FeishuConfig(webhook=self.FEISHU_WEBHOOK, secret=self.FEISHU_SECRET or None)

    @property
    def dingding_config(self) -> DingdingConfig | None:
        """钉钉配置，未配置返回 None"""
        if not self.DINGDING_WEBHOOK:
            return None
        return DingdingConfig(webhook=self.DINGDING_WEBHOOK, secret=self.DINGDING_SECRET or None)


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
