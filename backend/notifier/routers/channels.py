"""渠道列表 API"""

from fastapi import APIRouter

from notifier.schemas.notification import ApiResponse, ChannelInfo
from notifier.services.notification.base import SUPPORTED_CHANNELS, ChannelType

router = APIRouter(prefix="/api/v1", tags=["channels"])

CHANNEL_NAMES: dict[ChannelType, str] = {
    ChannelType.EMAIL: "邮件",
    ChannelType.SMS: "短信",
    ChannelType.IM_FEISHU: "飞书",
    ChannelType.IM_DINGDING: "钉钉",
    ChannelType.IM_WECHAT: "企业微信",
    ChannelType.PUSH: "推送通知",
    ChannelType.SITE_MESSAGE: "站内消息",
}


@router.get("/channels", response_model=ApiResponse[list[ChannelInfo]])
async def list_channels():
    """获取支持的渠道列表（静态，与当前配置无关）"""
    channels = [
        ChannelInfo(channel=channel, name=CHANNEL_NAMES[channel], supported=channel in SUPPORTED_CHANNELS)
        for channel in ChannelType
    ]
    return ApiResponse(data=channels)
