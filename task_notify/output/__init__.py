from task_notify.output.base import Channel, ChannelResult, NotificationRequest
from task_notify.output.feishu import WebhookChannel
from task_notify.output.router import build_channels, dispatch, dispatch_config
from task_notify.output.sound import SoundChannel
from task_notify.output.summary import SummaryReport
from task_notify.output.telegram import TelegramChannel

__all__ = [
    "Channel",
    "ChannelResult",
    "NotificationRequest",
    "SoundChannel",
    "SummaryReport",
    "TelegramChannel",
    "WebhookChannel",
    "build_channels",
    "dispatch",
    "dispatch_config",
]
