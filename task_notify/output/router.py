"""
Output router: dispatch one notification to every enabled channel.

Channels run concurrently; results come back in declaration order
(feishu, telegram, sound), one per enabled channel.
"""

import asyncio

import httpx
import structlog

from task_notify.config import NotificationConfig
from task_notify.output.base import Channel, ChannelResult, NotificationRequest
from task_notify.output.feishu import WebhookChannel
from task_notify.output.sound import SoundChannel
from task_notify.output.telegram import TelegramChannel

logger = structlog.get_logger()


def build_channels(config: NotificationConfig, http: httpx.AsyncClient | None = None) -> list[Channel]:
    """Instantiate the enabled channels in declaration order."""
    channels: list[Channel] = []
    if config.feishu.enabled:
        channels.append(WebhookChannel(config.feishu, http=http))
    if config.telegram.enabled:
        channels.append(TelegramChannel(config.telegram, http=http))
    if config.sound.enabled:
        channels.append(SoundChannel(config.sound))
    return channels


async def _settle(channel: Channel, request: NotificationRequest) -> ChannelResult:
    try:
        return await channel.deliver(request)
    except Exception as e:
        logger.exception("output.channel_raised", channel=channel.name)
        return channel.failure(f"Unexpected error: {e}")


async def dispatch(request: NotificationRequest, channels: list[Channel]) -> list[ChannelResult]:
    """Deliver ``request`` through all ``channels`` and wait for every one to settle.

    Returns:
        One ChannelResult per channel, in the order given.
    """
    if not channels:
        logger.info("dispatch.no_channels")
        return []

    logger.info("dispatch.start", channels=[c.name for c in channels])
    results = await asyncio.gather(*(_settle(c, request) for c in channels))

    failed = [r.channel for r in results if not r.success]
    logger.info("dispatch.done", total=len(results), failed=failed)
    return list(results)


async def dispatch_config(
    request: NotificationRequest,
    config: NotificationConfig,
    http: httpx.AsyncClient | None = None,
) -> list[ChannelResult]:
    return await dispatch(request, build_channels(config, http=http))
