"""
Feishu output: deliver a completion notice through a custom-bot webhook.

The message shape follows ``msg_type`` from config:
- text         plain "<title>\\n<body>"
- post         rich text with the title on top (default)
- interactive  template card
"""

import httpx
import structlog

from task_notify.config import FeishuChannelConfig
from task_notify.errors import TransportError
from task_notify.feishu.client import FeishuWebhookClient
from task_notify.output.base import Channel, ChannelResult, NotificationRequest

logger = structlog.get_logger()

FEISHU_SETUP_GUIDE = """\
To configure the Feishu webhook:
1. Create a group chat in Feishu
2. Add a custom bot to the group
3. Copy the bot's webhook URL
4. Set FEISHU_WEBHOOK_URL, pass --webhook, or put it in config.json under notification.feishu.webhook_url"""


def build_body(request: NotificationRequest) -> str:
    finished = request.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    return f"Finished at: {finished}\n\nResults are ready to review."


class WebhookChannel(Channel):
    name = "feishu"
    effect = "chat message"

    def __init__(self, config: FeishuChannelConfig, http: httpx.AsyncClient | None = None):
        self.config = config
        self._http = http

    async def deliver(self, request: NotificationRequest) -> ChannelResult:
        if not self.config.is_configured:
            logger.warning("output.feishu.not_configured")
            return self.failure("Feishu webhook URL is not configured", config_error=True)

        client = FeishuWebhookClient(self.config.webhook_url, timeout=self.config.timeout, http=self._http)
        title = request.title
        body = build_body(request)
        target = self.config.webhook_url[:60]

        try:
            if self.config.msg_type == "text":
                await client.send_text(f"{title}\n{body}")
            elif self.config.msg_type == "interactive":
                await client.send_card(title, body, self.config.template_id)
            else:
                await client.send_rich_text(title, body)
        except TransportError as e:
            logger.warning("output.feishu.failed", target=target, error=str(e))
            return self.failure(str(e))
        except Exception as e:
            logger.exception("output.feishu.failed", target=target)
            return self.failure(f"Unexpected error: {e}")

        logger.info("output.feishu.sent", target=target, msg_type=self.config.msg_type)
        return self.success()
