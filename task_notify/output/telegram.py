import httpx
import structlog

from task_notify.config import TelegramChannelConfig
from task_notify.output.base import Channel, ChannelResult, NotificationRequest

logger = structlog.get_logger()

TELEGRAM_API = "https://api.telegram.org"


class TelegramChannel(Channel):
    """Bot API ``sendMessage`` to a single chat."""

    name = "telegram"
    effect = "chat message"

    def __init__(self, config: TelegramChannelConfig, http: httpx.AsyncClient | None = None):
        self.config = config
        self._http = http

    async def deliver(self, request: NotificationRequest) -> ChannelResult:
        if not self.config.bot_token or not self.config.chat_id:
            logger.warning("output.telegram.not_configured")
            return self.failure("Telegram bot token or chat id is not configured", config_error=True)

        url = f"{TELEGRAM_API}/bot{self.config.bot_token}/sendMessage"
        payload = {
            "chat_id": self.config.chat_id,
            "text": f"{request.title}\nFinished at: {request.timestamp:%Y-%m-%d %H:%M:%S}",
        }
        if self.config.parse_mode:
            payload["parse_mode"] = self.config.parse_mode

        try:
            if self._http is not None:
                resp = await self._http.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout) as http:
                    resp = await http.post(url, json=payload)
            data = resp.json()
        except httpx.HTTPError as e:
            logger.warning("output.telegram.failed", error=str(e))
            return self.failure(f"Request to Telegram failed: {e}")
        except ValueError:
            logger.warning("output.telegram.bad_response", status=resp.status_code)
            return self.failure(f"Malformed Telegram response (HTTP {resp.status_code})")

        if not isinstance(data, dict) or not data.get("ok"):
            detail = data.get("description") if isinstance(data, dict) else None
            logger.warning("output.telegram.failed", detail=data)
            return self.failure(str(detail or f"Telegram responded with HTTP {resp.status_code}"))

        logger.info("output.telegram.sent", chat_id=self.config.chat_id)
        return self.success()
