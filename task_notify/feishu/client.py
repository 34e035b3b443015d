"""
Feishu custom-bot webhook client.

Handles:
- Envelope building for text / post (rich text) / interactive (template card)
- A single JSON POST per message (http or https, from the URL)
- Response classification: only ``code == 0`` counts as delivered
"""

import json

import httpx
import structlog

from task_notify.config import DEFAULT_CARD_TEMPLATE_ID
from task_notify.errors import TransportError

logger = structlog.get_logger()


# ------------------------------------------------------------------
# Envelopes
# ------------------------------------------------------------------

def text_payload(text: str) -> dict:
    return {"msg_type": "text", "content": {"text": text}}


def post_payload(title: str, text: str) -> dict:
    return {
        "msg_type": "post",
        "content": {
            "post": {
                "zh_cn": {
                    "title": title,
                    "content": [[{"tag": "text", "text": text}]],
                }
            }
        },
    }


def card_payload(title: str, text: str, template_id: str = DEFAULT_CARD_TEMPLATE_ID) -> dict:
    return {
        "msg_type": "interactive",
        "content": {
            "type": "template",
            "data": {
                "template_id": template_id,
                "template_variable": {"title": title, "content": text},
            },
        },
    }


class FeishuWebhookClient:
    """Posts messages to one incoming-webhook URL (no auth needed)."""

    def __init__(self, webhook_url: str, timeout: float = 10.0, http: httpx.AsyncClient | None = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._http = http

    async def send_text(self, text: str) -> dict:
        return await self.send_payload(text_payload(text))

    async def send_rich_text(self, title: str, text: str) -> dict:
        return await self.send_payload(post_payload(title, text))

    async def send_card(self, title: str, text: str, template_id: str = DEFAULT_CARD_TEMPLATE_ID) -> dict:
        return await self.send_payload(card_payload(title, text, template_id))

    async def send_payload(self, payload: dict) -> dict:
        """POST one envelope and return the parsed response.

        Raises TransportError on network failure, an unparseable body,
        or any response whose ``code`` is not 0.
        """
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json", "Content-Length": str(len(body))}

        try:
            if self._http is not None:
                resp = await self._http.post(self.webhook_url, content=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as http:
                    resp = await http.post(self.webhook_url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("feishu.webhook_request_failed", error=str(e))
            raise TransportError(f"Request to Feishu failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("feishu.webhook_bad_response", status=resp.status_code)
            raise TransportError(
                f"Malformed Feishu response (HTTP {resp.status_code})", status_code=resp.status_code
            ) from e

        if not isinstance(data, dict) or "code" not in data:
            if resp.is_error:
                raise TransportError(f"Feishu responded with HTTP {resp.status_code}", status_code=resp.status_code)
            raise TransportError("Feishu response has no 'code' field", status_code=resp.status_code)

        if data.get("code") != 0:
            logger.error("feishu.webhook_failed", detail=data)
            raise TransportError(
                str(data.get("msg") or f"Feishu returned code {data.get('code')}"),
                status_code=resp.status_code,
                code=data.get("code"),
            )

        return data
