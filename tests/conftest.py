import json

import httpx
import pytest

from task_notify.config import Settings


@pytest.fixture
def clean_settings() -> Settings:
    """Settings with no environment overlay, whatever the host env holds."""
    return Settings(
        _env_file=None,
        FEISHU_WEBHOOK_URL=None,
        FEISHU_MSG_TYPE=None,
        FEISHU_TIMEOUT=None,
        TELEGRAM_BOT_TOKEN=None,
        TELEGRAM_CHAT_ID=None,
        SOUND_ENABLED=None,
        SOUND_BACKUP=None,
        TASK_NOTIFY_CONFIG="config.json",
    )


class RecordingTransport:
    """Builds an httpx client whose requests are answered by ``responder``."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def sent_json(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def feishu_ok():
    return RecordingTransport(lambda request: httpx.Response(200, json={"code": 0, "msg": "ok"}))
