"""
Layered notification config: defaults -> JSON file -> environment.

File shape:
    {"notification": {"feishu": {...}, "telegram": {...}, "sound": {...}}}

Each layer only overrides the keys it actually sets.
"""

import json
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings

from task_notify.errors import ConfigurationError

logger = structlog.get_logger()

WEBHOOK_PLACEHOLDER = "YOUR_WEBHOOK_URL_HERE"
DEFAULT_WEBHOOK_URL = f"https://open.feishu.cn/open-apis/bot/v2/hook/{WEBHOOK_PLACEHOLDER}"
DEFAULT_CARD_TEMPLATE_ID = "AAqKGP7Qx6y9R"


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    TASK_NOTIFY_CONFIG: str = "config.json"

    # Seconds to linger after dispatch so a launched sound becomes audible
    GRACE_DELAY: float = 3.0

    # Feishu
    FEISHU_WEBHOOK_URL: str | None = None
    FEISHU_MSG_TYPE: Literal["text", "post", "interactive"] | None = None
    FEISHU_TIMEOUT: float | None = None

    # Telegram
    TELEGRAM_BOT_TOKEN: str | None = None
    TELEGRAM_CHAT_ID: str | None = None

    # Sound
    SOUND_ENABLED: bool | None = None
    SOUND_BACKUP: bool | None = None


def load_settings(env_file: str | None = ".env") -> Settings:
    """Read the environment layer. Unusable values are dropped, never fatal."""
    try:
        return Settings(_env_file=env_file)
    except ValidationError as e:
        bad_keys = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        logger.warning("config.invalid_environment", dropped=bad_keys, error=str(e))

    defaults = {key: Settings.model_fields[key].default for key in bad_keys if key in Settings.model_fields}
    try:
        return Settings(_env_file=env_file, **defaults)
    except ValidationError:
        logger.exception("config.environment_unusable")
        return Settings.model_construct()


settings = load_settings()


# ---------------------------------------------------------------------------
# Per-channel config
# ---------------------------------------------------------------------------
class FeishuChannelConfig(BaseModel):
    model_config = {"frozen": True, "extra": "ignore"}

    enabled: bool = False
    webhook_url: str = DEFAULT_WEBHOOK_URL
    msg_type: Literal["text", "post", "interactive"] = "post"
    template_id: str = DEFAULT_CARD_TEMPLATE_ID
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url) and WEBHOOK_PLACEHOLDER not in self.webhook_url


class TelegramChannelConfig(BaseModel):
    model_config = {"frozen": True, "extra": "ignore"}

    enabled: bool = False
    bot_token: str = ""
    chat_id: str = ""
    parse_mode: str | None = None
    timeout: float = 10.0


class SoundChannelConfig(BaseModel):
    model_config = {"frozen": True, "extra": "ignore"}

    enabled: bool = True
    backup: bool = True


class NotificationConfig(BaseModel):
    """Which channels are enabled, in declaration (and report) order."""

    model_config = {"frozen": True, "extra": "ignore"}

    feishu: FeishuChannelConfig = FeishuChannelConfig()
    telegram: TelegramChannelConfig = TelegramChannelConfig()
    sound: SoundChannelConfig = SoundChannelConfig()


CHANNEL_MODELS: dict[str, type[BaseModel]] = {
    "feishu": FeishuChannelConfig,
    "telegram": TelegramChannelConfig,
    "sound": SoundChannelConfig,
}

# Older config files carry a top-level "type" string next to the channel sections
NON_CHANNEL_KEYS = {"type"}


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------
def read_config_file(path: Path) -> dict:
    """Return the ``notification`` section of a JSON config file.

    Raises ConfigurationError when the file exists but cannot be used.
    A missing file is not an error and yields an empty layer.
    """
    if not path.exists():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    section = data.get("notification", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"'notification' in {path} must be an object")
    return section


def env_layer(env: Settings) -> dict:
    """Translate environment settings into the same shape as the file layer."""
    layer: dict[str, dict] = {}

    if env.FEISHU_WEBHOOK_URL:
        layer["feishu"] = {"webhook_url": env.FEISHU_WEBHOOK_URL, "enabled": True}
    if env.FEISHU_MSG_TYPE:
        layer.setdefault("feishu", {})["msg_type"] = env.FEISHU_MSG_TYPE
    if env.FEISHU_TIMEOUT is not None:
        layer.setdefault("feishu", {})["timeout"] = env.FEISHU_TIMEOUT

    if env.TELEGRAM_BOT_TOKEN and env.TELEGRAM_CHAT_ID:
        layer["telegram"] = {
            "bot_token": env.TELEGRAM_BOT_TOKEN,
            "chat_id": env.TELEGRAM_CHAT_ID,
            "enabled": True,
        }

    sound: dict = {}
    if env.SOUND_ENABLED is not None:
        sound["enabled"] = env.SOUND_ENABLED
    if env.SOUND_BACKUP is not None:
        sound["backup"] = env.SOUND_BACKUP
    if sound:
        layer["sound"] = sound

    return layer


def merge_layers(*layers: dict) -> dict:
    """Merge channel sections left to right; later layers win per key."""
    merged: dict[str, dict] = {}
    for layer in layers:
        for channel, values in layer.items():
            if channel in NON_CHANNEL_KEYS:
                continue
            if not isinstance(values, dict):
                logger.warning("config.channel_ignored", channel=channel)
                continue
            merged.setdefault(channel, {}).update(values)
    return merged


def load_config(path: str | Path | None = None, env: Settings | None = None) -> NotificationConfig:
    """Build the run's NotificationConfig. Never raises on a bad file."""
    env = env or settings
    config_path = Path(path or env.TASK_NOTIFY_CONFIG)

    try:
        file_layer = read_config_file(config_path)
    except ConfigurationError as e:
        logger.warning("config.file_unusable", path=str(config_path), error=str(e))
        file_layer = {}

    env_values = env_layer(env)
    merged = merge_layers(file_layer, env_values)

    # A bad section only costs its own file values
    sections = {}
    for channel, model in CHANNEL_MODELS.items():
        try:
            sections[channel] = model.model_validate(merged.get(channel, {}))
        except ValidationError as e:
            logger.warning(
                "config.invalid_file_values",
                path=str(config_path),
                channel=channel,
                dropped=file_layer.get(channel),
                error=str(e),
            )
            sections[channel] = model.model_validate(env_values.get(channel, {}))
    config = NotificationConfig(**sections)

    logger.debug(
        "config.loaded",
        path=str(config_path),
        feishu=config.feishu.enabled,
        telegram=config.telegram.enabled,
        sound=config.sound.enabled,
    )
    return config
