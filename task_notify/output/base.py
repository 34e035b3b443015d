from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class NotificationRequest:
    message: str
    project_name: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def title(self) -> str:
        # Project first so it survives truncation on small (wristband) screens
        if self.project_name:
            return f"{self.project_name}: {self.message}"
        return self.message


@dataclass(frozen=True)
class ChannelResult:
    channel: str  # e.g. "feishu"
    success: bool
    effect: str = ""  # what the user notices on success, e.g. "chat message"
    error: str | None = None
    config_error: bool = False  # failed because the channel is not set up

    @classmethod
    def ok(cls, channel: str, effect: str = "") -> "ChannelResult":
        return cls(channel=channel, success=True, effect=effect)

    @classmethod
    def failed(cls, channel: str, error: str, effect: str = "", config_error: bool = False) -> "ChannelResult":
        return cls(channel=channel, success=False, effect=effect, error=error, config_error=config_error)


class Channel(ABC):
    """One way of telling the user a task finished.

    ``deliver`` must not raise: every problem becomes a failed ChannelResult.
    """

    name: str = "unknown"
    effect: str = ""

    @abstractmethod
    async def deliver(self, request: NotificationRequest) -> ChannelResult:
        ...

    def success(self) -> ChannelResult:
        return ChannelResult.ok(self.name, self.effect)

    def failure(self, error: str, config_error: bool = False) -> ChannelResult:
        return ChannelResult.failed(self.name, error, self.effect, config_error)
