class NotificationError(Exception):
    """Base class for errors raised while preparing or delivering a notification."""


class ConfigurationError(NotificationError):
    """Missing or placeholder settings, unreadable config file."""


class TransportError(NotificationError):
    """Network failure or an unusable webhook response."""

    def __init__(self, message: str, status_code: int | None = None, code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SideEffectError(NotificationError):
    """A local side effect (sound process) could not be started or exited non-zero."""
