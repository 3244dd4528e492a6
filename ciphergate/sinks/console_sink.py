from ciphergate.models import Notice
from .base import NotificationSink


class ConsoleSink(NotificationSink):
    """Prints notices to console."""

    def __init__(self, enabled: bool = True):
        self._enabled = enabled

    @property
    def name(self) -> str:
        return "console"

    async def send(self, notice: Notice) -> bool:
        print(f"[NOTIFICATION] {notice.level} | {notice.message}")
        return True

    def is_enabled(self) -> bool:
        return self._enabled
