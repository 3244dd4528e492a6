import logging

import httpx
from ciphergate.models import Notice
from .base import NotificationSink

log = logging.getLogger(__name__)


class NtfySink(NotificationSink):
    """Pushes notices to an ntfy topic."""

    def __init__(self, url: str, enabled: bool = True, verify: bool = True):
        self._url = url
        self._enabled = enabled
        self._verify = verify

    @property
    def name(self) -> str:
        return "ntfy"

    def _sanitize_header(self, value: str) -> str:
        """Remove non-ASCII chars from header values."""
        return value.encode('ascii', errors='ignore').decode('ascii')

    def _map_priority(self, level: str) -> str:
        # ntfy: min, low, default, high, urgent
        mapping = {
            "error": "high",
            "notice": "default",
        }
        return mapping.get(level, "default")

    async def send(self, notice: Notice) -> bool:
        if not self._enabled:
            return False

        try:
            async with httpx.AsyncClient(timeout=10.0, verify=self._verify) as client:
                resp = await client.post(
                    self._url,
                    headers={
                        "Title": self._sanitize_header(f"ciphergate: {notice.level}"),
                        "Priority": self._map_priority(notice.level),
                        "Tags": "ciphergate",
                    },
                    content=notice.message.encode('utf-8'),
                )
                return resp.status_code == 200
        except Exception as e:
            log.error(f"[ntfy] Error sending: {e}")
            return False

    def is_enabled(self) -> bool:
        return self._enabled
