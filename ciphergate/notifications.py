"""Status notifications shown to the operator.

Transient notices expire on their own timer task so delivery and expiry
never hold up message processing.
"""

import asyncio
import itertools
import logging
from typing import Optional

from ciphergate.config import NOTIFICATION_TTL
from ciphergate.models import Notice
from ciphergate.sinks import NotificationSink

log = logging.getLogger(__name__)


class NotificationCenter:
    """Holds active notices and fans them out to sinks."""

    def __init__(self, sinks: list[NotificationSink] = None, ttl: float = NOTIFICATION_TTL):
        self.sinks = sinks or []
        self.ttl = ttl
        self._notices: dict[int, Notice] = {}
        self._ids = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()

    def _spawn(self, coro):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def notify(self, message: str, level: str = "notice") -> Notice:
        notice = Notice(id=next(self._ids), message=message, level=level)
        self._notices[notice.id] = notice
        if self.sinks:
            try:
                self._spawn(self._deliver(notice))
            except RuntimeError:
                log.debug(f"No running loop, notice {notice.id} not delivered to sinks")
        return notice

    def notify_transient(self, message: str, ttl: Optional[float] = None, level: str = "notice") -> Notice:
        """Add a notice that removes itself after ttl seconds."""
        notice = self.notify(message, level=level)
        self._spawn(self._expire(notice.id, self.ttl if ttl is None else ttl))
        return notice

    def report_error(self, err: Exception) -> Notice:
        log.error(f"[ERROR] {err}")
        return self.notify_transient(str(err), level="error")

    def remove(self, notice_id: int) -> bool:
        return self._notices.pop(notice_id, None) is not None

    def active(self) -> list[Notice]:
        return list(self._notices.values())

    async def _expire(self, notice_id: int, ttl: float):
        await asyncio.sleep(ttl)
        self.remove(notice_id)

    async def _deliver(self, notice: Notice):
        for sink in self.sinks:
            if sink.is_enabled():
                if not await sink.send(notice):
                    log.warning(f"[{sink.name}] failed to deliver notice {notice.id}")

    async def close(self):
        """Cancel pending expiry and delivery tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
