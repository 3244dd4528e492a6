"""Supervised inbound message listener.

Runs the transport's listen loop as a background task, restarting it with
exponential backoff when it fails. stop() cancels it cleanly.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from ciphergate.transport import MessageHandler, MessagingTransport

log = logging.getLogger(__name__)


class ListenerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    BACKOFF = "backoff"


class InboundListener:
    def __init__(
        self,
        transport: MessagingTransport,
        handler: MessageHandler,
        backoff_initial: float = 1.0,
        backoff_max: float = 300.0,
    ):
        self.transport = transport
        self.handler = handler
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.state = ListenerState.STOPPED
        self.restarts = 0
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._stop = asyncio.Event()
        self.state = ListenerState.RUNNING
        self._task = asyncio.create_task(self._supervise(), name=f"{self.transport.name}-listener")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._stop.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.state = ListenerState.STOPPED
        log.info(f"[LISTENER] {self.transport.name} listener stopped (restarts: {self.restarts})")

    async def _supervise(self):
        loop = asyncio.get_running_loop()
        delay = self.backoff_initial

        while not self._stop.is_set():
            self.state = ListenerState.RUNNING
            started = loop.time()
            try:
                await self.transport.listen(self.handler)
                log.warning(f"[LISTENER] {self.transport.name} listen loop returned")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.last_error = str(e)
                log.error(f"[LISTENER] {self.transport.name} listener failed: {e}")

            # A listener that stayed up for a while earns a fresh backoff
            if loop.time() - started >= self.backoff_max:
                delay = self.backoff_initial

            self.state = ListenerState.BACKOFF
            log.info(f"[LISTENER] restarting in {delay:.1f}s")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            self.restarts += 1
            delay = min(delay * 2, self.backoff_max)

        self.state = ListenerState.STOPPED
