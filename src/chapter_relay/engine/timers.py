"""Scheduled callbacks for the relay's two timers (heartbeat and retry backoff)."""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs callbacks later on the coordinator's event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""
        ...

    def time(self) -> float:
        """Current scheduler time in seconds."""
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(
        self, delay: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), _guarded(callback))

    def time(self) -> float:
        return self.loop.time()


def _guarded(callback: Callable[[], None]) -> Callable[[], None]:
    """Log instead of letting a timer callback kill the loop's handler."""

    def run() -> None:
        try:
            callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", callback)

    return run
