"""Liveness probing for relay connections.

Every tick, connections that did not answer the previous probe are evicted
and the rest are probed again. One missed interval is enough to be dropped:
a slow client reconnects, a dead one stops holding the worker role.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chapter_relay.contracts import CloseCode, CloseReason
from chapter_relay.contracts.messages import ping
from chapter_relay.engine.timers import Scheduler, TimerHandle

if TYPE_CHECKING:
    from chapter_relay.engine.coordinator import Coordinator

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Periodically pings every connection and evicts unresponsive ones."""

    def __init__(
        self,
        coordinator: Coordinator,
        scheduler: Scheduler,
        interval_seconds: float = 10.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        self._coordinator = coordinator
        self._scheduler = scheduler
        self._interval_seconds = interval_seconds
        self._handle: TimerHandle | None = None
        self._running = False

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start probing on the configured interval."""
        if self._running:
            return
        self._running = True
        self._schedule_next()
        logger.info(f"Heartbeat monitor started (interval={self._interval_seconds}s)")

    def stop(self) -> None:
        """Stop probing."""
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.info("Heartbeat monitor stopped")

    def _schedule_next(self) -> None:
        self._handle = self._scheduler.call_later(self._interval_seconds, self._on_tick)

    def _on_tick(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self.tick()
        finally:
            if self._running:
                self._schedule_next()

    def tick(self) -> list[str]:
        """Run one probe round. Returns the ids of evicted connections."""
        evicted: list[str] = []
        for connection in self._coordinator.registry.connections():
            if not connection.is_alive:
                logger.info(
                    f"Client {connection.display_name} is not responsive. "
                    "Terminating connection."
                )
                self._coordinator.evict(
                    connection.id,
                    code=CloseCode.HEARTBEAT_TIMEOUT,
                    reason=CloseReason.HEARTBEAT_TIMEOUT,
                )
                evicted.append(connection.id)
                continue
            connection.is_alive = False
            self._coordinator.send(connection, ping())
        return evicted

    def mark_alive(self, connection_id: str) -> bool:
        """Record a probe response. Returns False for unknown connections."""
        connection = self._coordinator.registry.get(connection_id)
        if connection is None:
            return False
        connection.is_alive = True
        return True
