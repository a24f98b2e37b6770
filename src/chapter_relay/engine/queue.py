"""Work queue and admission control for chapter translations.

The queue is a pure state machine: it never performs I/O. The coordinator
drives it and turns its decisions into outbound envelopes.

Lifecycle of one item::

    queued -> in_flight -> completed (discarded)
                        -> failed -> queued (front of the queue)
"""

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from chapter_relay.contracts import WorkItemSummary
from chapter_relay.errors import DuplicateWorkError, RelayError

logger = logging.getLogger(__name__)


class WorkState(StrEnum):
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"


@dataclass
class WorkItem:
    """One chapter translation request."""

    # Stable dedup identity: the chapter's source URL.
    work_key: str
    title: str
    # Full start_translation envelope, handed to the worker untouched.
    payload: dict[str, Any]
    requested_by: str | None = None
    assigned_to: str | None = None
    attempts: int = 0
    state: WorkState = WorkState.QUEUED
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def summary(self) -> WorkItemSummary:
        return WorkItemSummary(
            work_key=self.work_key,
            title=self.title,
            attempts=self.attempts,
            assigned_to=self.assigned_to,
        )


class WorkQueue:
    """FIFO backlog plus a single in-flight slot."""

    def __init__(self) -> None:
        self._queue: deque[WorkItem] = deque()
        self._in_flight: WorkItem | None = None

    @property
    def in_flight(self) -> WorkItem | None:
        return self._in_flight

    @property
    def pending(self) -> list[WorkItem]:
        """Queued items, front first."""
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def contains(self, work_key: str) -> bool:
        """Whether ``work_key`` is in flight or queued."""
        if self._in_flight is not None and self._in_flight.work_key == work_key:
            return True
        return any(item.work_key == work_key for item in self._queue)

    def enqueue(self, item: WorkItem) -> WorkItem:
        """Append a new item to the back of the queue.

        Raises:
            DuplicateWorkError: the key is already in flight or queued.
        """
        if self.contains(item.work_key):
            raise DuplicateWorkError(item.work_key)
        item.state = WorkState.QUEUED
        item.assigned_to = None
        self._queue.append(item)
        return item

    @property
    def can_dispatch(self) -> bool:
        return self._in_flight is None and bool(self._queue)

    def start_next(self, assignee: str) -> WorkItem:
        """Move the front item into the in-flight slot."""
        if not self.can_dispatch:
            raise RelayError("Nothing to dispatch: queue empty or an item is in flight")
        item = self._queue.popleft()
        item.state = WorkState.IN_FLIGHT
        item.assigned_to = assignee
        item.attempts += 1
        self._in_flight = item
        return item

    def _claim(self, work_key: str, sender_id: str | None) -> WorkItem | None:
        item = self._in_flight
        if item is None:
            logger.warning(f"Ignoring result for '{work_key}': nothing is in flight")
            return None
        if item.work_key != work_key:
            logger.warning(
                f"Ignoring result for '{work_key}': in-flight item is '{item.work_key}'"
            )
            return None
        if sender_id is not None and item.assigned_to != sender_id:
            logger.warning(
                f"Ignoring result for '{work_key}' from {sender_id}: "
                f"item was assigned to {item.assigned_to}"
            )
            return None
        return item

    def finish(self, work_key: str, sender_id: str | None = None) -> WorkItem | None:
        """Clear the in-flight slot on success. Returns None on mismatch."""
        item = self._claim(work_key, sender_id)
        if item is None:
            return None
        self._in_flight = None
        return item

    def requeue_in_flight(
        self, work_key: str, sender_id: str | None = None
    ) -> WorkItem | None:
        """Put a failed in-flight item back at the front. Returns None on mismatch."""
        item = self._claim(work_key, sender_id)
        if item is None:
            return None
        self._return_to_front(item)
        return item

    def release(self, connection_id: str) -> WorkItem | None:
        """Requeue the in-flight item if ``connection_id`` holds it."""
        item = self._in_flight
        if item is None or item.assigned_to != connection_id:
            return None
        self._return_to_front(item)
        return item

    def _return_to_front(self, item: WorkItem) -> None:
        self._in_flight = None
        item.state = WorkState.QUEUED
        item.assigned_to = None
        self._queue.appendleft(item)

    def unknown_keys(self, work_keys: Iterable[str]) -> list[str]:
        """Keys neither queued nor in flight, in input order without repeats."""
        active = {item.work_key for item in self._queue}
        if self._in_flight is not None:
            active.add(self._in_flight.work_key)

        unknown: list[str] = []
        seen: set[str] = set()
        for key in work_keys:
            if key in active or key in seen:
                continue
            seen.add(key)
            unknown.append(key)
        return unknown
