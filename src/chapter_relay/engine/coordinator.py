"""Coordinator: the single owner of relay state.

All operations are synchronous and run to completion on the event loop, so
registry and queue transitions never interleave. Side effects are expressed
as envelopes handed to connection channels; the two timers (heartbeat and
retry backoff) go through the injected :class:`Scheduler`.
"""

import logging
from typing import Any

from chapter_relay.config import Settings
from chapter_relay.contracts import (
    CancelTaskMessage,
    ClientRole,
    CloseCode,
    CloseReason,
    DirectMessage,
    QueueSnapshot,
    RelayMessage,
    StartBulkScrapeMessage,
    StartTranslationMessage,
    SyncPendingChaptersMessage,
    TranslationCompleteMessage,
    TranslationFailedMessage,
)
from chapter_relay.contracts import messages as wire
from chapter_relay.engine.channel import Channel
from chapter_relay.engine.heartbeat import HeartbeatMonitor
from chapter_relay.engine.queue import WorkItem, WorkQueue
from chapter_relay.engine.registry import Connection, ConnectionRegistry
from chapter_relay.engine.timers import LoopScheduler, Scheduler, TimerHandle
from chapter_relay.errors import DuplicateWorkError, UnknownConnectionError

logger = logging.getLogger(__name__)

WORKER_OFFLINE_QUEUED_TEXT = "Browser extension is offline. Request queued."
WORKER_OFFLINE_COMMAND_TEXT = "Browser extension is offline. Command not sent."


class Coordinator:
    """
    Owns the connection registry, the work queue and the relay timers.

    Example:
        coordinator = Coordinator(scheduler=LoopScheduler())
        coordinator.start()
        conn = coordinator.connect(channel)
        coordinator.identify(conn.id, client_type="chrome-extension", client_name="ext")
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler | None = None,
        heartbeat_interval_seconds: float = 10.0,
        retry_backoff_seconds: float = 5.0,
        requeue_on_worker_disconnect: bool = True,
        registry: ConnectionRegistry | None = None,
        queue: WorkQueue | None = None,
    ) -> None:
        if retry_backoff_seconds <= 0:
            raise ValueError(
                f"retry_backoff_seconds must be > 0, got {retry_backoff_seconds}"
            )
        self.registry = registry or ConnectionRegistry()
        self.queue = queue or WorkQueue()
        self._scheduler = scheduler or LoopScheduler()
        self._retry_backoff_seconds = retry_backoff_seconds
        self._requeue_on_worker_disconnect = requeue_on_worker_disconnect
        self._retry_timers: list[TimerHandle] = []
        self.heartbeat = HeartbeatMonitor(
            self, self._scheduler, interval_seconds=heartbeat_interval_seconds
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, scheduler: Scheduler | None = None
    ) -> "Coordinator":
        return cls(
            scheduler=scheduler,
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            requeue_on_worker_disconnect=settings.requeue_on_worker_disconnect,
        )

    @property
    def retry_backoff_seconds(self) -> float:
        return self._retry_backoff_seconds

    def start(self) -> None:
        self.heartbeat.start()

    def stop(self) -> None:
        """Stop timers and close every connection."""
        self.heartbeat.stop()
        for handle in self._retry_timers:
            handle.cancel()
        self._retry_timers.clear()
        for connection in self.registry.connections():
            connection.channel.close(CloseCode.NORMAL, CloseReason.SHUTDOWN)

    # -- Delivery ---------------------------------------------------------

    def send(self, connection: Connection | None, message: dict[str, Any]) -> bool:
        """Deliver to one connection if it exists and is open."""
        if connection is None or not connection.is_open:
            return False
        return connection.channel.send(message)

    def broadcast(self, message: dict[str, Any]) -> int:
        """Deliver to every open connection. Returns how many accepted it."""
        return sum(1 for c in self.registry.connections() if self.send(c, message))

    def send_to_control_app(self, message: dict[str, Any]) -> bool:
        return self.send(self.registry.control_app, message)

    def _send_roster(self) -> None:
        roster = [summary.to_wire() for summary in self.registry.roster()]
        self.send_to_control_app(wire.client_list_update(roster))

    # -- Connections ------------------------------------------------------

    def connect(self, channel: Channel) -> Connection:
        """Register a freshly accepted transport."""
        connection = self.registry.register(channel)
        logger.info(f"Client {connection.id} connected.")
        self.broadcast(wire.client_connected(connection.id))
        self._send_roster()
        return connection

    def identify(
        self,
        connection_id: str,
        *,
        client_type: str | None,
        client_name: str | None,
    ) -> Connection | None:
        """Apply an announce; a new worker replaces any previous one."""
        role = ClientRole.from_client_type(client_type)
        previous = self.registry.get(connection_id)
        was_worker = previous is not None and previous.role == ClientRole.WORKER
        try:
            replaced = self.registry.identify(connection_id, role, client_name)
        except UnknownConnectionError as e:
            logger.warning(f"Ignoring identify: {e}")
            return None

        for old in replaced:
            old.channel.close(CloseCode.REPLACED, CloseReason.REPLACED)
            self._after_removal(old, CloseReason.REPLACED, replaced=True)

        connection = self.registry.get(connection_id)
        if connection is None:
            return None
        logger.info(
            f"Client {connection_id} identified as {client_name} ({client_type})"
        )
        self._send_roster()

        if role == ClientRole.WORKER:
            logger.info("Worker connected. Processing any queued tasks...")
            self.dispatch()
        elif was_worker:
            logger.info(f"Worker {connection.display_name} changed role to {role}.")
            self._release_work(connection, redispatch=True)
        return connection

    def disconnect(self, connection_id: str, reason: str = "") -> Connection | None:
        """Forget a connection whose transport closed. Idempotent."""
        connection = self.registry.unregister(connection_id)
        if connection is None:
            logger.debug(f"Disconnect for unknown connection {connection_id}")
            return None
        self._after_removal(connection, reason or CloseReason.NORMAL, replaced=False)
        return connection

    def evict(self, connection_id: str, *, code: int, reason: str) -> Connection | None:
        """Close a connection from the relay side and forget it."""
        connection = self.registry.get(connection_id)
        if connection is None:
            return None
        connection.channel.close(code, reason)
        return self.disconnect(connection_id, reason)

    def _after_removal(self, connection: Connection, reason: str, *, replaced: bool) -> None:
        logger.info(f"Client {connection.display_name} disconnected. Reason: {reason}")
        self.broadcast(
            wire.client_disconnected(connection.id, connection.display_name, str(reason))
        )
        self._send_roster()
        # A replacing worker dispatches once its identify completes.
        self._release_work(connection, redispatch=not replaced)

    def _release_work(self, connection: Connection, *, redispatch: bool) -> None:
        if not self._requeue_on_worker_disconnect:
            return
        orphan = self.queue.release(connection.id)
        if orphan is None:
            return
        logger.warning(
            f"Worker {connection.display_name} left while translating "
            f"'{orphan.title}'. Re-queueing at the front."
        )
        if redispatch:
            self.dispatch()

    def mark_alive(self, connection_id: str) -> bool:
        return self.heartbeat.mark_alive(connection_id)

    # -- Work queue -------------------------------------------------------

    def request_work(
        self, connection_id: str, message: StartTranslationMessage
    ) -> WorkItem | None:
        """Queue a chapter unless its source URL is already queued or in flight."""
        payload = message.payload
        item = WorkItem(
            work_key=payload.source_url,
            title=payload.title,
            payload=message.raw,
            requested_by=connection_id,
        )
        try:
            self.queue.enqueue(item)
        except DuplicateWorkError:
            logger.info(f"Duplicate translation request rejected for: {payload.title}")
            self.send_to_control_app(
                wire.duplicate_translation_request(payload.title, payload.source_url)
            )
            return None

        logger.info(f"Queuing task: {payload.title}")
        self.dispatch()
        return item

    def dispatch(self) -> WorkItem | None:
        """Hand the front item to the worker when nothing is in flight."""
        if not self.queue.can_dispatch:
            return None
        if self._retry_timers:
            logger.debug("Retry backoff pending. Holding dispatch.")
            return None

        worker = self.registry.worker
        if worker is None or not worker.is_open:
            logger.info("Worker is offline. Task remains queued.")
            self.send_to_control_app(wire.task_queued(WORKER_OFFLINE_QUEUED_TEXT))
            return None

        item = self.queue.start_next(worker.id)
        if not self.send(worker, item.payload):
            logger.warning(f"Could not deliver '{item.title}' to {worker.display_name}")
        self.send_to_control_app(wire.translation_started(item.work_key))
        logger.info(f"Sent task to {worker.display_name} for translation: {item.title}")
        return item

    def complete(
        self, connection_id: str, message: TranslationCompleteMessage
    ) -> WorkItem | None:
        """Accept a finished chapter from the worker holding it."""
        work_key = message.payload.new_chapter.source_url
        if not work_key:
            logger.warning("Ignoring translation_complete without a sourceUrl")
            return None
        item = self.queue.finish(work_key, sender_id=connection_id)
        if item is None:
            return None

        logger.info(f"Translation complete for: {message.payload.new_chapter.title}")
        self.broadcast(message.raw)
        self.dispatch()
        return item

    def fail(
        self, connection_id: str, message: TranslationFailedMessage
    ) -> WorkItem | None:
        """Requeue a failed chapter at the front and retry after the backoff."""
        payload = message.payload
        item = self.queue.requeue_in_flight(payload.source_url, sender_id=connection_id)
        if item is None:
            return None

        logger.error(f"Translation failed for: {payload.title}. Re-queueing.")
        self.send_to_control_app(message.raw)
        self._schedule_retry()
        return item

    def _schedule_retry(self) -> None:
        handle: TimerHandle | None = None

        def retry() -> None:
            if handle in self._retry_timers:
                self._retry_timers.remove(handle)
            self.dispatch()

        handle = self._scheduler.call_later(self._retry_backoff_seconds, retry)
        self._retry_timers.append(handle)

    def sync_pending(
        self, connection_id: str, message: SyncPendingChaptersMessage
    ) -> list[str]:
        """Tell the control app which of its pending chapters the relay has lost."""
        reported: list[str] = []
        for chapter in message.payload.pending_chapters:
            if not chapter.source_url:
                logger.debug(f"Skipping pending chapter without a sourceUrl: {chapter.title}")
                continue
            reported.append(chapter.source_url)
        stale = self.queue.unknown_keys(reported)
        if stale:
            logger.info(f"Resetting {len(stale)} stale pending chapter(s)")
            self.send_to_control_app(wire.reset_pending_status(stale))
        return stale

    # -- Pass-through -----------------------------------------------------

    def forward_command(
        self, connection_id: str, message: StartBulkScrapeMessage
    ) -> bool:
        """Send a fire-and-forget command straight to the worker."""
        worker = self.registry.worker
        if worker is None or not worker.is_open:
            logger.info(f"Worker is offline. Dropping {message.type} command.")
            self.send(
                self.registry.get(connection_id),
                wire.worker_offline(WORKER_OFFLINE_COMMAND_TEXT, str(message.type)),
            )
            return False
        logger.info(f"Forwarding {message.type} to {worker.display_name}")
        return self.send(worker, message.raw)

    def send_targeted(
        self, connection_id: str, message: DirectMessage | CancelTaskMessage
    ) -> bool:
        """Forward a message to the addressed connection only."""
        target = self.registry.get(message.payload.target_client_id)
        if target is None or not target.is_open:
            logger.debug(
                f"Dropping {message.type}: target "
                f"{message.payload.target_client_id} not connected"
            )
            return False

        sender = self.registry.get(connection_id)
        forwarded = dict(message.raw)
        payload = dict(forwarded.get("payload") or {})
        payload["senderClientId"] = connection_id
        payload["senderName"] = sender.name if sender else None
        forwarded["payload"] = payload
        return self.send(target, forwarded)

    def relay(self, connection_id: str, message: RelayMessage) -> int:
        """Broadcast a message of a type the relay does not interpret."""
        return self.broadcast(message.raw)

    # -- Views ------------------------------------------------------------

    def snapshot(self) -> QueueSnapshot:
        in_flight = self.queue.in_flight
        worker = self.registry.worker
        control_app = self.registry.control_app
        return QueueSnapshot(
            in_flight=in_flight.summary() if in_flight else None,
            queued=[item.summary() for item in self.queue.pending],
            worker=worker.id if worker else None,
            control_app=control_app.id if control_app else None,
        )
