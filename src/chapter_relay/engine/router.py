"""Inbound message routing."""

import logging

from chapter_relay.contracts import (
    CancelTaskMessage,
    DirectMessage,
    IdentifyMessage,
    PongMessage,
    RelayMessage,
    StartBulkScrapeMessage,
    StartTranslationMessage,
    SyncPendingChaptersMessage,
    TranslationCompleteMessage,
    TranslationFailedMessage,
    decode_envelope,
)
from chapter_relay.contracts.messages import InboundMessage
from chapter_relay.engine.coordinator import Coordinator
from chapter_relay.errors import MalformedEnvelopeError

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Decodes frames and hands each message to the matching coordinator operation.

    The router keeps no state; everything it changes lives in the coordinator.
    """

    def __init__(self, coordinator: Coordinator) -> None:
        self._coordinator = coordinator

    @property
    def coordinator(self) -> Coordinator:
        return self._coordinator

    def handle_frame(self, connection_id: str, frame: str | bytes) -> bool:
        """Decode and route one frame. Returns False if it was dropped."""
        if connection_id not in self._coordinator.registry:
            logger.warning(f"Dropping frame from unknown connection {connection_id}")
            return False

        try:
            message = decode_envelope(frame)
        except MalformedEnvelopeError as e:
            logger.warning(f"Failed to parse message from {connection_id}: {e.detail}")
            return False

        logger.debug("Received message: %s", message.type)
        try:
            self.route(connection_id, message)
        except Exception:
            logger.exception(f"Error handling {message.type} from {connection_id}")
            return False
        return True

    def route(self, connection_id: str, message: InboundMessage | RelayMessage) -> None:
        """Dispatch one decoded message."""
        coordinator = self._coordinator
        if isinstance(message, IdentifyMessage):
            coordinator.identify(
                connection_id,
                client_type=message.payload.client_type,
                client_name=message.payload.client_name,
            )
            return
        if isinstance(message, StartTranslationMessage):
            coordinator.request_work(connection_id, message)
            return
        if isinstance(message, StartBulkScrapeMessage):
            coordinator.forward_command(connection_id, message)
            return
        if isinstance(message, TranslationCompleteMessage):
            coordinator.complete(connection_id, message)
            return
        if isinstance(message, TranslationFailedMessage):
            coordinator.fail(connection_id, message)
            return
        if isinstance(message, SyncPendingChaptersMessage):
            coordinator.sync_pending(connection_id, message)
            return
        if isinstance(message, DirectMessage | CancelTaskMessage):
            coordinator.send_targeted(connection_id, message)
            return
        if isinstance(message, PongMessage):
            coordinator.mark_alive(connection_id)
            return
        coordinator.relay(connection_id, message)
