"""Wire contract for the relay WebSocket protocol.

Every frame is a UTF-8 JSON object ``{"type": str, "payload": object}``.
Inbound frames are decoded into a closed union of message models keyed by
``type``; types outside the union decode to :class:`RelayMessage` and are
relayed verbatim. Outbound envelopes are plain dicts built by the helpers at
the bottom of this module.
"""

import json
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from chapter_relay.errors import MalformedEnvelopeError


class MessageType(StrEnum):
    """Envelope ``type`` tags understood or produced by the relay."""

    # Inbound
    IDENTIFY = "identify"
    START_TRANSLATION = "start_translation"
    START_BULK_SCRAPE = "start_bulk_scrape"
    TRANSLATION_COMPLETE = "translation_complete"
    TRANSLATION_FAILED = "translation_failed"
    SYNC_PENDING_CHAPTERS = "sync_pending_chapters"
    DIRECT_MESSAGE = "direct-message"
    CANCEL_TASK = "cancel-task"
    PONG = "pong"

    # Outbound
    CLIENT_CONNECTED = "client-connected"
    CLIENT_DISCONNECTED = "client-disconnected"
    CLIENT_LIST_UPDATE = "client-list-update"
    TASK_QUEUED = "task_queued"
    TRANSLATION_STARTED = "translation_started"
    DUPLICATE_TRANSLATION_REQUEST = "duplicate_translation_request"
    RESET_PENDING_STATUS = "reset_pending_status"
    WORKER_OFFLINE = "worker_offline"
    PING = "ping"


class WireModel(BaseModel):
    """Base for payloads: camelCase on the wire, unknown fields kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class IdentifyPayload(WireModel):
    client_name: str | None = None
    client_type: str | None = None


class StartTranslationPayload(WireModel):
    book_key: str | None = None
    prompt: Any = None
    title: str = ""
    source_url: str = Field(min_length=1)


class StartBulkScrapePayload(WireModel):
    book_key: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    start_url: str | None = None


class TranslatedChapter(WireModel):
    title: str = ""
    source_url: str | None = None
    content: Any = None


class TranslationCompletePayload(WireModel):
    book_key: str | None = None
    new_chapter: TranslatedChapter
    new_glossary_entries: Any = None


class TranslationFailedPayload(WireModel):
    book_key: str | None = None
    title: str = ""
    source_url: str = Field(min_length=1)
    error: str | None = None


class PendingChapter(WireModel):
    source_url: str | None = None
    title: str | None = None


class SyncPendingChaptersPayload(WireModel):
    pending_chapters: list[PendingChapter] = Field(default_factory=list)


class DirectMessagePayload(WireModel):
    target_client_id: str = Field(min_length=1)
    message: Any = None


class CancelTaskPayload(WireModel):
    target_client_id: str = Field(min_length=1)


class _Inbound(BaseModel):
    """Common base for decoded inbound messages.

    The decoded frame is kept so that relayed messages go out exactly as
    they arrived.
    """

    model_config = ConfigDict(extra="allow")

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw


class IdentifyMessage(_Inbound):
    type: Literal[MessageType.IDENTIFY]
    payload: IdentifyPayload = Field(default_factory=IdentifyPayload)


class StartTranslationMessage(_Inbound):
    type: Literal[MessageType.START_TRANSLATION]
    payload: StartTranslationPayload


class StartBulkScrapeMessage(_Inbound):
    type: Literal[MessageType.START_BULK_SCRAPE]
    payload: StartBulkScrapePayload = Field(default_factory=StartBulkScrapePayload)


class TranslationCompleteMessage(_Inbound):
    type: Literal[MessageType.TRANSLATION_COMPLETE]
    payload: TranslationCompletePayload


class TranslationFailedMessage(_Inbound):
    type: Literal[MessageType.TRANSLATION_FAILED]
    payload: TranslationFailedPayload


class SyncPendingChaptersMessage(_Inbound):
    type: Literal[MessageType.SYNC_PENDING_CHAPTERS]
    payload: SyncPendingChaptersPayload = Field(
        default_factory=SyncPendingChaptersPayload
    )


class DirectMessage(_Inbound):
    type: Literal[MessageType.DIRECT_MESSAGE]
    payload: DirectMessagePayload


class CancelTaskMessage(_Inbound):
    type: Literal[MessageType.CANCEL_TASK]
    payload: CancelTaskPayload


class PongMessage(_Inbound):
    type: Literal[MessageType.PONG]
    payload: dict[str, Any] = Field(default_factory=dict)


class RelayMessage(_Inbound):
    """Any type outside the known set; broadcast verbatim."""

    type: str
    payload: Any = None


InboundMessage = Annotated[
    IdentifyMessage
    | StartTranslationMessage
    | StartBulkScrapeMessage
    | TranslationCompleteMessage
    | TranslationFailedMessage
    | SyncPendingChaptersMessage
    | DirectMessage
    | CancelTaskMessage
    | PongMessage,
    Field(discriminator="type"),
]

INBOUND_TYPES: frozenset[str] = frozenset(
    {
        MessageType.IDENTIFY,
        MessageType.START_TRANSLATION,
        MessageType.START_BULK_SCRAPE,
        MessageType.TRANSLATION_COMPLETE,
        MessageType.TRANSLATION_FAILED,
        MessageType.SYNC_PENDING_CHAPTERS,
        MessageType.DIRECT_MESSAGE,
        MessageType.CANCEL_TASK,
        MessageType.PONG,
    }
)

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def decode_envelope(frame: str | bytes) -> InboundMessage | RelayMessage:
    """Decode one text frame into a message model.

    Raises:
        MalformedEnvelopeError: the frame is not a JSON object with a string
            ``type``, or a known type carries an invalid payload.
    """
    try:
        data = json.loads(frame)
    except (ValueError, UnicodeDecodeError) as exc:
        raise MalformedEnvelopeError(f"invalid JSON ({exc})") from exc

    if not isinstance(data, dict):
        raise MalformedEnvelopeError("frame is not a JSON object")
    message_type = data.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise MalformedEnvelopeError("missing message type")
    if data.get("payload") is None:
        data["payload"] = {}

    message: InboundMessage | RelayMessage
    if message_type in INBOUND_TYPES:
        try:
            message = _inbound_adapter.validate_python(data)
        except ValidationError as exc:
            raise MalformedEnvelopeError(
                f"invalid '{message_type}' payload: {exc.error_count()} error(s)"
            ) from exc
    else:
        message = RelayMessage(type=message_type, payload=data["payload"])

    message._raw = data
    return message


def envelope(message_type: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build an outbound envelope."""
    return {"type": str(message_type), "payload": payload or {}}


def client_connected(client_id: str) -> dict[str, Any]:
    return envelope(MessageType.CLIENT_CONNECTED, {"clientId": client_id})


def client_disconnected(
    client_id: str, client_name: str, reason: str
) -> dict[str, Any]:
    return envelope(
        MessageType.CLIENT_DISCONNECTED,
        {"clientId": client_id, "clientName": client_name, "reason": reason},
    )


def client_list_update(connected_clients: list[dict[str, Any]]) -> dict[str, Any]:
    return envelope(
        MessageType.CLIENT_LIST_UPDATE, {"connectedClients": connected_clients}
    )


def task_queued(text: str) -> dict[str, Any]:
    return envelope(MessageType.TASK_QUEUED, {"text": text})


def translation_started(source_url: str) -> dict[str, Any]:
    return envelope(MessageType.TRANSLATION_STARTED, {"sourceUrl": source_url})


def duplicate_translation_request(title: str, source_url: str) -> dict[str, Any]:
    return envelope(
        MessageType.DUPLICATE_TRANSLATION_REQUEST,
        {"title": title, "sourceUrl": source_url},
    )


def reset_pending_status(source_urls: list[str]) -> dict[str, Any]:
    return envelope(MessageType.RESET_PENDING_STATUS, {"sourceUrls": source_urls})


def worker_offline(text: str, request_type: str) -> dict[str, Any]:
    return envelope(
        MessageType.WORKER_OFFLINE, {"text": text, "requestType": request_type}
    )


def ping() -> dict[str, Any]:
    return envelope(MessageType.PING)


def encode_envelope(message: dict[str, Any]) -> str:
    return json.dumps(message, default=str)
