"""Wire and API contracts for the relay."""

from chapter_relay.contracts.common import ClientRole, CloseCode, CloseReason
from chapter_relay.contracts.messages import (
    INBOUND_TYPES,
    CancelTaskMessage,
    DirectMessage,
    IdentifyMessage,
    InboundMessage,
    MessageType,
    PongMessage,
    RelayMessage,
    StartBulkScrapeMessage,
    StartTranslationMessage,
    SyncPendingChaptersMessage,
    TranslationCompleteMessage,
    TranslationFailedMessage,
    decode_envelope,
    encode_envelope,
    envelope,
)
from chapter_relay.contracts.snapshots import (
    ClientSummary,
    HealthResponse,
    QueueSnapshot,
    RosterResponse,
    WorkItemSummary,
)
from chapter_relay.contracts.storage import (
    BookNameRequest,
    CreateBookResponse,
    ImportBooksRequest,
    SaveBookRequest,
    SetBooksDirectoryRequest,
    SuccessResponse,
    WriteSettingRequest,
)

__all__ = [
    "ClientRole",
    "CloseCode",
    "CloseReason",
    "INBOUND_TYPES",
    "MessageType",
    "InboundMessage",
    "IdentifyMessage",
    "StartTranslationMessage",
    "StartBulkScrapeMessage",
    "TranslationCompleteMessage",
    "TranslationFailedMessage",
    "SyncPendingChaptersMessage",
    "DirectMessage",
    "CancelTaskMessage",
    "PongMessage",
    "RelayMessage",
    "decode_envelope",
    "encode_envelope",
    "envelope",
    "ClientSummary",
    "WorkItemSummary",
    "QueueSnapshot",
    "RosterResponse",
    "HealthResponse",
    "WriteSettingRequest",
    "SetBooksDirectoryRequest",
    "BookNameRequest",
    "SaveBookRequest",
    "ImportBooksRequest",
    "SuccessResponse",
    "CreateBookResponse",
]
