from __future__ import annotations

import json

import pytest

from chapter_relay.contracts import (
    ClientRole,
    ClientSummary,
    DirectMessage,
    IdentifyMessage,
    PongMessage,
    RelayMessage,
    StartTranslationMessage,
    TranslationCompleteMessage,
    decode_envelope,
    encode_envelope,
    envelope,
)
from chapter_relay.contracts.messages import client_disconnected, reset_pending_status
from chapter_relay.errors import MalformedEnvelopeError


def test_decode_known_types_into_typed_messages() -> None:
    message = decode_envelope(
        json.dumps(
            {
                "type": "start_translation",
                "payload": {
                    "bookKey": "b",
                    "prompt": "p",
                    "title": "Chapter 1",
                    "sourceUrl": "/ch1",
                    "extra": 1,
                },
            }
        )
    )

    assert isinstance(message, StartTranslationMessage)
    assert message.payload.source_url == "/ch1"
    assert message.payload.title == "Chapter 1"
    # The raw frame is kept for verbatim forwarding.
    assert message.raw["payload"]["extra"] == 1


def test_decode_nested_completion_payload() -> None:
    message = decode_envelope(
        json.dumps(
            {
                "type": "translation_complete",
                "payload": {"newChapter": {"title": "T", "sourceUrl": "/ch2", "content": []}},
            }
        )
    )
    assert isinstance(message, TranslationCompleteMessage)
    assert message.payload.new_chapter.source_url == "/ch2"


def test_decode_missing_payload_defaults_to_empty_object() -> None:
    identify = decode_envelope('{"type": "identify"}')
    assert isinstance(identify, IdentifyMessage)
    assert identify.payload.client_type is None
    assert identify.raw == {"type": "identify", "payload": {}}

    pong = decode_envelope('{"type": "pong", "payload": null}')
    assert isinstance(pong, PongMessage)


def test_decode_unknown_type_becomes_relay_message() -> None:
    message = decode_envelope(b'{"type": "log", "payload": {"level": "info"}}')
    assert isinstance(message, RelayMessage)
    assert message.type == "log"
    assert message.raw == {"type": "log", "payload": {"level": "info"}}


@pytest.mark.parametrize(
    "frame",
    [
        "not json",
        "[1, 2, 3]",
        '{"payload": {}}',
        '{"type": 5}',
        '{"type": "start_translation", "payload": {"title": "no url"}}',
        '{"type": "direct-message", "payload": {"message": "hi"}}',
    ],
)
def test_decode_rejects_malformed_frames(frame: str) -> None:
    with pytest.raises(MalformedEnvelopeError):
        decode_envelope(frame)


def test_targeted_message_keeps_target_id() -> None:
    message = decode_envelope(
        '{"type": "direct-message", "payload": {"targetClientId": "abc", "message": 1}}'
    )
    assert isinstance(message, DirectMessage)
    assert message.payload.target_client_id == "abc"


def test_outbound_builders_use_wire_field_names() -> None:
    assert client_disconnected("id-1", "ext", "Normal closure") == {
        "type": "client-disconnected",
        "payload": {"clientId": "id-1", "clientName": "ext", "reason": "Normal closure"},
    }
    assert reset_pending_status(["/a"]) == {
        "type": "reset_pending_status",
        "payload": {"sourceUrls": ["/a"]},
    }
    assert json.loads(encode_envelope(envelope("ping"))) == {"type": "ping", "payload": {}}


@pytest.mark.parametrize(
    ("client_type", "role"),
    [
        ("electron-app", ClientRole.CONTROL_APP),
        ("control-app", ClientRole.CONTROL_APP),
        ("chrome-extension", ClientRole.WORKER),
        ("Worker", ClientRole.WORKER),
        ("firefox-addon", ClientRole.UNIDENTIFIED),
        (None, ClientRole.UNIDENTIFIED),
    ],
)
def test_client_type_maps_to_role(client_type: str | None, role: ClientRole) -> None:
    assert ClientRole.from_client_type(client_type) is role


def test_client_summary_wire_shape_omits_role() -> None:
    summary = ClientSummary(id="x", name="ext", role=ClientRole.WORKER)
    assert summary.to_wire() == {"id": "x", "name": "ext"}
