from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chapter_relay import __version__
from chapter_relay.config import Settings
from chapter_relay.server import create_app


@pytest.fixture
def client(relay_settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(relay_settings)) as test_client:
        yield test_client


def _identify(ws, client_type: str, name: str) -> None:
    ws.send_json({"type": "identify", "payload": {"clientName": name, "clientType": client_type}})


def _receive_until(ws, message_type: str) -> dict[str, Any]:
    while True:
        message = ws.receive_json()
        if message["type"] == message_type:
            return message


def test_health_reports_version_and_empty_state(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": __version__,
        "connections": 0,
        "queue_length": 0,
        "in_flight": None,
    }


def test_websocket_relay_end_to_end(client: TestClient) -> None:
    with client.websocket_connect("/") as app_ws:
        hello = app_ws.receive_json()
        assert hello["type"] == "client-connected"
        app_id = hello["payload"]["clientId"]

        _identify(app_ws, "electron-app", "app")
        roster = _receive_until(app_ws, "client-list-update")
        assert roster["payload"]["connectedClients"] == [{"id": app_id, "name": "app"}]

        app_ws.send_json(
            {
                "type": "start_translation",
                "payload": {"bookKey": "b", "prompt": "p", "title": "One", "sourceUrl": "/ch1"},
            }
        )
        queued = _receive_until(app_ws, "task_queued")
        assert queued["payload"]["text"] == "Browser extension is offline. Request queued."

        queue = client.get("/api/v1/queue").json()
        assert queue["in_flight"] is None
        assert [item["work_key"] for item in queue["queued"]] == ["/ch1"]

        with client.websocket_connect("/ws") as worker_ws:
            worker_id = _receive_until(worker_ws, "client-connected")["payload"]["clientId"]
            _identify(worker_ws, "chrome-extension", "ext")

            task = _receive_until(worker_ws, "start_translation")
            assert task["payload"]["sourceUrl"] == "/ch1"
            started = _receive_until(app_ws, "translation_started")
            assert started["payload"] == {"sourceUrl": "/ch1"}

            health = client.get("/health").json()
            assert health["connections"] == 2
            assert health["in_flight"] == "/ch1"

            worker_ws.send_json(
                {
                    "type": "translation_complete",
                    "payload": {
                        "bookKey": "b",
                        "newChapter": {"title": "One", "sourceUrl": "/ch1", "content": ["x"]},
                    },
                }
            )
            result = _receive_until(app_ws, "translation_complete")
            assert result["payload"]["newChapter"]["content"] == ["x"]

        gone = _receive_until(app_ws, "client-disconnected")
        assert gone["payload"] == {
            "clientId": worker_id,
            "clientName": "ext",
            "reason": "Normal closure",
        }

        clients = client.get("/api/v1/clients").json()
        assert [c["id"] for c in clients["connected_clients"]] == [app_id]


def test_replaced_worker_socket_is_closed_with_code(client: TestClient) -> None:
    with client.websocket_connect("/") as old_ws:
        _identify(old_ws, "chrome-extension", "ext-old")
        _receive_until(old_ws, "client-connected")

        with client.websocket_connect("/") as new_ws:
            _identify(new_ws, "chrome-extension", "ext-new")

            with pytest.raises(WebSocketDisconnect) as exc_info:
                while True:
                    old_ws.receive_json()
            assert exc_info.value.code == 4000

            new_ws.send_json({"type": "pong"})
            snapshot = client.get("/api/v1/queue").json()
            assert snapshot["worker"] is not None


def test_malformed_frames_do_not_close_the_socket(client: TestClient) -> None:
    with client.websocket_connect("/") as ws:
        _receive_until(ws, "client-connected")
        ws.send_text("{not json")
        ws.send_json({"type": "custom", "payload": {"n": 1}})

        echoed = _receive_until(ws, "custom")
        assert echoed == {"type": "custom", "payload": {"n": 1}}


def test_storage_endpoints_round_trip(client: TestClient, relay_settings: Settings) -> None:
    assert client.get("/storage/theme").json() == {"theme": None}

    response = client.post("/storage", json={"key": "theme", "value": {"dark": True}})
    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert client.get("/storage/theme").json() == {"theme": {"dark": True}}
    assert relay_settings.settings_path.exists()


def test_storage_rejects_missing_key(client: TestClient) -> None:
    response = client.post("/storage", json={"value": 1})
    assert response.status_code == 422


def test_book_endpoints(client: TestClient, tmp_path: Path) -> None:
    books_dir = tmp_path / "books"
    books_dir.mkdir()

    assert client.post("/fs/create-book", json={"bookName": "Novel"}).status_code == 400
    assert client.post("/fs/set-books-directory", json={}).status_code == 400
    assert (
        client.post("/fs/set-books-directory", json={"path": str(books_dir)}).status_code
        == 200
    )

    created = client.post("/fs/create-book", json={"bookName": "Novel"})
    assert created.status_code == 201
    assert created.json()["success"] is True
    assert Path(created.json()["path"]).name == "Novel"
    assert client.post("/fs/create-book", json={"bookName": "Novel"}).status_code == 409
    assert client.post("/fs/create-book", json={}).status_code == 400
    assert client.post("/fs/create-book", json={"bookName": "../x"}).status_code == 400

    saved = client.post(
        "/fs/save-book",
        json={
            "bookName": "Novel",
            "bookData": {
                "description": "d",
                "rawChapterData": [{"sourceUrl": "/1"}],
                "chapters": [{"title": "One", "sourceUrl": "/1", "content": ["c"]}],
            },
        },
    )
    assert saved.status_code == 200
    assert saved.json()["message"] == 'Book "Novel" saved successfully.'

    imported = client.post("/fs/import-books", json={"booksDirPath": str(books_dir)})
    assert imported.status_code == 200
    novel = imported.json()["Novel"]
    assert novel["description"] == "d"
    assert novel["chapters"] == [{"title": "One", "sourceUrl": "/1", "content": ["c"]}]

    deleted_raw = client.post("/fs/delete-raw-chapters", json={"bookName": "Novel"})
    assert deleted_raw.status_code == 200
    again = client.post("/fs/delete-raw-chapters", json={"bookName": "Novel"})
    assert again.json()["message"] == "Raw chapters file not found, nothing to delete."

    assert client.post("/fs/delete-book", json={}).status_code == 400
    assert client.post("/fs/delete-book", json={"bookName": "Novel"}).status_code == 200
    assert not (books_dir / "Novel").exists()


def test_import_requires_readable_directory(client: TestClient, tmp_path: Path) -> None:
    assert client.post("/fs/import-books", json={}).status_code == 400
    missing = client.post("/fs/import-books", json={"booksDirPath": str(tmp_path / "nope")})
    assert missing.status_code == 500


def test_oversized_bodies_are_rejected(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        settings_file=str(tmp_path / "s.json"),
        max_body_bytes=64,
    )
    with TestClient(create_app(settings)) as client:
        response = client.post("/storage", json={"key": "k", "value": "x" * 200})
    assert response.status_code == 413
