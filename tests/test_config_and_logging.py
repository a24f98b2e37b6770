from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from pydantic import ValidationError

from chapter_relay.config import Settings, get_settings
from chapter_relay.engine import Coordinator
from chapter_relay.logging import (
    ConnectionIDFilter,
    JSONFormatter,
    bind_connection,
    configure_logging,
    connection_id_var,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if any(isinstance(f, ConnectionIDFilter) for f in handler.filters):
            root.removeHandler(handler)
    root.setLevel(level)


def test_defaults_match_desktop_install() -> None:
    settings = Settings(_env_file=None)

    assert settings.host == "127.0.0.1"
    assert settings.port == 3001
    assert settings.heartbeat_interval_seconds == 10.0
    assert settings.retry_backoff_seconds == 5.0
    assert settings.requeue_on_worker_disconnect is True
    assert settings.settings_path == Path.home() / ".chapter-relay" / "settings.json"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAPTER_RELAY_PORT", "4000")
    monkeypatch.setenv("CHAPTER_RELAY_RETRY_BACKOFF_SECONDS", "1.5")
    monkeypatch.setenv("CHAPTER_RELAY_CORS_ALLOW_ORIGINS", "http://a, ,http://b")

    settings = get_settings()

    assert settings.port == 4000
    assert settings.retry_backoff_seconds == 1.5
    assert settings.cors_allow_origins_list == ["http://a", "http://b"]
    assert get_settings() is settings


@pytest.mark.parametrize(
    "overrides",
    [
        {"heartbeat_interval_seconds": 0},
        {"retry_backoff_seconds": -1},
        {"outbox_max_size": 0},
        {"log_format": "xml"},
    ],
)
def test_invalid_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_coordinator_from_settings_uses_timings() -> None:
    settings = Settings(_env_file=None, heartbeat_interval_seconds=3, retry_backoff_seconds=2)
    coordinator = Coordinator.from_settings(settings)

    assert coordinator.heartbeat.interval_seconds == 3
    assert coordinator.retry_backoff_seconds == 2


def test_json_formatter_includes_connection_and_error() -> None:
    record = logging.LogRecord("chapter_relay.test", logging.ERROR, __file__, 1, "boom %s", ("x",), None)
    with bind_connection("conn-1"):
        ConnectionIDFilter().filter(record)
    try:
        raise ValueError("bad")
    except ValueError:
        record.exc_info = sys.exc_info()

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "boom x"
    assert entry["level"] == "ERROR"
    assert entry["connection_id"] == "conn-1"
    assert entry["error"]["type"] == "ValueError"
    assert connection_id_var.get() is None


@pytest.mark.usefixtures("restore_root_logger")
def test_configure_logging_installs_single_handler() -> None:
    configure_logging(log_format="json", debug=True)
    configure_logging(log_format="json", debug=True)

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JSONFormatter)
