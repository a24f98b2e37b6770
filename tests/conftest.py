from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from chapter_relay.config import Settings, get_settings
from chapter_relay.engine import Coordinator, MessageRouter
from tests._fixtures.clock import VirtualScheduler


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def coordinator(scheduler: VirtualScheduler) -> Coordinator:
    return Coordinator(
        scheduler=scheduler,
        heartbeat_interval_seconds=10.0,
        retry_backoff_seconds=5.0,
    )


@pytest.fixture
def router(coordinator: Coordinator) -> MessageRouter:
    return MessageRouter(coordinator)


@pytest.fixture
def relay_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        settings_file=str(tmp_path / "relay-settings.json"),
        heartbeat_interval_seconds=30.0,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
