from __future__ import annotations

import pytest

from chapter_relay.engine import Coordinator, HeartbeatMonitor, MessageRouter
from tests._fixtures.clock import VirtualScheduler
from tests._fixtures.relay import frame, join, start_translation

INTERVAL = 10.0


def test_probe_marks_connections_and_sends_ping(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    conn, channel = join(router, "electron-app", "app")
    channel.clear()
    coordinator.start()

    scheduler.advance(INTERVAL)

    assert conn.is_alive is False
    assert channel.of_type("ping") == [{"type": "ping", "payload": {}}]


def test_silent_connection_is_evicted_after_one_missed_interval(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    app, app_channel = join(router, "electron-app", "app")
    worker, worker_channel = join(router, "chrome-extension", "ext")
    coordinator.start()

    scheduler.advance(INTERVAL)
    router.handle_frame(app.id, frame("pong"))
    assert worker.id in coordinator.registry

    scheduler.advance(INTERVAL)

    assert worker.id not in coordinator.registry
    assert app.id in coordinator.registry
    assert worker_channel.closed == (4001, "heartbeat timeout")
    notices = app_channel.of_type("client-disconnected")
    assert notices == [
        {
            "type": "client-disconnected",
            "payload": {
                "clientId": worker.id,
                "clientName": "ext",
                "reason": "heartbeat timeout",
            },
        }
    ]


def test_responsive_connection_survives_many_intervals(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    app, app_channel = join(router, "electron-app", "app")
    coordinator.start()

    for _ in range(5):
        scheduler.advance(INTERVAL)
        router.handle_frame(app.id, frame("pong"))

    assert app.id in coordinator.registry
    assert app_channel.closed is None
    assert len(app_channel.of_type("ping")) == 5


def test_eviction_of_busy_worker_requeues_its_item(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    app, app_channel = join(router, "electron-app", "app")
    join(router, "chrome-extension", "ext")
    router.handle_frame(app.id, start_translation("/ch1"))
    coordinator.start()

    scheduler.advance(INTERVAL)
    router.handle_frame(app.id, frame("pong"))
    app_channel.clear()
    scheduler.advance(INTERVAL)

    assert coordinator.queue.in_flight is None
    assert [i.work_key for i in coordinator.queue.pending] == ["/ch1"]
    assert "task_queued" in app_channel.types()


def test_tick_returns_evicted_ids_and_mark_alive_handles_unknown(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    conn, _ = join(router)
    monitor = HeartbeatMonitor(coordinator, scheduler, interval_seconds=INTERVAL)

    assert monitor.tick() == []
    assert monitor.tick() == [conn.id]
    assert monitor.mark_alive(conn.id) is False


def test_stop_prevents_further_ticks(
    coordinator: Coordinator, router: MessageRouter, scheduler: VirtualScheduler
) -> None:
    _, channel = join(router)
    coordinator.heartbeat.start()
    coordinator.heartbeat.stop()

    scheduler.advance(INTERVAL * 3)

    assert channel.of_type("ping") == []
    assert coordinator.heartbeat.running is False


def test_interval_must_be_positive(
    coordinator: Coordinator, scheduler: VirtualScheduler
) -> None:
    with pytest.raises(ValueError):
        HeartbeatMonitor(coordinator, scheduler, interval_seconds=0)
