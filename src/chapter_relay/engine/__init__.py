"""Coordination core: registry, queue, heartbeat and routing."""

from chapter_relay.engine.channel import Channel
from chapter_relay.engine.coordinator import Coordinator
from chapter_relay.engine.heartbeat import HeartbeatMonitor
from chapter_relay.engine.queue import WorkItem, WorkQueue, WorkState
from chapter_relay.engine.registry import Connection, ConnectionRegistry
from chapter_relay.engine.router import MessageRouter
from chapter_relay.engine.timers import LoopScheduler, Scheduler, TimerHandle

__all__ = [
    "Channel",
    "Connection",
    "ConnectionRegistry",
    "Coordinator",
    "HeartbeatMonitor",
    "LoopScheduler",
    "MessageRouter",
    "Scheduler",
    "TimerHandle",
    "WorkItem",
    "WorkQueue",
    "WorkState",
]
