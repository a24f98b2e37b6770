"""WebSocket endpoint shared by the control app and the worker."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket

from chapter_relay.contracts import CloseReason
from chapter_relay.logging import bind_connection
from chapter_relay.server.websocket import WebSocketChannel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

PUMP_DRAIN_TIMEOUT_SECONDS = 1.0


@router.websocket("/")
@router.websocket("/ws")
async def relay_socket(websocket: WebSocket) -> None:
    """Register the client, feed its frames to the router, unregister on close."""
    state = websocket.app.state
    coordinator = state.coordinator
    message_router = state.router

    await websocket.accept()
    channel = WebSocketChannel(websocket, max_pending=state.settings.outbox_max_size)
    pump = asyncio.create_task(channel.pump())
    connection = coordinator.connect(channel)

    reason = ""
    with bind_connection(connection.id):
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    reason = message.get("reason") or ""
                    break
                frame = message.get("text")
                if frame is None:
                    frame = message.get("bytes")
                if frame is None:
                    continue
                message_router.handle_frame(connection.id, frame)
        except Exception:
            logger.exception("WebSocket receive loop failed")
        finally:
            if channel.close_reason:
                reason = reason or channel.close_reason
            channel.mark_closed()
            coordinator.disconnect(connection.id, reason or CloseReason.NORMAL)
            try:
                await asyncio.wait_for(pump, timeout=PUMP_DRAIN_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("Outbox pump did not stop in time; cancelled")
