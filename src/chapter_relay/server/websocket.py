"""Starlette WebSocket adapter for the coordinator's :class:`Channel`."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from chapter_relay.contracts import encode_envelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CloseRequest:
    code: int
    reason: str


_STOP = object()


class WebSocketChannel:
    """
    Outbox-backed channel for one accepted WebSocket.

    ``send`` and ``close`` only enqueue; :meth:`pump` writes to the socket in
    order. Frames beyond ``max_pending`` are dropped so that one slow client
    cannot grow relay memory without bound.
    """

    def __init__(self, websocket: WebSocket, max_pending: int = 1000) -> None:
        self._websocket = websocket
        self._max_pending = max_pending
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()
        self._open = True
        self._close_request: _CloseRequest | None = None
        self.dropped = 0

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def close_reason(self) -> str | None:
        return self._close_request.reason if self._close_request else None

    def send(self, message: dict[str, Any]) -> bool:
        if not self._open:
            return False
        if self._outbox.qsize() >= self._max_pending:
            self.dropped += 1
            logger.warning(
                "Outbox full (%d pending); dropping %s frame",
                self._max_pending,
                message.get("type"),
            )
            return False
        self._outbox.put_nowait(message)
        return True

    def close(self, code: int = 1000, reason: str = "") -> None:
        if not self._open:
            return
        self._open = False
        self._close_request = _CloseRequest(int(code), str(reason))
        self._outbox.put_nowait(self._close_request)

    def mark_closed(self) -> None:
        """Record that the peer went away and stop the pump."""
        if not self._open:
            return
        self._open = False
        self._outbox.put_nowait(_STOP)

    async def pump(self) -> None:
        """Drain the outbox to the socket until a close is requested."""
        try:
            while True:
                item = await self._outbox.get()
                if item is _STOP:
                    return
                if isinstance(item, _CloseRequest):
                    if self._websocket.application_state == WebSocketState.CONNECTED:
                        await self._websocket.close(code=item.code, reason=item.reason)
                    return
                await self._websocket.send_text(encode_envelope(item))
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"WebSocket send failed, stopping outbox pump: {e!r}")
            self._open = False
