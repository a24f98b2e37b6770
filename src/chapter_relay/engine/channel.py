"""Transport handle the coordination core uses to reach a client."""

from typing import Any, Protocol


class Channel(Protocol):
    """
    Non-blocking outbound side of one client connection.

    Coordinator operations run to completion without awaiting, so ``send``
    and ``close`` only enqueue work; the transport adapter performs the I/O.
    """

    @property
    def is_open(self) -> bool:
        """Whether frames can still be delivered."""
        ...

    def send(self, message: dict[str, Any]) -> bool:
        """Queue one envelope for delivery. Returns False if it was dropped."""
        ...

    def close(self, code: int = 1000, reason: str = "") -> None:
        """Request the transport to close."""
        ...
