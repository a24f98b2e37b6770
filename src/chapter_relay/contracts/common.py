"""Shared contract enums used across the relay and its HTTP surface."""

from enum import IntEnum, StrEnum


class ClientRole(StrEnum):
    """Role a connection declares when it identifies itself."""

    UNIDENTIFIED = "unidentified"
    CONTROL_APP = "control-app"
    WORKER = "worker"

    @classmethod
    def from_client_type(cls, client_type: str | None) -> "ClientRole":
        """Map a wire ``clientType`` to a role.

        The desktop app announces itself as ``electron-app`` and the browser
        extension as ``chrome-extension``; the role names are accepted too.
        """
        if not client_type:
            return cls.UNIDENTIFIED
        normalized = client_type.strip().lower()
        return _CLIENT_TYPE_ALIASES.get(normalized, cls.UNIDENTIFIED)


_CLIENT_TYPE_ALIASES: dict[str, ClientRole] = {
    "electron-app": ClientRole.CONTROL_APP,
    "control-app": ClientRole.CONTROL_APP,
    "chrome-extension": ClientRole.WORKER,
    "worker": ClientRole.WORKER,
}


class CloseCode(IntEnum):
    """Application close codes sent when the relay drops a connection."""

    NORMAL = 1000
    REPLACED = 4000
    HEARTBEAT_TIMEOUT = 4001


class CloseReason(StrEnum):
    NORMAL = "Normal closure"
    REPLACED = "replaced by newer worker connection"
    HEARTBEAT_TIMEOUT = "heartbeat timeout"
    SHUTDOWN = "server shutting down"


__all__ = [
    "ClientRole",
    "CloseCode",
    "CloseReason",
]
