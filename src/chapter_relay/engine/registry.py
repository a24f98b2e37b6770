"""Connection registry and role resolution for the relay."""

import logging
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from chapter_relay.contracts import ClientRole, ClientSummary
from chapter_relay.engine.channel import Channel
from chapter_relay.errors import UnknownConnectionError

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One live client session."""

    id: str
    channel: Channel
    role: ClientRole = ClientRole.UNIDENTIFIED
    name: str | None = None
    # Cleared before each liveness probe, set again by the client's pong.
    is_alive: bool = True
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    identified_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_open(self) -> bool:
        return self.channel.is_open

    def summary(self) -> ClientSummary:
        return ClientSummary(id=self.id, name=self.name, role=self.role)


class ConnectionRegistry:
    """
    Owns every registered connection.

    Besides the id -> connection map, the registry keeps two direct-lookup
    slots for the current worker and the current control app. At most one
    connection holds the worker role: identifying a new worker removes every
    other worker entry and hands them back to the caller for closing.

    Example:
        registry = ConnectionRegistry()
        conn = registry.register(channel)
        replaced = registry.identify(conn.id, ClientRole.WORKER, "chrome-extension")
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._connections: dict[str, Connection] = {}
        self._issued_ids: set[str] = set()
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._worker_id: str | None = None
        self._control_app_id: str | None = None

    def register(self, channel: Channel) -> Connection:
        """Store a new unidentified connection under a fresh id."""
        connection_id = self._id_factory()
        if connection_id in self._issued_ids:
            raise ValueError(f"Connection id '{connection_id}' was already issued")
        self._issued_ids.add(connection_id)

        connection = Connection(id=connection_id, channel=channel)
        self._connections[connection_id] = connection
        return connection

    def identify(
        self,
        connection_id: str,
        role: ClientRole,
        name: str | None,
    ) -> list[Connection]:
        """
        Record the role and display name a connection announced.

        Returns:
            Worker connections removed to make room for this one (only when
            ``role`` is worker). The caller is responsible for closing them.

        Raises:
            UnknownConnectionError: ``connection_id`` is not registered.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            raise UnknownConnectionError(connection_id)

        replaced: list[Connection] = []
        if role == ClientRole.WORKER:
            for other in list(self._connections.values()):
                if other.id != connection_id and other.role == ClientRole.WORKER:
                    removed = self._remove(other.id)
                    if removed is not None:
                        logger.info(f"Removed old worker connection: {other.id}")
                        replaced.append(removed)

        connection.role = role
        connection.name = name
        connection.identified_at = datetime.now(UTC)

        if role == ClientRole.WORKER:
            self._worker_id = connection_id
        elif self._worker_id == connection_id:
            self._worker_id = None

        if role == ClientRole.CONTROL_APP:
            self._control_app_id = connection_id
        elif self._control_app_id == connection_id:
            self._control_app_id = self._latest_with_role(ClientRole.CONTROL_APP)

        return replaced

    def unregister(self, connection_id: str) -> Connection | None:
        """Remove a connection. Unknown ids return None."""
        return self._remove(connection_id)

    def _remove(self, connection_id: str) -> Connection | None:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        if self._worker_id == connection_id:
            self._worker_id = None
        if self._control_app_id == connection_id:
            self._control_app_id = self._latest_with_role(ClientRole.CONTROL_APP)
        return connection

    def _latest_with_role(self, role: ClientRole) -> str | None:
        candidates = [c for c in self._connections.values() if c.role == role]
        if not candidates:
            return None
        latest = max(
            candidates,
            key=lambda c: c.identified_at or c.connected_at,
        )
        return latest.id

    def find(self, role: ClientRole) -> Connection | None:
        """Return the connection currently holding ``role``."""
        if role == ClientRole.WORKER:
            return self.worker
        if role == ClientRole.CONTROL_APP:
            return self.control_app
        raise ValueError(f"Role '{role}' has no lookup slot")

    @property
    def worker(self) -> Connection | None:
        if self._worker_id is None:
            return None
        return self._connections.get(self._worker_id)

    @property
    def control_app(self) -> Connection | None:
        if self._control_app_id is None:
            return None
        return self._connections.get(self._control_app_id)

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def connections(self) -> list[Connection]:
        """Snapshot of registered connections in registration order."""
        return list(self._connections.values())

    def roster(self) -> list[ClientSummary]:
        return [c.summary() for c in self._connections.values()]

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.connections())
