"""Read-only views of relay state served over HTTP."""

from pydantic import BaseModel, Field

from chapter_relay.contracts.common import ClientRole


class ClientSummary(BaseModel):
    """One registered connection as shown to the control app."""

    id: str
    name: str | None = None
    role: ClientRole = ClientRole.UNIDENTIFIED

    def to_wire(self) -> dict[str, str | None]:
        """Roster entry in the ``client-list-update`` shape."""
        return {"id": self.id, "name": self.name}


class WorkItemSummary(BaseModel):
    work_key: str
    title: str
    attempts: int = 0
    assigned_to: str | None = None


class QueueSnapshot(BaseModel):
    """Queue state: the in-flight item plus the ordered backlog."""

    in_flight: WorkItemSummary | None = None
    queued: list[WorkItemSummary] = Field(default_factory=list)
    worker: str | None = None
    control_app: str | None = None


class RosterResponse(BaseModel):
    connected_clients: list[ClientSummary] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    connections: int = 0
    queue_length: int = 0
    in_flight: str | None = None


__all__ = [
    "ClientSummary",
    "WorkItemSummary",
    "QueueSnapshot",
    "RosterResponse",
    "HealthResponse",
]
