"""Health and relay-state routes."""

import logging

from fastapi import APIRouter, Depends

from chapter_relay._version import __version__
from chapter_relay.contracts import HealthResponse, QueueSnapshot, RosterResponse
from chapter_relay.engine import Coordinator
from chapter_relay.server.depends import get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])
state_router = APIRouter(tags=["relay-state"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    coordinator: Coordinator = Depends(get_coordinator),
) -> HealthResponse:
    """Liveness endpoint with a one-line summary of relay state."""
    in_flight = coordinator.queue.in_flight
    return HealthResponse(
        status="ok",
        version=__version__,
        connections=len(coordinator.registry),
        queue_length=len(coordinator.queue),
        in_flight=in_flight.work_key if in_flight else None,
    )


@state_router.get("/queue", response_model=QueueSnapshot)
async def get_queue(coordinator: Coordinator = Depends(get_coordinator)) -> QueueSnapshot:
    return coordinator.snapshot()


@state_router.get("/clients", response_model=RosterResponse)
async def get_clients(
    coordinator: Coordinator = Depends(get_coordinator),
) -> RosterResponse:
    return RosterResponse(connected_clients=coordinator.registry.roster())
