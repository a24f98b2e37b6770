"""HTTP and WebSocket routes."""

from fastapi import APIRouter

from chapter_relay.server.routes.books import router as books_router
from chapter_relay.server.routes.health import router as health_router
from chapter_relay.server.routes.health import state_router
from chapter_relay.server.routes.relay import router as relay_router
from chapter_relay.server.routes.storage import router as storage_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(state_router)

__all__ = [
    "books_router",
    "health_router",
    "relay_router",
    "storage_router",
    "v1_router",
]
