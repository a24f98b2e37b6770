"""Chapter relay server: WebSocket coordination plus local storage endpoints."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chapter_relay.config import Settings, get_settings
from chapter_relay.engine import Coordinator, MessageRouter, Scheduler
from chapter_relay.logging import configure_logging
from chapter_relay.server.middleware import BodySizeLimitMiddleware
from chapter_relay.server.routes import (
    books_router,
    health_router,
    relay_router,
    storage_router,
    v1_router,
)
from chapter_relay.storage import BookLibrary, SettingsStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the heartbeat on startup; close every connection on shutdown."""
    settings: Settings = app.state.settings
    coordinator: Coordinator = app.state.coordinator

    logger.info(
        f"Starting chapter relay on ws://{settings.host}:{settings.port} "
        f"(heartbeat={settings.heartbeat_interval_seconds}s, "
        f"retry_backoff={settings.retry_backoff_seconds}s)"
    )
    coordinator.start()

    yield

    logger.info("Shutting down chapter relay...")
    coordinator.stop()


def create_app(
    settings: Settings | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> FastAPI:
    """Build the FastAPI app with a fresh coordinator and storage layer."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Chapter Relay",
        description="Relay between the translation control app and the browser worker",
        version=settings.version,
        lifespan=lifespan,
    )

    coordinator = Coordinator.from_settings(settings, scheduler=scheduler)
    settings_store = SettingsStore(settings.settings_path)
    app.state.settings = settings
    app.state.coordinator = coordinator
    app.state.router = MessageRouter(coordinator)
    app.state.settings_store = settings_store
    app.state.library = BookLibrary(settings_store)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(v1_router)
    app.include_router(storage_router)
    app.include_router(books_router)
    app.include_router(relay_router)
    return app


def main() -> None:
    """Run the server."""
    import uvicorn

    settings = get_settings()
    configure_logging(log_format=settings.log_format, debug=settings.debug)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
