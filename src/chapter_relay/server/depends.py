"""Shared FastAPI dependencies for route handlers."""

from fastapi import HTTPException
from starlette.requests import HTTPConnection

from chapter_relay.engine import Coordinator, MessageRouter
from chapter_relay.storage import BookLibrary, SettingsStore


def _state_attr(conn: HTTPConnection, name: str):
    value = getattr(conn.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} not available")
    return value


def get_coordinator(conn: HTTPConnection) -> Coordinator:
    return _state_attr(conn, "coordinator")


def get_router(conn: HTTPConnection) -> MessageRouter:
    return _state_attr(conn, "router")


def get_settings_store(conn: HTTPConnection) -> SettingsStore:
    return _state_attr(conn, "settings_store")


def get_library(conn: HTTPConnection) -> BookLibrary:
    return _state_attr(conn, "library")
