"""HTTP/WebSocket surface of the relay."""

from chapter_relay.server.main import create_app, main

__all__ = ["create_app", "main"]
