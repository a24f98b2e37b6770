"""Structured logging configuration."""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Id of the WebSocket connection whose frames are being handled, so that
# coordinator logs can be traced back to the client that triggered them.
connection_id_var: ContextVar[str | None] = ContextVar("connection_id", default=None)


@contextmanager
def bind_connection(connection_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``connection_id``."""
    token = connection_id_var.set(connection_id)
    try:
        yield
    finally:
        connection_id_var.reset(token)


class ConnectionIDFilter(logging.Filter):
    """Logging filter that injects ``connection_id`` into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.connection_id = connection_id_var.get()  # type: ignore[attr-defined]
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = getattr(record, "connection_id", None)
        if cid is not None:
            log_entry["connection_id"] = cid
        if record.exc_info and record.exc_info[1]:
            log_entry["error"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": self.formatException(record.exc_info),
            }
        return json.dumps(log_entry, default=str)


class _TextFormatter(logging.Formatter):
    """Plain formatter that appends ``[conn=<id>]`` when a connection is bound."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        cid = getattr(record, "connection_id", None)
        return f"{line} [conn={cid}]" if cid else line


def configure_logging(*, log_format: str = "text", debug: bool = False) -> None:
    """Install a single stream handler on the root logger."""
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(ConnectionIDFilter())

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            _TextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root.addHandler(handler)

    # uvicorn's access log duplicates the relay's own connect/disconnect lines.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
