"""Chapter relay: coordinates a translation control app and a browser worker."""

from chapter_relay._version import __version__
from chapter_relay.config import Settings, get_settings
from chapter_relay.engine import Coordinator, MessageRouter

__all__ = [
    "__version__",
    "Coordinator",
    "MessageRouter",
    "Settings",
    "get_settings",
]
