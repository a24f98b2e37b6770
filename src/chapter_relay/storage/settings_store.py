"""Persistent key/value settings backed by a single JSON file."""

import json
import logging
import threading
from pathlib import Path
from typing import Any

from chapter_relay.errors import StorageError

logger = logging.getLogger(__name__)


class SettingsStore:
    """
    Small JSON document of user settings.

    Reads and writes go through a lock because HTTP handlers call the store
    from worker threads. Writes replace the file atomically.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings file {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Settings file {self._path} is not a JSON object; ignoring")
            return {}
        return data

    def read_setting(self, key: str) -> Any:
        """Return the stored value, or None when the key is absent."""
        with self._lock:
            return self._load().get(key)

    def write_setting(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
                tmp.replace(self._path)
            except OSError as e:
                raise StorageError(f"Failed to write settings file: {e}") from e
