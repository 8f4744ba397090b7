"""Local key-value store for offline operation."""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

FAMILY_ID_KEY = "tvTimeFamilyId"
CHILDREN_KEY = "tvTimeChildren"
CHORES_KEY = "tvTimeCustomChores"
LAST_MIDNIGHT_CHECK_KEY = "lastMidnightCheck"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStore:
    """Synchronous string store, one file per key under the data directory.

    Reads and writes never suspend; this store is the local truth the
    client falls back to whenever the remote document is unavailable.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self._data_dir / f"{key}.txt"

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key was never set."""
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)
        logger.debug("Stored %s (%d bytes)", key, len(value))

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
