"""Durable key-value storage backed by JSON files.

``JsonFileStore`` writes one JSON file per key into a data directory.  Each
file wraps the payload in a small envelope with a ``saved_at`` timestamp and
a ``store_version`` so the format can evolve.

Public API
----------
load(key, default)   -> Any
save(key, value)     -> Path
delete(key)          -> None
exists(key)          -> bool
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

STORE_VERSION = 1  # bump if the envelope changes

_KEY_RE = re.compile(r"^[a-z0-9_\-]+$")


class JsonFileStore:
    """One JSON document per key under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / f"{key}.json"

    def load(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key``, or ``default`` if missing.

        A corrupt file is logged and treated as missing so a bad write never
        blocks startup.
        """
        path = self._path(key)
        if not path.exists():
            return default
        try:
            envelope = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable store file %s", path, exc_info=True)
            return default
        if not isinstance(envelope, dict) or "data" not in envelope:
            logger.warning("Ignoring store file %s without a data envelope", path)
            return default
        return envelope["data"]

    def save(self, key: str, value: Any) -> Path:
        """Write (or overwrite) ``value`` under ``key``.  Returns the file path."""
        path = self._path(key)
        envelope = {
            "saved_at": datetime.now(tz=timezone.utc).isoformat(),
            "store_version": STORE_VERSION,
            "data": value,
        }
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False, default=_json_default),
            encoding="utf-8",
        )
        tmp.replace(path)
        return path

    def delete(self, key: str) -> None:
        """Delete the file for ``key`` (no-op if missing)."""
        self._path(key).unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


def _json_default(obj):
    """Fallback serialiser for types that ``json.dumps`` can't handle natively."""
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serialisable")
