"""
core/storage.py
---------------

Client-local persistent storage for one profile.

The storage is a flat string-to-string mapping with the same four
operations a browser's local storage offers.  Two backends exist:
``MemoryStorage`` for tests and throwaway profiles, and ``FileStorage``
which keeps one JSON object per profile on disk so identities and
branch selections survive restarts.  Writes to a ``FileStorage`` are
serialised by a lock so concurrent updates of one profile never drop
each other's keys.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from dinemore.logging_config import log_event


class ClientStorage:
    """Interface shared by the storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryStorage(ClientStorage):
    """Dictionary-backed storage living as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class FileStorage(ClientStorage):
    """JSON-file storage; the file is re-read on every access.

    A missing file is an empty store.  A file that cannot be parsed, or
    that does not hold a JSON object, is also treated as empty and
    reported at WARNING level; the next write replaces it.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            log_event(logging.WARNING, "storage_unreadable", path=str(self.path), detail=str(exc))
            return {}
        if not isinstance(data, dict):
            log_event(logging.WARNING, "storage_unreadable", path=str(self.path), detail="not a JSON object")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._load()
            items[key] = str(value)
            self._save(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._load()
            if key in items:
                del items[key]
                self._save(items)

    def clear(self) -> None:
        with self._lock:
            self._save({})
