from __future__ import annotations

import json
import logging
import math
import os
import threading
from typing import Any, Dict, Iterable, Optional, Tuple

from discogs_watcher.io.utils import atomic_write_text

logger = logging.getLogger(__name__)

STORAGE_KEY = "discogsReleaseIds"


class PersistenceReadError(RuntimeError):
    pass


class MemoryStore:
    """In-process key-value store (tests, throwaway sessions)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Key-value store backed by one JSON object on disk.

    Every set() rewrites the whole file atomically. A file that is not a
    JSON object raises PersistenceReadError from get().
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceReadError(f"Unreadable state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceReadError(f"State file {self.path} is not a JSON object")
        return data

    def get(self, key: str) -> Any:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except PersistenceReadError as e:
                logger.warning("state file corrupt, rewriting | path=%s | err=%s", self.path, e)
                data = {}
            data[key] = value

            def _write(tmp_path: str) -> None:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                    f.write("\n")

            atomic_write_text(_write, self.path)


def coerce_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, int):
        n = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        n = int(value)
    else:
        return None
    return n if n > 0 else None


def add_id(current: Tuple[int, ...], release_id: int) -> Tuple[int, ...]:
    if release_id in current:
        return current
    return current + (release_id,)


def remove_id(current: Tuple[int, ...], release_id: int) -> Tuple[int, ...]:
    if release_id not in current:
        return current
    return tuple(x for x in current if x != release_id)


class IdentifierStore:
    """
    Tracked release ids persisted under one key.
    load() never fails; save() never raises on storage errors.
    """

    def __init__(self, kv, key: str = STORAGE_KEY) -> None:
        self.kv = kv
        self.key = key

    def load(self) -> Tuple[int, ...]:
        try:
            raw = self.kv.get(self.key)
        except PersistenceReadError as e:
            logger.debug("ignoring unreadable tracked ids | key=%s | err=%s", self.key, e)
            return ()
        if not isinstance(raw, list):
            if raw is not None:
                logger.debug("ignoring non-list tracked ids | key=%s | type=%s", self.key, type(raw).__name__)
            return ()
        out: Tuple[int, ...] = ()
        for value in raw:
            n = coerce_id(value)
            if n is not None:
                out = add_id(out, n)
        return out

    def save(self, ids: Iterable[int]) -> bool:
        try:
            self.kv.set(self.key, list(ids))
        except (OSError, TypeError) as e:
            logger.warning("failed to persist tracked ids | key=%s | err=%r", self.key, e)
            return False
        return True
