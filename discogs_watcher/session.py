from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import List, Optional, Tuple

from .core.ids import ValidationError, require_release_id
from .core.models import ItemSummary, SortSpec, ViewFilter
from .core.store import IdentifierStore, add_id, remove_id
from .core.view import apply_filter_and_sort
from .integrations.http_client import FetchError
from .pipeline import Fetcher, refresh_summaries

logger = logging.getLogger(__name__)


class WatchSession:
    """
    Owns the tracked ids, the latest fetched rows and the latest error.

    Every id mutation is persisted immediately and (by default) followed by a
    refresh. Each refresh is tagged with a generation; only the newest
    generation may commit its outcome.
    """

    def __init__(
        self,
        store: IdentifierStore,
        fetch: Fetcher,
        *,
        view_filter: Optional[ViewFilter] = None,
        sort_spec: Optional[SortSpec] = None,
        concurrency: int = 0,
    ) -> None:
        self.store = store
        self.fetch = fetch
        self.view_filter = view_filter or ViewFilter()
        self.sort_spec = sort_spec or SortSpec()
        self.concurrency = concurrency

        self._lock = threading.Lock()
        self._generation = 0
        self.ids: Tuple[int, ...] = store.load()
        self.rows: List[ItemSummary] = []
        self.error: Optional[str] = None
        self.last_updated: Optional[datetime] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _set_ids(self, ids: Tuple[int, ...]) -> bool:
        if ids == self.ids:
            return False
        self.ids = ids
        self.store.save(ids)
        return True

    def add(self, release_id: int, *, refresh: bool = True) -> bool:
        changed = self._set_ids(add_id(self.ids, release_id))
        if changed:
            logger.info("tracking release %s", release_id)
            if refresh:
                self.refresh()
        return changed

    def add_from_text(self, text: str, *, refresh: bool = True) -> Optional[str]:
        """Add from an id or release URL; returns a validation message on bad input."""
        try:
            release_id = require_release_id(text)
        except ValidationError as e:
            return str(e)
        self.add(release_id, refresh=refresh)
        return None

    def remove(self, release_id: int, *, refresh: bool = True) -> bool:
        changed = self._set_ids(remove_id(self.ids, release_id))
        if changed:
            logger.info("stopped tracking release %s", release_id)
            if refresh:
                self.refresh()
        return changed

    def refresh(self) -> bool:
        with self._lock:
            self._generation += 1
            gen = self._generation
            ids = self.ids

        try:
            rows = refresh_summaries(ids, self.fetch, concurrency=self.concurrency)
        except FetchError as e:
            with self._lock:
                if gen != self._generation:
                    logger.debug("discarding stale refresh error | gen=%s | current=%s", gen, self._generation)
                    return False
                self.error = e.message
            logger.error("refresh failed | release=%s | status=%s | %s", e.release_id, e.status_code, e.message)
            return False

        with self._lock:
            if gen != self._generation:
                logger.debug("discarding stale refresh | gen=%s | current=%s", gen, self._generation)
                return False
            self.rows = rows
            self.error = None
            self.last_updated = datetime.now()
        return True

    def display_rows(self) -> List[ItemSummary]:
        with self._lock:
            rows = list(self.rows)
        return apply_filter_and_sort(rows, self.view_filter, self.sort_spec)

    def set_sort(self, key: Optional[str] = None, direction: Optional[str] = None) -> None:
        self.sort_spec = SortSpec(
            key=key or self.sort_spec.key,
            direction=direction or self.sort_spec.direction,
        )

    def toggle_direction(self) -> None:
        self.set_sort(direction="desc" if self.sort_spec.direction == "asc" else "asc")

    def set_only_in_stock(self, flag: bool) -> None:
        self.view_filter = ViewFilter(only_in_stock=bool(flag))
