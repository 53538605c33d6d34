from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence

import requests

from .config import AppConfig
from .core.models import ItemSummary
from .integrations.http_client import clone_discogs_session, fetch_summary, make_discogs_session

logger = logging.getLogger(__name__)

Fetcher = Callable[[int], ItemSummary]


def make_fetcher(config: AppConfig, session: Optional[requests.Session] = None) -> Fetcher:
    """
    Build a fetch callable for worker threads: each thread gets its own
    clone of the base session.
    """
    base = session or make_discogs_session(config.discogs_token, config.user_agent)
    local = threading.local()

    def _fetch(release_id: int) -> ItemSummary:
        sess = getattr(local, "session", None)
        if sess is None:
            sess = clone_discogs_session(base)
            local.session = sess
        return fetch_summary(sess, release_id, timeout_s=config.timeout_s)

    return _fetch


def refresh_summaries(
    ids: Sequence[int],
    fetch: Fetcher,
    *,
    concurrency: int = 0,
) -> List[ItemSummary]:
    """
    Fetch every id concurrently and return summaries in id order.

    All or nothing: the first failure cancels what has not started yet and is
    re-raised, so callers never see a partial row set.
    """
    ids = list(ids)
    if not ids:
        return []

    workers = len(ids) if concurrency <= 0 else min(concurrency, len(ids))
    logger.debug("refresh | ids=%s | workers=%s", len(ids), workers)

    with ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(fetch, release_id) for release_id in ids]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [f for f in futures if f in done and f.exception() is not None]
        if failed:
            for f in pending:
                f.cancel()
            # Earliest-submitted failure among those finished first.
            raise failed[0].exception()
        results = [f.result() for f in futures]

    logger.info("refresh ok | rows=%s", len(results))
    return results
