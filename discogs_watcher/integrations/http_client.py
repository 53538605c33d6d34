from __future__ import annotations

import logging
import math
import numbers
from typing import Any, Dict, List, Optional

import requests

from discogs_watcher.core.models import (
    DISCOGS_API_BASE,
    BarePrice,
    ItemSummary,
    MarketPrice,
    Price,
)

logger = logging.getLogger(__name__)

BODY_PREVIEW_LIMIT = 200


class DiscogsError(RuntimeError):
    pass


class FetchError(DiscogsError):
    """A single release could not be fetched (network failure or non-2xx status)."""

    def __init__(self, release_id: int, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.release_id = release_id
        self.status_code = status_code
        self.message = message


def _safe_body_preview(resp: requests.Response, limit: int = BODY_PREVIEW_LIMIT) -> str:
    try:
        text = resp.text or ""
    except Exception:
        return ""
    return text[:limit]


def make_discogs_session(token: Optional[str], user_agent: str = "discogs-watcher/0.1") -> requests.Session:
    s = requests.Session()
    headers: Dict[str, str] = {
        "Accept": "application/json",
        "User-Agent": user_agent,
    }
    if token:
        headers["Authorization"] = f"Discogs token={token}"
    s.headers.update(headers)
    return s


def clone_discogs_session(session: requests.Session) -> requests.Session:
    cloned = requests.Session()
    cloned.headers.update(session.headers)
    return cloned


def release_url(release_id: int) -> str:
    return f"{DISCOGS_API_BASE}/releases/{release_id}"


def _as_finite(val: Any) -> Optional[float]:
    """Numeric JSON value as a finite float; NaN, Infinity and huge ints give None."""
    if not isinstance(val, numbers.Real) or isinstance(val, bool):
        return None
    try:
        f = float(val)
    except OverflowError:
        return None
    return f if math.isfinite(f) else None


def _artist_label(artists: Any) -> str:
    if not isinstance(artists, list) or not artists:
        return ""
    names = [str(a.get("name")) for a in artists if isinstance(a, dict) and a.get("name")]
    return ", ".join(names)


def _pick_image(images: Any) -> Optional[dict]:
    imgs: List[dict] = [x for x in images if isinstance(x, dict)] if isinstance(images, list) else []
    for img in imgs:
        if img.get("type") == "primary":
            return img
    return imgs[0] if imgs else None


def _parse_price(val: Any) -> Optional[Price]:
    amount = _as_finite(val)
    if amount is not None:
        return BarePrice(amount)
    if isinstance(val, dict):
        amount = _as_finite(val.get("value"))
        if amount is not None:
            return MarketPrice(amount, str(val.get("currency") or ""))
    return None


def _parse_quantity(val: Any) -> Optional[int]:
    n = _as_finite(val)
    if n is not None and n.is_integer() and n >= 0:
        return int(n)
    return None


def _opt_str(val: Any) -> Optional[str]:
    return val if isinstance(val, str) and val else None


def map_release(data: Any, release_id: int) -> ItemSummary:
    """
    Map a /releases/{id} payload to an ItemSummary.

    Missing or oddly shaped fields become None/"" instead of failing:
    absent num_for_sale stays None (unknown), never 0.
    """
    if not isinstance(data, dict):
        data = {}
    image = _pick_image(data.get("images"))
    thumb = None
    full = None
    if image is not None:
        full = _opt_str(image.get("uri"))
        thumb = _opt_str(image.get("uri150")) or full

    title = data.get("title")
    return ItemSummary(
        id=release_id,
        title=title if isinstance(title, str) else "",
        artist_label=_artist_label(data.get("artists")),
        quantity_available=_parse_quantity(data.get("num_for_sale")),
        lowest_price=_parse_price(data.get("lowest_price")),
        resource_url=_opt_str(data.get("resource_url")) or release_url(release_id),
        uri=_opt_str(data.get("uri")),
        thumbnail_url=thumb,
        image_url=full,
    )


def fetch_summary(session: requests.Session, release_id: int, *, timeout_s: Optional[float] = None) -> ItemSummary:
    """
    One GET per call: no retry, no cache. Non-2xx and network errors raise FetchError.
    """
    url = release_url(release_id)
    logger.debug("request | method=GET | url=%s", url)
    try:
        r = session.get(url, timeout=timeout_s or None)
    except requests.RequestException as e:
        logger.warning("request error | release=%s | err=%r", release_id, e)
        raise FetchError(release_id, None, f"Release {release_id}: {e}") from e

    if not r.ok:
        preview = _safe_body_preview(r)
        logger.warning(
            "http error | release=%s | status=%s | body=%s",
            release_id,
            r.status_code,
            preview,
        )
        raise FetchError(
            release_id,
            r.status_code,
            f"Release {release_id}: {r.status_code} {r.reason or ''} — {preview}",
        )

    try:
        data = r.json()
    except ValueError as e:
        raise FetchError(release_id, r.status_code, f"Release {release_id}: invalid JSON body ({e})") from e

    return map_release(data, release_id)
