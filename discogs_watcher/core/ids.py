from __future__ import annotations

import re
from typing import Optional

_DIGITS_RE = re.compile(r"^\d+$")
_RELEASE_URL_RE = re.compile(r"/releases?/(\d+)", re.IGNORECASE)

VALIDATION_MESSAGE = (
    "Please enter a valid Release ID or a URL like https://www.discogs.com/release/12345/..."
)


class ValidationError(ValueError):
    pass


def parse_release_id(text: str) -> Optional[int]:
    t = (text or "").strip()
    if _DIGITS_RE.match(t):
        n = int(t)
    else:
        m = _RELEASE_URL_RE.search(t)
        if not m:
            return None
        n = int(m.group(1))
    return n if n > 0 else None


def require_release_id(text: str) -> int:
    release_id = parse_release_id(text)
    if release_id is None:
        raise ValidationError(VALIDATION_MESSAGE)
    return release_id
