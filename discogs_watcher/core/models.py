from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

DISCOGS_API_BASE = "https://api.discogs.com"

SORT_KEYS = ("lowest_price", "quantity_available", "artist_label", "id")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class BarePrice:
    amount: float


@dataclass(frozen=True)
class MarketPrice:
    amount: float
    currency: str


Price = Union[BarePrice, MarketPrice]


def price_amount(price: Optional[Price]) -> Optional[float]:
    """Resolve either price shape to its scalar amount (None when absent)."""
    if price is None:
        return None
    return price.amount


@dataclass(frozen=True)
class ItemSummary:
    """
    Normalized view of one Discogs release, rebuilt on every refresh.
    Optional fields are None when upstream did not provide them.
    """
    id: int
    title: str
    artist_label: str = ""
    quantity_available: Optional[int] = None
    lowest_price: Optional[Price] = None
    resource_url: str = ""
    uri: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def canonical_url(self) -> str:
        return self.uri or self.resource_url or f"{DISCOGS_API_BASE}/releases/{self.id}"


@dataclass(frozen=True)
class SortSpec:
    key: str = "lowest_price"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {self.key!r} (expected one of {', '.join(SORT_KEYS)})")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.direction!r} (expected asc or desc)")


@dataclass(frozen=True)
class ViewFilter:
    only_in_stock: bool = False
