from __future__ import annotations

from typing import Optional

from discogs_watcher.core.models import BarePrice, ItemSummary, Price

PLACEHOLDER = "—"

_CURRENCY_SYMBOLS = {"USD": "$"}


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def format_price(price: Optional[Price]) -> str:
    if price is None:
        return PLACEHOLDER
    if isinstance(price, BarePrice):
        return f"{format_amount(price.amount)} $"
    symbol = _CURRENCY_SYMBOLS.get(price.currency, price.currency)
    return f"{format_amount(price.amount)} {symbol}".rstrip()


def format_quantity(quantity: Optional[int]) -> str:
    return PLACEHOLDER if quantity is None else str(quantity)


def display_title(row: ItemSummary) -> str:
    if row.artist_label:
        return f"{row.artist_label} — {row.title}"
    return row.title


def link_label(row: ItemSummary) -> str:
    return "Discogs" if row.uri else "API"
