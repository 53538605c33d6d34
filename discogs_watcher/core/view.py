from __future__ import annotations

from typing import Callable, Dict, Iterable, List

from discogs_watcher.core.models import ItemSummary, SortSpec, ViewFilter, price_amount

_SORT_FIELDS: Dict[str, Callable[[ItemSummary], object]] = {
    "quantity_available": lambda r: r.quantity_available or 0,
    "artist_label": lambda r: (r.artist_label or "").lower(),
    "id": lambda r: r.id,
}


def filter_rows(rows: Iterable[ItemSummary], view_filter: ViewFilter) -> List[ItemSummary]:
    if view_filter.only_in_stock:
        return [r for r in rows if (r.quantity_available or 0) > 0]
    return list(rows)


def _sort_by_price(rows: List[ItemSummary], descending: bool) -> List[ItemSummary]:
    # Rows without a price stay last, in input order, whatever the direction.
    priced = [r for r in rows if price_amount(r.lowest_price) is not None]
    missing = [r for r in rows if price_amount(r.lowest_price) is None]
    priced.sort(key=lambda r: price_amount(r.lowest_price))
    if descending:
        priced.reverse()
    return priced + missing


def sort_rows(rows: Iterable[ItemSummary], sort_spec: SortSpec) -> List[ItemSummary]:
    """
    Stable ascending sort on the chosen key; descending reverses the sorted
    list (tie groups flip along with everything else).
    """
    rows = list(rows)
    descending = sort_spec.direction == "desc"
    if sort_spec.key == "lowest_price":
        return _sort_by_price(rows, descending)
    rows.sort(key=_SORT_FIELDS[sort_spec.key])
    if descending:
        rows.reverse()
    return rows


def apply_filter_and_sort(
    rows: Iterable[ItemSummary],
    view_filter: ViewFilter,
    sort_spec: SortSpec,
) -> List[ItemSummary]:
    return sort_rows(filter_rows(rows, view_filter), sort_spec)
