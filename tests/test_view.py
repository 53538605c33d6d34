import pytest

from discogs_watcher.core.models import BarePrice, ItemSummary, MarketPrice, SortSpec, ViewFilter
from discogs_watcher.core.view import apply_filter_and_sort, filter_rows, sort_rows


def _make_row(release_id: int, *, price=None, qty=None, artist: str = "") -> ItemSummary:
    return ItemSummary(
        id=release_id,
        title=f"Title {release_id}",
        artist_label=artist,
        quantity_available=qty,
        lowest_price=price,
    )


def _ids(rows) -> list:
    return [r.id for r in rows]


def test_price_sort_keeps_missing_last_in_both_directions() -> None:
    rows = [
        _make_row(1, price=None),
        _make_row(2, price=BarePrice(5)),
        _make_row(3, price=None),
        _make_row(4, price=MarketPrice(3, "EUR")),
    ]

    asc = sort_rows(rows, SortSpec("lowest_price", "asc"))
    assert _ids(asc) == [4, 2, 1, 3]

    desc = sort_rows(rows, SortSpec("lowest_price", "desc"))
    assert _ids(desc) == [2, 4, 1, 3]


def test_descending_reverses_tie_groups() -> None:
    rows = [
        _make_row(1, qty=2),
        _make_row(2, qty=1),
        _make_row(3, qty=2),
        _make_row(4, qty=None),
    ]

    assert _ids(sort_rows(rows, SortSpec("quantity_available", "asc"))) == [4, 2, 1, 3]
    # Not a descending comparator: the tie pair (1, 3) comes out as (3, 1).
    assert _ids(sort_rows(rows, SortSpec("quantity_available", "desc"))) == [3, 1, 2, 4]


def test_price_ties_reverse_in_bulk() -> None:
    rows = [
        _make_row(1, price=BarePrice(2)),
        _make_row(2, price=MarketPrice(2, "USD")),
        _make_row(3, price=BarePrice(1)),
    ]
    assert _ids(sort_rows(rows, SortSpec("lowest_price", "asc"))) == [3, 1, 2]
    assert _ids(sort_rows(rows, SortSpec("lowest_price", "desc"))) == [2, 1, 3]


def test_artist_sort_is_case_insensitive() -> None:
    rows = [
        _make_row(1, artist="beta"),
        _make_row(2, artist="Alpha"),
        _make_row(3, artist=""),
        _make_row(4, artist="ALPHA"),
    ]
    assert _ids(sort_rows(rows, SortSpec("artist_label", "asc"))) == [3, 2, 4, 1]


def test_id_sort() -> None:
    rows = [_make_row(30), _make_row(4), _make_row(100)]
    assert _ids(sort_rows(rows, SortSpec("id", "asc"))) == [4, 30, 100]
    assert _ids(sort_rows(rows, SortSpec("id", "desc"))) == [100, 30, 4]


def test_only_in_stock_filter() -> None:
    rows = [_make_row(1, qty=0), _make_row(2, qty=None), _make_row(3, qty=3), _make_row(4, qty=5)]

    assert _ids(filter_rows(rows, ViewFilter(only_in_stock=True))) == [3, 4]
    assert _ids(filter_rows(rows, ViewFilter())) == [1, 2, 3, 4]


def test_apply_filter_and_sort_does_not_mutate_input() -> None:
    rows = [_make_row(2, qty=1), _make_row(1, qty=4), _make_row(3, qty=0)]
    out = apply_filter_and_sort(rows, ViewFilter(only_in_stock=True), SortSpec("id", "desc"))
    assert _ids(out) == [2, 1]
    assert _ids(rows) == [2, 1, 3]


def test_sort_spec_rejects_unknown_values() -> None:
    with pytest.raises(ValueError):
        SortSpec("price", "asc")
    with pytest.raises(ValueError):
        SortSpec("id", "down")
