from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from discogs_watcher.core.models import ItemSummary
from discogs_watcher.io.format import (
    PLACEHOLDER,
    display_title,
    format_price,
    format_quantity,
    link_label,
)

EMPTY_MESSAGE = "No items yet. Add a Release ID or URL above."


def build_table(rows: Iterable[ItemSummary]) -> Table:
    table = Table(show_lines=False, header_style="bold")
    table.add_column("Cover", overflow="fold", max_width=28)
    table.add_column("ID", justify="right")
    table.add_column("Artist – Title")
    table.add_column("For Sale", justify="right")
    table.add_column("Lowest Price", justify="right")
    table.add_column("Link")

    for r in rows:
        cover = Text(r.thumbnail_url, style=f"link {r.thumbnail_url}") if r.thumbnail_url else Text(PLACEHOLDER)
        link = Text(link_label(r), style=f"link {r.canonical_url}")
        table.add_row(
            cover,
            str(r.id),
            display_title(r),
            format_quantity(r.quantity_available),
            format_price(r.lowest_price),
            link,
        )
    return table


def render_view(
    console: Console,
    ids: Sequence[int],
    rows: Sequence[ItemSummary],
    *,
    error: Optional[str] = None,
    last_updated: Optional[datetime] = None,
) -> None:
    """Print the tracked-id header, the error banner (if any) and the table."""
    if ids:
        header = Text(f"Tracked IDs: {', '.join(str(i) for i in ids)}", style="dim")
        if rows and last_updated is not None:
            header.append(f" • last updated: {last_updated.strftime('%X')}")
        console.print(header)

    if error:
        console.print(Panel(Text.assemble(("Error: ", "bold"), error), style="red"))

    if not rows:
        console.print(Text(EMPTY_MESSAGE, style="dim"))
        return
    console.print(build_table(rows))
