from __future__ import annotations

import html
from datetime import datetime
from typing import Iterable, Optional

from discogs_watcher.core.models import ItemSummary
from discogs_watcher.io.format import display_title, format_price, format_quantity, link_label
from discogs_watcher.io.table import EMPTY_MESSAGE
from discogs_watcher.io.utils import atomic_write_text


def _esc(value) -> str:
    return html.escape(str(value or ""), quote=True)


def _row_html(r: ItemSummary) -> str:
    if r.thumbnail_url:
        cover = f'<img src="{_esc(r.thumbnail_url)}" alt="{_esc(r.title)}" loading="lazy" />'
    else:
        cover = '<div class="noimg" title="No image">&#x1F4BF;</div>'
    return (
        "      <tr>\n"
        f"        <td>{cover}</td>\n"
        f"        <td>{r.id}</td>\n"
        f"        <td>{_esc(display_title(r))}</td>\n"
        f"        <td>{_esc(format_quantity(r.quantity_available))}</td>\n"
        f"        <td>{_esc(format_price(r.lowest_price))}</td>\n"
        f'        <td><a href="{_esc(r.canonical_url)}" target="_blank" rel="noreferrer">{link_label(r)}</a></td>\n'
        "      </tr>"
    )


def render_dashboard(
    rows: Iterable[ItemSummary],
    *,
    error: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Standalone HTML page for rows that are already filtered and sorted."""
    rows = list(rows)
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    banner = f'  <div class="error"><strong>Error:</strong> {_esc(error)}</div>\n' if error else ""
    if rows:
        body_rows = "\n".join(_row_html(r) for r in rows)
        content = f"""  <table>
    <thead>
      <tr>
        <th>Cover</th>
        <th>ID</th>
        <th>Artist – Title</th>
        <th>For Sale</th>
        <th>Lowest Price</th>
        <th>Link</th>
      </tr>
    </thead>
    <tbody>
{body_rows}
    </tbody>
  </table>
"""
    else:
        content = f'  <p class="empty">{_esc(EMPTY_MESSAGE)}</p>\n'

    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Discogs Watcher</title>
  <style>
    body {{ font-family: system-ui, sans-serif; margin: 24px auto; max-width: 900px; color: #111; }}
    table {{ border-collapse: collapse; width: 100%; }}
    th, td {{ padding: 8px 6px; text-align: left; border-top: 1px solid #ddd; }}
    img, .noimg {{ width: 56px; height: 56px; object-fit: cover; border-radius: 8px; display: block; }}
    .noimg {{ display: grid; place-items: center; background: #f3f3f3; font-size: 20px; }}
    .error {{ background: #fee; color: #900; padding: 12px; border-radius: 8px; margin-bottom: 12px; }}
    .meta, .empty {{ color: #666; }}
  </style>
</head>
<body>
  <h1>Discogs Watcher</h1>
  <p class="meta">Generated {stamp}</p>
{banner}{content}</body>
</html>
"""


def write_dashboard(rows: Iterable[ItemSummary], out_path: str, *, error: Optional[str] = None) -> None:
    page = render_dashboard(rows, error=error)

    def _write(tmp_path: str) -> None:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(page)

    atomic_write_text(_write, out_path)
