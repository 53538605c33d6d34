# discogs_watcher/cli.py
from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Callable, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.text import Text

from .config import AppConfig, load_dotenv, load_settings
from .core.ids import VALIDATION_MESSAGE, parse_release_id
from .core.models import SORT_KEYS, SortSpec, ViewFilter
from .core.store import IdentifierStore, JsonFileStore
from .io.dashboard import write_dashboard
from .io.table import render_view
from .pipeline import make_fetcher
from .session import WatchSession

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

SORT_CHOICES = {
    "lowest-price": "lowest_price",
    "for-sale": "quantity_available",
    "artist": "artist_label",
    "id": "id",
}

INTERACTIVE_HELP = (
    "Commands: add <id|url>, remove <id|url>, sort <lowest-price|for-sale|artist|id>, "
    "dir, stock, refresh, ids, help, quit"
)

logger = logging.getLogger(__name__)


def _sort_key(name: str) -> str:
    key = SORT_CHOICES.get(name, name)
    if key not in SORT_KEYS:
        raise SystemExit(f"Unknown sort key: {name} (choose from {', '.join(SORT_CHOICES)})")
    return key


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="discogs-watcher",
        description="Track Discogs releases and compare their marketplace listings",
    )
    ap.add_argument("--state", default=None, help="Tracked ids JSON file (default: DISCOGS_WATCHER_STATE or ./discogs_watcher_state.json)")
    ap.add_argument("--settings", default=None, help="Optional YAML settings file (sort, direction, only_in_stock, ...)")
    ap.add_argument("--log-level", default="warning", help="Log level: debug, info, warning, error")

    view = argparse.ArgumentParser(add_help=False)
    view.add_argument("--sort", default=None, choices=list(SORT_CHOICES), help="Sort column")
    direction = view.add_mutually_exclusive_group()
    direction.add_argument("--desc", dest="direction", action="store_const", const="desc", help="Sort descending")
    direction.add_argument("--asc", dest="direction", action="store_const", const="asc", help="Sort ascending")
    view.add_argument(
        "--in-stock",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only show releases with copies for sale (--no-in-stock overrides the settings file)",
    )
    view.add_argument("--html", default=None, help="Also write the table to this HTML file")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Print tracked release ids")

    p_add = sub.add_parser("add", parents=[view], help="Track releases by id or URL")
    p_add.add_argument("items", nargs="+", help="Release id or https://www.discogs.com/release/... URL")
    p_add.add_argument("--no-refresh", action="store_true", help="Only update the tracked list")

    p_rm = sub.add_parser("remove", parents=[view], help="Stop tracking releases")
    p_rm.add_argument("items", nargs="+", help="Release id or URL")
    p_rm.add_argument("--no-refresh", action="store_true", help="Only update the tracked list")

    sub.add_parser("show", parents=[view], help="Fetch all tracked releases and show the table")
    sub.add_parser("interactive", parents=[view], help="Interactive prompt")
    return ap


def _setup_logging(level_name: str) -> None:
    level = LOG_LEVELS.get(level_name.lower(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _view_settings(args: argparse.Namespace, settings: dict) -> tuple[ViewFilter, SortSpec]:
    sort_name = getattr(args, "sort", None) or settings.get("sort") or "lowest_price"
    direction = getattr(args, "direction", None) or settings.get("direction") or "asc"
    only_in_stock = getattr(args, "in_stock", None)
    if only_in_stock is None:
        only_in_stock = bool(settings.get("only_in_stock", False))
    try:
        sort_spec = SortSpec(key=_sort_key(str(sort_name)), direction=str(direction))
    except ValueError as e:
        raise SystemExit(str(e)) from e
    return ViewFilter(only_in_stock=only_in_stock), sort_spec


def _render(session: WatchSession, console: Console) -> None:
    render_view(
        console,
        session.ids,
        session.display_rows(),
        error=session.error,
        last_updated=session.last_updated,
    )


def _refresh_and_show(session: WatchSession, console: Console, html_path: Optional[str]) -> bool:
    ok = session.refresh()
    _render(session, console)
    if html_path:
        write_dashboard(session.display_rows(), html_path, error=session.error)
        logger.info("wrote HTML table -> %s", html_path)
    return ok


def run_interactive(
    session: WatchSession,
    console: Console,
    read_line: Optional[Callable[[], str]] = None,
) -> int:
    read_line = read_line or (lambda: Prompt.ask("discogs-watcher", console=console))
    session.refresh()
    _render(session, console)
    console.print(Text(INTERACTIVE_HELP, style="dim"))

    while True:
        try:
            line = read_line().strip()
        except (EOFError, KeyboardInterrupt):
            return 0
        if not line:
            continue
        cmd, _, rest = line.partition(" ")
        cmd = cmd.lower()
        rest = rest.strip()

        if cmd in ("quit", "exit", "q"):
            return 0
        if cmd == "help":
            console.print(Text(INTERACTIVE_HELP, style="dim"))
            continue
        if cmd == "ids":
            console.print(", ".join(str(i) for i in session.ids) or "(none)")
            continue

        if cmd == "add":
            msg = session.add_from_text(rest)
            if msg:
                console.print(Text(msg, style="yellow"))
                continue
        elif cmd == "remove":
            release_id = parse_release_id(rest)
            if release_id is None:
                console.print(Text(VALIDATION_MESSAGE, style="yellow"))
                continue
            session.remove(release_id)
        elif cmd == "sort":
            key = SORT_CHOICES.get(rest, rest)
            if key not in SORT_KEYS:
                console.print(Text(f"Unknown sort key: {rest}", style="yellow"))
                continue
            session.set_sort(key=key)
        elif cmd == "dir":
            session.toggle_direction()
        elif cmd == "stock":
            session.set_only_in_stock(not session.view_filter.only_in_stock)
        elif cmd == "refresh":
            session.refresh()
        else:
            console.print(Text(f"Unknown command: {cmd}. {INTERACTIVE_HELP}", style="yellow"))
            continue
        _render(session, console)


def main(argv: Optional[List[str]] = None, *, console: Optional[Console] = None, fetcher=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)
    _setup_logging(args.log_level)
    console = console or Console()

    used = load_dotenv(".env")
    if used:
        logger.info("loaded .env: %s", used)

    config = AppConfig.from_env()
    settings = load_settings(args.settings) if args.settings else {}
    config = config.with_settings(settings)
    if args.state:
        config = replace(config, state_path=args.state)
    config.validate()
    logger.debug("config: %s", config.describe())
    if not config.discogs_token:
        logger.info("DISCOGS_TOKEN not set; using unauthenticated requests (lower rate limit)")

    view_filter, sort_spec = _view_settings(args, settings)
    store = IdentifierStore(JsonFileStore(config.state_path))
    session = WatchSession(
        store,
        fetcher or make_fetcher(config),
        view_filter=view_filter,
        sort_spec=sort_spec,
        concurrency=config.concurrency,
    )

    if args.command == "list":
        if session.ids:
            console.print(", ".join(str(i) for i in session.ids))
        else:
            console.print(Text("No tracked releases. Use `discogs-watcher add <id|url>`.", style="dim"))
        return 0

    if args.command == "interactive":
        return run_interactive(session, console)

    invalid = False
    if args.command == "add":
        for item in args.items:
            msg = session.add_from_text(item, refresh=False)
            if msg:
                invalid = True
                console.print(Text(f"{item}: {msg}", style="yellow"))
    elif args.command == "remove":
        for item in args.items:
            release_id = parse_release_id(item)
            if release_id is None:
                invalid = True
                console.print(Text(f"{item}: {VALIDATION_MESSAGE}", style="yellow"))
                continue
            if not session.remove(release_id, refresh=False):
                console.print(Text(f"{release_id} is not tracked.", style="dim"))

    if args.command in ("add", "remove") and args.no_refresh:
        console.print(", ".join(str(i) for i in session.ids) or "(no tracked releases)")
        return 2 if invalid else 0

    ok = _refresh_and_show(session, console, args.html)
    if invalid:
        return 2
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
