"""
CLI (Command Line Interface).

This module provides the EPG admin commands, e.g.:

    ghostguide list --date 2024-01-15
    ghostguide grid --date 2024-01-15
    ghostguide add --channel Shudder --title "Alien" --start 20:00 --end 22:30
    ghostguide edit <id> --end 23:00
    ghostguide remove <id>
    ghostguide import schedule.csv --policy skip
    ghostguide export out.csv
    ghostguide conflicts
    ghostguide now
    ghostguide upcoming --hours 4
    ghostguide lookup "nightmare"

Note:
- Every command returns an exit code via SystemExit
- Library errors (GhostGuideError) are printed and turn into exit code 1
"""

from __future__ import annotations

import argparse
import logging
import signal
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table

from ghostguide.config import configure_logging, import_delay, load_channels, omdb_api_key
from ghostguide.conflicts import find_all_conflicts, find_conflict
from ghostguide.errors import GhostGuideError
from ghostguide.export_csv import default_export_name, export_entries_to_csv
from ghostguide.layout import DEFAULT_ORIGIN_HOUR, GRID_HOURS, ChannelRow, layout_day, time_slots
from ghostguide.lookup import CreditUsage, OmdbClient
from ghostguide.model import Channel, ParsedEntry, ScheduleEntry, channel_color, find_channel
from ghostguide.now import progress_percent, time_remaining, upcoming, whats_on_now
from ghostguide.parse import build_entry_times, parse_hhmm, parse_import_file, parse_timestamp
from ghostguide.reconcile import ConflictPolicy, commit_plan, compute_stats, make_store_writer, reconcile
from ghostguide.storage import ScheduleStore

logger = logging.getLogger(__name__)

console = Console()

GRID_COLUMNS = 60


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _fmt_time(dt: Optional[datetime]) -> str:
    if dt is None:
        return "-"
    return dt.strftime("%b %d, %I:%M %p").replace(" 0", " ")


def _entry_line(e: ScheduleEntry) -> str:
    bits = [f"{_fmt_time(e.start_time)} - {_fmt_time(e.end_time)}", e.channel, e.title]
    if e.is_genre_highlight:
        bits.append("*")
    return " | ".join(bits)


def _entries_table(title: str, entries: Sequence[ScheduleEntry], channels: List[Channel]) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Channel")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Title")
    table.add_column("Highlight", justify="center")
    for e in entries:
        table.add_row(
            e.id or "",
            f"[{channel_color(e.channel, channels)}]{escape(e.channel)}[/]",
            _fmt_time(e.start_time),
            _fmt_time(e.end_time),
            escape(e.title),
            "[magenta]Yes[/]" if e.is_genre_highlight else "",
        )
    return table


def _render_row(row: ChannelRow, columns: int = GRID_COLUMNS) -> str:
    """
    Draw one channel's timeline as text, placing each entry at its left/width.
    """
    cells = ["·"] * columns
    for entry, geom in row.items:
        start = min(columns - 1, int(round(geom.left / 100 * columns)))
        length = max(1, int(round(geom.width / 100 * columns)))
        end = min(columns, start + length)
        label = (entry.title + " " * columns)[: end - start]
        if end - start > 1:
            label = "|" + label[1:]
        for i, ch in enumerate(label):
            cells[start + i] = ch
    return "".join(cells)


def _parse_date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _parse_time_arg(value: str) -> str:
    try:
        parse_hhmm(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return value.strip()


def _parse_datetime_arg(value: str) -> datetime:
    dt = parse_timestamp(value)
    if dt is None:
        raise argparse.ArgumentTypeError(f"Invalid date-time {value!r}")
    return dt


def _resolve_channel(name: str, channels: List[Channel]) -> Optional[Channel]:
    ch = find_channel(name, channels)
    if ch is None:
        known = ", ".join(c.name for c in channels)
        print(f"Unknown channel: {name} (known: {known})")
    return ch


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_list(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    """
    List entries, optionally filtered by day, channel and title substring.
    """
    entries = store.list_entries(channel=args.channel)
    if args.date is not None:
        entries = [e for e in entries if e.start_time is not None and e.start_time.date() == args.date]
    query = (args.search or "").strip().lower()
    if query:
        entries = [e for e in entries if query in e.title.lower()]

    if not entries:
        print("No entries.")
        return 0

    highlights = sum(1 for e in entries if e.is_genre_highlight)
    console.print(_entries_table(f"Schedule ({len(entries)} entries, {highlights} highlights)", entries, channels))
    return 0


def _cmd_grid(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    """
    Show one day as a channel x time grid.
    """
    day = args.date or date.today()
    origin = args.origin_hour
    if not (0 <= origin <= 23):
        print("--origin-hour must be between 0 and 23.")
        return 1

    rows = layout_day(store.list_entries(), day, channels, origin_hour=origin)

    slots = time_slots(origin)
    step = GRID_COLUMNS // GRID_HOURS
    header = "".join(label.ljust(step * 4)[: step * 4] for label in slots[::4])

    table = Table(title=f"EPG grid {day.isoformat()}", box=box.SIMPLE)
    table.add_column("Channel")
    table.add_column(header, no_wrap=True)
    for row in rows:
        table.add_row(f"[{row.channel.color}]{escape(row.channel.name)}[/]", escape(_render_row(row)))
    console.print(table)

    for row in rows:
        for entry, geom in row.items:
            logger.debug("%s %s left=%.1f%% width=%.1f%%", row.channel.name, entry.title, geom.left, geom.width)
    return 0


def _cmd_add(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    """
    Add one entry by hand. End times at or before the start roll into the next day.
    """
    title = (args.title or "").strip()
    if not title:
        print("Please provide a title.")
        return 1

    ch = _resolve_channel(args.channel, channels)
    if ch is None:
        return 1

    start, end = build_entry_times(args.date or date.today(), args.start, args.end)
    entry = ScheduleEntry(
        channel=ch.name,
        title=title,
        imdb_id=(args.imdb_id or "").strip() or None,
        synopsis=(args.synopsis or "").strip() or None,
        start_time=start,
        end_time=end,
        is_genre_highlight=not args.no_highlight,
    )

    collision = find_conflict(entry, store.list_entries(channel=ch.name))
    if collision is not None:
        print(f"Warning: overlaps {_entry_line(collision)}")

    created = store.create(entry)
    print(f"Added: {created.id} | {_entry_line(created)}")
    return 0


def _cmd_edit(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    entry = store.get(args.entry_id)

    if args.channel is not None:
        ch = _resolve_channel(args.channel, channels)
        if ch is None:
            return 1
        entry.channel = ch.name
    if args.title is not None:
        if not args.title.strip():
            print("Title cannot be empty.")
            return 1
        entry.title = args.title.strip()
    if args.imdb_id is not None:
        entry.imdb_id = args.imdb_id.strip() or None
    if args.synopsis is not None:
        entry.synopsis = args.synopsis.strip() or None
    if args.highlight is not None:
        entry.is_genre_highlight = args.highlight == "yes"

    if args.date is not None or args.start is not None or args.end is not None:
        if (entry.start_time is None or entry.end_time is None) and None in (args.date, args.start, args.end):
            print(f"Entry {entry.id} has no stored times; pass --date, --start and --end together.")
            return 1
        day = args.date or entry.start_time.date()
        start_s = args.start or entry.start_time.strftime("%H:%M")
        end_s = args.end or entry.end_time.strftime("%H:%M")
        entry.start_time, entry.end_time = build_entry_times(day, start_s, end_s)

    collision = find_conflict(entry, store.list_entries(channel=entry.channel))
    if collision is not None:
        print(f"Warning: overlaps {_entry_line(collision)}")

    updated = store.update(entry)
    print(f"Updated: {updated.id} | {_entry_line(updated)}")
    return 0


def _cmd_remove(args: argparse.Namespace, store: ScheduleStore) -> int:
    entry = store.get(args.entry_id)
    store.delete(entry.id)
    print(f"Removed: {entry.id} | {_entry_line(entry)}")
    return 0


def _preview_table(parsed: Sequence[ParsedEntry]) -> Table:
    table = Table(title="Import preview", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Channel")
    table.add_column("Title")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Highlight", justify="center")
    for i, p in enumerate(parsed, start=1):
        if not p.is_valid:
            status = "[red]Error: " + escape("; ".join(p.errors)) + "[/]"
        elif p.has_conflict and p.conflict_with is not None:
            status = f"[yellow]Conflict: {escape(p.conflict_with.title)}[/]"
        else:
            status = "[green]OK[/]"
        table.add_row(
            str(i),
            status,
            escape(p.entry.channel),
            escape(p.entry.title),
            _fmt_time(p.entry.start_time),
            _fmt_time(p.entry.end_time),
            "Yes" if p.entry.is_genre_highlight else "No",
        )
    return table


def _cmd_import(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    """
    Upload -> preview -> commit, with one global policy for conflicting rows.
    """
    path = Path(args.file)
    policy = ConflictPolicy(args.policy)

    parsed = parse_import_file(path, channels, existing=store.list_entries())
    if not parsed:
        print("No rows found in import file.")
        return 0

    stats = compute_stats(parsed)
    console.print(_preview_table(parsed))
    print(
        f"Total: {stats.total} | Valid: {stats.valid} | Invalid: {stats.invalid} | Conflicts: {stats.conflicts}"
    )
    if stats.conflicts:
        print(f"{stats.conflicts} entries conflict with existing schedule (policy: {policy.value})")

    if stats.valid == 0:
        print("Nothing to import.")
        return 1

    plan = reconcile(parsed, policy)
    if args.dry_run:
        print(f"Dry run: would import {len(plan.accepted)} entries, skip {len(plan.skipped)}.")
        return 0

    delay = import_delay() if args.delay is None else args.delay
    cancelled = {"flag": False}

    def _on_sigint(signum: int, frame: Any) -> None:
        cancelled["flag"] = True

    previous = signal.signal(signal.SIGINT, _on_sigint)
    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeRemainingColumn(),
        console=console,
    )
    try:
        with progress:
            task = progress.add_task("Importing...", total=len(plan.accepted))
            result = commit_plan(
                plan,
                make_store_writer(store, policy),
                delay=delay,
                progress=lambda done, total: progress.update(task, completed=done),
                should_cancel=lambda: cancelled["flag"],
            )
    finally:
        signal.signal(signal.SIGINT, previous)

    for failed, message in result.failures:
        print(f"Failed: {failed.entry.title} ({message})")
    if result.cancelled:
        print("Import cancelled; rows written so far were kept.")
    summary = f"Imported: {result.success} | Skipped: {result.skipped} | Errors: {result.errors}"
    if result.cancelled:
        summary += f" | Not attempted: {result.not_attempted}"
    print(summary)
    return 1 if result.errors or result.cancelled else 0


def _cmd_export(args: argparse.Namespace, store: ScheduleStore) -> int:
    entries = store.list_entries()
    if not entries:
        print("No entries to export.")
        return 0

    out_path = (args.out or "").strip() or default_export_name(date.today())
    n = export_entries_to_csv(entries, out_path)
    print(f"Exported {n} entries to: {out_path}")
    return 0


def _cmd_conflicts(args: argparse.Namespace, store: ScheduleStore) -> int:
    confs = find_all_conflicts(store.list_entries())
    if not confs:
        print("No conflicts found.")
        return 0

    print(f"Conflicts found: {len(confs)}")
    for a, b in confs:
        print(f"- {_entry_line(a)}  <->  {_entry_line(b)}")
    return 0


def _cmd_now(args: argparse.Namespace, store: ScheduleStore) -> int:
    now = args.at or datetime.now()
    airing = whats_on_now(store.list_entries(), now)
    if not airing:
        print("Nothing on right now.")
        return 0

    table = Table(title=f"What's on now ({_fmt_time(now)})", box=box.SIMPLE)
    table.add_column("Channel")
    table.add_column("Title")
    table.add_column("Progress", justify="right")
    table.add_column("Remaining")
    for e in airing:
        table.add_row(escape(e.channel), escape(e.title), f"{progress_percent(e, now):.0f}%", time_remaining(e, now))
    console.print(table)
    return 0


def _cmd_upcoming(args: argparse.Namespace, store: ScheduleStore, channels: List[Channel]) -> int:
    now = args.at or datetime.now()
    if args.hours <= 0:
        print("--hours must be positive.")
        return 1
    soon = upcoming(store.list_entries(), now, hours=args.hours)
    if not soon:
        print(f"Nothing starting in the next {args.hours:g} hours.")
        return 0
    console.print(_entries_table(f"Upcoming (next {args.hours:g} hours)", soon, channels))
    return 0


def _cmd_lookup(args: argparse.Namespace) -> int:
    query = (args.query or "").strip()
    if not query:
        print("Please provide a title or IMDb id.")
        return 1

    client = OmdbClient(omdb_api_key())
    usage = CreditUsage()

    if query.lower().startswith("tt") and query[2:].isdigit():
        details = client.get_by_imdb_id(query, usage)
        if details is None:
            print("No results.")
        else:
            year = details.year if details.year is not None else "?"
            print(f"{details.imdb_id} | {details.title} ({year}) | {details.genre}")
            if details.plot:
                print(details.plot)
    else:
        results = client.search(query, usage)
        if not results:
            print("No results.")
        for s in results:
            year = s.year if s.year is not None else "?"
            print(f"{s.imdb_id} | {s.title} ({year})")

    print(f"OMDb credits used: {usage.omdb}")
    return 0


# ---------------------------------------------------------------------------
# Parser / entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="ghostguide", description="Ghost Guide EPG admin CLI")
    parser.add_argument("--data-file", type=Path, default=None, help="Schedule JSON file (default: data dir)")
    parser.add_argument("--channels-file", type=Path, default=None, help="Channel roster JSON file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (e.g. INFO, DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List schedule entries")
    p_list.add_argument("--date", type=_parse_date_arg, default=None, help="Day (YYYY-MM-DD)")
    p_list.add_argument("--channel", type=str, default=None, help="Channel name")
    p_list.add_argument("--search", type=str, default=None, help="Title contains text")

    p_grid = sub.add_parser("grid", help="Show the day grid")
    p_grid.add_argument("--date", type=_parse_date_arg, default=None, help="Day (YYYY-MM-DD, default today)")
    p_grid.add_argument("--origin-hour", type=int, default=DEFAULT_ORIGIN_HOUR, help="First hour of the grid")

    p_add = sub.add_parser("add", help="Add an entry")
    p_add.add_argument("--channel", type=str, required=True, help="Channel name")
    p_add.add_argument("--title", type=str, required=True, help="Programme title")
    p_add.add_argument("--date", type=_parse_date_arg, default=None, help="Day (YYYY-MM-DD, default today)")
    p_add.add_argument("--start", type=_parse_time_arg, default="20:00", help="Start time HH:MM")
    p_add.add_argument("--end", type=_parse_time_arg, default="22:00", help="End time HH:MM")
    p_add.add_argument("--imdb-id", type=str, default=None, help="IMDb id (ttXXXXXXX)")
    p_add.add_argument("--synopsis", type=str, default=None)
    p_add.add_argument("--no-highlight", action="store_true", help="Not a genre highlight")

    p_edit = sub.add_parser("edit", help="Edit an entry")
    p_edit.add_argument("entry_id", type=str)
    p_edit.add_argument("--channel", type=str, default=None)
    p_edit.add_argument("--title", type=str, default=None)
    p_edit.add_argument("--date", type=_parse_date_arg, default=None)
    p_edit.add_argument("--start", type=_parse_time_arg, default=None)
    p_edit.add_argument("--end", type=_parse_time_arg, default=None)
    p_edit.add_argument("--imdb-id", type=str, default=None)
    p_edit.add_argument("--synopsis", type=str, default=None)
    p_edit.add_argument("--highlight", choices=["yes", "no"], default=None)

    p_remove = sub.add_parser("remove", help="Remove an entry by id")
    p_remove.add_argument("entry_id", type=str)

    p_import = sub.add_parser("import", help="Import entries from CSV")
    p_import.add_argument("file", type=str, help="CSV file path")
    p_import.add_argument("--policy", choices=[p.value for p in ConflictPolicy], default="skip")
    p_import.add_argument("--dry-run", action="store_true", help="Preview only, write nothing")
    p_import.add_argument("--delay", type=float, default=None, help="Seconds to wait before each row")

    p_export = sub.add_parser("export", help="Export the schedule to CSV")
    p_export.add_argument("out", type=str, nargs="?", default=None, help="Output file path")

    sub.add_parser("conflicts", help="Show overlapping entries in the schedule")

    p_now = sub.add_parser("now", help="What's on now")
    p_now.add_argument("--at", type=_parse_datetime_arg, default=None, help="Pretend the time is this")

    p_up = sub.add_parser("upcoming", help="What starts soon")
    p_up.add_argument("--hours", type=float, default=4)
    p_up.add_argument("--at", type=_parse_datetime_arg, default=None)

    p_lookup = sub.add_parser("lookup", help="Look up a title on OMDb")
    p_lookup.add_argument("query", type=str, help="Title text or IMDb id")

    return parser


def _dispatch(args: argparse.Namespace) -> int:
    if args.command == "lookup":
        return _cmd_lookup(args)

    channels = load_channels(args.channels_file)
    store = ScheduleStore(args.data_file)

    if args.command == "list":
        return _cmd_list(args, store, channels)
    if args.command == "grid":
        return _cmd_grid(args, store, channels)
    if args.command == "add":
        return _cmd_add(args, store, channels)
    if args.command == "edit":
        return _cmd_edit(args, store, channels)
    if args.command == "remove":
        return _cmd_remove(args, store)
    if args.command == "import":
        return _cmd_import(args, store, channels)
    if args.command == "export":
        return _cmd_export(args, store)
    if args.command == "conflicts":
        return _cmd_conflicts(args, store)
    if args.command == "now":
        return _cmd_now(args, store)
    if args.command == "upcoming":
        return _cmd_upcoming(args, store, channels)
    return 2


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level)
        code = _dispatch(args)
    except GhostGuideError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    raise SystemExit(code)
