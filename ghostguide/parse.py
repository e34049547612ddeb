"""
Parsing (CSV -> ParsedEntry).

- Reads an EPG import file with the header
  channel_name,start_time,end_time,title,imdb_id,synopsis,is_horror
- Turns EACH data row into exactly ONE ParsedEntry
- Never raises for bad rows: problems are collected as error strings per row

Important rules (DO NOT CHANGE):
- 1 CSV row = 1 ParsedEntry, in file order
- A row is valid if and only if its error list is empty
- Unknown channels and bad timestamps do not stop the remaining checks
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from ghostguide.conflicts import find_conflict
from ghostguide.errors import ImportFileError
from ghostguide.model import Channel, ImportRow, ParsedEntry, ScheduleEntry, find_channel

logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ["channel_name", "start_time", "end_time", "title", "imdb_id", "synopsis", "is_horror"]

# Case-sensitive on purpose: "True" or "YES" are not in the set and coerce to False.
TRUTHY_HIGHLIGHT_VALUES = frozenset({"true", "1", "yes"})


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_highlight(value: Union[str, bool, None]) -> bool:
    """
    Interpret the loosely typed is_horror column.

    Only the boolean True and the strings in TRUTHY_HIGHLIGHT_VALUES count as true.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value in TRUTHY_HIGHLIGHT_VALUES
    return False


def parse_timestamp(value: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 style date or date-time string.

    Accepts '2024-01-15', '2024-01-15T20:00', '2024-01-15 20:00:00', and values with
    a trailing 'Z' or a UTC offset. Offset-aware values are converted to UTC and
    returned naive so every timestamp in the project compares the same way.
    Returns None if the value is not a valid date.
    """
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


# ---------------------------------------------------------------------------
# Row parsing (CORE LOGIC)
# ---------------------------------------------------------------------------


def parse_import_row(
    row: ImportRow,
    channels: Sequence[Channel],
    existing: Optional[Iterable[ScheduleEntry]] = None,
) -> ParsedEntry:
    """
    Parse exactly one import row into exactly one ParsedEntry.

    When `existing` is given, the candidate is also checked against the current
    schedule and flagged if it overlaps an entry on the same channel.
    """
    errors: List[str] = []

    channel_name = _clean(row.channel_name)
    start_raw = _clean(row.start_time)
    end_raw = _clean(row.end_time)
    title = _clean(row.title)

    # Required fields, one message each
    if not channel_name:
        errors.append("Missing channel name")
    if not start_raw:
        errors.append("Missing start time")
    if not end_raw:
        errors.append("Missing end time")
    if not title:
        errors.append("Missing title")

    # Channel must be on the roster
    channel = find_channel(channel_name, list(channels))
    if channel_name and channel is None:
        errors.append(f"Unknown channel: {channel_name}")

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    if start_raw:
        start_time = parse_timestamp(start_raw)
        if start_time is None:
            errors.append("Invalid start time format")
    if end_raw:
        end_time = parse_timestamp(end_raw)
        if end_time is None:
            errors.append("Invalid end time format")

    if start_time and end_time:
        start_time, end_time = normalize_overnight(start_time, end_time)
        if end_time <= start_time:
            errors.append("End time must be after start time")

    entry = ScheduleEntry(
        channel=channel.name if channel else channel_name,
        title=title,
        imdb_id=_clean(row.imdb_id) or None,
        synopsis=_clean(row.synopsis) or None,
        start_time=start_time,
        end_time=end_time,
        is_genre_highlight=parse_highlight(row.is_horror),
    )

    parsed = ParsedEntry(row=row, entry=entry, errors=errors)

    if existing is not None and channel is not None and start_time and end_time and end_time > start_time:
        collision = find_conflict(entry, existing)
        if collision is not None:
            parsed.has_conflict = True
            parsed.conflict_with = collision

    return parsed


def read_import_rows(source: Union[str, Path]) -> List[ImportRow]:
    """
    Read raw rows from a CSV file path (Path) or CSV text (str).

    Lines that are empty or contain only separators are skipped.
    Raises ImportFileError if the file cannot be read or has no header row.
    """
    if isinstance(source, Path):
        try:
            text = source.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise ImportFileError(f"Cannot read import file {source}: {exc}") from exc
    else:
        text = source

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ImportFileError("Import file is empty or has no header row")

    rows: List[ImportRow] = []
    try:
        for record in reader:
            values = [v for k, v in record.items() if k is not None]
            if not any(_clean(v) for v in values):
                continue
            normalized = {str(k).strip(): v for k, v in record.items() if k is not None}
            rows.append(ImportRow.from_mapping(normalized))
    except csv.Error as exc:
        raise ImportFileError(f"Malformed CSV at line {reader.line_num}: {exc}") from exc

    return rows


def parse_import_file(
    source: Union[str, Path],
    channels: Sequence[Channel],
    existing: Optional[Iterable[ScheduleEntry]] = None,
) -> List[ParsedEntry]:
    """
    Parse a whole import file. Returns one ParsedEntry per data row, in file order.
    """
    existing_list = list(existing) if existing is not None else None
    parsed = [parse_import_row(row, channels, existing_list) for row in read_import_rows(source)]
    logger.info(
        "Parsed %d import rows (%d invalid, %d conflicting)",
        len(parsed),
        sum(1 for p in parsed if not p.is_valid),
        sum(1 for p in parsed if p.has_conflict),
    )
    return parsed


# ---------------------------------------------------------------------------
# Manual entry times
# ---------------------------------------------------------------------------


def parse_hhmm(value: str) -> time:
    """
    Convert 'HH:MM' to a time object.
    Raises ValueError for invalid formats.
    """
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid time format: {value!r}")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time value: {value!r}")
    return time(h, m)


def normalize_overnight(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """
    If end is not after start, the programme runs past midnight: move end one day on.
    """
    if end <= start:
        end = end + timedelta(days=1)
    return start, end


def build_entry_times(day: date, start_hhmm: str, end_hhmm: str) -> Tuple[datetime, datetime]:
    """
    Combine a calendar day with 'HH:MM' start/end times.

    '23:30' -> '01:00' on 2024-01-15 gives 2024-01-15 23:30 -> 2024-01-16 01:00.
    """
    start = datetime.combine(day, parse_hhmm(start_hhmm))
    end = datetime.combine(day, parse_hhmm(end_hhmm))
    return normalize_overnight(start, end)
