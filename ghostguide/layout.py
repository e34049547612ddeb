"""
Calendar layout for the day grid.

Each channel row is a fixed 20-hour timeline starting at the origin hour
(06:00 by default, so the grid runs 6 AM -> 2 AM). Every entry gets a `left`
offset and a `width`, both in percent of the row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence, Tuple

from ghostguide.model import Channel, ScheduleEntry

GRID_HOURS = 20
DEFAULT_ORIGIN_HOUR = 6
MIN_WIDTH_PERCENT = 5.0


@dataclass(frozen=True)
class EntryGeometry:
    left: float
    width: float


@dataclass
class ChannelRow:
    channel: Channel
    items: List[Tuple[ScheduleEntry, EntryGeometry]]


def _day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def entries_for_day(entries: Iterable[ScheduleEntry], day: date) -> List[ScheduleEntry]:
    """
    Entries that touch the given day: start inside it, end inside it, or span all of it.
    Bounds are inclusive on both sides.
    """
    day_start, day_end = _day_bounds(day)
    out: List[ScheduleEntry] = []
    for e in entries:
        if e.start_time is None or e.end_time is None:
            continue
        if (
            day_start <= e.start_time <= day_end
            or day_start <= e.end_time <= day_end
            or (e.start_time < day_start and e.end_time > day_end)
        ):
            out.append(e)
    return out


def _hour_of(dt: datetime) -> float:
    return dt.hour + dt.minute / 60


def entry_geometry(entry: ScheduleEntry, origin_hour: int = DEFAULT_ORIGIN_HOUR) -> EntryGeometry:
    """
    Horizontal position and width of an entry, in percent of the grid row.

    Example (origin 6): 22:00 -> 02:00 gives start 16h, end 20h, so left=80, width=20.
    """
    if entry.start_time is None or entry.end_time is None:
        raise ValueError(f"Entry {entry.title!r} has no start or end time")

    adjusted_start = _hour_of(entry.start_time) - origin_hour
    adjusted_end = _hour_of(entry.end_time) - origin_hour

    # Started before the origin: it is still running from the previous evening
    if adjusted_start < 0:
        adjusted_start += 24
    # Runs past midnight
    if adjusted_end <= 0:
        adjusted_end += 24
    # Malformed data: cap at the end of the grid instead of wrapping again
    if adjusted_end < adjusted_start:
        adjusted_end = GRID_HOURS

    left = max(0.0, adjusted_start / GRID_HOURS * 100)
    width = min(100 - left, (adjusted_end - max(0.0, adjusted_start)) / GRID_HOURS * 100)
    return EntryGeometry(left=left, width=max(width, MIN_WIDTH_PERCENT))


def layout_day(
    entries: Iterable[ScheduleEntry],
    day: date,
    channels: Sequence[Channel],
    origin_hour: int = DEFAULT_ORIGIN_HOUR,
) -> List[ChannelRow]:
    """
    One row per roster channel (roster order), entries sorted by start time.
    Entries on channels outside the roster are not shown.
    """
    todays = sorted(entries_for_day(entries, day), key=lambda e: e.start_time)
    rows: List[ChannelRow] = []
    for ch in channels:
        items = [(e, entry_geometry(e, origin_hour)) for e in todays if e.channel.lower() == ch.name.lower()]
        rows.append(ChannelRow(channel=ch, items=items))
    return rows


def _hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    h12 = hour % 12 or 12
    return f"{h12} {suffix}"


def time_slots(origin_hour: int = DEFAULT_ORIGIN_HOUR) -> List[str]:
    """
    Hour labels across the grid, both ends included: 6 AM ... 2 AM for origin 6.
    """
    return [_hour_label((origin_hour + i) % 24) for i in range(GRID_HOURS + 1)]
