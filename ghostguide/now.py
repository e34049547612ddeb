"""
"What's on now" helpers: currently airing programmes, what comes next,
and how far along a programme is.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List

from ghostguide.model import ScheduleEntry


def _complete(entries: Iterable[ScheduleEntry]) -> List[ScheduleEntry]:
    return [e for e in entries if e.start_time is not None and e.end_time is not None]


def whats_on_now(entries: Iterable[ScheduleEntry], now: datetime) -> List[ScheduleEntry]:
    """Entries airing at `now` (start inclusive, end exclusive), by channel then start."""
    airing = [e for e in _complete(entries) if e.start_time <= now < e.end_time]
    airing.sort(key=lambda e: (e.channel.lower(), e.start_time))
    return airing


def upcoming(entries: Iterable[ScheduleEntry], now: datetime, hours: float = 4) -> List[ScheduleEntry]:
    """Entries starting after `now` and no later than `hours` from now, by start time."""
    horizon = now + timedelta(hours=hours)
    soon = [e for e in _complete(entries) if now < e.start_time <= horizon]
    soon.sort(key=lambda e: (e.start_time, e.channel.lower()))
    return soon


def _whole_minutes(delta: timedelta) -> int:
    # Truncate toward zero, like a minute difference on a wall clock
    return int(delta.total_seconds() / 60)


def progress_percent(entry: ScheduleEntry, now: datetime) -> float:
    total = _whole_minutes(entry.end_time - entry.start_time)
    if total <= 0:
        return 100.0
    elapsed = _whole_minutes(now - entry.start_time)
    return min(100.0, max(0.0, elapsed / total * 100))


def time_remaining(entry: ScheduleEntry, now: datetime) -> str:
    mins = _whole_minutes(entry.end_time - now)
    if mins <= 0:
        return "Ending now"
    if mins < 60:
        return f"{mins}m left"
    return f"{mins // 60}h {mins % 60}m left"
