"""
Conflict detection.

Given the existing schedule, detect overlaps on the same channel.
Overlap rule:
    start < other_end AND end > other_start

Touching endpoints (one programme ends exactly when the next starts) are NOT a conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ghostguide.model import ScheduleEntry


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def _same_channel(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def find_overlapping(candidate: ScheduleEntry, existing: Iterable[ScheduleEntry]) -> List[ScheduleEntry]:
    """
    All existing entries on the candidate's channel whose interval overlaps it, in input order.

    Candidates without both timestamps or without a channel never overlap anything.
    An existing entry with the candidate's own id is ignored (editing is not a collision).
    """
    if not candidate.channel or candidate.start_time is None or candidate.end_time is None:
        return []

    out: List[ScheduleEntry] = []
    for other in existing:
        if other.start_time is None or other.end_time is None:
            continue
        if candidate.id is not None and other.id == candidate.id:
            continue
        if not _same_channel(candidate.channel, other.channel):
            continue
        if _overlaps(candidate.start_time, candidate.end_time, other.start_time, other.end_time):
            out.append(other)
    return out


def find_conflict(candidate: ScheduleEntry, existing: Iterable[ScheduleEntry]) -> Optional[ScheduleEntry]:
    """
    Return the existing entry the candidate collides with, or None.

    If several entries collide, the earliest-starting one is reported
    (ties: lowest id, then input order) so repeated runs give the same answer.
    """
    hits = find_overlapping(candidate, existing)
    if not hits:
        return None
    # min() keeps the first of equal keys, which preserves input order on full ties
    return min(hits, key=lambda e: (e.start_time, e.id or ""))


def find_all_conflicts(entries: Iterable[ScheduleEntry]) -> List[Tuple[ScheduleEntry, ScheduleEntry]]:
    """
    Find overlapping entry pairs (A,B) in a schedule, each pair appears once (i<j).
    Overlap only if same channel AND time intervals overlap.
    """
    conflicts: List[Tuple[ScheduleEntry, ScheduleEntry]] = []

    parsed = [e for e in entries if e.start_time is not None and e.end_time is not None and e.channel]
    parsed.sort(key=lambda e: (e.start_time, e.channel.lower()))

    # O(n^2) is fine for a few channels' worth of programming
    for i in range(len(parsed)):
        a = parsed[i]
        for j in range(i + 1, len(parsed)):
            b = parsed[j]
            if not _same_channel(a.channel, b.channel):
                continue
            if _overlaps(a.start_time, a.end_time, b.start_time, b.end_time):
                conflicts.append((a, b))

    return conflicts
