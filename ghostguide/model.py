"""
Central data model definitions used across the project.

This module defines the canonical structure of channels and schedule entries so that:
- the CSV importer, the conflict checker and the calendar layout share the same field names
- data stays consistent between the JSON store, CSV files and the terminal views
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Union


@dataclass(frozen=True)
class Channel:
    """
    One channel on the roster. Read-only in this tool.
    """

    name: str
    color: str


DEFAULT_CHANNELS: List[Channel] = [
    Channel("Shudder", "#e50914"),
    Channel("AMC", "#00a0df"),
    Channel("Syfy", "#9b59b6"),
    Channel("TCM", "#c0a062"),
    Channel("Cinemax", "#1a1a2e"),
]

FALLBACK_CHANNEL_COLOR = "#6b7280"


def find_channel(name: Optional[str], channels: List[Channel]) -> Optional[Channel]:
    """
    Case-insensitive roster lookup. Returns None for unknown or empty names.
    """
    if not name:
        return None
    wanted = name.strip().lower()
    for ch in channels:
        if ch.name.lower() == wanted:
            return ch
    return None


def channel_color(name: str, channels: List[Channel]) -> str:
    ch = find_channel(name, channels)
    return ch.color if ch else FALLBACK_CHANNEL_COLOR


@dataclass
class ScheduleEntry:
    """
    One programme slot on one channel.

    Drafts coming out of the CSV parser may have start_time/end_time set to None
    and id set to None. Persisted entries always satisfy end_time > start_time.
    """

    channel: str
    title: str
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    imdb_id: Optional[str] = None
    synopsis: Optional[str] = None
    is_genre_highlight: bool = False
    id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channel": self.channel,
            "title": self.title,
            "imdb_id": self.imdb_id,
            "synopsis": self.synopsis,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "is_genre_highlight": self.is_genre_highlight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleEntry":
        """
        Build an entry from its stored JSON form.
        Raises ValueError/KeyError/TypeError for malformed records.
        """
        start = data.get("start_time")
        end = data.get("end_time")
        return cls(
            id=data.get("id"),
            channel=str(data["channel"]),
            title=str(data.get("title") or ""),
            imdb_id=data.get("imdb_id") or None,
            synopsis=data.get("synopsis") or None,
            start_time=datetime.fromisoformat(start) if start else None,
            end_time=datetime.fromisoformat(end) if end else None,
            is_genre_highlight=bool(data.get("is_genre_highlight", False)),
        )


@dataclass
class ImportRow:
    """
    One raw CSV row, exactly as read. Nothing here is validated yet.
    """

    channel_name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    title: Optional[str] = None
    imdb_id: Optional[str] = None
    synopsis: Optional[str] = None
    is_horror: Union[str, bool, None] = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ImportRow":
        return cls(
            channel_name=data.get("channel_name"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            title=data.get("title"),
            imdb_id=data.get("imdb_id"),
            synopsis=data.get("synopsis"),
            is_horror=data.get("is_horror"),
        )


@dataclass
class ParsedEntry:
    """
    Result of parsing one ImportRow: the best-effort candidate entry plus
    validation and conflict information. Lives only during one import.
    """

    row: ImportRow
    entry: ScheduleEntry
    errors: List[str] = field(default_factory=list)
    has_conflict: bool = False
    conflict_with: Optional[ScheduleEntry] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors
