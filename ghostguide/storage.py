"""
Persistent storage for the EPG schedule.

This module manages the file:

    data/schedule.json

with the schema:

    {"entries": [{"id": ..., "channel": ..., "start_time": "2024-01-15T20:00:00", ...}, ...]}

Every mutation is written straight back to disk, so an import that stops halfway
keeps the rows it already wrote.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from ghostguide.config import default_data_dir
from ghostguide.errors import StoreError
from ghostguide.model import ScheduleEntry

logger = logging.getLogger(__name__)


def _default_schedule_path() -> Path:
    """
    Return the default path of schedule.json.

    Using a function instead of a constant makes testing easier,
    because tests can point GHOSTGUIDE_DATA_DIR somewhere else.
    """
    return default_data_dir() / "schedule.json"


def _validate(entry: ScheduleEntry) -> None:
    if not entry.channel or not entry.channel.strip():
        raise StoreError("Entry has no channel")
    if not entry.title or not entry.title.strip():
        raise StoreError("Entry has no title")
    if entry.start_time is None or entry.end_time is None:
        raise StoreError(f"Entry {entry.title!r} has no start or end time")
    if entry.end_time <= entry.start_time:
        raise StoreError(f"Entry {entry.title!r} ends before it starts")


class ScheduleStore:
    """
    File-backed schedule store: create / update / delete / query by range and channel.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else _default_schedule_path()
        self._corrupt = False
        self._entries: List[ScheduleEntry] = self._load()

    # -- loading / saving ---------------------------------------------------

    def _load(self) -> List[ScheduleEntry]:
        """
        Read the schedule file.

        A missing file is an empty schedule. A corrupt file is also treated as empty
        (with a warning) so the tool stays usable; the first save moves it aside to
        schedule.json.bak before writing a new one.
        """
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            raw = data.get("entries", [])
        except (OSError, json.JSONDecodeError, UnicodeDecodeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable schedule file %s: %s", self.path, exc)
            self._corrupt = True
            return []

        if not isinstance(raw, list):
            logger.warning("Ignoring schedule file %s: 'entries' is not a list", self.path)
            self._corrupt = True
            return []

        out: List[ScheduleEntry] = []
        for item in raw:
            try:
                entry = ScheduleEntry.from_dict(item)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed schedule record %r: %s", item, exc)
                self._corrupt = True
                continue
            if not entry.id:
                entry.id = uuid.uuid4().hex
            out.append(entry)
        return out

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def _save(self) -> None:
        if self._corrupt:
            try:
                self.path.replace(self.backup_path)
            except OSError as exc:
                raise StoreError(f"Cannot back up corrupt schedule file {self.path}: {exc}") from exc
            logger.warning("Moved corrupt schedule file to %s", self.backup_path)
            self._corrupt = False
        payload: dict[str, Any] = {"entries": [e.to_dict() for e in self._entries]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write schedule file {self.path}: {exc}") from exc

    # -- reads --------------------------------------------------------------

    def get(self, entry_id: str) -> ScheduleEntry:
        for e in self._entries:
            if e.id == entry_id:
                return replace(e)
        raise StoreError(f"No schedule entry with id {entry_id!r}")

    def list_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        channel: Optional[str] = None,
    ) -> List[ScheduleEntry]:
        """
        Entries sorted by start time.

        start/end select entries whose interval overlaps [start, end).
        channel matches case-insensitively.
        """
        wanted = channel.strip().lower() if channel else None
        out: List[ScheduleEntry] = []
        for e in self._entries:
            if wanted is not None and e.channel.lower() != wanted:
                continue
            if start is not None and e.end_time is not None and e.end_time <= start:
                continue
            if end is not None and e.start_time is not None and e.start_time >= end:
                continue
            out.append(replace(e))
        out.sort(key=lambda e: (e.start_time or datetime.min, e.channel.lower()))
        return out

    # -- writes -------------------------------------------------------------

    def create(self, entry: ScheduleEntry) -> ScheduleEntry:
        """
        Store a new entry and return it with its freshly assigned id.
        """
        _validate(entry)
        stored = replace(entry, id=uuid.uuid4().hex)
        self._entries.append(stored)
        self._save()
        logger.debug("Created schedule entry %s (%s)", stored.id, stored.title)
        return replace(stored)

    def update(self, entry: ScheduleEntry) -> ScheduleEntry:
        if not entry.id:
            raise StoreError("Cannot update an entry without id")
        _validate(entry)
        for i, e in enumerate(self._entries):
            if e.id == entry.id:
                self._entries[i] = replace(entry)
                self._save()
                return replace(entry)
        raise StoreError(f"No schedule entry with id {entry.id!r}")

    def delete(self, entry_id: str) -> None:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        if len(self._entries) == before:
            raise StoreError(f"No schedule entry with id {entry_id!r}")
        self._save()
