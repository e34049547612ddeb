"""
CSV export.

Writes schedule entries in the same column layout the importer reads, so an export
can be edited in a spreadsheet and imported again.
"""

from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Iterable

from ghostguide.model import ScheduleEntry
from ghostguide.parse import IMPORT_COLUMNS


def default_export_name(today: date) -> str:
    return f"epg-schedule-{today.isoformat()}.csv"


def _ts(value) -> str:
    return value.isoformat() if value is not None else ""


def entry_to_row(entry: ScheduleEntry) -> dict[str, str]:
    return {
        "channel_name": entry.channel,
        "start_time": _ts(entry.start_time),
        "end_time": _ts(entry.end_time),
        "title": entry.title,
        "imdb_id": entry.imdb_id or "",
        "synopsis": entry.synopsis or "",
        "is_horror": "true" if entry.is_genre_highlight else "false",
    }


def export_entries_to_csv(entries: Iterable[ScheduleEntry], out_path: str | Path) -> int:
    """
    Export entries to a .csv file. Returns number of exported entries.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with out.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=IMPORT_COLUMNS)
        writer.writeheader()
        for entry in entries:
            writer.writerow(entry_to_row(entry))
            count += 1
    return count
