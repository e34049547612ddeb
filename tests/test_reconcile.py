"""
Unit tests for import reconciliation and the sequential commit.

Contract:
- accepted = valid AND (no conflict OR policy == overwrite)
- reconcile() is a pure function of (rows, policy)
- a failing row is counted and does not stop the remaining rows
"""

import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from ghostguide.errors import StoreError
from ghostguide.model import DEFAULT_CHANNELS, ImportRow, ScheduleEntry
from ghostguide.parse import parse_import_row
from ghostguide.reconcile import (
    ConflictPolicy,
    commit_plan,
    compute_stats,
    is_accepted,
    make_store_writer,
    reconcile,
)
from ghostguide.storage import ScheduleStore

EXISTING = [
    ScheduleEntry(
        id="1",
        channel="Shudder",
        title="A Nightmare on Elm Street",
        start_time=datetime(2024, 1, 15, 20, 0),
        end_time=datetime(2024, 1, 15, 22, 0),
        is_genre_highlight=True,
    )
]


def _parsed_rows():
    rows = [
        # conflicts with EXISTING
        ImportRow("Shudder", "2024-01-15T21:00", "2024-01-15T23:00", "X", is_horror="true"),
        # clean
        ImportRow("AMC", "2024-01-15T21:00", "2024-01-15T22:00", "The Walking Dead", is_horror="0"),
        # invalid: unknown channel
        ImportRow("HBO", "2024-01-15T21:00", "2024-01-15T22:00", "Nope"),
        # invalid: missing title
        ImportRow("Syfy", "2024-01-15T20:00", "2024-01-15T22:30", ""),
    ]
    return [parse_import_row(r, DEFAULT_CHANNELS, EXISTING) for r in rows]


def _no_sleep(_seconds: float) -> None:
    return None


class TestReconcile(unittest.TestCase):
    def test_example_scenario_skip_vs_overwrite(self) -> None:
        parsed = _parsed_rows()
        x = parsed[0]
        self.assertTrue(x.is_valid)
        self.assertTrue(x.has_conflict)

        skip_plan = reconcile(parsed, ConflictPolicy.SKIP)
        self.assertNotIn(x, skip_plan.accepted)
        self.assertEqual([p.entry.title for p in skip_plan.accepted], ["The Walking Dead"])
        self.assertEqual(len(skip_plan.skipped), 3)

        over_plan = reconcile(parsed, ConflictPolicy.OVERWRITE)
        self.assertEqual([p.entry.title for p in over_plan.accepted], ["X", "The Walking Dead"])
        self.assertEqual(len(over_plan.skipped), 2)

    def test_invalid_rows_never_accepted(self) -> None:
        parsed = _parsed_rows()
        for policy in ConflictPolicy:
            self.assertFalse(is_accepted(parsed[2], policy))
            self.assertFalse(is_accepted(parsed[3], policy))

    def test_idempotent(self) -> None:
        parsed = _parsed_rows()
        for policy in ConflictPolicy:
            a = reconcile(parsed, policy)
            b = reconcile(parsed, policy)
            self.assertEqual([id(p) for p in a.accepted], [id(p) for p in b.accepted])
            self.assertEqual([id(p) for p in a.skipped], [id(p) for p in b.skipped])

    def test_stats(self) -> None:
        stats = compute_stats(_parsed_rows())
        self.assertEqual(stats.total, 4)
        self.assertEqual(stats.valid, 2)
        self.assertEqual(stats.invalid, 2)
        self.assertEqual(stats.conflicts, 1)
        self.assertEqual(stats.importable(ConflictPolicy.SKIP), 1)
        self.assertEqual(stats.importable(ConflictPolicy.OVERWRITE), 2)

    def test_policy_from_string(self) -> None:
        self.assertIs(ConflictPolicy("skip"), ConflictPolicy.SKIP)
        self.assertIs(ConflictPolicy("overwrite"), ConflictPolicy.OVERWRITE)


class TestCommitPlan(unittest.TestCase):
    def test_sequential_with_progress_and_delay(self) -> None:
        plan = reconcile(_parsed_rows(), ConflictPolicy.OVERWRITE)
        written: list[str] = []
        progress: list[tuple[int, int]] = []
        sleeps: list[float] = []

        result = commit_plan(
            plan,
            lambda p: written.append(p.entry.title),
            delay=0.05,
            progress=lambda done, total: progress.append((done, total)),
            sleep=sleeps.append,
        )

        self.assertEqual(written, ["X", "The Walking Dead"])
        self.assertEqual(progress, [(1, 2), (2, 2)])
        self.assertEqual(sleeps, [0.05, 0.05])
        self.assertEqual((result.success, result.skipped, result.errors), (2, 2, 0))
        self.assertFalse(result.cancelled)

    def test_failed_row_does_not_abort(self) -> None:
        plan = reconcile(_parsed_rows(), ConflictPolicy.OVERWRITE)

        def store_fn(p):
            if p.entry.title == "X":
                raise StoreError("database unavailable")

        result = commit_plan(plan, store_fn, sleep=_no_sleep)

        self.assertEqual(result.success, 1)
        self.assertEqual(result.errors, 1)
        self.assertEqual(result.failures[0][1], "database unavailable")

    def test_cancel_keeps_written_rows(self) -> None:
        plan = reconcile(_parsed_rows(), ConflictPolicy.OVERWRITE)
        written: list[str] = []

        result = commit_plan(
            plan,
            lambda p: written.append(p.entry.title),
            sleep=_no_sleep,
            should_cancel=lambda: len(written) >= 1,
        )

        self.assertTrue(result.cancelled)
        self.assertEqual(written, ["X"])
        self.assertEqual(result.success, 1)
        self.assertEqual(result.not_attempted, 1)
        self.assertEqual(result.success + result.errors + result.not_attempted, len(plan.accepted))


class TestStoreWriter(unittest.TestCase):
    def _store(self, d: str) -> ScheduleStore:
        store = ScheduleStore(Path(d) / "schedule.json")
        store.create(EXISTING[0])
        return store

    def test_overwrite_replaces_existing_entry(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = self._store(d)
            parsed = [parse_import_row(r.row, DEFAULT_CHANNELS, store.list_entries()) for r in _parsed_rows()]
            plan = reconcile(parsed, ConflictPolicy.OVERWRITE)

            result = commit_plan(plan, make_store_writer(store, ConflictPolicy.OVERWRITE), sleep=_no_sleep)

            self.assertEqual(result.success, 2)
            titles = sorted(e.title for e in store.list_entries())
            self.assertEqual(titles, ["The Walking Dead", "X"])

    def test_skip_keeps_existing_entry(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = self._store(d)
            parsed = [parse_import_row(r.row, DEFAULT_CHANNELS, store.list_entries()) for r in _parsed_rows()]
            plan = reconcile(parsed, ConflictPolicy.SKIP)

            result = commit_plan(plan, make_store_writer(store, ConflictPolicy.SKIP), sleep=_no_sleep)

            self.assertEqual((result.success, result.skipped, result.errors), (1, 3, 0))
            titles = sorted(e.title for e in store.list_entries())
            self.assertEqual(titles, ["A Nightmare on Elm Street", "The Walking Dead"])


if __name__ == "__main__":
    unittest.main()
