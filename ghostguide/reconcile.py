"""
Import reconciliation.

Takes the parsed rows of one upload plus a single global conflict policy and decides
which rows get imported. Then commits the accepted rows one at a time.

Decision rule:
    accepted = valid AND (no conflict OR policy == overwrite)

Everything else is skipped: invalid rows always, conflicting rows under "skip".
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ghostguide.conflicts import find_overlapping
from ghostguide.errors import GhostGuideError
from ghostguide.model import ParsedEntry, ScheduleEntry

logger = logging.getLogger(__name__)

DEFAULT_ROW_DELAY = 0.05


class ConflictPolicy(str, Enum):
    SKIP = "skip"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class ImportStats:
    total: int
    valid: int
    invalid: int
    conflicts: int
    valid_conflicts: int

    def importable(self, policy: ConflictPolicy) -> int:
        """Number of rows that would be imported under the given policy."""
        if policy is ConflictPolicy.SKIP:
            return self.valid - self.valid_conflicts
        return self.valid


@dataclass
class ImportPlan:
    policy: ConflictPolicy
    accepted: List[ParsedEntry]
    skipped: List[ParsedEntry]


@dataclass
class ImportResult:
    success: int = 0
    skipped: int = 0
    errors: int = 0
    cancelled: bool = False
    not_attempted: int = 0
    failures: List[Tuple[ParsedEntry, str]] = field(default_factory=list)


def is_accepted(parsed: ParsedEntry, policy: ConflictPolicy) -> bool:
    if not parsed.is_valid:
        return False
    return not parsed.has_conflict or policy is ConflictPolicy.OVERWRITE


def reconcile(parsed: Sequence[ParsedEntry], policy: ConflictPolicy) -> ImportPlan:
    """
    Split parsed rows into accepted and skipped, keeping file order in both lists.

    Pure function of its inputs: same rows + same policy -> same partition.
    """
    accepted: List[ParsedEntry] = []
    skipped: List[ParsedEntry] = []
    for p in parsed:
        (accepted if is_accepted(p, policy) else skipped).append(p)
    return ImportPlan(policy=policy, accepted=accepted, skipped=skipped)


def compute_stats(parsed: Sequence[ParsedEntry]) -> ImportStats:
    valid = sum(1 for p in parsed if p.is_valid)
    return ImportStats(
        total=len(parsed),
        valid=valid,
        invalid=len(parsed) - valid,
        conflicts=sum(1 for p in parsed if p.has_conflict),
        valid_conflicts=sum(1 for p in parsed if p.is_valid and p.has_conflict),
    )


def commit_plan(
    plan: ImportPlan,
    store_fn: Callable[[ParsedEntry], object],
    delay: float = DEFAULT_ROW_DELAY,
    progress: Optional[Callable[[int, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> ImportResult:
    """
    Write the accepted rows one at a time.

    - waits `delay` seconds before each row so progress can be shown
    - a row whose store_fn raises GhostGuideError is counted as an error, the rest continue
    - nothing is rolled back
    - should_cancel() is checked before each row; rows already written stay written
    - after a cancel, the accepted rows never tried are counted in not_attempted
    """
    result = ImportResult(skipped=len(plan.skipped))
    total = len(plan.accepted)

    for i, parsed in enumerate(plan.accepted, start=1):
        if should_cancel is not None and should_cancel():
            result.cancelled = True
            result.not_attempted = total - (i - 1)
            logger.info("Import cancelled after %d of %d rows", i - 1, total)
            break

        if delay > 0:
            sleep(delay)

        try:
            store_fn(parsed)
        except GhostGuideError as exc:
            result.errors += 1
            result.failures.append((parsed, str(exc)))
            logger.warning("Import row %r failed: %s", parsed.entry.title, exc)
        else:
            result.success += 1

        if progress is not None:
            progress(i, total)

    return result


def make_store_writer(store, policy: ConflictPolicy) -> Callable[[ParsedEntry], ScheduleEntry]:
    """
    Build the per-row write function used by commit_plan for a ScheduleStore.

    Under "overwrite", every entry that existed before the import and overlaps the
    new row on its channel is deleted first. Rows from the same upload never
    replace each other.
    """
    preexisting_ids = {e.id for e in store.list_entries()}

    def _write(parsed: ParsedEntry) -> ScheduleEntry:
        entry = parsed.entry
        if policy is ConflictPolicy.OVERWRITE and parsed.has_conflict:
            for victim in find_overlapping(entry, store.list_entries(channel=entry.channel)):
                if victim.id in preexisting_ids:
                    store.delete(victim.id)
                    logger.info("Overwrote %s (%s) with %s", victim.id, victim.title, entry.title)
        return store.create(entry)

    return _write

