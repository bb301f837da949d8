"""Aggregate mastery buckets over a learner's review records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Hashable, Iterable, Mapping

from .srs import DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR, ReviewRecord, StudyItem, round_half_up


MASTERED_EASE_FACTOR = DEFAULT_EASE_FACTOR
MASTERED_INTERVAL_DAYS = 21


@dataclass(frozen=True, slots=True)
class MasteryStats:
    """Progress counters shown on the study dashboard.

    Buckets overlap: an item can be well known and due at the same time.
    Only ``not_studied`` is disjoint from the others.
    """

    total_items: int
    reviewed_today: int
    needs_review: int
    well_known: int
    learning: int
    difficult: int
    not_studied: int
    mastery_percentage: int

    @property
    def studied(self) -> int:
        return self.total_items - self.not_studied


def _local_date(moment: datetime, reference: datetime) -> date:
    if moment.tzinfo is not None and reference.tzinfo is not None:
        moment = moment.astimezone(reference.tzinfo)
    return moment.date()


def was_reviewed_on(record: ReviewRecord, now: datetime) -> bool:
    """Return True when the last review happened on the calendar day of ``now``."""
    return _local_date(record.last_reviewed, now) == now.date()


def is_due(record: ReviewRecord, now: datetime) -> bool:
    return record.next_review <= now


def is_well_known(record: ReviewRecord) -> bool:
    return record.ease_factor >= DEFAULT_EASE_FACTOR


def is_learning(record: ReviewRecord) -> bool:
    return MIN_EASE_FACTOR <= record.ease_factor < DEFAULT_EASE_FACTOR


def is_difficult(record: ReviewRecord) -> bool:
    # Only records written outside the scheduler can fall below the floor.
    return record.ease_factor < MIN_EASE_FACTOR


def is_mastered(record: ReviewRecord) -> bool:
    return (
        record.ease_factor >= MASTERED_EASE_FACTOR
        and record.interval >= MASTERED_INTERVAL_DAYS
    )


def classify(
    records: Mapping[Hashable, ReviewRecord],
    items: Iterable[StudyItem],
    now: datetime,
) -> MasteryStats:
    """Count the dashboard buckets for ``items``.

    ``records`` maps item ids to the learner's review record; items without an
    entry count as not studied. Records for items outside ``items`` are ignored.
    """
    total = 0
    counts = {
        "reviewed_today": 0,
        "needs_review": 0,
        "well_known": 0,
        "learning": 0,
        "difficult": 0,
        "not_studied": 0,
        "mastered": 0,
    }

    for item in items:
        total += 1
        record = records.get(item.id)
        if record is None:
            counts["not_studied"] += 1
            continue
        counts["reviewed_today"] += was_reviewed_on(record, now)
        counts["needs_review"] += is_due(record, now)
        counts["well_known"] += is_well_known(record)
        counts["learning"] += is_learning(record)
        counts["difficult"] += is_difficult(record)
        counts["mastered"] += is_mastered(record)

    mastered = counts.pop("mastered")
    percentage = round_half_up(mastered / total * 100) if total else 0
    return MasteryStats(total_items=total, mastery_percentage=percentage, **counts)
