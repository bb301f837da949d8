"""Spaced-repetition scheduling for study item reviews."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL_DAYS = 1
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5

# Grades offered by the study screen.
QUALITY_FAILED = 0
QUALITY_HARD = 3
QUALITY_GOOD = 5
BUTTON_QUALITIES = frozenset({QUALITY_FAILED, QUALITY_HARD, QUALITY_GOOD})


@dataclass(frozen=True, slots=True)
class StudyItem:
    """A question/answer pair that belongs to a deck."""

    id: int
    deck_id: int
    question: str
    answer: str


@dataclass(frozen=True, slots=True)
class ReviewRecord:
    """Scheduling state of one learner for one study item."""

    ease_factor: float
    interval: int
    last_reviewed: datetime
    next_review: datetime


def is_passing(quality: int) -> bool:
    return quality >= PASSING_QUALITY


def round_half_up(value: float) -> int:
    """Round like ``Math.round``: halves go towards positive infinity."""
    return math.floor(value + 0.5)


def as_aware(moment: datetime) -> datetime:
    """Attach the system local timezone to a naive ``moment``; aware values pass through."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def add_days(moment: datetime, days: int) -> datetime:
    """Shift ``moment`` by whole calendar days, keeping its wall-clock time."""
    # Aware datetimes keep their tzinfo, so a zone-aware value stays on the
    # same local time-of-day across DST changes.
    return moment + timedelta(days=days)


def compute_next_review(
    previous: Optional[ReviewRecord],
    quality: int,
    now: datetime,
) -> ReviewRecord:
    """Return the record that follows ``previous`` after a review graded ``quality``.

    ``previous`` is ``None`` for the first review of an item. Two cases apply:
    a passing grade (3 and up) grows the interval 1 → 6 → ``interval * ease``
    and nudges the ease factor by the SM-2 formula; a failing grade resets the
    interval to one day and lowers the ease factor by 0.2. The ease factor
    never drops below 1.3.

    The quality is not validated here; callers that need a guard check it
    before scheduling.
    """
    ease_factor = (previous.ease_factor if previous else None) or DEFAULT_EASE_FACTOR
    interval = (previous.interval if previous else None) or DEFAULT_INTERVAL_DAYS

    if is_passing(quality):
        if previous is None:
            interval = 1
        elif interval == 1:
            interval = 6
        else:
            interval = max(1, round_half_up(interval * ease_factor))
        penalty = MAX_QUALITY - quality
        ease_factor = max(
            MIN_EASE_FACTOR,
            ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02)),
        )
    else:
        interval = 1
        ease_factor = max(MIN_EASE_FACTOR, ease_factor - 0.2)

    return ReviewRecord(
        ease_factor=ease_factor,
        interval=interval,
        last_reviewed=now,
        next_review=add_days(now, interval),
    )
