"""Study session state machine: present, reveal, rate, advance."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import AbstractSet, Callable, Optional, Sequence, Tuple

from .errors import InvalidQuality, PersistenceFailure, PreconditionViolation, RatingInProgress
from .srs import (
    MAX_QUALITY,
    MIN_QUALITY,
    QUALITY_FAILED,
    QUALITY_GOOD,
    QUALITY_HARD,
    ReviewRecord,
    StudyItem,
    as_aware,
    compute_next_review,
    round_half_up,
)
from .store import ReviewRecordStore


LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionPhase(str, Enum):
    PRESENTING = "presenting"
    AWAITING_RATING = "awaiting_rating"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class SessionState:
    """Current phase plus the index of the item it refers to."""

    phase: SessionPhase
    index: int


@dataclass(slots=True)
class StudySessionStats:
    """Running tally of one study session."""

    total: int = 0
    failed: int = 0
    hard: int = 0
    good: int = 0
    completed: bool = False

    @property
    def graded(self) -> int:
        return self.failed + self.hard + self.good

    @property
    def score(self) -> int:
        """Share of cards answered "good", as a rounded percentage."""
        if not self.total:
            return 0
        return round_half_up(self.good / self.total * 100)

    def record(self, quality: int) -> None:
        if quality == QUALITY_FAILED:
            self.failed += 1
        elif quality == QUALITY_HARD:
            self.hard += 1
        elif quality == QUALITY_GOOD:
            self.good += 1


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of a rating or a skip."""

    stats: StudySessionStats
    record: Optional[ReviewRecord] = None
    next_item: Optional[StudyItem] = None

    @property
    def completed(self) -> bool:
        return self.stats.completed


class StudySession:
    """Walk one learner through a fixed snapshot of a deck.

    The session moves ``PRESENTING(i) -> AWAITING_RATING(i)`` when the answer
    is revealed, and on to ``PRESENTING(i + 1)`` or ``COMPLETED`` when the item
    is rated or skipped. Ratings are scheduled and written through ``store``;
    skips leave records and stats untouched.
    """

    def __init__(
        self,
        learner_id: str,
        items: Sequence[StudyItem],
        store: ReviewRecordStore,
        *,
        allowed_qualities: Optional[AbstractSet[int]] = None,
        clock: Clock = utc_now,
    ) -> None:
        snapshot: Tuple[StudyItem, ...] = tuple(items)
        if not snapshot:
            raise PreconditionViolation("Cannot start a study session with an empty deck.")
        self._learner_id = learner_id
        self._items = snapshot
        self._store = store
        self._allowed_qualities = allowed_qualities
        self._clock = clock
        self._state = SessionState(SessionPhase.PRESENTING, 0)
        self._stats = StudySessionStats(total=len(snapshot))
        self._rating_lock = asyncio.Lock()

    @property
    def learner_id(self) -> str:
        return self._learner_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def deck_size(self) -> int:
        return len(self._items)

    @property
    def position(self) -> int:
        """1-based number of the card on screen ("card 2 of 10")."""
        return min(self._state.index + 1, self.deck_size)

    @property
    def completed(self) -> bool:
        return self._state.phase is SessionPhase.COMPLETED

    @property
    def current_item(self) -> Optional[StudyItem]:
        if self.completed:
            return None
        return self._items[self._state.index]

    @property
    def stats(self) -> StudySessionStats:
        return replace(self._stats)

    def reveal(self) -> StudyItem:
        """Show the answer of the current item."""
        self._require_active("reveal an answer")
        self._state = SessionState(SessionPhase.AWAITING_RATING, self._state.index)
        return self._items[self._state.index]

    def hide(self) -> StudyItem:
        """Hide the answer again without grading."""
        if self._state.phase is not SessionPhase.AWAITING_RATING:
            raise PreconditionViolation("The answer is not revealed.")
        if self._rating_lock.locked():
            raise RatingInProgress("A rating for this session is still being saved.")
        self._state = SessionState(SessionPhase.PRESENTING, self._state.index)
        return self._items[self._state.index]

    def validate_quality(self, quality: int) -> None:
        if isinstance(quality, bool) or not isinstance(quality, int):
            raise InvalidQuality(quality, self._describe_allowed())
        if self._allowed_qualities is not None:
            if quality not in self._allowed_qualities:
                raise InvalidQuality(quality, self._describe_allowed())
        elif not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise InvalidQuality(quality, self._describe_allowed())

    async def rate(self, quality: int, now: Optional[datetime] = None) -> StepResult:
        """Grade the revealed item, persist its new schedule, and advance.

        If the store fails the session stays on the same item, awaiting a
        rating, and the error is raised as :class:`PersistenceFailure`.
        """
        self._require_active("rate an item")
        if self._state.phase is not SessionPhase.AWAITING_RATING:
            raise PreconditionViolation("Reveal the answer before rating the item.")
        self.validate_quality(quality)
        if self._rating_lock.locked():
            raise RatingInProgress("A rating for this session is still being saved.")

        async with self._rating_lock:
            index = self._state.index
            item = self._items[index]
            graded_at = as_aware(now if now is not None else self._clock())
            try:
                previous = await self._store.load_record(self._learner_id, item.id)
                record = compute_next_review(previous, quality, graded_at)
                record = await self._store.upsert_record(self._learner_id, item.id, record)
            except Exception as exc:
                LOGGER.exception(
                    "Failed to persist review of item %s for learner %s.", item.id, self._learner_id
                )
                raise PersistenceFailure(
                    f"Could not save the review of item {item.id}; the rating can be retried."
                ) from exc

            self._stats.record(quality)
            LOGGER.debug(
                "Learner %s rated item %s with %s; next review in %s day(s).",
                self._learner_id,
                item.id,
                quality,
                record.interval,
            )
            next_item = self._advance(index)
            return StepResult(stats=self.stats, record=record, next_item=next_item)

    def skip(self) -> StepResult:
        """Move past the current item without grading it."""
        self._require_active("skip an item")
        if self._rating_lock.locked():
            raise RatingInProgress("A rating for this session is still being saved.")
        next_item = self._advance(self._state.index)
        return StepResult(stats=self.stats, next_item=next_item)

    def _advance(self, index: int) -> Optional[StudyItem]:
        next_index = index + 1
        if next_index >= self.deck_size:
            self._stats.total = self.deck_size
            self._stats.completed = True
            self._state = SessionState(SessionPhase.COMPLETED, index)
            LOGGER.info(
                "Study session for learner %s completed: %s good, %s hard, %s failed of %s.",
                self._learner_id,
                self._stats.good,
                self._stats.hard,
                self._stats.failed,
                self._stats.total,
            )
            return None
        self._state = SessionState(SessionPhase.PRESENTING, next_index)
        return self._items[next_index]

    def _require_active(self, action: str) -> None:
        if self._state.phase is SessionPhase.COMPLETED:
            raise PreconditionViolation(f"Cannot {action}: the session is completed.")

    def _describe_allowed(self) -> str:
        if self._allowed_qualities is not None:
            return "one of " + ", ".join(str(value) for value in sorted(self._allowed_qualities))
        return f"an integer between {MIN_QUALITY} and {MAX_QUALITY}"

