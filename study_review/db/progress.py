"""Review record persistence backed by the ``flashcard_progress`` table."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from study_review.review.srs import ReviewRecord
from study_review.review.store import KeyedLocks

from . import FlashcardProgress


_UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}
_SCHEDULE_COLUMNS = ("ease_factor", "interval", "last_reviewed", "next_review")


def _as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; SQLite hands back naive values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_review_record(progress: FlashcardProgress) -> ReviewRecord:
    return ReviewRecord(
        ease_factor=progress.ease_factor,
        interval=progress.interval,
        last_reviewed=_as_utc(progress.last_reviewed),
        next_review=_as_utc(progress.next_review),
    )


def _schedule_values(record: ReviewRecord) -> Dict[str, Any]:
    return {
        "ease_factor": record.ease_factor,
        "interval": record.interval,
        "last_reviewed": _as_utc(record.last_reviewed),
        "next_review": _as_utc(record.next_review),
    }


async def get_progress(
    session: AsyncSession, learner_id: str, flashcard_id: int
) -> Optional[FlashcardProgress]:
    stmt = (
        select(FlashcardProgress)
        .where(
            FlashcardProgress.learner_id == learner_id,
            FlashcardProgress.flashcard_id == flashcard_id,
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def upsert_progress(
    session: AsyncSession,
    learner_id: str,
    flashcard_id: int,
    record: ReviewRecord,
) -> FlashcardProgress:
    """Create or replace the progress row of a learner for a flashcard."""
    values = _schedule_values(record)
    insert = _UPSERT_DIALECTS.get(session.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(FlashcardProgress).values(
            learner_id=learner_id, flashcard_id=flashcard_id, **values
        )
        update_values = {column: getattr(stmt.excluded, column) for column in _SCHEDULE_COLUMNS}
        update_values["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[FlashcardProgress.learner_id, FlashcardProgress.flashcard_id],
            set_=update_values,
        )
        await session.execute(stmt)
    else:
        progress = await get_progress(session, learner_id, flashcard_id)
        if progress is None:
            session.add(FlashcardProgress(learner_id=learner_id, flashcard_id=flashcard_id, **values))
        else:
            for column, value in values.items():
                setattr(progress, column, value)
        await session.flush()

    stored = await get_progress(session, learner_id, flashcard_id)
    if stored is None:  # pragma: no cover - the write above guarantees a row
        raise RuntimeError(f"Progress for flashcard {flashcard_id} vanished after upsert.")
    return stored


class SqlReviewRecordStore:
    """Review record store that writes each grading in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._locks = KeyedLocks()

    async def load_record(self, learner_id: str, item_id: int) -> Optional[ReviewRecord]:
        async with self._session_factory() as session:
            progress = await get_progress(session, learner_id, item_id)
            return to_review_record(progress) if progress is not None else None

    async def upsert_record(
        self, learner_id: str, item_id: int, record: ReviewRecord
    ) -> ReviewRecord:
        async with self._locks.hold((learner_id, item_id)):
            async with self._session_factory() as session:
                async with session.begin():
                    progress = await upsert_progress(session, learner_id, item_id, record)
                    return to_review_record(progress)

    async def list_records(
        self, learner_id: str, item_ids: Optional[Iterable[int]] = None
    ) -> Dict[int, ReviewRecord]:
        stmt = select(FlashcardProgress).where(FlashcardProgress.learner_id == learner_id)
        if item_ids is not None:
            wanted = list(item_ids)
            if not wanted:
                return {}
            stmt = stmt.where(FlashcardProgress.flashcard_id.in_(wanted))

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return {
                progress.flashcard_id: to_review_record(progress)
                for progress in result.scalars()
            }
