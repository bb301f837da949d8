"""Helpers for working with decks and their flashcards."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from study_review.review.srs import StudyItem

from . import Deck, Flashcard


async def create_deck(
    session: AsyncSession, name: str, description: Optional[str] = None
) -> Deck:
    """Persist a new deck."""
    deck = Deck(
        name=name.strip(),
        description=description.strip() if isinstance(description, str) else description,
    )
    session.add(deck)
    await session.flush()
    return deck


async def add_flashcard(
    session: AsyncSession, deck_id: int, question: str, answer: str
) -> Flashcard:
    """Append a flashcard to a deck with surrounding whitespace stripped."""
    flashcard = Flashcard(deck_id=deck_id, question=question.strip(), answer=answer.strip())
    session.add(flashcard)
    await session.flush()
    return flashcard


def to_study_item(flashcard: Flashcard) -> StudyItem:
    return StudyItem(
        id=flashcard.id,
        deck_id=flashcard.deck_id,
        question=flashcard.question,
        answer=flashcard.answer,
    )


async def list_deck_flashcards(session: AsyncSession, deck_id: int) -> List[Flashcard]:
    """Return the flashcards of a deck in the order they were added."""
    stmt = select(Flashcard).where(Flashcard.deck_id == deck_id).order_by(Flashcard.id)
    result = await session.execute(stmt)
    return list(result.scalars())


class SqlDeckProvider:
    """Deck provider reading flashcards from the database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_items(self, deck_id: int) -> List[StudyItem]:
        async with self._session_factory() as session:
            flashcards = await list_deck_flashcards(session, deck_id)
        return [to_study_item(flashcard) for flashcard in flashcards]
