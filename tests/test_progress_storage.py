from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from study_review.db import Flashcard, FlashcardProgress
from study_review.db.decks import SqlDeckProvider, add_flashcard, create_deck
from study_review.db.progress import SqlReviewRecordStore
from study_review.review.srs import ReviewRecord, compute_next_review


NOW = datetime(2024, 2, 1, 8, 45, 12, 345678, tzinfo=timezone.utc)


async def _seed_deck(session_factory, questions: list[str]) -> tuple[int, list[int]]:
    async with session_factory() as session:
        async with session.begin():
            deck = await create_deck(session, "  Capitals  ", "European capitals")
            cards = [
                await add_flashcard(session, deck.id, f" {question} ", f"answer to {question}")
                for question in questions
            ]
    return deck.id, [card.id for card in cards]


async def _progress_rows(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(FlashcardProgress))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_upsert_then_load_round_trips(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["France"])
    store = SqlReviewRecordStore(session_factory)
    record = compute_next_review(None, 5, NOW)

    written = await store.upsert_record("learner-a", card_id, record)
    loaded = await store.load_record("learner-a", card_id)

    assert written == record
    assert loaded == record
    assert loaded.last_reviewed.tzinfo is not None


@pytest.mark.asyncio
async def test_round_trip_preserves_instant_for_other_timezones(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["Spain"])
    store = SqlReviewRecordStore(session_factory)
    madrid = timezone(timedelta(hours=1))
    record = compute_next_review(None, 3, NOW.astimezone(madrid))

    await store.upsert_record("learner-a", card_id, record)
    loaded = await store.load_record("learner-a", card_id)

    assert loaded == record
    assert loaded.next_review == NOW + timedelta(days=1)


@pytest.mark.asyncio
async def test_load_missing_record_returns_none(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["Italy"])
    store = SqlReviewRecordStore(session_factory)

    assert await store.load_record("nobody", card_id) is None


@pytest.mark.asyncio
async def test_upsert_replaces_existing_row(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["Portugal"])
    store = SqlReviewRecordStore(session_factory)

    first = await store.upsert_record("learner-a", card_id, compute_next_review(None, 5, NOW))
    later = NOW + timedelta(days=1)
    second = await store.upsert_record("learner-a", card_id, compute_next_review(first, 5, later))

    assert second.interval == 6
    assert await store.load_record("learner-a", card_id) == second
    assert await _progress_rows(session_factory) == 1


@pytest.mark.asyncio
async def test_concurrent_upserts_for_same_pair_keep_one_row(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["Greece"])
    store = SqlReviewRecordStore(session_factory)
    records = [
        compute_next_review(None, quality, NOW + timedelta(minutes=offset))
        for offset, quality in enumerate((0, 3, 5, 3))
    ]

    await asyncio.gather(*(store.upsert_record("learner-a", card_id, record) for record in records))

    assert await _progress_rows(session_factory) == 1
    assert await store.load_record("learner-a", card_id) in records


@pytest.mark.asyncio
async def test_records_are_scoped_per_learner(session_factory) -> None:
    _, card_ids = await _seed_deck(session_factory, ["Austria", "Poland", "Norway"])
    store = SqlReviewRecordStore(session_factory)

    await store.upsert_record("learner-a", card_ids[0], compute_next_review(None, 5, NOW))
    await store.upsert_record("learner-a", card_ids[2], compute_next_review(None, 0, NOW))
    await store.upsert_record("learner-b", card_ids[1], compute_next_review(None, 3, NOW))

    assert set(await store.list_records("learner-a")) == {card_ids[0], card_ids[2]}
    assert set(await store.list_records("learner-a", [card_ids[0], card_ids[1]])) == {card_ids[0]}
    assert await store.list_records("learner-a", []) == {}
    assert set(await store.list_records("learner-b")) == {card_ids[1]}


@pytest.mark.asyncio
async def test_deleting_a_flashcard_cascades_to_progress(session_factory) -> None:
    _, (card_id,) = await _seed_deck(session_factory, ["Malta"])
    store = SqlReviewRecordStore(session_factory)
    await store.upsert_record("learner-a", card_id, compute_next_review(None, 5, NOW))

    async with session_factory() as session:
        async with session.begin():
            await session.execute(delete(Flashcard).where(Flashcard.id == card_id))

    assert await _progress_rows(session_factory) == 0
    assert await store.load_record("learner-a", card_id) is None


@pytest.mark.asyncio
async def test_upsert_for_unknown_flashcard_fails(session_factory) -> None:
    store = SqlReviewRecordStore(session_factory)
    record = ReviewRecord(ease_factor=2.5, interval=1, last_reviewed=NOW, next_review=NOW)

    with pytest.raises(IntegrityError):
        await store.upsert_record("learner-a", 12345, record)


@pytest.mark.asyncio
async def test_deck_provider_lists_items_in_insertion_order(session_factory) -> None:
    deck_id, card_ids = await _seed_deck(session_factory, ["Belgium", "Denmark", "Estonia"])
    await _seed_deck(session_factory, ["Finland"])
    provider = SqlDeckProvider(session_factory)

    items = await provider.list_items(deck_id)

    assert [item.id for item in items] == card_ids
    assert items[0].question == "Belgium"
    assert items[0].answer == "answer to Belgium"
    assert all(item.deck_id == deck_id for item in items)
    assert await provider.list_items(deck_id + 100) == []


@pytest.mark.asyncio
async def test_store_keeps_no_locks_between_writes(session_factory) -> None:
    _, card_ids = await _seed_deck(session_factory, ["Austria", "Belgium", "Croatia"])
    store = SqlReviewRecordStore(session_factory)
    record = compute_next_review(None, 5, NOW)

    for learner in ("learner-a", "learner-b"):
        for card_id in card_ids:
            await store.upsert_record(learner, card_id, record)
    await asyncio.gather(*(store.upsert_record("learner-a", card_ids[0], record) for _ in range(4)))

    assert await _progress_rows(session_factory) == 6
    assert len(store._locks) == 0
