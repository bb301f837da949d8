"""Collaborator contracts for review persistence and deck content."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Iterable, List, Optional, Protocol, Sequence, Tuple

from .srs import ReviewRecord, StudyItem


class ReviewRecordStore(Protocol):
    """Persistence required by the scheduler and the study session."""

    async def load_record(self, learner_id: str, item_id: Hashable) -> Optional[ReviewRecord]:
        ...

    async def upsert_record(
        self, learner_id: str, item_id: Hashable, record: ReviewRecord
    ) -> ReviewRecord:
        """Create or replace the record of one (learner, item) pair atomically."""
        ...

    async def list_records(
        self, learner_id: str, item_ids: Optional[Iterable[Hashable]] = None
    ) -> Dict[Hashable, ReviewRecord]:
        ...


class DeckProvider(Protocol):
    """Read-only access to the items of a deck, in study order."""

    async def list_items(self, deck_id: Hashable) -> Sequence[StudyItem]:
        ...


class KeyedLocks:
    """Hand out one ``asyncio.Lock`` per key so writes to the same key serialize.

    A lock lives only while some task holds or waits for it, so the map stays
    as small as the number of keys currently being written.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class InMemoryReviewRecordStore:
    """Process-local review record store keyed by (learner id, item id)."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, Hashable], ReviewRecord] = {}
        self._locks = KeyedLocks()

    async def load_record(self, learner_id: str, item_id: Hashable) -> Optional[ReviewRecord]:
        return self._records.get((learner_id, item_id))

    async def upsert_record(
        self, learner_id: str, item_id: Hashable, record: ReviewRecord
    ) -> ReviewRecord:
        key = (learner_id, item_id)
        async with self._locks.hold(key):
            self._records[key] = record
            return record

    async def list_records(
        self, learner_id: str, item_ids: Optional[Iterable[Hashable]] = None
    ) -> Dict[Hashable, ReviewRecord]:
        wanted = None if item_ids is None else set(item_ids)
        return {
            item_id: record
            for (owner, item_id), record in self._records.items()
            if owner == learner_id and (wanted is None or item_id in wanted)
        }

    def __len__(self) -> int:
        return len(self._records)


class InMemoryDeckProvider:
    """Deck provider backed by a plain mapping of deck id to items."""

    def __init__(self, decks: Optional[Dict[Hashable, Sequence[StudyItem]]] = None) -> None:
        self._decks: Dict[Hashable, List[StudyItem]] = {
            deck_id: list(items) for deck_id, items in (decks or {}).items()
        }

    def add(self, item: StudyItem) -> None:
        self._decks.setdefault(item.deck_id, []).append(item)

    async def list_items(self, deck_id: Hashable) -> Sequence[StudyItem]:
        return tuple(self._decks.get(deck_id, ()))
