"""Host-facing entry points: session handles and mastery dashboards."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Dict, Hashable, Iterable, List, Optional

from .errors import UnknownSession
from .mastery import MasteryStats, classify
from .session import Clock, StepResult, StudySession, StudySessionStats, utc_now
from .srs import StudyItem, as_aware
from .store import DeckProvider, ReviewRecordStore


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionHandle:
    """Opaque reference to a running study session."""

    id: str
    learner_id: str
    deck_id: Hashable
    deck_size: int


class StudyService:
    """Run study sessions and dashboards on top of the configured collaborators.

    The host application authenticates the learner and checks access to the
    deck before calling in; this service only sequences and schedules.

    Sessions stay registered after they complete so that ``restart`` can
    reopen the same deck. The host calls ``close`` when the learner leaves the
    study screen; that releases the session and its handle.
    """

    def __init__(
        self,
        store: ReviewRecordStore,
        decks: DeckProvider,
        *,
        allowed_qualities: Optional[AbstractSet[int]] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._decks = decks
        self._allowed_qualities = allowed_qualities
        self._clock = clock
        self._sessions: Dict[str, StudySession] = {}
        self._handles: Dict[str, SessionHandle] = {}

    async def start(self, learner_id: str, deck_id: Hashable) -> SessionHandle:
        """Snapshot the deck and open a session positioned on its first item."""
        items = await self._decks.list_items(deck_id)
        session = StudySession(
            learner_id,
            items,
            self._store,
            allowed_qualities=self._allowed_qualities,
            clock=self._clock,
        )
        handle = SessionHandle(
            id=uuid.uuid4().hex,
            learner_id=learner_id,
            deck_id=deck_id,
            deck_size=session.deck_size,
        )
        self._sessions[handle.id] = session
        self._handles[handle.id] = handle
        LOGGER.info(
            "Started study session %s for learner %s on deck %s (%s items).",
            handle.id,
            learner_id,
            deck_id,
            handle.deck_size,
        )
        return handle

    def get(self, handle: SessionHandle | str) -> StudySession:
        session = self._sessions.get(self._key(handle))
        if session is None:
            raise UnknownSession(self._key(handle))
        return session

    def current_item(self, handle: SessionHandle | str) -> Optional[StudyItem]:
        return self.get(handle).current_item

    def reveal(self, handle: SessionHandle | str) -> StudyItem:
        return self.get(handle).reveal()

    def hide(self, handle: SessionHandle | str) -> StudyItem:
        return self.get(handle).hide()

    async def rate(self, handle: SessionHandle | str, quality: int) -> StepResult:
        return await self.get(handle).rate(quality)

    def skip(self, handle: SessionHandle | str) -> StepResult:
        return self.get(handle).skip()

    def stats(self, handle: SessionHandle | str) -> StudySessionStats:
        return self.get(handle).stats

    async def restart(self, handle: SessionHandle | str) -> SessionHandle:
        """Close a session and start over on a fresh snapshot of the same deck."""
        key = self._key(handle)
        previous = self._handles.get(key)
        if previous is None:
            raise UnknownSession(key)
        self.close(key)
        return await self.start(previous.learner_id, previous.deck_id)

    def close(self, handle: SessionHandle | str) -> None:
        """Forget a session. Unknown or already closed handles are ignored."""
        key = self._key(handle)
        self._handles.pop(key, None)
        if self._sessions.pop(key, None) is not None:
            LOGGER.debug("Closed study session %s.", key)

    async def mastery(
        self,
        learner_id: str,
        deck_ids: Iterable[Hashable],
        now: Optional[datetime] = None,
    ) -> MasteryStats:
        """Aggregate the learner's progress over every item of ``deck_ids``."""
        items: List[StudyItem] = []
        for deck_id in deck_ids:
            items.extend(await self._decks.list_items(deck_id))
        records = await self._store.list_records(learner_id, [item.id for item in items])
        return classify(records, items, as_aware(now if now is not None else self._clock()))

    @staticmethod
    def _key(handle: SessionHandle | str) -> str:
        return handle.id if isinstance(handle, SessionHandle) else handle
