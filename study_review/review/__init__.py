"""Spaced-repetition scheduling, mastery buckets and study sessions."""

from .errors import (
    InvalidQuality,
    PersistenceFailure,
    PreconditionViolation,
    RatingInProgress,
    StudyReviewError,
    UnknownSession,
)
from .mastery import MasteryStats, classify
from .service import SessionHandle, StudyService
from .session import SessionPhase, StepResult, StudySession, StudySessionStats
from .srs import ReviewRecord, StudyItem, compute_next_review
from .store import DeckProvider, InMemoryDeckProvider, InMemoryReviewRecordStore, ReviewRecordStore

__all__ = [
    "DeckProvider",
    "InMemoryDeckProvider",
    "InMemoryReviewRecordStore",
    "InvalidQuality",
    "MasteryStats",
    "PersistenceFailure",
    "PreconditionViolation",
    "RatingInProgress",
    "ReviewRecord",
    "ReviewRecordStore",
    "SessionHandle",
    "SessionPhase",
    "StepResult",
    "StudyItem",
    "StudyReviewError",
    "StudyService",
    "StudySession",
    "StudySessionStats",
    "UnknownSession",
    "classify",
    "compute_next_review",
]
