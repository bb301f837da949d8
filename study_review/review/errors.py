"""Exceptions raised by the study review core."""

from __future__ import annotations


class StudyReviewError(Exception):
    """Base class for errors surfaced to the host application."""


class PreconditionViolation(StudyReviewError):
    """The requested step is not valid in the current session state."""


class RatingInProgress(PreconditionViolation):
    """A rating for the same session is still being persisted."""


class UnknownSession(PreconditionViolation):
    """No active session is registered under the given handle."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"Study session {handle!r} does not exist or was closed.")
        self.handle = handle


class InvalidQuality(StudyReviewError):
    """A quality rating outside the accepted set was submitted."""

    def __init__(self, quality: object, allowed: str) -> None:
        super().__init__(f"Quality {quality!r} is not accepted; expected {allowed}.")
        self.quality = quality


class PersistenceFailure(StudyReviewError):
    """The review record store failed to load or save a record."""
