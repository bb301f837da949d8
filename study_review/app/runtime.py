"""Bootstrap logic for wiring the study review service."""

from __future__ import annotations

import logging

from study_review.app.settings import AppSettings
from study_review.db import get_session_factory, run_migrations_if_needed
from study_review.db.decks import SqlDeckProvider
from study_review.db.progress import SqlReviewRecordStore
from study_review.review import StudyService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_service(settings: AppSettings) -> StudyService:
    """Create a study service backed by the configured database."""
    session_factory = get_session_factory()
    return StudyService(
        SqlReviewRecordStore(session_factory),
        SqlDeckProvider(session_factory),
        allowed_qualities=settings.allowed_qualities,
    )


def prepare_database(settings: AppSettings) -> None:
    """Configure logging and bring the schema up to date."""
    _configure_logging(settings.log_level)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    LOGGER.info("%s database is ready in %s mode.", settings.app_name, settings.app_env)


def bootstrap(settings: AppSettings) -> StudyService:
    """Prepare the database and build the service a host application calls into."""
    prepare_database(settings)
    service = build_service(settings)
    LOGGER.info(
        "%s is ready (quality mode: %s).",
        settings.app_name,
        settings.quality_mode,
    )
    return service
