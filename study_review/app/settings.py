"""Configuration helpers for the Study Review runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Optional

from study_review.review.srs import BUTTON_QUALITIES


QUALITY_MODE_RANGE = "range"
QUALITY_MODE_BUTTONS = "buttons"
_QUALITY_MODES = {QUALITY_MODE_RANGE, QUALITY_MODE_BUTTONS}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    quality_mode: str = QUALITY_MODE_RANGE

    @property
    def allowed_qualities(self) -> Optional[FrozenSet[int]]:
        """Quality grades accepted by study sessions; ``None`` means the full 0-5 range."""
        if self.quality_mode == QUALITY_MODE_BUTTONS:
            return BUTTON_QUALITIES
        return None

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Study Review")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        quality_mode = os.getenv("STUDY_QUALITY_MODE", QUALITY_MODE_RANGE).strip().lower()

        if log_level not in _LOG_LEVELS:
            raise RuntimeError(
                f"LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}."
            )

        if quality_mode not in _QUALITY_MODES:
            raise RuntimeError(
                f"STUDY_QUALITY_MODE must be '{QUALITY_MODE_RANGE}' or '{QUALITY_MODE_BUTTONS}'."
            )

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            quality_mode=quality_mode,
        )
