"""
External question sources.

Default priority order: Open Trivia DB, QuizAPI, The Trivia API.
"""

from __future__ import annotations

from config import Settings, get_settings

from .base import HttpQuestionSource, QuestionSource, SourceUnavailableError
from .opentdb import OpenTDBSource
from .quizapi import QuizAPISource
from .trivia_api import TriviaAPISource


def default_sources(settings: Settings | None = None) -> list[HttpQuestionSource]:
    """Build the configured sources in priority order."""
    settings = settings or get_settings()
    common = {
        "timeout_seconds": settings.source_timeout_seconds,
        "retry_attempts": settings.source_retry_attempts,
    }
    return [
        OpenTDBSource(settings.opentdb_url, **common),
        QuizAPISource(settings.quizapi_url, api_key=settings.quizapi_key, **common),
        TriviaAPISource(
            settings.trivia_api_url, categories=settings.trivia_api_categories, **common
        ),
    ]


__all__ = [
    "HttpQuestionSource",
    "QuestionSource",
    "SourceUnavailableError",
    "OpenTDBSource",
    "QuizAPISource",
    "TriviaAPISource",
    "default_sources",
]
