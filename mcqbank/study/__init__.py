"""
Practice sessions and learner progress.
"""

from .progress_store import ProgressRecord, ProgressStore, SubjectStats
from .session_engine import (
    AnswerAlreadyRecordedError,
    AnswerRecord,
    InvalidOptionError,
    NoQuestionAvailableError,
    QuestionTimer,
    QuestionView,
    RoundState,
    RoundSummary,
    SessionEngine,
    SessionError,
    SessionSnapshot,
    SessionStateError,
    SessionStatus,
)

__all__ = [
    "ProgressRecord",
    "ProgressStore",
    "SubjectStats",
    "AnswerAlreadyRecordedError",
    "AnswerRecord",
    "InvalidOptionError",
    "NoQuestionAvailableError",
    "QuestionTimer",
    "QuestionView",
    "RoundState",
    "RoundSummary",
    "SessionEngine",
    "SessionError",
    "SessionSnapshot",
    "SessionStateError",
    "SessionStatus",
]
