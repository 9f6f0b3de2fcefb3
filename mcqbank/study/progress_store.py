"""
Learner progress: lifetime answer counts and bookmarks.

Stored as one JSON document under ``mcqbank.progress`` using the
original field names (``totalQuestions``, ``correctAnswers``,
``subjectStats``, ``bookmarkedQuestions``). Loaded once; written after
every change.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from loguru import logger

from mcqbank.core.kv_store import KeyValueStore, guarded
from mcqbank.quiz.models import Question, QuestionRef

if TYPE_CHECKING:
    from mcqbank.quiz.question_bank import QuestionBankStore

PROGRESS_KEY = "mcqbank.progress"


@dataclass
class SubjectStats:
    total: int = 0
    correct: int = 0


@dataclass
class ProgressRecord:
    total_answered: int = 0
    total_correct: int = 0
    per_subject: dict[str, SubjectStats] = field(default_factory=dict)
    bookmarks: list[QuestionRef] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalQuestions": self.total_answered,
            "correctAnswers": self.total_correct,
            "subjectStats": {
                subject: {"total": s.total, "correct": s.correct}
                for subject, s in self.per_subject.items()
            },
            "bookmarkedQuestions": [ref.key for ref in self.bookmarks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProgressRecord:
        bookmarks: list[QuestionRef] = []
        for key in data.get("bookmarkedQuestions", []):
            try:
                ref = QuestionRef.parse(key)
            except (ValueError, TypeError, AttributeError):
                logger.warning(f"Dropping malformed bookmark {key!r}")
                continue
            if ref not in bookmarks:
                bookmarks.append(ref)

        return cls(
            total_answered=int(data.get("totalQuestions", 0)),
            total_correct=int(data.get("correctAnswers", 0)),
            per_subject={
                subject: SubjectStats(int(s.get("total", 0)), int(s.get("correct", 0)))
                for subject, s in (data.get("subjectStats") or {}).items()
            },
            bookmarks=bookmarks,
        )


class ProgressStore:
    """Answer statistics and bookmarks persisted to a key-value store."""

    def __init__(self, store: KeyValueStore):
        self.store = guarded(store)
        self._record = self._load()

    def _load(self) -> ProgressRecord:
        raw = self.store.get(PROGRESS_KEY)
        if raw is None:
            return ProgressRecord()
        try:
            return ProgressRecord.from_dict(json.loads(raw))
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load progress, starting fresh: {e}")
            return ProgressRecord()

    def _persist(self) -> None:
        self.store.set(PROGRESS_KEY, json.dumps(self._record.to_dict()))

    def reload(self) -> None:
        self._record = self._load()

    @property
    def record(self) -> ProgressRecord:
        return self._record

    # ========================================
    # Answers
    # ========================================

    def record_answer(self, subject: str, is_correct: bool) -> None:
        record = self._record
        stats = record.per_subject.setdefault(subject, SubjectStats())
        record.total_answered += 1
        stats.total += 1
        if is_correct:
            record.total_correct += 1
            stats.correct += 1
        self._persist()

    def accuracy_percent(self) -> int:
        if self._record.total_answered == 0:
            return 0
        return round(self._record.total_correct / self._record.total_answered * 100)

    def subject_accuracy(self, subject: str) -> int:
        stats = self._record.per_subject.get(subject)
        if not stats or stats.total == 0:
            return 0
        return round(stats.correct / stats.total * 100)

    # ========================================
    # Bookmarks
    # ========================================

    def is_bookmarked(self, ref: QuestionRef) -> bool:
        return ref in self._record.bookmarks

    def toggle_bookmark(self, ref: QuestionRef) -> bool:
        """Add or remove ``ref``; returns True when it is now bookmarked."""
        if ref in self._record.bookmarks:
            self._record.bookmarks.remove(ref)
            bookmarked = False
        else:
            self._record.bookmarks.append(ref)
            bookmarked = True
        self._persist()
        return bookmarked

    def remove_bookmark(self, ref: QuestionRef) -> None:
        if ref in self._record.bookmarks:
            self._record.bookmarks.remove(ref)
            self._persist()

    def bookmarks(self) -> list[QuestionRef]:
        return list(self._record.bookmarks)

    def resolve_bookmarks(self, bank: QuestionBankStore) -> Iterator[tuple[QuestionRef, Question]]:
        """Bookmarked refs that still point at a question."""
        for ref in self._record.bookmarks:
            question = bank.get(ref.subject, ref.index)
            if question is not None:
                yield ref, question

    def reset(self) -> None:
        """Clear all statistics and bookmarks."""
        self._record = ProgressRecord()
        self._persist()
