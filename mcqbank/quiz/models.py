"""
Question data models.

One canonical Question shape is used everywhere past the source boundary.
Provenance and difficulty are optional metadata; the session engine only
needs text, options and the correct index.

Persisted documents keep the original field names (``question`` /
``answer``), so seed files written by hand load unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionOrigin(str, Enum):
    """Where a stored question came from."""

    BUILTIN = "builtin"
    FETCHED = "fetched"
    FALLBACK = "fallback"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def normalize_text(text: str) -> str:
    """Deduplication key: trimmed, lowercased question text."""
    return text.strip().lower()


class Question(BaseModel):
    """An immutable multiple-choice question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(alias="question")
    options: tuple[str, ...] = Field(min_length=2)
    correct_index: int = Field(alias="answer", ge=0)
    explanation: str | None = None
    source: QuestionOrigin = QuestionOrigin.BUILTIN
    difficulty: Difficulty | None = None

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question text must not be blank")
        return value

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> Question:
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct index {self.correct_index} out of range for "
                f"{len(self.options)} options"
            )
        return self

    @property
    def dedup_key(self) -> str:
        return normalize_text(self.text)

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]

    def is_correct(self, picked_index: int) -> bool:
        return picked_index == self.correct_index

    def with_explanation(self, explanation: str) -> Question:
        """Copy of this question carrying ``explanation``."""
        return self.model_copy(update={"explanation": explanation})

    def to_document(self) -> dict[str, Any]:
        """Serialize using the persisted field names."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Question:
        return cls.model_validate(data)


@dataclass(frozen=True)
class QuestionRef:
    """
    Stable reference to a question: subject plus index within its bank.

    Serialized as ``"<subject>-<index>"``. Subjects may contain dashes, so
    the index is taken from the last one.
    """

    subject: str
    index: int

    @property
    def key(self) -> str:
        return f"{self.subject}-{self.index}"

    @classmethod
    def parse(cls, key: str) -> QuestionRef:
        subject, sep, index = key.rpartition("-")
        if not sep or not subject:
            raise ValueError(f"Malformed question reference: {key!r}")
        return cls(subject=subject, index=int(index))


@dataclass
class RawCandidate:
    """A question as delivered by an external source, before normalization."""

    question: str
    options: list[str]
    correct_answer: str
    source_name: str = ""
    difficulty: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
