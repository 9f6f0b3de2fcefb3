"""
Question bank store.

Owns the subject -> questions mapping. Banks only grow (deduplicated by
normalized question text) until an explicit reset restores the seed set.
Every mutation re-serializes the whole mapping to the key-value store.

Also keeps the per-subject replenishment failure markers, since a reset
has to clear them together with the bank.
"""

from __future__ import annotations

import json
import time
from typing import Iterable

from loguru import logger

from config import get_settings
from mcqbank.core.kv_store import KeyValueStore, guarded

from .models import Question
from .seed_data import parse_bank_document, load_seed_bank

QUESTIONS_KEY = "mcqbank.questions"
LAST_UPDATE_KEY = "mcqbank.last_update"
FAILED_SUBJECTS_KEY = "mcqbank.failed_subjects"


class QuestionBankStore:
    """
    Subject-keyed question banks persisted to a key-value store.

    Handles:
    - Read access (full bank, counts, threshold checks)
    - Append with deduplication on normalized question text
    - Reset to the seed set
    - Replenishment failure markers
    """

    def __init__(
        self,
        store: KeyValueStore,
        seed_bank: dict[str, list[Question]] | None = None,
        subjects: Iterable[str] | None = None,
    ):
        """
        Initialize the bank store and load persisted banks.

        Args:
            store: Key-value store (wrapped so failures never propagate)
            seed_bank: Default banks (defaults to the configured seed set)
            subjects: Subjects to list even when their bank is empty
        """
        self.store = guarded(store)
        self._defaults = seed_bank if seed_bank is not None else load_seed_bank(
            get_settings().seed_questions_path
        )
        self._extra_subjects = list(subjects or [])
        self._bank = self._load()
        self._failures = self._load_failures()

        logger.debug(
            f"QuestionBankStore loaded {sum(len(v) for v in self._bank.values())} "
            f"questions across {len(self._bank)} subjects"
        )

    # ========================================
    # Loading / Persistence
    # ========================================

    def _default_copy(self) -> dict[str, list[Question]]:
        return {subject: list(questions) for subject, questions in self._defaults.items()}

    def _load(self) -> dict[str, list[Question]]:
        """Stored banks merged over the defaults, stored subjects win."""
        bank = self._default_copy()
        raw = self.store.get(QUESTIONS_KEY)
        if raw is None:
            return bank

        try:
            stored = parse_bank_document(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load stored questions, using defaults: {e}")
            return bank

        bank.update(stored)
        return bank

    def _load_failures(self) -> dict[str, float]:
        raw = self.store.get(FAILED_SUBJECTS_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            return {str(k): float(v) for k, v in data.items()}
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed failure markers: {e}")
            return {}

    def _persist(self) -> None:
        document = {
            subject: [q.to_document() for q in questions]
            for subject, questions in self._bank.items()
        }
        self.store.set(QUESTIONS_KEY, json.dumps(document, ensure_ascii=False))
        self.store.set(LAST_UPDATE_KEY, str(int(time.time() * 1000)))

    def _persist_failures(self) -> None:
        if self._failures:
            self.store.set(FAILED_SUBJECTS_KEY, json.dumps(self._failures))
        else:
            self.store.remove(FAILED_SUBJECTS_KEY)

    # ========================================
    # Read Access
    # ========================================

    def get_all(self, subject: str) -> list[Question]:
        """Current bank for ``subject`` (empty for unknown subjects)."""
        return list(self._bank.get(subject, []))

    def get(self, subject: str, index: int) -> Question | None:
        questions = self._bank.get(subject, [])
        if 0 <= index < len(questions):
            return questions[index]
        return None

    def count(self, subject: str) -> int:
        return len(self._bank.get(subject, []))

    def count_all(self) -> dict[str, int]:
        """Question count per subject."""
        return {subject: self.count(subject) for subject in self.subjects()}

    def needs_more(self, subject: str, threshold: int) -> bool:
        return self.count(subject) < threshold

    def subjects(self) -> list[str]:
        """Configured subjects first, then any other subject with a bank."""
        ordered = dict.fromkeys(self._extra_subjects)
        ordered.update(dict.fromkeys(self._defaults))
        ordered.update(dict.fromkeys(self._bank))
        return list(ordered)

    def last_update(self) -> int | None:
        """Epoch milliseconds of the last persisted mutation."""
        raw = self.store.get(LAST_UPDATE_KEY)
        try:
            return int(raw) if raw is not None else None
        except ValueError:
            return None

    # ========================================
    # Mutation
    # ========================================

    def append(self, subject: str, candidates: Iterable[Question]) -> int:
        """
        Append candidates whose normalized text is not already in the bank.

        Duplicates inside ``candidates`` are also dropped, first one wins.

        Args:
            subject: Bank to extend
            candidates: Questions in the order they should be appended

        Returns:
            Number of questions actually inserted
        """
        existing = {q.dedup_key for q in self._bank.get(subject, [])}
        survivors: list[Question] = []
        for candidate in candidates:
            key = candidate.dedup_key
            if key in existing:
                continue
            existing.add(key)
            survivors.append(candidate)

        if survivors:
            self._bank.setdefault(subject, []).extend(survivors)
            self._persist()
            logger.info(f"Added {len(survivors)} questions to {subject}")

        return len(survivors)

    def reset_to_default(self, subject: str | None = None) -> None:
        """
        Restore seed banks, dropping fetched and fallback additions.

        Args:
            subject: Single subject to reset (None resets every bank)
        """
        if subject is None:
            self._bank = self._default_copy()
            self._failures = {}
            logger.info("All question banks reset to defaults")
        else:
            if subject in self._defaults:
                self._bank[subject] = list(self._defaults[subject])
            else:
                self._bank.pop(subject, None)
            self._failures.pop(subject, None)
            logger.info(f"Question bank for {subject} reset to defaults")

        self._persist()
        self._persist_failures()

    # ========================================
    # Failure Markers
    # ========================================

    def record_failure(self, subject: str, at: float | None = None) -> None:
        """Remember that a collection for ``subject`` yielded nothing new."""
        self._failures[subject] = at if at is not None else time.time()
        self._persist_failures()

    def clear_failure(self, subject: str) -> None:
        if self._failures.pop(subject, None) is not None:
            self._persist_failures()

    def failed_subjects(self) -> dict[str, float]:
        """Subject -> epoch seconds of the last failed collection."""
        return dict(self._failures)

    def export_document(self) -> dict[str, list[dict]]:
        """The bank mapping in persisted document form."""
        return {
            subject: [q.to_document() for q in questions]
            for subject, questions in self._bank.items()
        }
