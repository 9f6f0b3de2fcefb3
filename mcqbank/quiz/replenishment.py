"""
Replenishment coordinator.

Tops up a subject's bank from external question sources when it falls
below the threshold:

    Idle -> Collecting -> Idle (inserted, or failure recorded)

At most one collection runs per subject. Requests for a subject that is
already collecting, or any request made while a bulk pass is running, are
dropped rather than queued. Source failures never escape: a failing or
slow source is logged and the next one is tried, and when nothing usable
arrives the subject's fallback templates are offered instead.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Sequence

from loguru import logger
from pydantic import ValidationError

from config import Settings, get_settings
from mcqbank.core.events import BankUpdated, EventChannel

from .content_filter import is_relevant, query_keywords
from .models import Difficulty, Question, QuestionOrigin, RawCandidate
from .question_bank import QuestionBankStore
from .seed_data import fallback_questions

if TYPE_CHECKING:
    from mcqbank.integrations.base import QuestionSource


class CollectionStatus(str, Enum):
    INSERTED = "inserted"
    NO_NEW_QUESTIONS = "no_new_questions"
    SKIPPED = "skipped"


@dataclass
class ReplenishmentResult:
    """Outcome of one collection request."""

    subject: str
    status: CollectionStatus
    inserted: int = 0
    used_fallback: bool = False
    sources_failed: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.status == CollectionStatus.SKIPPED


class ReplenishmentCoordinator:
    """
    Decides when banks need more questions and collects them.

    Handles:
    - Per-subject collection with concurrent-request suppression
    - Source fan-out in priority order with per-source fault tolerance
    - Candidate normalization, relevance filtering and fallback templates
    - Bulk top-up of every subject under the threshold
    - BankUpdated notifications for observers
    """

    def __init__(
        self,
        bank: QuestionBankStore,
        sources: Sequence[QuestionSource],
        threshold: int | None = None,
        batch_size: int | None = None,
        fallback_limit: int | None = None,
        source_timeout: float | None = None,
        rng: random.Random | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            bank: Bank store to extend
            sources: Question sources in priority order
            threshold: Banks below this size need more (default from config)
            batch_size: Accepted candidates to gather per collection
            fallback_limit: Max fallback templates per collection
            source_timeout: Upper bound in seconds for one source fetch
            rng: Random generator for option shuffling
            settings: Settings override (default: cached settings)
        """
        tuning = (settings or get_settings()).get_replenishment_config()
        self.bank = bank
        self.sources = list(sources)
        self.threshold = threshold if threshold is not None else tuning["threshold"]
        self.batch_size = batch_size or tuning["batch_size"]
        self.fallback_limit = (
            fallback_limit if fallback_limit is not None else tuning["fallback_limit"]
        )
        self.source_timeout = source_timeout or tuning["source_timeout_seconds"]
        self._rng = rng or random.Random()

        self._collecting: set[str] = set()
        self._bulk_in_progress = False
        self._events: EventChannel[BankUpdated] = EventChannel()
        self._background: set[asyncio.Task] = set()

    # ========================================
    # Observers / State
    # ========================================

    def subscribe(self, callback: Callable[[BankUpdated], None]) -> Callable[[], None]:
        """Register for BankUpdated events; returns the unsubscribe handle."""
        return self._events.subscribe(callback)

    def is_collecting(self, subject: str) -> bool:
        return subject in self._collecting

    @property
    def bulk_in_progress(self) -> bool:
        return self._bulk_in_progress

    def needs_more(self, subject: str) -> bool:
        return self.bank.needs_more(subject, self.threshold)

    def collection_stats(self) -> dict[str, dict[str, Any]]:
        """Per-subject count, threshold status and collection state."""
        failures = self.bank.failed_subjects()
        return {
            subject: {
                "count": self.bank.count(subject),
                "needs_more": self.needs_more(subject),
                "is_collecting": self.is_collecting(subject),
                "last_failure": failures.get(subject),
            }
            for subject in self.bank.subjects()
        }

    # ========================================
    # Lazy Top-Up
    # ========================================

    def get_questions(self, subject: str) -> list[Question]:
        """Bank for ``subject``, scheduling a background top-up when low."""
        self.schedule_top_up(subject)
        return self.bank.get_all(subject)

    def schedule_top_up(self, subject: str) -> asyncio.Task | None:
        """
        Start a background collection if ``subject`` is under threshold.

        Only works inside a running event loop; returns None otherwise or
        when no collection was started.
        """
        if not self.needs_more(subject) or self.is_collecting(subject) or self._bulk_in_progress:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, not topping up {subject}")
            return None

        task = loop.create_task(self.request_replenishment(subject))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for background top-ups started by this coordinator."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ========================================
    # Collection
    # ========================================

    async def request_replenishment(self, subject: str) -> ReplenishmentResult:
        """
        Collect new questions for ``subject``.

        Dropped (SKIPPED) when the subject is already collecting or a bulk
        pass is running.
        """
        if self._bulk_in_progress:
            logger.debug(f"Bulk collection running, ignoring request for {subject}")
            return ReplenishmentResult(subject, CollectionStatus.SKIPPED)
        return await self._collect(subject)

    async def _collect(self, subject: str) -> ReplenishmentResult:
        if subject in self._collecting:
            logger.debug(f"Already collecting {subject}, request dropped")
            return ReplenishmentResult(subject, CollectionStatus.SKIPPED)

        self._collecting.add(subject)
        result = ReplenishmentResult(subject, CollectionStatus.NO_NEW_QUESTIONS)
        try:
            logger.info(f"Collecting questions for {subject}")
            accepted = await self._gather_candidates(subject, result.sources_failed)

            if not accepted:
                accepted = fallback_questions(subject, self.fallback_limit)
                result.used_fallback = bool(accepted)

            result.inserted = self.bank.append(subject, accepted)

            if result.inserted > 0:
                result.status = CollectionStatus.INSERTED
                self.bank.clear_failure(subject)
                self._events.publish(BankUpdated(subject, result.inserted))
            else:
                logger.warning(f"No new questions found for {subject}")
                self.bank.record_failure(subject)

        except Exception as e:
            logger.exception(f"Failed to collect questions for {subject}: {e}")
            self.bank.record_failure(subject)
        finally:
            self._collecting.discard(subject)

        return result

    async def _gather_candidates(self, subject: str, failed: list[str]) -> list[Question]:
        """Accepted candidates from sources in order, capped at the batch size."""
        keywords = query_keywords(subject)
        accepted: list[Question] = []

        for source in self.sources:
            name = getattr(source, "name", type(source).__name__)
            try:
                raw = await asyncio.wait_for(
                    source.fetch(keywords, subject), timeout=self.source_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"{name} timed out after {self.source_timeout}s, skipping")
                failed.append(name)
                continue
            except Exception as e:
                logger.warning(f"Failed to fetch from {name}: {e}")
                failed.append(name)
                continue

            batch = [
                q for q in (self._normalize(c) for c in raw or [])
                if q is not None and is_relevant(q.text, subject)
            ]
            logger.debug(f"{name}: {len(batch)}/{len(raw or [])} candidates accepted for {subject}")
            accepted.extend(batch)

            if len(accepted) >= self.batch_size:
                break

        return accepted[: self.batch_size]

    def _normalize(self, candidate: RawCandidate) -> Question | None:
        """
        Shuffle options and locate the correct answer.

        Returns None for malformed candidates (answer missing from the
        options, too few options, blank text).
        """
        options = list(candidate.options)
        self._rng.shuffle(options)
        try:
            correct_index = options.index(candidate.correct_answer)
        except ValueError:
            logger.debug(f"Correct answer missing from options: {candidate.question!r}")
            return None

        difficulty = None
        if candidate.difficulty in {d.value for d in Difficulty}:
            difficulty = Difficulty(candidate.difficulty)

        try:
            return Question(
                text=candidate.question.strip(),
                options=tuple(options),
                correct_index=correct_index,
                source=QuestionOrigin.FETCHED,
                difficulty=difficulty,
            )
        except ValidationError as e:
            logger.debug(f"Dropping malformed candidate {candidate.question!r}: {e}")
            return None

    async def bulk_replenish(self) -> dict[str, ReplenishmentResult]:
        """
        Collect for every subject under the threshold, concurrently.

        Individual failures do not abort the others. Returns an empty dict
        when a bulk pass is already running.
        """
        if self._bulk_in_progress:
            return {}

        self._bulk_in_progress = True
        try:
            needy = [s for s in self.bank.subjects() if self.needs_more(s)]
            logger.info(f"Bulk collecting questions for {len(needy)} subjects")

            outcomes = await asyncio.gather(
                *(self._collect(subject) for subject in needy), return_exceptions=True
            )

            results: dict[str, ReplenishmentResult] = {}
            for subject, outcome in zip(needy, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"Collection for {subject} raised: {outcome}")
                    outcome = ReplenishmentResult(subject, CollectionStatus.NO_NEW_QUESTIONS)
                results[subject] = outcome

            logger.info("Bulk collection completed")
            return results
        finally:
            self._bulk_in_progress = False
