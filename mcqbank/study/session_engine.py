"""
Practice session engine.

Serves one subject in rounds of ``round_size`` question slots drawn from a
seeded shuffle of the subject's bank:

    ACTIVE --advance past last slot--> FINISHED
    FINISHED --start_next_round--> ACTIVE (next disjoint block, or reshuffle)
    any --restart--> ACTIVE (fresh seed)

Which question sits in a slot is a pure function of
``(seed, bank_length, round_start, position)``. Banks at least a round long
are walked in consecutive blocks of the shuffle order; smaller banks wrap
around so every round still has ``round_size`` slots.

The engine holds no UI state. Renderers read ``current_question()`` and
call the transition methods; invariant violations raise ``SessionError``
subclasses synchronously.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from config import Settings, get_settings
from mcqbank.core.events import BankUpdated
from mcqbank.core.shuffle import new_seed, permute
from mcqbank.quiz.models import Question, QuestionRef
from mcqbank.quiz.question_bank import QuestionBankStore

from .progress_store import ProgressStore

if TYPE_CHECKING:
    from mcqbank.quiz.replenishment import ReplenishmentCoordinator


# ========================================
# Errors
# ========================================


class SessionError(Exception):
    """Base class for session invariant violations."""


class SessionStateError(SessionError):
    """Operation not allowed in the current session status."""


class NoQuestionAvailableError(SessionError):
    """The subject's bank is empty."""


class InvalidOptionError(SessionError):
    """Picked option index is out of range for the current question."""


class AnswerAlreadyRecordedError(SessionError):
    """The current slot already has an answer."""


# ========================================
# State
# ========================================


class SessionStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class AnswerRecord:
    picked_index: int
    is_correct: bool


@dataclass
class RoundState:
    """Position within the current round plus answers by slot."""

    round_start: int = 0
    position: int = 0
    answers: dict[int, AnswerRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class QuestionView:
    """What a renderer needs to show the current slot."""

    ref: QuestionRef
    question: Question
    position: int
    round_size: int
    selected_index: int | None
    is_bookmarked: bool

    @property
    def is_answered(self) -> bool:
        return self.selected_index is not None

    @property
    def is_last(self) -> bool:
        return self.position == self.round_size - 1


@dataclass(frozen=True)
class RoundSummary:
    score: int
    total: int
    answered: int

    @property
    def percent(self) -> int:
        return round(self.score / self.total * 100) if self.total else 0


@dataclass(frozen=True)
class ReviewItem:
    """One slot on the results screen."""

    position: int
    ref: QuestionRef
    question: Question
    answer: AnswerRecord | None


@dataclass
class SessionSnapshot:
    """Serializable session state for save/resume."""

    subject: str
    seed: int
    round_start: int
    position: int
    status: str
    answers: dict[str, list[Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "subject": self.subject,
            "seed": self.seed,
            "round_start": self.round_start,
            "position": self.position,
            "status": self.status,
            "answers": self.answers,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionSnapshot:
        """
        Create from dictionary.

        Raises:
            ValueError, TypeError, KeyError: if any field is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a session object, got {type(data).__name__}")

        answers = {}
        for pos, entry in dict(data.get("answers", {})).items():
            picked, correct = entry
            answers[str(int(pos))] = [int(picked), bool(correct)]

        return cls(
            subject=str(data["subject"]),
            seed=int(data["seed"]),
            round_start=int(data["round_start"]),
            position=int(data["position"]),
            status=SessionStatus(data["status"]).value,
            answers=answers,
        )


class QuestionTimer:
    """
    Per-question countdown driven by ``tick``.

    The engine owns the clock so behavior is deterministic; a front-end
    calls ``tick`` once per elapsed second.
    """

    def __init__(self, limit_seconds: int):
        self.limit_seconds = limit_seconds
        self.remaining = limit_seconds
        self.active = True

    def reset(self) -> None:
        self.remaining = self.limit_seconds
        self.active = True

    def stop(self) -> None:
        self.active = False

    def tick(self, seconds: int = 1) -> bool:
        """Count down; True when this tick reached zero."""
        if not self.active:
            return False
        self.remaining = max(0, self.remaining - seconds)
        if self.remaining == 0:
            self.active = False
            return True
        return False


def resolve_index(
    order: list[int], round_size: int, round_start: int, position: int
) -> int | None:
    """
    Bank index for a round slot.

    ``order`` is the shuffle of the whole bank. Returns None for an empty
    bank.
    """
    bank_length = len(order)
    if bank_length == 0:
        return None
    if bank_length >= round_size:
        g = round_start + position
        return order[g] if g < bank_length else order[g % bank_length]
    return order[position % bank_length]


# ========================================
# Engine
# ========================================


class SessionEngine:
    """
    Round and session state machine for one subject.

    Handles:
    - Deterministic question selection per slot
    - Answer recording (exactly once per slot) and scoring
    - Navigation, round transitions and restart
    - Per-question timer with auto-advance
    - Bookmarks and bank-update notices for the renderer
    """

    def __init__(
        self,
        subject: str,
        bank: QuestionBankStore,
        progress: ProgressStore,
        coordinator: ReplenishmentCoordinator | None = None,
        seed: int | None = None,
        round_size: int | None = None,
        time_limit_seconds: int | None = None,
        settings: Settings | None = None,
    ):
        """
        Start a session on ``subject``.

        Args:
            subject: Subject to practice
            bank: Question bank store
            progress: Learner progress store
            coordinator: Replenishment coordinator (lazy top-up, next round)
            seed: Shuffle seed to resume with (fresh when None)
            round_size: Slots per round (default from config)
            time_limit_seconds: Countdown per question (default from config)
            settings: Settings override (default: cached settings)
        """
        settings = settings or get_settings()
        self.subject = subject
        self.bank = bank
        self.progress = progress
        self.coordinator = coordinator
        self.round_size = round_size or settings.round_size
        self.seed = seed if seed is not None else new_seed()
        self.status = SessionStatus.ACTIVE
        self.round = RoundState()
        self.timer = QuestionTimer(time_limit_seconds or settings.question_time_limit_seconds)
        self.bank_update_notice: BankUpdated | None = None

        self._order: list[int] = []
        self._order_key: tuple[int, int] | None = None
        self._unsubscribe = None

        if coordinator is not None:
            self._unsubscribe = coordinator.subscribe(self._on_bank_updated)
            coordinator.schedule_top_up(subject)

        logger.debug(f"Session started on {subject} (seed={self.seed})")

    def _on_bank_updated(self, event: BankUpdated) -> None:
        if event.subject == self.subject:
            self.bank_update_notice = event

    def close(self) -> None:
        """Stop listening for bank updates."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ========================================
    # Question Resolution
    # ========================================

    @property
    def order(self) -> list[int]:
        """Shuffle order for the current seed and bank length."""
        key = (self.seed, self.bank.count(self.subject))
        if key != self._order_key:
            self._order = permute(key[1], key[0])
            self._order_key = key
        return self._order

    def current_ref(self) -> QuestionRef | None:
        index = resolve_index(
            self.order, self.round_size, self.round.round_start, self.round.position
        )
        if index is None:
            return None
        return QuestionRef(self.subject, index)

    def current_question(self) -> QuestionView | None:
        ref = self.current_ref()
        if ref is None:
            return None
        question = self.bank.get(ref.subject, ref.index)
        if question is None:
            return None
        answer = self.round.answers.get(self.round.position)
        return QuestionView(
            ref=ref,
            question=question,
            position=self.round.position,
            round_size=self.round_size,
            selected_index=answer.picked_index if answer else None,
            is_bookmarked=self.progress.is_bookmarked(ref),
        )

    @property
    def score(self) -> int:
        return sum(1 for a in self.round.answers.values() if a.is_correct)

    # ========================================
    # Answering / Navigation
    # ========================================

    def submit_answer(self, picked_index: int) -> AnswerRecord:
        """
        Record an answer for the current slot.

        Raises:
            SessionStateError: Round is finished
            NoQuestionAvailableError: Bank is empty
            InvalidOptionError: Index outside the question's options
            AnswerAlreadyRecordedError: Slot already answered
        """
        if self.status != SessionStatus.ACTIVE:
            raise SessionStateError("Cannot answer: round is finished")

        view = self.current_question()
        if view is None:
            raise NoQuestionAvailableError(f"No questions available for {self.subject}")
        if not 0 <= picked_index < len(view.question.options):
            raise InvalidOptionError(
                f"Option {picked_index} out of range (0-{len(view.question.options) - 1})"
            )
        if self.round.position in self.round.answers:
            raise AnswerAlreadyRecordedError(
                f"Slot {self.round.position} already answered"
            )

        record = AnswerRecord(picked_index, view.question.is_correct(picked_index))
        self.round.answers[self.round.position] = record
        self.timer.stop()
        self.progress.record_answer(self.subject, record.is_correct)
        return record

    def advance(self) -> RoundSummary | None:
        """
        Move to the next slot, or finish the round after the last one.

        Returns the round summary when the round finished.
        """
        if self.status != SessionStatus.ACTIVE:
            raise SessionStateError("Cannot advance: round is finished")

        if self.round.position + 1 < self.round_size:
            self.round.position += 1
            self.timer.reset()
            return None
        return self.finish_round()

    def retreat(self) -> bool:
        """Go back one slot without rescoring; False at the first slot."""
        if self.status != SessionStatus.ACTIVE:
            raise SessionStateError("Cannot go back: round is finished")
        if self.round.position == 0:
            return False
        self.round.position -= 1
        self.timer.stop()
        return True

    def tick(self, seconds: int = 1) -> RoundSummary | None:
        """
        Advance the question timer.

        When time runs out on an unanswered slot the engine moves on, and
        returns the summary if that finished the round.
        """
        if self.status != SessionStatus.ACTIVE:
            return None
        expired = self.timer.tick(seconds)
        if expired and self.round.position not in self.round.answers:
            logger.debug(f"Time up on slot {self.round.position}")
            return self.advance()
        return None

    def finish_round(self) -> RoundSummary:
        self.status = SessionStatus.FINISHED
        self.timer.stop()
        return self.summary()

    def summary(self) -> RoundSummary:
        return RoundSummary(
            score=self.score, total=self.round_size, answered=len(self.round.answers)
        )

    def review(self) -> list[ReviewItem]:
        """Every slot of the round with its question and answer."""
        order = self.order
        items = []
        for position in range(self.round_size):
            index = resolve_index(order, self.round_size, self.round.round_start, position)
            if index is None:
                break
            question = self.bank.get(self.subject, index)
            if question is None:
                continue
            items.append(
                ReviewItem(
                    position=position,
                    ref=QuestionRef(self.subject, index),
                    question=question,
                    answer=self.round.answers.get(position),
                )
            )
        return items

    # ========================================
    # Round Transitions
    # ========================================

    async def start_next_round(self) -> None:
        """
        Begin the next round after a finished one.

        Replenishes the bank first, then moves to the next disjoint block
        of the shuffle order, or reshuffles when the order is used up or
        the bank is smaller than a round.
        """
        if self.status != SessionStatus.FINISHED:
            raise SessionStateError("Next round is only available after finishing a round")

        if self.coordinator is not None:
            await self.coordinator.request_replenishment(self.subject)

        bank_length = self.bank.count(self.subject)
        next_start = self.round.round_start + self.round_size
        if bank_length >= self.round_size and next_start < len(self.order):
            round_start = next_start
        else:
            self.seed = new_seed()
            round_start = 0
            logger.debug(f"Reshuffling {self.subject} (seed={self.seed})")

        self._begin_round(round_start)

    def restart(self) -> None:
        """Fresh shuffle from the first block; no replenishment."""
        self.seed = new_seed()
        self._begin_round(0)

    def _begin_round(self, round_start: int) -> None:
        self.round = RoundState(round_start=round_start)
        self.status = SessionStatus.ACTIVE
        self.timer.reset()

    # ========================================
    # Bookmarks
    # ========================================

    def toggle_bookmark(self, ref: QuestionRef | None = None) -> bool:
        """Toggle a bookmark (current question by default); returns the new state."""
        ref = ref or self.current_ref()
        if ref is None:
            raise NoQuestionAvailableError(f"No questions available for {self.subject}")
        return self.progress.toggle_bookmark(ref)

    # ========================================
    # Save / Resume
    # ========================================

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            subject=self.subject,
            seed=self.seed,
            round_start=self.round.round_start,
            position=self.round.position,
            status=self.status.value,
            answers={
                str(pos): [a.picked_index, a.is_correct] for pos, a in self.round.answers.items()
            },
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: SessionSnapshot,
        bank: QuestionBankStore,
        progress: ProgressStore,
        coordinator: ReplenishmentCoordinator | None = None,
        **kwargs,
    ) -> SessionEngine:
        """Resume a saved session; answers are restored without rescoring."""
        engine = cls(
            snapshot.subject, bank, progress, coordinator=coordinator, seed=snapshot.seed, **kwargs
        )
        engine.round = RoundState(
            round_start=snapshot.round_start,
            position=min(snapshot.position, engine.round_size - 1),
            answers={
                int(pos): AnswerRecord(int(picked), bool(correct))
                for pos, (picked, correct) in snapshot.answers.items()
            },
        )
        engine.status = SessionStatus(snapshot.status)
        if engine.round.position in engine.round.answers or engine.status != SessionStatus.ACTIVE:
            engine.timer.stop()
        return engine
