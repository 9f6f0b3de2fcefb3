"""
Unit tests for the replenishment coordinator.
"""

import asyncio
import random

import pytest

from mcqbank.core.events import BankUpdated
from mcqbank.quiz.models import QuestionOrigin, RawCandidate
from mcqbank.quiz.question_bank import QuestionBankStore
from mcqbank.quiz.replenishment import CollectionStatus, ReplenishmentCoordinator


def candidate(text: str, correct: str = "Right", wrong=("Wrong 1", "Wrong 2", "Wrong 3")) -> RawCandidate:
    return RawCandidate(question=text, options=[correct, *wrong], correct_answer=correct)


def vitamin_candidates(count: int, start: int = 0) -> list[RawCandidate]:
    return [candidate(f"Which vitamin is number {i}?") for i in range(start, start + count)]


class FakeSource:
    """Scriptable question source."""

    def __init__(self, name="fake", candidates=None, error=None, gate=None, delay=0.0, by_subject=None):
        self.name = name
        self.candidates = candidates or []
        self.error = error
        self.gate = gate
        self.delay = delay
        self.by_subject = by_subject
        self.calls = []

    async def fetch(self, keywords, subject):
        self.calls.append((tuple(keywords), subject))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.by_subject is not None:
            return list(self.by_subject.get(subject, []))
        return list(self.candidates)


@pytest.fixture
def make_coordinator(bank, settings):
    """Factory for coordinators over the shared bank."""

    def _factory(*sources, target_bank=None, **kwargs):
        return ReplenishmentCoordinator(
            target_bank or bank, list(sources), settings=settings, rng=random.Random(7), **kwargs
        )

    return _factory


class TestConfiguration:
    def test_tuning_comes_from_settings(self, bank, settings):
        tuned = settings.model_copy(
            update={
                "replenish_threshold": 30,
                "replenish_batch_size": 5,
                "fallback_limit": 2,
                "source_timeout_seconds": 1.5,
            }
        )

        coordinator = ReplenishmentCoordinator(bank, [], settings=tuned)

        assert coordinator.threshold == 30
        assert coordinator.batch_size == 5
        assert coordinator.fallback_limit == 2
        assert coordinator.source_timeout == 1.5

    def test_explicit_arguments_win(self, bank, settings):
        coordinator = ReplenishmentCoordinator(
            bank, [], threshold=0, batch_size=3, fallback_limit=0, source_timeout=0.5, settings=settings
        )

        assert coordinator.threshold == 0
        assert coordinator.batch_size == 3
        assert coordinator.fallback_limit == 0
        assert coordinator.source_timeout == 0.5


class TestRequestReplenishment:
    """Tests for single-subject collection."""

    @pytest.mark.asyncio
    async def test_inserts_and_publishes(self, bank, make_coordinator):
        source = FakeSource(candidates=vitamin_candidates(5))
        coordinator = make_coordinator(source)
        events = []
        coordinator.subscribe(events.append)
        bank.record_failure("Nutrition")

        result = await coordinator.request_replenishment("Nutrition")

        assert result.status == CollectionStatus.INSERTED
        assert result.inserted == 5
        assert not result.used_fallback
        assert bank.count("Nutrition") == 8
        assert events == [BankUpdated("Nutrition", 5)]
        assert "Nutrition" not in bank.failed_subjects()
        assert source.calls == [(("nutrition", "dietetics", "food_science"), "Nutrition")]

    @pytest.mark.asyncio
    async def test_normalized_questions_keep_correct_answer(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource(candidates=vitamin_candidates(10)))

        await coordinator.request_replenishment("Nutrition")

        fetched = bank.get_all("Nutrition")[3:]
        assert all(q.correct_option == "Right" for q in fetched)
        assert all(q.source == QuestionOrigin.FETCHED for q in fetched)
        assert {q.correct_index for q in fetched} != {0}

    @pytest.mark.asyncio
    async def test_drops_candidate_without_correct_option(self, bank, make_coordinator):
        broken = RawCandidate(
            question="Which vitamin is missing its answer?",
            options=["A", "B", "C"],
            correct_answer="D",
        )
        coordinator = make_coordinator(FakeSource(candidates=[broken, *vitamin_candidates(1)]))

        result = await coordinator.request_replenishment("Nutrition")

        assert result.inserted == 1

    @pytest.mark.asyncio
    async def test_keeps_valid_difficulty_only(self, bank, make_coordinator):
        easy = candidate("Which vitamin is easy?")
        easy.difficulty = "easy"
        odd = candidate("Which vitamin is odd?")
        odd.difficulty = "legendary"
        coordinator = make_coordinator(FakeSource(candidates=[easy, odd]))

        await coordinator.request_replenishment("Nutrition")

        added = {q.text: q.difficulty for q in bank.get_all("Nutrition")[3:]}
        assert added["Which vitamin is easy?"].value == "easy"
        assert added["Which vitamin is odd?"] is None

    @pytest.mark.asyncio
    async def test_irrelevant_candidates_fall_back_to_templates(self, bank, make_coordinator):
        off_topic = [candidate("What is the capital of Peru?"), candidate("Which movie won in 1998?")]
        coordinator = make_coordinator(FakeSource(candidates=off_topic))

        result = await coordinator.request_replenishment("Nutrition")

        assert result.status == CollectionStatus.INSERTED
        assert result.used_fallback
        assert bank.get_all("Nutrition")[-1].source == QuestionOrigin.FALLBACK

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self, bank, make_coordinator):
        broken = FakeSource(name="broken", error=RuntimeError("503"))
        healthy = FakeSource(name="healthy", candidates=vitamin_candidates(2))
        coordinator = make_coordinator(broken, healthy)

        result = await coordinator.request_replenishment("Nutrition")

        assert result.inserted == 2
        assert result.sources_failed == ["broken"]
        assert len(healthy.calls) == 1

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self, bank, make_coordinator):
        slow = FakeSource(name="slow", candidates=vitamin_candidates(3), delay=1.0)
        healthy = FakeSource(name="healthy", candidates=vitamin_candidates(1, start=10))
        coordinator = make_coordinator(slow, healthy, source_timeout=0.05)

        result = await coordinator.request_replenishment("Nutrition")

        assert result.sources_failed == ["slow"]
        assert result.inserted == 1

    @pytest.mark.asyncio
    async def test_stops_at_batch_size(self, bank, make_coordinator):
        first = FakeSource(name="first", candidates=vitamin_candidates(3))
        second = FakeSource(name="second", candidates=vitamin_candidates(3, start=3))
        coordinator = make_coordinator(first, second, batch_size=2)

        result = await coordinator.request_replenishment("Nutrition")

        assert result.inserted == 2
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_continues_to_next_source_below_batch_size(self, bank, make_coordinator):
        first = FakeSource(name="first", candidates=vitamin_candidates(1))
        second = FakeSource(name="second", candidates=vitamin_candidates(1, start=1))
        coordinator = make_coordinator(first, second)

        result = await coordinator.request_replenishment("Nutrition")

        assert result.inserted == 2
        assert len(second.calls) == 1

    @pytest.mark.asyncio
    async def test_total_failure_records_marker(self, memory_store, question_factory, settings):
        bank = QuestionBankStore(memory_store, seed_bank={"Astrology": [question_factory("Stars?")]})
        coordinator = ReplenishmentCoordinator(
            bank, [FakeSource(error=RuntimeError("down"))], settings=settings
        )
        events = []
        coordinator.subscribe(events.append)

        result = await coordinator.request_replenishment("Astrology")

        assert result.status == CollectionStatus.NO_NEW_QUESTIONS
        assert result.inserted == 0
        assert "Astrology" in bank.failed_subjects()
        assert events == []
        assert not coordinator.is_collecting("Astrology")

    @pytest.mark.asyncio
    async def test_duplicates_only_is_no_new_questions(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource(candidates=vitamin_candidates(2)))
        await coordinator.request_replenishment("Nutrition")

        result = await coordinator.request_replenishment("Nutrition")

        assert result.status == CollectionStatus.NO_NEW_QUESTIONS
        assert not result.used_fallback
        assert bank.count("Nutrition") == 5
        assert "Nutrition" in bank.failed_subjects()

    @pytest.mark.asyncio
    async def test_concurrent_requests_collect_once(self, bank, make_coordinator):
        gate = asyncio.Event()
        source = FakeSource(candidates=vitamin_candidates(4), gate=gate)
        coordinator = make_coordinator(source)

        first = asyncio.create_task(coordinator.request_replenishment("Nutrition"))
        await asyncio.sleep(0)
        assert coordinator.is_collecting("Nutrition")

        second = await coordinator.request_replenishment("Nutrition")
        gate.set()
        first_result = await first

        assert second.status == CollectionStatus.SKIPPED
        assert second.skipped
        assert first_result.inserted == 4
        assert len(source.calls) == 1
        assert bank.count("Nutrition") == 7
        assert not coordinator.is_collecting("Nutrition")


class TestBulkReplenish:
    """Tests for the bulk pass."""

    @pytest.fixture
    def two_subject_bank(self, memory_store, question_factory):
        return QuestionBankStore(
            memory_store,
            seed_bank={
                "Nutrition": [question_factory("Seed vitamin?")],
                "Sociology": [question_factory("Seed social?")],
            },
        )

    @pytest.mark.asyncio
    async def test_collects_every_subject_below_threshold(self, two_subject_bank, make_coordinator):
        source = FakeSource(
            by_subject={
                "Nutrition": vitamin_candidates(2),
                "Sociology": [candidate(f"Which social group is {i}?") for i in range(3)],
            }
        )
        coordinator = make_coordinator(source, target_bank=two_subject_bank)

        results = await coordinator.bulk_replenish()

        assert {s: r.inserted for s, r in results.items()} == {"Nutrition": 2, "Sociology": 3}
        assert not coordinator.bulk_in_progress

    @pytest.mark.asyncio
    async def test_skips_subjects_at_threshold(self, two_subject_bank, make_coordinator):
        source = FakeSource(by_subject={"Nutrition": vitamin_candidates(2)})
        coordinator = make_coordinator(source, target_bank=two_subject_bank, threshold=1)

        assert await coordinator.bulk_replenish() == {}
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_one_subject_failing_does_not_abort_others(self, two_subject_bank, make_coordinator):
        class HalfBroken(FakeSource):
            async def fetch(self, keywords, subject):
                if subject == "Sociology":
                    raise RuntimeError("down")
                return vitamin_candidates(2)

        coordinator = make_coordinator(HalfBroken(), target_bank=two_subject_bank)

        results = await coordinator.bulk_replenish()

        assert results["Nutrition"].inserted == 2
        assert results["Sociology"].used_fallback

    @pytest.mark.asyncio
    async def test_requests_during_bulk_are_dropped(self, two_subject_bank, make_coordinator):
        gate = asyncio.Event()
        source = FakeSource(by_subject={"Nutrition": vitamin_candidates(1)}, gate=gate)
        coordinator = make_coordinator(source, target_bank=two_subject_bank)

        bulk = asyncio.create_task(coordinator.bulk_replenish())
        await asyncio.sleep(0)

        assert coordinator.bulk_in_progress
        assert (await coordinator.request_replenishment("Nutrition")).skipped
        assert await coordinator.bulk_replenish() == {}

        gate.set()
        results = await bulk

        assert set(results) == {"Nutrition", "Sociology"}
        assert len(source.calls) == 2
        assert not coordinator.bulk_in_progress


class TestLazyTopUp:
    """Tests for background top-ups."""

    def test_no_running_loop_schedules_nothing(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource(candidates=vitamin_candidates(1)))

        assert coordinator.schedule_top_up("Nutrition") is None
        assert coordinator.get_questions("Nutrition") == bank.get_all("Nutrition")

    @pytest.mark.asyncio
    async def test_schedules_and_drains(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource(candidates=vitamin_candidates(2)))

        questions = coordinator.get_questions("Nutrition")
        assert len(questions) == 3

        await coordinator.drain()
        assert bank.count("Nutrition") == 5

    @pytest.mark.asyncio
    async def test_above_threshold_schedules_nothing(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource(), threshold=3)

        assert coordinator.schedule_top_up("Nutrition") is None

    @pytest.mark.asyncio
    async def test_collection_stats(self, bank, make_coordinator):
        coordinator = make_coordinator(FakeSource())
        bank.record_failure("Nutrition", at=123.0)

        stats = coordinator.collection_stats()

        assert stats["Nutrition"] == {
            "count": 3,
            "needs_more": True,
            "is_collecting": False,
            "last_failure": 123.0,
        }
