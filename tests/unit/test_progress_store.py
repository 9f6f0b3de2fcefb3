"""
Unit tests for learner progress.
"""

import json

from mcqbank.core.kv_store import MemoryKeyValueStore
from mcqbank.quiz.models import QuestionRef
from mcqbank.study.progress_store import PROGRESS_KEY, ProgressRecord, ProgressStore


class TestAnswers:
    """Tests for answer statistics."""

    def test_record_answer(self, progress):
        progress.record_answer("Nutrition", True)
        progress.record_answer("Nutrition", False)
        progress.record_answer("Sociology", True)

        record = progress.record
        assert (record.total_answered, record.total_correct) == (3, 2)
        assert record.per_subject["Nutrition"].total == 2
        assert record.per_subject["Nutrition"].correct == 1

    def test_accuracy_rounding(self, progress):
        assert progress.accuracy_percent() == 0

        progress.record_answer("Nutrition", True)
        progress.record_answer("Nutrition", True)
        progress.record_answer("Nutrition", False)

        assert progress.accuracy_percent() == 67
        assert progress.subject_accuracy("Nutrition") == 67
        assert progress.subject_accuracy("Sociology") == 0

    def test_persists_original_field_names(self, memory_store, progress):
        progress.record_answer("Nutrition", True)
        progress.toggle_bookmark(QuestionRef("Nutrition", 2))

        stored = json.loads(memory_store.get(PROGRESS_KEY))

        assert stored == {
            "totalQuestions": 1,
            "correctAnswers": 1,
            "subjectStats": {"Nutrition": {"total": 1, "correct": 1}},
            "bookmarkedQuestions": ["Nutrition-2"],
        }


class TestBookmarks:
    """Tests for bookmark handling."""

    def test_toggle(self, progress):
        ref = QuestionRef("Nutrition", 0)

        assert progress.toggle_bookmark(ref) is True
        assert progress.is_bookmarked(ref)
        assert progress.toggle_bookmark(ref) is False
        assert not progress.is_bookmarked(ref)

    def test_order_preserved(self, progress):
        refs = [QuestionRef("B", 1), QuestionRef("A", 0), QuestionRef("C", 5)]
        for ref in refs:
            progress.toggle_bookmark(ref)

        assert progress.bookmarks() == refs

    def test_remove_bookmark(self, progress):
        ref = QuestionRef("Nutrition", 0)
        progress.toggle_bookmark(ref)

        progress.remove_bookmark(ref)
        progress.remove_bookmark(ref)

        assert progress.bookmarks() == []

    def test_resolve_skips_dangling_refs(self, progress, bank):
        progress.toggle_bookmark(QuestionRef("Nutrition", 1))
        progress.toggle_bookmark(QuestionRef("Nutrition", 99))
        progress.toggle_bookmark(QuestionRef("Astrology", 0))

        resolved = list(progress.resolve_bookmarks(bank))

        assert [ref for ref, _ in resolved] == [QuestionRef("Nutrition", 1)]
        assert resolved[0][1] == bank.get("Nutrition", 1)


class TestPersistence:
    def test_reload_from_store(self, memory_store, progress):
        progress.record_answer("Nutrition", True)
        progress.toggle_bookmark(QuestionRef("Medical-Surgical Nursing", 3))

        other = ProgressStore(memory_store)

        assert other.record.total_answered == 1
        assert other.bookmarks() == [QuestionRef("Medical-Surgical Nursing", 3)]

    def test_reload_picks_up_external_changes(self, memory_store, progress):
        ProgressStore(memory_store).record_answer("Nutrition", False)

        progress.reload()

        assert progress.record.total_answered == 1

    def test_corrupt_document_starts_fresh(self):
        store = ProgressStore(MemoryKeyValueStore({PROGRESS_KEY: "not json"}))

        assert store.record == ProgressRecord()

    def test_malformed_bookmarks_dropped(self):
        doc = {"totalQuestions": 2, "bookmarkedQuestions": ["Nutrition-1", "garbage", "Nutrition-1"]}
        store = ProgressStore(MemoryKeyValueStore({PROGRESS_KEY: json.dumps(doc)}))

        assert store.record.total_answered == 2
        assert store.record.total_correct == 0
        assert store.bookmarks() == [QuestionRef("Nutrition", 1)]

    def test_reset(self, memory_store, progress):
        progress.record_answer("Nutrition", True)
        progress.toggle_bookmark(QuestionRef("Nutrition", 0))

        progress.reset()

        assert progress.record == ProgressRecord()
        assert json.loads(memory_store.get(PROGRESS_KEY))["totalQuestions"] == 0
