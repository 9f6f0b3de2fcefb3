"""
Unit tests for relevance filtering.
"""

import pytest

from mcqbank.quiz.content_filter import SUBJECT_KEYWORDS, is_relevant, query_keywords


class TestQueryKeywords:
    def test_known_subject(self):
        assert query_keywords("Nutrition") == ["nutrition", "dietetics", "food_science"]

    def test_unknown_subject_uses_lowercased_name(self):
        assert query_keywords("Forensic Science") == ["forensic science"]

    def test_returns_copy(self):
        query_keywords("Nutrition").append("extra")

        assert "extra" not in SUBJECT_KEYWORDS["Nutrition"]


class TestIsRelevant:
    """Tests for is_relevant()."""

    @pytest.mark.parametrize(
        "text,subject",
        [
            ("Which vitamin deficiency causes scurvy?", "Nutrition"),
            ("Which bacterial infection is treated with penicillin?", "Microbiology"),
            ("At what age does an infant usually sit unassisted?", "Pediatric Nursing"),
            ("What is the normal range of blood glucose in a patient?", "Sociology"),
        ],
    )
    def test_accepts_on_topic(self, text, subject):
        assert is_relevant(text, subject)

    def test_general_health_keyword_is_enough(self):
        assert is_relevant("Which disease is spread by mosquitoes?", "Nursing Administration")

    def test_rejects_off_topic(self):
        assert not is_relevant("What is the capital of Australia?", "Nutrition")

    def test_exclusion_wins_over_subject_match(self):
        assert not is_relevant("Which movie features a doctor who studies vitamins?", "Nutrition")

    def test_case_insensitive(self):
        assert is_relevant("WHICH VITAMIN IS FAT SOLUBLE?", "Nutrition")

    def test_matches_word_starts_only(self):
        # "band" is excluded but "husband" must not trigger it
        assert is_relevant("Her husband asked about vitamin supplements.", "Nutrition")

    def test_underscore_keywords_match_spaces(self):
        assert is_relevant("Which agency leads public health campaigns?", "Community Health Nursing")
