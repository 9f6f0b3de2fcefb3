"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from mcqbank.core.kv_store import MemoryKeyValueStore  # noqa: E402
from mcqbank.quiz.models import Question, RawCandidate  # noqa: E402
from mcqbank.quiz.question_bank import QuestionBankStore  # noqa: E402
from mcqbank.study.progress_store import ProgressStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (stores + engine together)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


def make_question(text: str, options=("A", "B", "C", "D"), correct: int = 0, **kwargs) -> Question:
    """Build a question with sensible defaults."""
    return Question(text=text, options=tuple(options), correct_index=correct, **kwargs)


def make_bank(subject: str, size: int) -> dict[str, list[Question]]:
    """Seed bank with ``size`` distinct questions for ``subject``."""
    return {subject: [make_question(f"{subject} question {i}?") for i in range(size)]}


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the user's state and environment."""
    return Settings(
        _env_file=None,
        state_db_path=tmp_path / "state.db",
        round_size=50,
        question_time_limit_seconds=60,
        replenish_threshold=50,
        replenish_batch_size=20,
        fallback_limit=10,
        source_timeout_seconds=5.0,
        source_retry_attempts=1,
        quizapi_key=None,
    )


@pytest.fixture
def memory_store():
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def sample_question():
    """Provide a sample question for testing."""
    return make_question(
        "Which vitamin is produced in the skin on exposure to sunlight?",
        options=("Vitamin A", "Vitamin C", "Vitamin D", "Vitamin K"),
        correct=2,
        explanation="UVB light converts 7-dehydrocholesterol to vitamin D3.",
    )


@pytest.fixture
def sample_candidate():
    """Provide a raw source candidate for testing."""
    return RawCandidate(
        question="Which nutrient is the body's main source of energy?",
        options=["Carbohydrates", "Vitamins", "Minerals", "Water"],
        correct_answer="Carbohydrates",
        source_name="test",
        difficulty="easy",
    )


@pytest.fixture
def bank(memory_store):
    """Bank store with a three-question Nutrition seed."""
    return QuestionBankStore(memory_store, seed_bank=make_bank("Nutrition", 3))


@pytest.fixture
def progress(memory_store):
    """Progress store sharing the bank's key-value store."""
    return ProgressStore(memory_store)


@pytest.fixture
def question_factory():
    """Factory for questions: question_factory(text, options=..., correct=...)."""
    return make_question


@pytest.fixture
def bank_factory(memory_store):
    """Factory for bank stores seeded with ``size`` questions for one subject."""

    def _factory(subject: str = "Nutrition", size: int = 3, store=None) -> QuestionBankStore:
        return QuestionBankStore(store or memory_store, seed_bank=make_bank(subject, size))

    return _factory
