"""
The Trivia API source (the-trivia-api.com).
"""

from __future__ import annotations

from loguru import logger

from mcqbank.quiz.models import RawCandidate

from .base import HttpQuestionSource


class TriviaAPISource(HttpQuestionSource):
    """Fetches science/medicine questions from the-trivia-api.com."""

    name = "Trivia"

    def __init__(
        self,
        base_url: str = "https://the-trivia-api.com/api/questions",
        categories: str = "science,medicine",
        limit: int = 10,
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.categories = categories
        self.limit = limit

    async def fetch(self, keywords: list[str], subject: str) -> list[RawCandidate]:
        data = await self._get_json(
            params={"categories": self.categories, "limit": self.limit, "type": "multiple"}
        )
        if not isinstance(data, list):
            return []

        candidates = []
        for item in data:
            try:
                question = item["question"]
                # v2 responses wrap the text: {"text": "..."}
                if isinstance(question, dict):
                    question = question["text"]
                correct = item["correctAnswer"]
                candidates.append(
                    RawCandidate(
                        question=question,
                        options=[correct, *item["incorrectAnswers"]],
                        correct_answer=correct,
                        source_name=self.name,
                        difficulty=item.get("difficulty"),
                    )
                )
            except (KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed Trivia API item: {e}")
        return candidates
