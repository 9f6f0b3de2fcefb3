"""
QuizAPI source (quizapi.io).

Requires an API key; without one the source quietly yields nothing.
Answers arrive as ``answer_a``..``answer_f`` with a parallel
``correct_answers`` map of ``"true"``/``"false"`` strings.
"""

from __future__ import annotations

from loguru import logger

from mcqbank.quiz.models import RawCandidate

from .base import HttpQuestionSource


class QuizAPISource(HttpQuestionSource):
    """Fetches single-answer questions from quizapi.io."""

    name = "QuizAPI"

    def __init__(
        self,
        base_url: str = "https://quizapi.io/api/v1/questions",
        api_key: str | None = None,
        limit: int = 10,
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key
        self.limit = limit

    async def fetch(self, keywords: list[str], subject: str) -> list[RawCandidate]:
        if not self.api_key:
            logger.debug("QuizAPI key not configured, skipping")
            return []

        params = {"limit": self.limit}
        if keywords:
            params["tags"] = keywords[0]
        data = await self._get_json(params=params, headers={"X-Api-Key": self.api_key})

        if not isinstance(data, list):
            return []

        return [c for c in (self._parse_item(item) for item in data) if c is not None]

    def _parse_item(self, item: dict) -> RawCandidate | None:
        if not isinstance(item, dict) or str(item.get("multiple_correct_answers")).lower() == "true":
            return None

        answers = item.get("answers") or {}
        flags = item.get("correct_answers") or {}
        options: list[str] = []
        correct: str | None = None
        for key, text in answers.items():
            if not text:
                continue
            options.append(text)
            if str(flags.get(f"{key}_correct")).lower() == "true":
                correct = text

        if not item.get("question") or correct is None:
            return None

        return RawCandidate(
            question=item["question"],
            options=options,
            correct_answer=correct,
            source_name=self.name,
            difficulty=(item.get("difficulty") or "").lower() or None,
        )
