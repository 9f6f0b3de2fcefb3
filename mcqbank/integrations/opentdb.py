"""
Open Trivia Database source.

Questions are requested URL-encoded (RFC 3986) so the text survives
without HTML entities. See https://opentdb.com/api_config.php
"""

from __future__ import annotations

from urllib.parse import unquote

from loguru import logger

from mcqbank.quiz.models import RawCandidate

from .base import HttpQuestionSource

# OpenTDB category ids: 17 Science & Nature, 22 Geography (closest to social
# sciences on offer), 9 General Knowledge.
CATEGORY_MAP = {
    "medical": 17,
    "science": 17,
    "biology": 17,
    "anatomy": 17,
    "physiology": 17,
    "microbiology": 17,
    "nutrition": 17,
    "psychology": 22,
    "sociology": 22,
    "management": 9,
    "general": 9,
}
DEFAULT_CATEGORY = 9


class OpenTDBSource(HttpQuestionSource):
    """Fetches multiple-choice questions from opentdb.com."""

    name = "OpenTDB"

    def __init__(self, base_url: str = "https://opentdb.com/api.php", amount: int = 10, **kwargs):
        super().__init__(base_url, **kwargs)
        self.amount = amount

    async def fetch(self, keywords: list[str], subject: str) -> list[RawCandidate]:
        category = CATEGORY_MAP.get(keywords[0] if keywords else "general", DEFAULT_CATEGORY)
        data = await self._get_json(
            params={
                "amount": self.amount,
                "category": category,
                "type": "multiple",
                "encode": "url3986",
            }
        )

        if not isinstance(data, dict) or data.get("response_code", 0) != 0:
            logger.debug(f"OpenTDB returned no results for {subject}: {data!r:.200}")
            return []

        candidates = []
        for item in data.get("results") or []:
            try:
                correct = unquote(item["correct_answer"])
                options = [correct, *(unquote(a) for a in item["incorrect_answers"])]
                candidates.append(
                    RawCandidate(
                        question=unquote(item["question"]),
                        options=options,
                        correct_answer=correct,
                        source_name=self.name,
                        difficulty=item.get("difficulty"),
                    )
                )
            except (KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed OpenTDB item: {e}")
        return candidates
