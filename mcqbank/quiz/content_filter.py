"""
Relevance heuristics for fetched questions.

General-knowledge trivia sources return plenty of questions that have
nothing to do with nursing. A candidate is kept only when its text hits a
subject keyword or a general health keyword, and hits no exclusion keyword.
Matching is case-insensitive on word starts, so "bacteri" matches
"bacterial".
"""

from __future__ import annotations

import re
from functools import lru_cache

# Query keywords sent to sources, first one picks the source category.
SUBJECT_KEYWORDS: dict[str, list[str]] = {
    "Nursing Administration": ["management", "healthcare", "administration"],
    "Nursing Research": ["research", "statistics", "methodology"],
    "Human Physiology": ["biology", "physiology", "anatomy"],
    "Microbiology": ["biology", "microbiology", "infectious_diseases"],
    "Sociology": ["sociology", "social_sciences", "psychology"],
    "Human Anatomy": ["anatomy", "biology", "medical"],
    "Fundamentals of Nursing": ["nursing", "healthcare", "medical"],
    "Medical Surgical Nursing": ["surgery", "medical", "nursing"],
    "Psychiatric Nursing": ["psychology", "psychiatry", "mental_health"],
    "Pediatric Nursing": ["pediatrics", "children", "nursing"],
    "Obstetrics and Gynecology Nursing": ["obstetrics", "gynecology", "women_health"],
    "Community Health Nursing": ["public_health", "community", "epidemiology"],
    "Nutrition": ["nutrition", "dietetics", "food_science"],
}

# Words expected in question text for each subject.
RELEVANCE_KEYWORDS: dict[str, list[str]] = {
    "Nursing Administration": ["leader", "manag", "delegat", "staff", "budget", "policy", "quality"],
    "Nursing Research": ["research", "study", "statistic", "sample", "hypothes", "variable", "evidence", "p-value"],
    "Human Physiology": ["heart", "blood", "hormone", "kidney", "lung", "nerve", "cell", "organ", "homeosta"],
    "Microbiology": ["bacteri", "virus", "viral", "fung", "pathogen", "infect", "microb", "antibiotic", "steril"],
    "Sociology": ["social", "society", "culture", "norm", "class", "group", "famil"],
    "Human Anatomy": ["bone", "muscle", "organ", "artery", "vein", "nerve", "skelet", "gland", "body"],
    "Fundamentals of Nursing": ["nurs", "patient", "vital", "hygiene", "infection", "medication"],
    "Medical Surgical Nursing": ["surg", "postoperative", "cardiac", "respirat", "wound", "patient"],
    "Psychiatric Nursing": ["mental", "psych", "depress", "anxiety", "schizo", "disorder", "therap"],
    "Pediatric Nursing": ["child", "infant", "pediatric", "newborn", "vaccin", "growth"],
    "Obstetrics and Gynecology Nursing": ["pregnan", "fetal", "labor", "uter", "menstru", "birth", "obstetric"],
    "Community Health Nursing": ["community", "public health", "epidemi", "prevent", "population", "outbreak"],
    "Nutrition": ["vitamin", "diet", "nutri", "protein", "calori", "mineral", "food"],
}

GENERAL_KEYWORDS = [
    "health", "medical", "medicine", "disease", "clinical", "nurse", "nursing",
    "patient", "doctor", "hospital", "symptom", "treatment", "drug", "human body",
    "biology", "anatomy", "physiology",
]

EXCLUDED_KEYWORDS = [
    "movie", "film", "video game", "celebrity", "anime", "album", "song", "band",
    "football", "soccer", "basketball", "baseball", "olympic", "tv show", "television",
    "cartoon", "comic", "pokemon", "actor", "actress",
]


@lru_cache(maxsize=None)
def _pattern(keywords: tuple[str, ...]) -> re.Pattern[str] | None:
    if not keywords:
        return None
    alternatives = "|".join(re.escape(k.replace("_", " ").lower()) for k in keywords)
    return re.compile(rf"\b(?:{alternatives})", re.IGNORECASE)


def _matches(text: str, keywords: list[str]) -> bool:
    pattern = _pattern(tuple(keywords))
    return bool(pattern and pattern.search(text))


def query_keywords(subject: str) -> list[str]:
    """Keywords sent to question sources for ``subject``."""
    return list(SUBJECT_KEYWORDS.get(subject, [subject.lower()]))


def is_relevant(text: str, subject: str) -> bool:
    """
    Decide whether a fetched question belongs in ``subject``'s bank.

    Args:
        text: Question text
        subject: Target subject

    Returns:
        True if the text looks on-topic and is not excluded
    """
    if _matches(text, EXCLUDED_KEYWORDS):
        return False

    subject_words = RELEVANCE_KEYWORDS.get(subject, []) + SUBJECT_KEYWORDS.get(subject, [])
    return _matches(text, subject_words) or _matches(text, GENERAL_KEYWORDS)
