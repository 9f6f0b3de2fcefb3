"""
Question bank: models, storage, relevance filtering and replenishment.
"""

from .models import Difficulty, Question, QuestionOrigin, QuestionRef, RawCandidate
from .question_bank import QuestionBankStore
from .replenishment import CollectionStatus, ReplenishmentCoordinator, ReplenishmentResult

__all__ = [
    "Difficulty",
    "Question",
    "QuestionOrigin",
    "QuestionRef",
    "RawCandidate",
    "QuestionBankStore",
    "CollectionStatus",
    "ReplenishmentCoordinator",
    "ReplenishmentResult",
]
