"""
Built-in seed bank and fallback templates.

The seed bank is what every subject starts with and what a reset restores.
Fallback templates are used by replenishment when no external source
produces an acceptable candidate.

A JSON document with the same layout (subject -> list of question
documents) can replace the built-in seed bank via ``seed_questions_path``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from .models import Question, QuestionOrigin

# fmt: off
BUILTIN_QUESTIONS: dict[str, list[dict[str, Any]]] = {
    "Psychiatric Nursing": [
        {"question": "Which neurotransmitter is most associated with schizophrenia?",
         "options": ["Serotonin", "Dopamine", "Acetylcholine", "GABA"], "answer": 1},
        {"question": "What is the priority nursing action for a client expressing suicidal ideation?",
         "options": ["Document the statement", "Ensure client safety", "Call the family", "Administer a sedative"], "answer": 1},
        {"question": "Lithium toxicity is most likely when serum levels exceed:",
         "options": ["0.5 mEq/L", "1.0 mEq/L", "1.5 mEq/L", "0.2 mEq/L"], "answer": 2},
    ],
    "Pediatric Nursing": [
        {"question": "At what age does an infant typically sit without support?",
         "options": ["2 months", "4 months", "6 months", "12 months"], "answer": 2},
        {"question": "Which vaccine is given at birth?",
         "options": ["MMR", "Hepatitis B", "Varicella", "DTaP"], "answer": 1},
        {"question": "The anterior fontanelle usually closes by:",
         "options": ["2 months", "6 months", "12-18 months", "3 years"], "answer": 2},
    ],
    "Obstetrics and Gynecology Nursing": [
        {"question": "What is the normal fetal heart rate range?",
         "options": ["60-100 bpm", "100-110 bpm", "110-160 bpm", "160-200 bpm"], "answer": 2},
        {"question": "Which hormone maintains the corpus luteum in early pregnancy?",
         "options": ["Oxytocin", "hCG", "Prolactin", "FSH"], "answer": 1},
        {"question": "Naegele's rule estimates the date of delivery by adding 7 days to the LMP and:",
         "options": ["Subtracting 3 months", "Adding 3 months", "Subtracting 9 months", "Adding 1 month"], "answer": 0},
    ],
    "Community Health Nursing": [
        {"question": "Primary prevention focuses on:",
         "options": ["Early detection", "Rehabilitation", "Preventing disease before it occurs", "Treating complications"], "answer": 2},
        {"question": "Which measure describes new cases of disease in a population over time?",
         "options": ["Prevalence", "Incidence", "Mortality", "Morbidity ratio"], "answer": 1},
    ],
    "Nursing Administration": [
        {"question": "Which leadership style involves shared decision-making?",
         "options": ["Autocratic", "Democratic", "Laissez-faire", "Bureaucratic"], "answer": 1},
        {"question": "Delegation transfers which of the following to another person?",
         "options": ["Accountability", "Responsibility for a task", "Licensure", "Authority over policy"], "answer": 1},
    ],
    "Nursing Research": [
        {"question": "Which study design provides the strongest evidence for causation?",
         "options": ["Case report", "Cross-sectional survey", "Randomized controlled trial", "Expert opinion"], "answer": 2},
        {"question": "Reliability of an instrument refers to its:",
         "options": ["Accuracy", "Consistency", "Relevance", "Sample size"], "answer": 1},
    ],
    "Medical Surgical Nursing": [
        {"question": "Which position is best for a client with dyspnea?",
         "options": ["Supine", "High Fowler's", "Trendelenburg", "Prone"], "answer": 1},
        {"question": "An early sign of hypoxia is:",
         "options": ["Cyanosis", "Restlessness", "Bradycardia", "Clubbing"], "answer": 1},
        {"question": "Which lab value should be monitored for a client on heparin therapy?",
         "options": ["PT/INR", "aPTT", "Platelet aggregation", "Serum potassium"], "answer": 1},
    ],
    "Fundamentals of Nursing": [
        {"question": "What is the most effective way to prevent the spread of infection?",
         "options": ["Wearing gloves", "Hand hygiene", "Isolation", "Antibiotics"], "answer": 1},
        {"question": "Which site is preferred for an intramuscular injection in adults?",
         "options": ["Dorsogluteal", "Ventrogluteal", "Deltoid for large volumes", "Abdomen"], "answer": 1},
    ],
    "Human Anatomy": [
        {"question": "Which bone is the longest in the human body?",
         "options": ["Tibia", "Humerus", "Femur", "Fibula"], "answer": 2},
        {"question": "The mitral valve is located between the:",
         "options": ["Right atrium and right ventricle", "Left atrium and left ventricle", "Left ventricle and aorta", "Right ventricle and pulmonary artery"], "answer": 1},
    ],
    "Human Physiology": [
        {"question": "What is the normal resting heart rate range?",
         "options": ["40-60 bpm", "60-100 bpm", "100-120 bpm", "120-140 bpm"], "answer": 1},
        {"question": "Which hormone lowers blood glucose?",
         "options": ["Glucagon", "Cortisol", "Insulin", "Epinephrine"], "answer": 2},
    ],
    "Microbiology": [
        {"question": "Which organism is gram-positive?",
         "options": ["E. coli", "Staphylococcus aureus", "Pseudomonas", "Salmonella"], "answer": 1},
        {"question": "Autoclaving sterilizes equipment using:",
         "options": ["Dry heat", "Pressurized steam", "Ultraviolet light", "Ethylene oxide"], "answer": 1},
    ],
    "Sociology": [
        {"question": "What are social determinants of health?",
         "options": ["Genetic factors", "Environmental and social factors", "Medical treatments", "Individual choices"], "answer": 1},
        {"question": "A norm is best described as:",
         "options": ["A written law", "A shared expectation for behavior", "A personal belief", "A biological drive"], "answer": 1},
    ],
    "Nutrition": [
        {"question": "Which vitamin deficiency causes scurvy?",
         "options": ["Vitamin A", "Vitamin C", "Vitamin D", "Vitamin K"], "answer": 1},
        {"question": "Which nutrient provides the most energy per gram?",
         "options": ["Carbohydrate", "Protein", "Fat", "Fiber"], "answer": 2},
    ],
}

FALLBACK_TEMPLATES: dict[str, list[dict[str, Any]]] = {
    "Nursing Administration": [
        {"question": "What is the primary goal of nursing leadership?",
         "options": ["Cost reduction", "Quality patient care", "Staff satisfaction", "Efficiency"], "answer": 1},
        {"question": "Which tool is used to analyze the root cause of an adverse event?",
         "options": ["Gantt chart", "Fishbone diagram", "Pie chart", "Budget variance report"], "answer": 1},
    ],
    "Nursing Research": [
        {"question": "What does a p-value of 0.05 indicate?",
         "options": ["5% chance of Type I error", "95% confidence", "Significant result", "All of the above"], "answer": 3},
        {"question": "Informed consent in research protects the principle of:",
         "options": ["Beneficence", "Autonomy", "Justice", "Fidelity"], "answer": 1},
    ],
    "Human Physiology": [
        {"question": "Which organ primarily regulates fluid and electrolyte balance?",
         "options": ["Liver", "Kidney", "Pancreas", "Spleen"], "answer": 1},
    ],
    "Microbiology": [
        {"question": "Which pathogen causes tuberculosis?",
         "options": ["Mycobacterium tuberculosis", "Streptococcus pneumoniae", "Clostridium difficile", "Candida albicans"], "answer": 0},
    ],
    "Sociology": [
        {"question": "Which factor is a social determinant of health?",
         "options": ["Blood type", "Income level", "Eye color", "Height"], "answer": 1},
    ],
    "Fundamentals of Nursing": [
        {"question": "Which vital sign is measured first in an unresponsive adult?",
         "options": ["Temperature", "Breathing", "Blood pressure", "Pain"], "answer": 1},
    ],
    "Nutrition": [
        {"question": "Which mineral is essential for oxygen transport in blood?",
         "options": ["Calcium", "Iron", "Sodium", "Zinc"], "answer": 1},
    ],
}
# fmt: on


def parse_bank_document(
    data: Any, origin: QuestionOrigin = QuestionOrigin.BUILTIN
) -> dict[str, list[Question]]:
    """Parse a subject -> question documents mapping, dropping bad records."""
    if not isinstance(data, dict):
        raise ValueError("Bank document must be a JSON object")

    bank: dict[str, list[Question]] = {}
    for subject, items in data.items():
        if not isinstance(items, list):
            logger.warning(f"Ignoring non-list bank entry for {subject!r}")
            continue
        questions = []
        for item in items:
            try:
                document = {"source": origin.value, **item}
                questions.append(Question.from_document(document))
            except Exception as e:
                logger.warning(f"Dropping malformed question in {subject!r}: {e}")
        bank[subject] = questions
    return bank


def builtin_bank() -> dict[str, list[Question]]:
    """Fresh copy of the built-in seed bank."""
    return parse_bank_document(BUILTIN_QUESTIONS)


def load_seed_bank(path: Path | None = None) -> dict[str, list[Question]]:
    """
    Load the seed bank from ``path``, or the built-in one.

    An unreadable file falls back to the built-in bank.
    """
    if path is None:
        return builtin_bank()

    try:
        with open(path, encoding="utf-8") as f:
            return parse_bank_document(json.load(f))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load seed bank from {path}: {e}; using built-in set")
        return builtin_bank()


def fallback_questions(subject: str, limit: int = 10) -> list[Question]:
    """Deterministic fallback questions for ``subject`` (may be empty)."""
    templates = FALLBACK_TEMPLATES.get(subject, [])[: max(0, limit)]
    return [
        Question.from_document({**template, "source": QuestionOrigin.FALLBACK.value})
        for template in templates
    ]


def count_document_file(path: Path) -> dict[str, int]:
    """Per-subject question counts of a seed document file, as stored."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Bank document must be a JSON object")
    return {
        subject: len(items) if isinstance(items, list) else 0 for subject, items in data.items()
    }
