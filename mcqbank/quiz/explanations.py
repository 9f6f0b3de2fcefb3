"""
Explanation generator for seed banks.

Fills in a short teaching explanation for questions that have none (or
only a stub). Subjects with their own rules pick a template by keywords in
the question text; everything else gets a generic template chosen by the
subject name.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .models import Question
from .seed_data import parse_bank_document

# Explanations this short are treated as missing.
MIN_EXPLANATION_LENGTH = 20

# subject -> ([(trigger words, template), ...], default template)
# Templates are formatted with {answer}.
SUBJECT_RULES: dict[str, tuple[list[tuple[tuple[str, ...], str]], str]] = {
    "Psychiatric Nursing": (
        [
            (("neurotransmitter",),
             "This question relates to neurotransmitter function in psychiatric disorders. "
             "{answer} is correct because it plays a crucial role in the pathophysiology and "
             "treatment of mental health conditions."),
            (("therapy", "cbt"),
             "{answer} is the evidence-based approach supported by research and recommended "
             "by professional guidelines for this condition."),
            (("medication", "antipsychotic", "antidepressant"),
             "{answer} is correct based on the medication's mechanism of action, side effect "
             "profile and clinical indications."),
        ],
        "{answer} is the correct answer based on evidence-based psychiatric nursing practice.",
    ),
    "Medical Surgical Nursing": (
        [
            (("cardiac", "heart"),
             "{answer} is correct based on cardiovascular physiology and pathophysiology. "
             "This knowledge is essential for recognizing early signs of complications."),
            (("respiratory", "oxygen", "breathing"),
             "{answer} represents the best practice for respiratory care of patients with "
             "breathing difficulties."),
            (("surgery", "postoperative", "preoperative"),
             "{answer} is the evidence-based practice for perioperative care and helps "
             "prevent complications."),
        ],
        "{answer} is correct according to medical-surgical nursing standards.",
    ),
    "Pediatric Nursing": (
        [
            (("development", "milestone"),
             "{answer} reflects normal child development patterns. Knowing milestones helps "
             "identify delays early."),
            (("vaccine", "immunization"),
             "{answer} follows current immunization guidelines."),
            (("safety", "injury"),
             "{answer} represents the best safety practice for children."),
        ],
        "{answer} is correct based on pediatric nursing principles of age-appropriate, "
        "family-centered care.",
    ),
    "Fundamentals of Nursing": (
        [
            (("vital signs", "temperature", "blood pressure"),
             "{answer} is the most accurate and reliable method. Proper vital sign assessment "
             "is essential for detecting changes in patient condition."),
            (("infection", "hygiene", "handwashing"),
             "{answer} follows evidence-based infection control practice."),
            (("communication", "therapeutic"),
             "{answer} demonstrates therapeutic communication principles."),
        ],
        "{answer} represents fundamental nursing knowledge essential for safe practice.",
    ),
    "Human Anatomy": (
        [
            (("muscle", "muscular"),
             "{answer} is correct based on muscle structure and function."),
            (("bone", "skeleton"),
             "{answer} reflects normal skeletal anatomy."),
            (("nerve", "nervous"),
             "{answer} is the correct location or function within the nervous system."),
        ],
        "{answer} represents accurate anatomical knowledge.",
    ),
    "Human Physiology": (
        [
            (("heart", "cardiac", "circulation"),
             "{answer} is correct based on cardiovascular physiology."),
            (("kidney", "renal", "urine"),
             "{answer} reflects normal renal physiology and fluid balance."),
            (("hormone", "endocrine"),
             "{answer} is accurate based on endocrine physiology and hormonal regulation."),
        ],
        "{answer} represents normal physiological function.",
    ),
    "Nursing Research": (
        [
            (("p-value", "statistical"),
             "{answer} is correct based on statistical principles for interpreting "
             "research findings."),
            (("study design", "methodology"),
             "{answer} is the most appropriate research design for this type of study."),
            (("validity", "reliability"),
             "{answer} is essential for research quality and evaluating evidence."),
        ],
        "{answer} reflects evidence-based research principles.",
    ),
    "Microbiology": (
        [
            (("bacteria", "bacterial"),
             "{answer} is correct based on bacterial characteristics and behavior."),
            (("antibiotic", "resistance"),
             "{answer} reflects current understanding of antimicrobial therapy and "
             "resistance patterns."),
            (("sterilization", "disinfection"),
             "{answer} is the most effective method for eliminating microorganisms."),
        ],
        "{answer} is correct based on microbiological principles of infection control.",
    ),
}


@dataclass
class ExplanationStats:
    """Coverage after a generation pass."""

    total: int = 0
    with_explanation: int = 0
    generated: int = 0

    @property
    def coverage_percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.with_explanation / self.total * 100)


def needs_explanation(question: Question) -> bool:
    return question.explanation is None or len(question.explanation.strip()) <= MIN_EXPLANATION_LENGTH


def _generic_explanation(subject: str, answer: str) -> str:
    lowered = subject.lower()
    if "nursing" in lowered:
        return (
            f"{answer} is the correct answer based on evidence-based {lowered} practice. "
            "This knowledge is essential for safe, competent care in this specialty."
        )
    if "nutrition" in lowered:
        return (
            f"{answer} is correct based on nutritional science and dietary guidelines."
        )
    if "sociology" in lowered:
        return (
            f"{answer} reflects social and cultural factors that impact health and "
            "culturally competent care."
        )
    return (
        f"{answer} is the correct answer based on current evidence and best practice "
        f"in {lowered}."
    )


def generate_explanation(subject: str, question: Question) -> str:
    """Explanation text for ``question`` in ``subject``."""
    answer = question.correct_option
    rules = SUBJECT_RULES.get(subject)
    if rules is None:
        return _generic_explanation(subject, answer)

    branches, default = rules
    text = question.text.lower()
    for triggers, template in branches:
        if any(trigger in text for trigger in triggers):
            return template.format(answer=answer)
    return default.format(answer=answer)


def add_explanations(
    bank: dict[str, list[Question]],
) -> tuple[dict[str, list[Question]], ExplanationStats]:
    """Copy of ``bank`` with explanations filled in, plus coverage stats."""
    stats = ExplanationStats()
    updated: dict[str, list[Question]] = {}

    for subject, questions in bank.items():
        result = []
        for question in questions:
            stats.total += 1
            if needs_explanation(question):
                question = question.with_explanation(generate_explanation(subject, question))
                stats.generated += 1
            stats.with_explanation += 1
            result.append(question)
        updated[subject] = result
        logger.debug(f"Processed {subject}: {len(questions)} questions")

    return updated, stats


def explain_document_file(path: Path, output: Path | None = None) -> ExplanationStats:
    """
    Fill explanations in a seed document file.

    Writes to ``output`` (default: in place). Raises OSError / ValueError
    when the file cannot be read or is not a bank document.
    """
    with open(path, encoding="utf-8") as f:
        bank = parse_bank_document(json.load(f))

    updated, stats = add_explanations(bank)
    document = {
        subject: [q.to_document() for q in questions] for subject, questions in updated.items()
    }

    target = output or path
    with open(target, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=4, ensure_ascii=False)

    logger.info(
        f"Explanations: {stats.generated} generated, {stats.coverage_percent}% coverage "
        f"({target})"
    )
    return stats
