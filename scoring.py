"""
Confidence scoring for AI advice.

confidence = 40% provider reliability + 40% response quality + 20% profile completeness
"""

from typing import Optional
import re

from models import EXAMS, ExamStatus

RELIABILITY_WEIGHT = 0.4
QUALITY_WEIGHT = 0.4
COMPLETENESS_WEIGHT = 0.2

REFUSAL_PHRASES = (
    "i'm sorry",
    "i am sorry",
    "i cannot",
    "i can't",
    "as an ai",
    "unable to",
    "error",
    "high traffic",
)

STRUCTURE_PATTERN = re.compile(r"[,;:]")
CURRENCY_PATTERN = re.compile(r"[$€£₹]")
JSON_PATTERN = re.compile(r"```|[\[\]{}]")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))

def score_response_quality(text: Optional[str]) -> float:
    """
    Heuristic quality of a model reply.

    Args:
        text: Reply text

    Returns:
        Score from 0-1 (empty text scores 0)
    """
    if not text or not text.strip():
        return 0.0

    stripped = text.strip()
    lowered = stripped.lower()
    score = 0.5

    # Length
    if len(stripped) < 50:
        score -= 0.3
    elif len(stripped) < 200:
        score -= 0.1
    elif len(stripped) >= 500:
        score += 0.2

    # Error / refusal language
    if any(phrase in lowered for phrase in REFUSAL_PHRASES):
        score -= 0.3

    # Structure
    if STRUCTURE_PATTERN.search(stripped):
        score += 0.1
    if CURRENCY_PATTERN.search(stripped):
        score += 0.1
    if JSON_PATTERN.search(stripped):
        score += 0.1

    return _clamp(score)

def score_confidence(
    provider_reliability: float,
    response_quality: float,
    profile_completeness_pct: float,
) -> int:
    """Weighted confidence in 0-100. Each input is clamped before weighting."""
    reliability = _clamp(provider_reliability)
    quality = _clamp(response_quality)
    completeness = _clamp(profile_completeness_pct / 100.0)

    combined = (
        RELIABILITY_WEIGHT * reliability
        + QUALITY_WEIGHT * quality
        + COMPLETENESS_WEIGHT * completeness
    )
    return int(_clamp(round(combined * 100), 0, 100))

def profile_completeness(profile, floor: bool = True) -> float:
    """
    Share of the key profile checklist that is filled in.

    Checklist: GPA, any exam started or scored, target countries, budget,
    major or field of study. With `floor` the result is 50 + 50 * fraction,
    so a profile that exists never scores below 50. No profile scores 0.
    """
    if profile is None:
        return 0.0

    has_exam = any(
        (getattr(profile, f"{exam}_status", None) not in (None, "", ExamStatus.NOT_STARTED.value))
        or getattr(profile, f"{exam}_score", None) is not None
        for exam in EXAMS
    )
    checklist = [
        profile.gpa is not None,
        has_exam,
        bool(profile.preferred_countries),
        profile.budget_min is not None or profile.budget_max is not None,
        bool(profile.major or profile.field_of_study),
    ]
    fraction = sum(checklist) / len(checklist)

    if floor:
        return 50.0 + 50.0 * fraction
    return 100.0 * fraction
