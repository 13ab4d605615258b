# AI Counsellor Context Builder
# ==============================
# Builds the context sent to AI: profile display values and the final message list

from typing import Dict, List, Optional

from models import EXAMS

NOT_PROVIDED = "Not provided"


def _display(value, default: str = NOT_PROVIDED) -> str:
    if value is None or value == "" or value == []:
        return default
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def build_profile_context(profile) -> Dict[str, str]:
    """
    Flatten a profile into display strings for prompt templates.

    Args:
        profile: Profile row or None

    Returns:
        Dict of prompt-ready strings; absent values read "Not provided"
    """
    if profile is None:
        return {
            "gpa": NOT_PROVIDED,
            "education_level": NOT_PROVIDED,
            "degree": NOT_PROVIDED,
            "major": NOT_PROVIDED,
            "intended_degree": NOT_PROVIDED,
            "field_of_study": NOT_PROVIDED,
            "target_intake_year": NOT_PROVIDED,
            "preferred_countries": NOT_PROVIDED,
            "budget": NOT_PROVIDED,
            "funding_plan": NOT_PROVIDED,
            "exams": NOT_PROVIDED,
            "sop_status": NOT_PROVIDED,
        }

    exams = []
    for exam in EXAMS:
        status = getattr(profile, f"{exam}_status", None)
        score = getattr(profile, f"{exam}_score", None)
        if score is not None:
            exams.append(f"{exam.upper()} {score:g}")
        elif status:
            exams.append(f"{exam.upper()} {status}")

    if profile.budget_min is None and profile.budget_max is None:
        budget = NOT_PROVIDED
    else:
        budget = f"${_display(profile.budget_min, '?')} - ${_display(profile.budget_max, '?')} per year"

    return {
        "gpa": _display(profile.gpa),
        "education_level": _display(profile.education_level),
        "degree": _display(profile.degree),
        "major": _display(profile.major),
        "intended_degree": _display(profile.intended_degree),
        "field_of_study": _display(profile.field_of_study),
        "target_intake_year": _display(profile.target_intake_year),
        "preferred_countries": _display(profile.preferred_countries),
        "budget": budget,
        "funding_plan": _display(profile.funding_plan),
        "exams": _display(exams),
        "sop_status": _display(profile.sop_status),
    }


def format_university_for_ai(university) -> Dict:
    """
    Format a university row into AI-friendly JSON.

    Args:
        university: University row

    Returns:
        Formatted university dict
    """
    return {
        "name": university.name,
        "country": university.country,
        "program": university.program,
        "category": university.category,
        "required_gpa": university.required_gpa,
        "required_ielts": university.required_ielts,
    }


def build_messages(
    system_prompt: Optional[str],
    user_prompt: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> List[Dict[str, str]]:
    """System prompt, then prior turns in order, then the new user prompt."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for turn in history or []:
        messages.append({"role": turn["role"], "content": turn["content"]})
    messages.append({"role": "user", "content": user_prompt})
    return messages
