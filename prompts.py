# AI Counsellor Prompts
# =====================
# Prompt builders are deterministic: the same profile context gives the same prompt.

import json
from typing import Dict, Optional

SYSTEM_PROMPT = """
You are AI Counsellor, an expert study-abroad mentor helping students plan
university applications worldwide.

## Guidelines
- Be encouraging and supportive
- Provide actionable, specific advice
- Mention concrete universities, exams and deadlines when relevant
- Keep chat answers concise (2-4 sentences)
- When asked for JSON, return ONLY valid JSON with no commentary
"""


def get_system_prompt():
    """Returns the AI Counsellor system prompt."""
    return SYSTEM_PROMPT


def _profile_block(ctx: Dict[str, str]) -> str:
    return f"""Student Profile:
- Education: {ctx['education_level']} ({ctx['degree']}, {ctx['major']})
- GPA: {ctx['gpa']}
- Target Degree: {ctx['intended_degree']} in {ctx['field_of_study']}
- Target Intake: {ctx['target_intake_year']}
- Preferred Countries: {ctx['preferred_countries']}
- Budget: {ctx['budget']} (Funding: {ctx['funding_plan']})
- Exams: {ctx['exams']}
- SOP Status: {ctx['sop_status']}"""


def chat_system_prompt(ctx: Dict[str, str]) -> str:
    return f"{SYSTEM_PROMPT}\n{_profile_block(ctx)}"


def recommend_prompt(ctx: Dict[str, str]) -> str:
    return f"""Based on the following student profile, recommend 8 universities (mix of Dream, Target, Safe).

{_profile_block(ctx)}

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "name": "University Name",
    "country": "Country",
    "category": "Dream/Target/Safe",
    "acceptanceChance": "Low/Medium/High",
    "costLevel": "Low/Medium/High",
    "program": "Program Name",
    "tuitionFee": "$X,XXX",
    "whyFits": "2-3 reason sentences",
    "risks": ["Risk 1", "Risk 2"]
  }}
]

Be realistic and specific. Only the JSON array, no other text."""


def analyze_prompt(ctx: Dict[str, str]) -> str:
    return f"""Analyze this student profile and provide honest feedback.

{_profile_block(ctx)}

Return ONLY valid JSON:
{{"strengths": ["..."], "gaps": ["..."], "actionItems": ["..."], "timeline": "..."}}"""


def predict_prompt(ctx: Dict[str, str], university: Optional[Dict] = None) -> str:
    target = "a typical university matching their goals"
    if university:
        target = f"this university: {json.dumps(university, sort_keys=True)}"

    return f"""Predict the student's realistic chance of acceptance to {target}.

{_profile_block(ctx)}

Provide:
1. Acceptance probability (Low/Medium/High)
2. Key strengths (2-3 points)
3. Areas to improve (2-3 points)
4. Confidence level (0-100)

Return ONLY valid JSON:
{{"probability": "High", "confidence": 85, "strengths": [], "improvements": []}}"""


def sop_review_prompt(sop_text: str, ctx: Dict[str, str]) -> str:
    return f"""Review this Statement of Purpose for a {ctx['intended_degree']} application in {ctx['field_of_study']}:

\"\"\"{sop_text}\"\"\"

Give feedback on:
1. Clarity (is the motivation clear?)
2. Structure (good flow?)
3. Grammar (any errors?)
4. Impact (compelling?)

Return ONLY valid JSON:
{{"clarity": "...", "structure": "...", "grammar": "...", "impact": "...", "suggestions": ["3-5 specific improvements"]}}"""
