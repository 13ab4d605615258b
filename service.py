"""
AI counselling services.

Every advice operation follows one template: load the profile, build a
deterministic prompt, route it through the fallback executor, parse the
reply and attach confidence metadata. Unparseable replies are replaced by
fixed fallback payloads, so advice calls always answer with HTTP 200.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import json
import logging
import math
import re

from sqlalchemy.orm import Session

import crud
import schemas
from ai_context import build_profile_context, build_messages, format_university_for_ai
from classifier import select_providers
from config import settings
from database import normalize_country
from errors import ProfileMissing, ValidationError
from fallback import ExecutionResult, FallbackExecutor
from models import CategoryEnum, LevelEnum, User
from prompts import (
    get_system_prompt, chat_system_prompt, recommend_prompt, analyze_prompt,
    predict_prompt, sop_review_prompt,
)
from scoring import profile_completeness, score_confidence, score_response_quality

logger = logging.getLogger(__name__)

# Routing text per operation, fed to the query classifier
INTENTS = {
    "recommend": "recommend universities",
    "analyze": "analyze profile strengths and gaps",
    "predict": "predict admission chances",
    "review_sop": "explain how to improve this statement of purpose",
}

FALLBACK_UNIVERSITIES = [
    {
        "name": "Arizona State University",
        "country": "United States",
        "category": CategoryEnum.SAFE,
        "acceptance_chance": LevelEnum.HIGH,
        "cost_level": LevelEnum.MEDIUM,
        "tuition_fee": 32000,
        "why_fits": "Affordable tuition with strong graduate programs in your field",
        "risks": ["Large student body"],
    },
    {
        "name": "University of Toronto",
        "country": "Canada",
        "category": CategoryEnum.TARGET,
        "acceptance_chance": LevelEnum.MEDIUM,
        "cost_level": LevelEnum.MEDIUM,
        "tuition_fee": 45000,
        "why_fits": "Excellent ranking with lower cost than the USA",
        "risks": ["Competitive admission"],
    },
]

FALLBACK_ANALYSIS = {
    "strengths": ["You have a clear target degree", "Your profile is set up for planning"],
    "gaps": ["Standardized test scores may be missing", "SOP may need more work"],
    "action_items": [
        "Complete IELTS/TOEFL preparation",
        "Draft your Statement of Purpose",
        "Shortlist 6-8 universities across Dream, Target and Safe",
    ],
    "timeline": "Start test preparation now and aim to submit applications 3-4 months before deadlines.",
}

FALLBACK_PREDICTION = {
    "probability": LevelEnum.MEDIUM,
    "confidence": 65,
    "strengths": ["Strong academic background", "Clear career goals"],
    "improvements": ["Consider standardized test prep", "Build relevant experience"],
}

FALLBACK_SOP_FEEDBACK = {
    "clarity": "Make your motivation for this program explicit in the opening paragraph.",
    "structure": "Follow a clear arc: background, experience, goals, and why this program.",
    "grammar": "Proofread carefully and keep sentences short and direct.",
    "impact": "Use concrete achievements and outcomes instead of general statements.",
    "suggestions": [
        "Open with a specific moment that sparked your interest",
        "Quantify achievements where possible",
        "Connect your goals to specific courses or faculty",
        "End with a forward-looking statement about your career",
    ],
}

MONEY_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")
MAX_MONEY = 2**31 - 1


# JSON extraction
def clean_json(text: Optional[str]) -> str:
    """
    Extract the JSON span from a model reply.

    Takes everything from the first `[` or `{` to the last matching closer.
    Without brackets, strips markdown code fences.
    """
    if not text:
        return ""

    starts = [i for i in (text.find("["), text.find("{")) if i != -1]
    if starts:
        start = min(starts)
        closer = "]" if text[start] == "[" else "}"
        end = text.rfind(closer)
        if end > start:
            return text[start:end + 1]

    return text.replace("```json", "").replace("```", "").strip()

def parse_json_reply(text: Optional[str]) -> Any:
    """Parse a model reply as JSON. Raises ValueError when it is not JSON."""
    cleaned = clean_json(text)
    if not cleaned:
        raise ValueError("Empty reply")
    return json.loads(cleaned)


# Normalization
def parse_money(value) -> Optional[int]:
    """'$32,000' -> 32000, '$30,000 - $40,000' -> 30000, 45000.5 -> 45000

    Non-finite, negative or oversized amounts give None; the column is a 32-bit integer.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = value
    else:
        match = MONEY_PATTERN.search(str(value))
        if not match:
            return None
        amount = match.group(0).replace(",", "")
    try:
        amount = float(amount)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(amount) or amount < 0 or amount > MAX_MONEY:
        return None
    return int(amount)

def _coerce_enum(value, enum_cls, default):
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    return default

def _pick(item: Dict, *keys):
    for key in keys:
        if item.get(key) not in (None, ""):
            return item[key]
    return None

def normalize_recommendation(item: Dict, default_program: Optional[str] = None) -> Optional[Dict]:
    """
    Convert one model-produced university object into UniversityCreate fields.
    Returns None for items without a name.
    """
    if not isinstance(item, dict):
        return None
    name = _pick(item, "name", "university", "universityName")
    if not name or not str(name).strip():
        return None

    risks = _pick(item, "risks", "risk") or []
    if isinstance(risks, str):
        risks = [risks]

    data = schemas.UniversityCreate(
        name=str(name).strip(),
        country=normalize_country(str(_pick(item, "country") or "")) or None,
        program=_pick(item, "program", "programName") or default_program,
        category=_coerce_enum(_pick(item, "category"), CategoryEnum, CategoryEnum.TARGET),
        tuition_fee=parse_money(_pick(item, "tuitionFee", "tuition_fee", "tuition")),
        cost_level=_coerce_enum(_pick(item, "costLevel", "cost_level"), LevelEnum, LevelEnum.MEDIUM),
        acceptance_chance=_coerce_enum(
            _pick(item, "acceptanceChance", "acceptance_chance"), LevelEnum, LevelEnum.MEDIUM
        ),
        why_fits=_pick(item, "whyFits", "why_fits", "reason"),
        risks=[str(risk) for risk in risks],
        required_gpa=_pick(item, "requiredGpa", "required_gpa"),
        required_ielts=_pick(item, "requiredIelts", "required_ielts"),
    )
    return data.model_dump()


# Execution helpers
async def _run(
    executor: FallbackExecutor,
    messages: List[Dict[str, str]],
    intent: str,
) -> ExecutionResult:
    preferred = select_providers(intent)
    logger.info(f"[LOGIC] Routing '{intent[:60]}' to {preferred}")
    return await executor.execute(messages, preferred)

def build_metadata(result: ExecutionResult, profile, fallback: bool) -> schemas.AdviceMetadata:
    confidence = score_confidence(
        result.reliability,
        score_response_quality(result.text),
        profile_completeness(profile),
    )
    return schemas.AdviceMetadata(
        model=result.provider_used,
        model_name=result.model,
        specialization=result.specialization,
        confidence=confidence,
        attempts=result.attempt_count,
        succeeded=result.succeeded,
        fallback=fallback,
        generated_at=datetime.now(timezone.utc),
    )

def _require_profile(db: Session, user: User):
    profile = crud.get_profile(db, user.id)
    if profile is None:
        raise ProfileMissing()
    return profile


# Advice operations
async def chat(
    db: Session,
    user: User,
    executor: FallbackExecutor,
    request: schemas.ChatRequest,
) -> schemas.ChatResponse:
    profile = crud.get_profile(db, user.id)
    ctx = build_profile_context(profile)

    history = [turn.model_dump() for turn in request.conversation_history]
    if request.session_id:
        conversation = crud.get_conversation(db, user.id, request.session_id)
        if conversation and conversation.messages:
            history = list(conversation.messages)
    history = history[-settings.CHAT_HISTORY_LIMIT:] if settings.CHAT_HISTORY_LIMIT > 0 else []

    messages = build_messages(chat_system_prompt(ctx), request.message, history)
    result = await _run(executor, messages, request.message)

    if request.session_id:
        crud.append_conversation_turns(
            db,
            user.id,
            request.session_id,
            [
                {"role": "user", "content": request.message},
                {"role": "assistant", "content": result.text},
            ],
        )

    return schemas.ChatResponse(
        message=result.text,
        session_id=request.session_id,
        metadata=build_metadata(result, profile, fallback=not result.succeeded),
    )

async def recommend_universities(
    db: Session,
    user: User,
    executor: FallbackExecutor,
) -> schemas.RecommendResponse:
    profile = _require_profile(db, user)
    ctx = build_profile_context(profile)
    messages = build_messages(get_system_prompt(), recommend_prompt(ctx))
    result = await _run(executor, messages, INTENTS["recommend"])

    items: List[Dict] = []
    try:
        parsed = parse_json_reply(result.text)
        if isinstance(parsed, dict):
            parsed = parsed.get("universities", [])
        if not isinstance(parsed, list):
            raise ValueError("Expected a JSON array of universities")
        for raw in parsed:
            try:
                normalized = normalize_recommendation(raw, profile.field_of_study)
            except (ValueError, TypeError, OverflowError) as e:
                logger.warning(f"[WARNING] Skipping malformed recommendation: {str(e)}")
                continue
            if normalized:
                items.append(normalized)
        if not items:
            raise ValueError("No usable universities in reply")
    except ValueError as e:
        logger.warning(f"[WARNING] Recommendation parse failed, serving fallback list: {str(e)}")
        universities = [
            schemas.UniversityResponse(program=profile.field_of_study, **entry)
            for entry in FALLBACK_UNIVERSITIES
        ]
        return schemas.RecommendResponse(
            universities=universities,
            metadata=build_metadata(result, profile, fallback=True),
        )

    created = crud.replace_recommendations(db, user, items)
    return schemas.RecommendResponse(
        universities=[schemas.UniversityResponse.model_validate(u) for u in created],
        metadata=build_metadata(result, profile, fallback=False),
    )

async def analyze_profile(
    db: Session,
    user: User,
    executor: FallbackExecutor,
) -> schemas.AnalyzeResponse:
    profile = _require_profile(db, user)
    ctx = build_profile_context(profile)
    messages = build_messages(get_system_prompt(), analyze_prompt(ctx))
    result = await _run(executor, messages, INTENTS["analyze"])

    fallback = False
    try:
        parsed = parse_json_reply(result.text)
        if not isinstance(parsed, dict):
            raise ValueError("Expected a JSON object")
        analysis = schemas.AnalysisPayload.model_validate(parsed)
    except (ValueError, TypeError) as e:
        logger.warning(f"[WARNING] Analysis parse failed, serving fallback: {str(e)}")
        analysis = schemas.AnalysisPayload(**FALLBACK_ANALYSIS)
        fallback = True

    return schemas.AnalyzeResponse(
        analysis=analysis,
        metadata=build_metadata(result, profile, fallback=fallback),
    )

async def predict_chances(
    db: Session,
    user: User,
    executor: FallbackExecutor,
    request: schemas.PredictRequest,
) -> schemas.PredictResponse:
    profile = _require_profile(db, user)
    university = None
    if request.university_id is not None:
        university = format_university_for_ai(crud.get_university(db, user.id, request.university_id))

    ctx = build_profile_context(profile)
    messages = build_messages(get_system_prompt(), predict_prompt(ctx, university))
    result = await _run(executor, messages, INTENTS["predict"])

    fallback = False
    try:
        parsed = parse_json_reply(result.text)
        if not isinstance(parsed, dict):
            raise ValueError("Expected a JSON object")
        prediction = schemas.PredictionPayload.model_validate(parsed)
    except (ValueError, TypeError) as e:
        logger.warning(f"[WARNING] Prediction parse failed, serving fallback: {str(e)}")
        prediction = schemas.PredictionPayload(**FALLBACK_PREDICTION)
        fallback = True

    return schemas.PredictResponse(
        prediction=prediction,
        university_id=request.university_id,
        metadata=build_metadata(result, profile, fallback=fallback),
    )

async def review_sop(
    db: Session,
    user: User,
    executor: FallbackExecutor,
    request: schemas.SopReviewRequest,
) -> schemas.SopReviewResponse:
    if not request.sop_text or not request.sop_text.strip():
        raise ValidationError("Missing required fields", fields=["sopText"])

    profile = crud.get_profile(db, user.id)
    ctx = build_profile_context(profile)
    messages = build_messages(get_system_prompt(), sop_review_prompt(request.sop_text.strip(), ctx))
    result = await _run(executor, messages, INTENTS["review_sop"])

    fallback = False
    try:
        parsed = parse_json_reply(result.text)
        if not isinstance(parsed, dict):
            raise ValueError("Expected a JSON object")
        feedback = schemas.SopFeedback.model_validate(parsed)
    except (ValueError, TypeError) as e:
        logger.warning(f"[WARNING] SOP review parse failed, serving fallback: {str(e)}")
        feedback = schemas.SopFeedback(**FALLBACK_SOP_FEEDBACK)
        fallback = True

    return schemas.SopReviewResponse(
        feedback=feedback,
        metadata=build_metadata(result, profile, fallback=fallback),
    )
