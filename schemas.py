"""
Pydantic schemas for API requests and responses.

Wire format is camelCase (``onboardingCompleted``, ``profileStrength``);
requests also accept the snake_case field names.
"""

from datetime import datetime
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from models import (
    StageEnum, CategoryEnum, UniversityStatus, LevelEnum, EducationLevel, IntendedDegree,
    FundingPlan, ExamStatus, SopStatus, AcademicsStrength, ExamsStrength, DocumentsStrength,
    TodoCategory, TodoPriority,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


# Auth Schemas
class RegisterRequest(CamelModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)

class LoginRequest(CamelModel):
    email: EmailStr
    password: str

class UserResponse(CamelModel):
    id: int
    full_name: str
    email: str
    onboarding_completed: bool = False
    current_stage: StageEnum = StageEnum.BUILDING_PROFILE

class AuthResponse(CamelModel):
    token: str
    user: UserResponse

# Profile Schemas
class ExamRecord(CamelModel):
    status: ExamStatus = ExamStatus.NOT_STARTED
    score: Optional[float] = None

    @field_validator("score", mode="before")
    @classmethod
    def blank_score(cls, value):
        return _blank_to_none(value)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return _blank_to_none(value) or ExamStatus.NOT_STARTED

class BudgetRange(CamelModel):
    min: Optional[int] = None
    max: Optional[int] = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def blank_bounds(cls, value):
        return _blank_to_none(value)

class ProfileStrength(CamelModel):
    academics: AcademicsStrength = AcademicsStrength.WEAK
    exams: ExamsStrength = ExamsStrength.NOT_STARTED
    documents: DocumentsStrength = DocumentsStrength.NOT_STARTED

class ProfileUpsert(CamelModel):
    """Create-or-update payload. Required fields are checked after merging with the stored profile."""
    current_education_level: Optional[EducationLevel] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    gpa: Optional[float] = Field(default=None, ge=0)
    intended_degree: Optional[IntendedDegree] = None
    field_of_study: Optional[str] = None
    target_intake_year: Optional[int] = None
    preferred_countries: Optional[List[str]] = None
    budget_per_year: Optional[BudgetRange] = None
    funding_plan: Optional[FundingPlan] = None
    ielts: Optional[ExamRecord] = None
    toefl: Optional[ExamRecord] = None
    gre: Optional[ExamRecord] = None
    gmat: Optional[ExamRecord] = None
    sop_status: Optional[SopStatus] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_blank(cls, value):
        return _blank_to_none(value)

class ProfileResponse(CamelModel):
    id: int
    user_id: int
    current_education_level: EducationLevel
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    gpa: Optional[float] = None
    intended_degree: IntendedDegree
    field_of_study: Optional[str] = None
    target_intake_year: Optional[int] = None
    preferred_countries: List[str] = []
    budget_per_year: BudgetRange = Field(default_factory=BudgetRange)
    funding_plan: Optional[FundingPlan] = None
    ielts: ExamRecord = Field(default_factory=ExamRecord)
    toefl: ExamRecord = Field(default_factory=ExamRecord)
    gre: ExamRecord = Field(default_factory=ExamRecord)
    gmat: ExamRecord = Field(default_factory=ExamRecord)
    sop_status: SopStatus = SopStatus.NOT_STARTED
    profile_strength: ProfileStrength = Field(default_factory=ProfileStrength)
    updated_at: Optional[datetime] = None

# Profile Strength Report Schemas
class SectionStrength(CamelModel):
    status: str = "missing" # strong / average / weak / missing
    score: int = 0
    max_score: int = 0

class ProfileSections(CamelModel):
    academics: SectionStrength = Field(default_factory=lambda: SectionStrength(max_score=30))
    exams: SectionStrength = Field(default_factory=lambda: SectionStrength(max_score=25))
    sop: SectionStrength = Field(default_factory=lambda: SectionStrength(max_score=20))
    documents: SectionStrength = Field(default_factory=lambda: SectionStrength(max_score=15))
    preferences: SectionStrength = Field(default_factory=lambda: SectionStrength(max_score=10))

class ProfileStrengthReport(CamelModel):
    profile_strength: ProfileStrength
    overall_score: int = 0
    completeness: int = 0
    sections: ProfileSections = Field(default_factory=ProfileSections)
    next_actions: List[str] = []

# University Schemas
class UniversityCreate(CamelModel):
    name: str = Field(min_length=1)
    country: Optional[str] = None
    program: Optional[str] = None
    category: CategoryEnum = CategoryEnum.TARGET
    tuition_fee: Optional[int] = None
    cost_level: LevelEnum = LevelEnum.MEDIUM
    acceptance_chance: LevelEnum = LevelEnum.MEDIUM
    why_fits: Optional[str] = None
    risks: List[str] = []
    required_gpa: Optional[float] = None
    required_ielts: Optional[float] = None

    @field_validator("risks", mode="before")
    @classmethod
    def coerce_risks(cls, value):
        return _as_list(value)

class UniversityResponse(CamelModel):
    id: Optional[int] = None # Fallback recommendations are not persisted
    name: str
    country: Optional[str] = None
    program: Optional[str] = None
    category: CategoryEnum = CategoryEnum.TARGET
    status: UniversityStatus = UniversityStatus.RECOMMENDED
    tuition_fee: Optional[int] = None
    cost_level: LevelEnum = LevelEnum.MEDIUM
    acceptance_chance: LevelEnum = LevelEnum.MEDIUM
    why_fits: Optional[str] = None
    risks: List[str] = []
    required_gpa: Optional[float] = None
    required_ielts: Optional[float] = None

    @field_validator("risks", mode="before")
    @classmethod
    def coerce_risks(cls, value):
        return _as_list(value)

class UniversityListResponse(CamelModel):
    universities: List[UniversityResponse] = []
    count: int = 0

# ToDo Schemas
class TodoCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: TodoCategory = TodoCategory.GENERAL
    priority: TodoPriority = TodoPriority.MEDIUM
    deadline: Optional[datetime] = None
    university_id: Optional[int] = None

class TodoUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[TodoCategory] = None
    priority: Optional[TodoPriority] = None
    deadline: Optional[datetime] = None
    completed: Optional[bool] = None

class TodoResponse(CamelModel):
    id: int
    university_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    category: TodoCategory = TodoCategory.GENERAL
    priority: TodoPriority = TodoPriority.MEDIUM
    deadline: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None

class TodoListResponse(CamelModel):
    todos: List[TodoResponse] = []
    count: int = 0

class AutoGenerateResponse(TodoListResponse):
    generated: bool = False

class UniversityActionResponse(CamelModel):
    message: str
    university: UniversityResponse
    todos: List[TodoResponse] = []

# AI Counsel Schemas
class ChatTurn(CamelModel):
    role: Literal["user", "assistant"]
    content: str

class ChatRequest(CamelModel):
    message: str = Field(min_length=1)
    session_id: Optional[str] = None
    conversation_history: List[ChatTurn] = []

class AdviceMetadata(CamelModel):
    model: str
    model_name: Optional[str] = None
    specialization: Optional[str] = None
    confidence: int = 0
    attempts: int = 0
    succeeded: bool = False
    fallback: bool = False
    generated_at: datetime

class ChatResponse(CamelModel):
    message: str
    session_id: Optional[str] = None
    metadata: AdviceMetadata

class ConversationResponse(CamelModel):
    session_id: str
    messages: List[ChatTurn] = []

class RecommendResponse(CamelModel):
    universities: List[UniversityResponse] = []
    metadata: AdviceMetadata

class AnalysisPayload(CamelModel):
    strengths: List[str] = []
    gaps: List[str] = []
    action_items: List[str] = []
    timeline: str = ""

    @field_validator("strengths", "gaps", "action_items", mode="before")
    @classmethod
    def coerce_lists(cls, value):
        return _as_list(value)

    @field_validator("timeline", mode="before")
    @classmethod
    def join_timeline(cls, value):
        if isinstance(value, list):
            return " ".join(str(item) for item in value)
        return value or ""

class AnalyzeResponse(CamelModel):
    analysis: AnalysisPayload
    metadata: AdviceMetadata

class PredictRequest(CamelModel):
    university_id: Optional[int] = None

class PredictionPayload(CamelModel):
    probability: LevelEnum = LevelEnum.MEDIUM
    confidence: int = Field(default=0, ge=0, le=100)
    strengths: List[str] = []
    improvements: List[str] = []

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def coerce_lists(cls, value):
        return _as_list(value)

    @field_validator("probability", mode="before")
    @classmethod
    def title_case(cls, value):
        return value.strip().title() if isinstance(value, str) else value

class PredictResponse(CamelModel):
    prediction: PredictionPayload
    university_id: Optional[int] = None
    metadata: AdviceMetadata

class SopReviewRequest(CamelModel):
    sop_text: Optional[str] = None

class SopFeedback(CamelModel):
    clarity: str = ""
    structure: str = ""
    grammar: str = ""
    impact: str = ""
    suggestions: List[str] = []

    @field_validator("suggestions", mode="before")
    @classmethod
    def coerce_suggestions(cls, value):
        return _as_list(value)

class SopReviewResponse(CamelModel):
    feedback: SopFeedback
    metadata: AdviceMetadata

# Dashboard Schema
class DashboardStats(CamelModel):
    university_count: int = 0
    shortlisted_count: int = 0
    locked_count: int = 0
    pending_tasks: int = 0
    completed_tasks: int = 0
    profile_status: int = 0
    current_stage: StageEnum = StageEnum.BUILDING_PROFILE

# Generic Schemas
class MessageResponse(CamelModel):
    message: str

class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "ai-counsellor-backend"

# Error Schema
class ErrorResponse(BaseModel):
    error: str
    message: str
    fields: List[str] = []
