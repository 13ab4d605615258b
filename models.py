from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey, DateTime, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum

Base = declarative_base()

# Enums
class StageEnum(str, enum.Enum):
    BUILDING_PROFILE = "building_profile"
    DISCOVERING_UNIVERSITIES = "discovering_universities"
    FINALIZING_UNIVERSITIES = "finalizing_universities"
    PREPARING_APPLICATIONS = "preparing_applications"

class CategoryEnum(str, enum.Enum):
    DREAM = "Dream"
    TARGET = "Target"
    SAFE = "Safe"

class UniversityStatus(str, enum.Enum):
    RECOMMENDED = "Recommended"
    SHORTLISTED = "Shortlisted"
    LOCKED = "Locked"
    REJECTED = "Rejected"

class LevelEnum(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

class EducationLevel(str, enum.Enum):
    HIGH_SCHOOL = "High School"
    BACHELOR = "Bachelor"
    MASTER = "Master"
    PHD = "PhD"
    OTHER = "Other"

class IntendedDegree(str, enum.Enum):
    BACHELOR = "Bachelor"
    MASTER = "Master"
    MBA = "MBA"
    PHD = "PhD"

class FundingPlan(str, enum.Enum):
    SELF_FUNDED = "Self-funded"
    SCHOLARSHIP = "Scholarship"
    LOAN = "Loan"
    MIXED = "Mixed"

class ExamStatus(str, enum.Enum):
    NOT_STARTED = "Not Started"
    PREPARING = "Preparing"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"

class SopStatus(str, enum.Enum):
    NOT_STARTED = "Not Started"
    DRAFT = "Draft"
    READY = "Ready"

class AcademicsStrength(str, enum.Enum):
    WEAK = "Weak"
    AVERAGE = "Average"
    STRONG = "Strong"

class ExamsStrength(str, enum.Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

class DocumentsStrength(str, enum.Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    READY = "Ready"

class TodoCategory(str, enum.Enum):
    EXAM = "Exam"
    DOCUMENT = "Document"
    APPLICATION = "Application"
    GENERAL = "General"

class TodoPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

EXAMS = ("ielts", "toefl", "gre", "gmat")

# Models
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    current_stage = Column(String(50), nullable=False, default=StageEnum.BUILDING_PROFILE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    # Academic background
    education_level = Column(String(50), nullable=False)
    degree = Column(String(255))
    major = Column(String(255))
    graduation_year = Column(Integer)
    gpa = Column(Float)
    # Study goals
    intended_degree = Column(String(50), nullable=False)
    field_of_study = Column(String(255))
    target_intake_year = Column(Integer)
    preferred_countries = Column(JSON, default=list)
    # Budget
    budget_min = Column(Integer)
    budget_max = Column(Integer)
    funding_plan = Column(String(50))
    # Exams & readiness
    ielts_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    ielts_score = Column(Float)
    toefl_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    toefl_score = Column(Float)
    gre_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    gre_score = Column(Float)
    gmat_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    gmat_score = Column(Float)
    sop_status = Column(String(50), default=SopStatus.NOT_STARTED.value)
    # Profile strength (derived, written only by crud.save_profile)
    strength_academics = Column(String(50), default=AcademicsStrength.WEAK.value)
    strength_exams = Column(String(50), default=ExamsStrength.NOT_STARTED.value)
    strength_documents = Column(String(50), default=DocumentsStrength.NOT_STARTED.value)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class University(Base):
    __tablename__ = "universities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    country = Column(String(100))
    program = Column(String(255))
    category = Column(String(20), default=CategoryEnum.TARGET.value)
    status = Column(String(20), nullable=False, default=UniversityStatus.RECOMMENDED.value)
    tuition_fee = Column(Integer)
    cost_level = Column(String(20), default=LevelEnum.MEDIUM.value)
    acceptance_chance = Column(String(20), default=LevelEnum.MEDIUM.value)
    why_fits = Column(Text)
    risks = Column(JSON, default=list)
    required_gpa = Column(Float)
    required_ielts = Column(Float)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class ToDo(Base):
    __tablename__ = "todos"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    university_id = Column(Integer, ForeignKey("universities.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(20), default=TodoCategory.GENERAL.value)
    priority = Column(String(20), default=TodoPriority.MEDIUM.value)
    deadline = Column(DateTime(timezone=True))
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    messages = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
