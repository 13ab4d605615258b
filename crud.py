"""
CRUD operations for database models.

Every query is scoped by owner id. Derived fields (profile strength, user
stage, lock/unlock to-dos) are written here and nowhere else.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Tuple
import logging

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError, PersistenceError, ValidationError
from models import (
    User, Profile, University, ToDo, Conversation, EXAMS, StageEnum, UniversityStatus,
    ExamStatus, SopStatus, AcademicsStrength, ExamsStrength, DocumentsStrength,
    TodoCategory, TodoPriority,
)
import schemas

logger = logging.getLogger(__name__)

STAGE_ORDER = [
    StageEnum.BUILDING_PROFILE,
    StageEnum.DISCOVERING_UNIVERSITIES,
    StageEnum.FINALIZING_UNIVERSITIES,
    StageEnum.PREPARING_APPLICATIONS,
]

# Target status -> statuses it may be reached from
ALLOWED_TRANSITIONS = {
    UniversityStatus.SHORTLISTED: {UniversityStatus.RECOMMENDED, UniversityStatus.LOCKED},
    UniversityStatus.LOCKED: {UniversityStatus.SHORTLISTED},
    UniversityStatus.REJECTED: {UniversityStatus.RECOMMENDED, UniversityStatus.SHORTLISTED},
}

# (title, description, category, priority, days until deadline)
LOCK_TODO_TEMPLATES = [
    ("Complete Statement of Purpose for {name}",
     "Draft your SOP highlighting why {name} aligns with your goals",
     TodoCategory.DOCUMENT, TodoPriority.HIGH, 21),
    ("Gather Recommendation Letters",
     "Request 2-3 letters from professors or employers",
     TodoCategory.DOCUMENT, TodoPriority.HIGH, 30),
    ("Prepare Official Transcripts",
     "Get official transcripts from your institution",
     TodoCategory.DOCUMENT, TodoPriority.MEDIUM, 30),
    ("Submit Application to {name}",
     "Verify the deadline, pay the fee and submit the application",
     TodoCategory.APPLICATION, TodoPriority.URGENT, 45),
]

PRIORITY_RANK = {
    TodoPriority.URGENT.value: 3,
    TodoPriority.HIGH.value: 2,
    TodoPriority.MEDIUM.value: 1,
    TodoPriority.LOW.value: 0,
}

REQUIRED_PROFILE_FIELDS = {
    "education_level": "currentEducationLevel",
    "intended_degree": "intendedDegree",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)

def _commit(db: Session):
    try:
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"[ERROR] Commit failed: {str(e)}")
        db.rollback()
        raise PersistenceError("Database write failed. Please try again.") from e

# User operations
def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()

def create_user(db: Session, full_name: str, email: str, hashed_password: str) -> User:
    if get_user_by_email(db, email):
        raise ValidationError("User already exists", fields=["email"])

    user = User(
        full_name=full_name,
        email=email.lower(),
        hashed_password=hashed_password,
        onboarding_completed=False,
        current_stage=StageEnum.BUILDING_PROFILE.value,
    )
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user

def update_user_stage(db: Session, user: User, stage: StageEnum, allow_backwards: bool = False):
    """Move the user to `stage`. Stages only move forward unless allow_backwards is set."""
    current = StageEnum(user.current_stage)
    if not allow_backwards and STAGE_ORDER.index(stage) <= STAGE_ORDER.index(current):
        return
    if current == stage:
        return
    logger.info(f"[STAGE] User {user.id}: {current.value} -> {stage.value}")
    user.current_stage = stage.value

# Profile operations
def get_profile(db: Session, user_id: int) -> Optional[Profile]:
    return db.query(Profile).filter(Profile.user_id == user_id).first()

def calculate_profile_strength(
    gpa: Optional[float],
    exam_statuses: List[Optional[str]],
    sop_status: Optional[str],
) -> Dict[str, str]:
    """Derive the profile strength bands from GPA, exam statuses and SOP status."""
    if gpa is not None and gpa >= 3.5:
        academics = AcademicsStrength.STRONG
    elif gpa is not None and gpa >= 3.0:
        academics = AcademicsStrength.AVERAGE
    else:
        academics = AcademicsStrength.WEAK

    completed = sum(1 for status in exam_statuses if status == ExamStatus.COMPLETED.value)
    if completed >= 2:
        exams = ExamsStrength.COMPLETED
    elif completed == 1:
        exams = ExamsStrength.IN_PROGRESS
    else:
        exams = ExamsStrength.NOT_STARTED

    if sop_status == SopStatus.READY.value:
        documents = DocumentsStrength.READY
    elif sop_status == SopStatus.DRAFT.value:
        documents = DocumentsStrength.IN_PROGRESS
    else:
        documents = DocumentsStrength.NOT_STARTED

    return {
        "academics": academics.value,
        "exams": exams.value,
        "documents": documents.value,
    }

def apply_profile_strength(profile: Profile):
    strength = calculate_profile_strength(
        profile.gpa,
        [getattr(profile, f"{exam}_status") for exam in EXAMS],
        profile.sop_status,
    )
    profile.strength_academics = strength["academics"]
    profile.strength_exams = strength["exams"]
    profile.strength_documents = strength["documents"]

def save_profile(db: Session, user: User, payload: schemas.ProfileUpsert) -> Tuple[Profile, bool]:
    """
    Create or update the user's profile (UPSERT pattern).

    Only fields present in the payload are written; an explicit null clears
    the stored value. Required fields are checked against the merged result.
    Returns (profile, created).
    """
    incoming = payload.model_dump(exclude_unset=True)
    profile = get_profile(db, user.id)
    created = profile is None
    if created:
        profile = Profile(user_id=user.id)

    simple_fields = {
        "current_education_level": "education_level",
        "degree": "degree",
        "major": "major",
        "graduation_year": "graduation_year",
        "gpa": "gpa",
        "intended_degree": "intended_degree",
        "field_of_study": "field_of_study",
        "target_intake_year": "target_intake_year",
        "preferred_countries": "preferred_countries",
        "funding_plan": "funding_plan",
        "sop_status": "sop_status",
    }
    for key, column in simple_fields.items():
        if key in incoming:
            value = incoming[key]
            setattr(profile, column, value.value if hasattr(value, "value") else value)

    if "budget_per_year" in incoming:
        budget = incoming["budget_per_year"] or {}
        profile.budget_min = budget.get("min")
        profile.budget_max = budget.get("max")

    for exam in EXAMS:
        if exam not in incoming:
            continue
        record = incoming[exam] or {}
        status = record.get("status") or ExamStatus.NOT_STARTED
        setattr(profile, f"{exam}_status", status.value if hasattr(status, "value") else status)
        setattr(profile, f"{exam}_score", record.get("score"))

    missing = [name for column, name in REQUIRED_PROFILE_FIELDS.items() if not getattr(profile, column)]
    if missing:
        db.rollback()
        raise ValidationError("Missing required fields", fields=missing)

    for exam in EXAMS:
        if not getattr(profile, f"{exam}_status"):
            setattr(profile, f"{exam}_status", ExamStatus.NOT_STARTED.value)
    if not profile.sop_status:
        profile.sop_status = SopStatus.NOT_STARTED.value
    if profile.preferred_countries is None:
        profile.preferred_countries = []

    apply_profile_strength(profile)

    if created:
        db.add(profile)
        user.onboarding_completed = True
        update_user_stage(db, user, StageEnum.DISCOVERING_UNIVERSITIES)

    _commit(db)
    db.refresh(profile)
    logger.info(f"[SUCCESS] Profile {'created' if created else 'updated'} for user {user.id}")
    return profile, created

def profile_to_response(profile: Profile) -> schemas.ProfileResponse:
    exams = {
        exam: schemas.ExamRecord(
            status=getattr(profile, f"{exam}_status"),
            score=getattr(profile, f"{exam}_score"),
        )
        for exam in EXAMS
    }
    return schemas.ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        current_education_level=profile.education_level,
        degree=profile.degree,
        major=profile.major,
        graduation_year=profile.graduation_year,
        gpa=profile.gpa,
        intended_degree=profile.intended_degree,
        field_of_study=profile.field_of_study,
        target_intake_year=profile.target_intake_year,
        preferred_countries=profile.preferred_countries or [],
        budget_per_year=schemas.BudgetRange(min=profile.budget_min, max=profile.budget_max),
        funding_plan=profile.funding_plan,
        sop_status=profile.sop_status or SopStatus.NOT_STARTED,
        profile_strength=schemas.ProfileStrength(
            academics=profile.strength_academics,
            exams=profile.strength_exams,
            documents=profile.strength_documents,
        ),
        updated_at=profile.updated_at,
        **exams,
    )

# Status Normalization Helper
def normalize_status(status: str | None) -> str:
    """
    Normalize status values to enum: NOT_STARTED | IN_PROGRESS | COMPLETED
    Handles exam statuses, SOP statuses and NULL values.
    """
    if not status or status.strip() == "":
        return "NOT_STARTED"

    status_lower = status.lower().strip()

    # Completed variations
    if status_lower in ["completed", "done", "ready", "finished"]:
        return "COMPLETED"

    # In progress variations
    if status_lower in ["in progress", "in_progress", "draft", "drafting", "started",
                        "planning", "preparing", "scheduled"]:
        return "IN_PROGRESS"

    # Not started variations
    if status_lower in ["not started", "not_started", "pending", "todo", "none"]:
        return "NOT_STARTED"

    logger.warning(f"[WARNING] Unknown status value: '{status}', defaulting to IN_PROGRESS")
    return "IN_PROGRESS"

# Profile Strength Report (point based)
def build_profile_strength_report(profile: Profile, completeness: int) -> schemas.ProfileStrengthReport:
    """
    Point-based breakdown of the profile (100 points total) alongside the
    stored strength bands. Section statuses: strong | average | weak | missing
    """
    sections = {}
    next_actions = []
    total_score = 0

    def get_status(score: int, max_score: int) -> str:
        if score == 0: return "missing"
        if score >= max_score * 0.8: return "strong"
        if score >= max_score * 0.4: return "average"
        return "weak"

    def add_section(name: str, score: int, max_score: int):
        nonlocal total_score
        sections[name] = schemas.SectionStrength(
            status=get_status(score, max_score), score=score, max_score=max_score
        )
        total_score += score

    # ACADEMICS (30 points)
    academics_score = 0
    if profile.gpa and profile.gpa > 0:
        academics_score += 15
    else:
        next_actions.append("Add your GPA")
    if profile.degree and profile.degree.strip():
        academics_score += 10
    else:
        next_actions.append("Add your degree")
    if profile.graduation_year and profile.graduation_year > 0:
        academics_score += 5
    add_section("academics", academics_score, 30)

    # EXAMS (25 points): best English test + best graduate test
    english = max(normalize_status(profile.ielts_status), normalize_status(profile.toefl_status),
                  key=["NOT_STARTED", "IN_PROGRESS", "COMPLETED"].index)
    graduate = max(normalize_status(profile.gre_status), normalize_status(profile.gmat_status),
                   key=["NOT_STARTED", "IN_PROGRESS", "COMPLETED"].index)
    exams_score = 0
    if english == "COMPLETED": exams_score += 12
    elif english == "IN_PROGRESS": exams_score += 6
    else: next_actions.append("Complete IELTS or TOEFL")
    if graduate == "COMPLETED": exams_score += 13
    elif graduate == "IN_PROGRESS": exams_score += 6
    else: next_actions.append("Complete GRE/GMAT")
    add_section("exams", exams_score, 25)

    # SOP (20 points)
    sop_norm = normalize_status(profile.sop_status)
    sop_score = 0
    if sop_norm == "COMPLETED": sop_score = 20
    elif sop_norm == "IN_PROGRESS": sop_score = 10
    else: next_actions.append("Draft your SOP")
    add_section("sop", sop_score, 20)

    # DOCUMENTS (15 points)
    docs_score = 15 if profile.funding_plan else 0
    if not docs_score:
        next_actions.append("Add funding plan")
    add_section("documents", docs_score, 15)

    # PREFERENCES (10 points)
    prefs_score = 0
    if profile.preferred_countries: prefs_score += 4
    else: next_actions.append("Select countries")
    if profile.budget_min or profile.budget_max: prefs_score += 3
    if profile.field_of_study: prefs_score += 3
    else: next_actions.append("Select field of study")
    add_section("preferences", prefs_score, 10)

    return schemas.ProfileStrengthReport(
        profile_strength=schemas.ProfileStrength(
            academics=profile.strength_academics,
            exams=profile.strength_exams,
            documents=profile.strength_documents,
        ),
        overall_score=int(total_score),
        completeness=completeness,
        sections=schemas.ProfileSections(**sections),
        next_actions=next_actions[:3],
    )

# University operations
def list_universities(
    db: Session,
    user_id: int,
    status: Optional[UniversityStatus] = None,
    category: Optional[str] = None,
) -> List[University]:
    query = db.query(University).filter(University.user_id == user_id)
    if status:
        query = query.filter(University.status == UniversityStatus(status).value)
    if category:
        query = query.filter(University.category == category)
    return query.order_by(University.id.asc()).all()

def get_university(db: Session, user_id: int, university_id: int) -> University:
    university = db.query(University).filter(
        and_(University.id == university_id, University.user_id == user_id)
    ).first()
    if not university:
        raise NotFoundError("University not found")
    return university

def create_university(db: Session, user_id: int, data: Dict, commit: bool = True) -> University:
    values = {key: (value.value if hasattr(value, "value") else value) for key, value in data.items()}
    values.pop("id", None)
    values["status"] = UniversityStatus.RECOMMENDED.value
    university = University(user_id=user_id, **values)
    db.add(university)
    if commit:
        _commit(db)
        db.refresh(university)
    return university

def replace_recommendations(db: Session, user: User, items: List[Dict]) -> List[University]:
    """Swap un-actioned Recommended records for a fresh batch."""
    stale = db.query(University).filter(
        and_(University.user_id == user.id, University.status == UniversityStatus.RECOMMENDED.value)
    ).all()
    for university in stale:
        clear_university_tasks(db, user.id, university.id)
        db.delete(university)

    created = [create_university(db, user.id, item, commit=False) for item in items]
    update_user_stage(db, user, StageEnum.DISCOVERING_UNIVERSITIES)
    _commit(db)
    for university in created:
        db.refresh(university)
    logger.info(f"[SUCCESS] Replaced {len(stale)} recommendations with {len(created)} for user {user.id}")
    return created

def _transition(db: Session, university: University, target: UniversityStatus):
    current = UniversityStatus(university.status)
    if current not in ALLOWED_TRANSITIONS.get(target, set()):
        raise ValidationError(
            f"Cannot move university from {current.value} to {target.value}",
            fields=["status"],
        )
    logger.info(f"[TRANSITION] University {university.id}: {current.value} -> {target.value}")
    university.status = target.value

def shortlist_university(db: Session, user: User, university_id: int) -> Tuple[University, List[ToDo]]:
    university = get_university(db, user.id, university_id)
    if university.status == UniversityStatus.LOCKED.value:
        raise ValidationError("University is locked. Unlock it instead.", fields=["status"])
    _transition(db, university, UniversityStatus.SHORTLISTED)
    update_user_stage(db, user, StageEnum.FINALIZING_UNIVERSITIES)
    _commit(db)
    db.refresh(university)
    return university, []

def lock_university(db: Session, user: User, university_id: int) -> Tuple[University, List[ToDo]]:
    """Lock a shortlisted university and create its application to-dos."""
    university = get_university(db, user.id, university_id)
    _transition(db, university, UniversityStatus.LOCKED)
    todos = generate_university_tasks(db, user.id, university)
    update_user_stage(db, user, StageEnum.PREPARING_APPLICATIONS)
    _commit(db)
    db.refresh(university)
    for todo in todos:
        db.refresh(todo)
    return university, todos

def _release_application_stage(db: Session, user: User, university_id: int):
    """Drop back to finalizing once no other university stays locked."""
    still_locked = db.query(University).filter(
        and_(
            University.user_id == user.id,
            University.status == UniversityStatus.LOCKED.value,
            University.id != university_id,
        )
    ).count()
    if not still_locked:
        update_user_stage(db, user, StageEnum.FINALIZING_UNIVERSITIES, allow_backwards=True)

def unlock_university(db: Session, user: User, university_id: int) -> Tuple[University, List[ToDo]]:
    """Return a locked university to Shortlisted and delete its to-dos."""
    university = get_university(db, user.id, university_id)
    if university.status != UniversityStatus.LOCKED.value:
        raise ValidationError("Only locked universities can be unlocked", fields=["status"])
    _transition(db, university, UniversityStatus.SHORTLISTED)
    clear_university_tasks(db, user.id, university.id)
    _release_application_stage(db, user, university.id)

    _commit(db)
    db.refresh(university)
    return university, []

def reject_university(db: Session, user: User, university_id: int) -> Tuple[University, List[ToDo]]:
    university = get_university(db, user.id, university_id)
    _transition(db, university, UniversityStatus.REJECTED)
    _commit(db)
    db.refresh(university)
    return university, []

def delete_university(db: Session, user: User, university_id: int):
    university = get_university(db, user.id, university_id)
    cleared = clear_university_tasks(db, user.id, university.id)
    if university.status == UniversityStatus.LOCKED.value:
        _release_application_stage(db, user, university.id)
    db.delete(university)
    _commit(db)
    logger.info(f"[SUCCESS] Deleted university {university_id} and {cleared} to-dos for user {user.id}")

# ToDo operations
def generate_university_tasks(db: Session, user_id: int, university: University) -> List[ToDo]:
    """Create the fixed application to-dos for a locked university (not committed)."""
    now = _now()
    todos = []
    for title, description, category, priority, days in LOCK_TODO_TEMPLATES:
        todo = ToDo(
            user_id=user_id,
            university_id=university.id,
            title=title.format(name=university.name),
            description=description.format(name=university.name),
            category=category.value,
            priority=priority.value,
            deadline=now + timedelta(days=days),
        )
        db.add(todo)
        todos.append(todo)
    logger.info(f"[TASKS] Generated {len(todos)} tasks for university {university.id}")
    return todos

def clear_university_tasks(db: Session, user_id: int, university_id: int) -> int:
    """Delete every to-do bound to a university (not committed)."""
    deleted_count = db.query(ToDo).filter(
        and_(ToDo.user_id == user_id, ToDo.university_id == university_id)
    ).delete(synchronize_session=False)
    logger.info(f"[TASKS] Cleared {deleted_count} tasks for university {university_id}")
    return deleted_count

def _sort_time(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.max
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def list_todos(
    db: Session,
    user_id: int,
    university_id: Optional[int] = None,
    completed: Optional[bool] = None,
) -> List[ToDo]:
    """Owner's to-dos, most urgent first, then earliest deadline (no deadline last)."""
    query = db.query(ToDo).filter(ToDo.user_id == user_id)
    if university_id is not None:
        query = query.filter(ToDo.university_id == university_id)
    if completed is not None:
        query = query.filter(ToDo.completed == completed)
    todos = query.all()
    todos.sort(key=lambda t: (-PRIORITY_RANK.get(t.priority, 1), _sort_time(t.deadline), t.id))
    return todos

def get_todo(db: Session, user_id: int, todo_id: int) -> ToDo:
    todo = db.query(ToDo).filter(and_(ToDo.id == todo_id, ToDo.user_id == user_id)).first()
    if not todo:
        raise NotFoundError("To-do not found")
    return todo

def create_todo(db: Session, user_id: int, payload: schemas.TodoCreate) -> ToDo:
    if not payload.title or not payload.title.strip():
        raise ValidationError("Missing required fields", fields=["title"])
    if payload.university_id is not None:
        get_university(db, user_id, payload.university_id)

    todo = ToDo(
        user_id=user_id,
        university_id=payload.university_id,
        title=payload.title.strip(),
        description=payload.description,
        category=payload.category.value,
        priority=payload.priority.value,
        deadline=payload.deadline,
    )
    db.add(todo)
    _commit(db)
    db.refresh(todo)
    return todo

def _set_completed(todo: ToDo, completed: bool):
    todo.completed = completed
    todo.completed_at = _now() if completed else None

def update_todo(db: Session, user_id: int, todo_id: int, payload: schemas.TodoUpdate) -> ToDo:
    todo = get_todo(db, user_id, todo_id)
    changes = payload.model_dump(exclude_unset=True)
    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Title cannot be empty", fields=["title"])

    for key, value in changes.items():
        if key == "completed":
            if value is not None and value != todo.completed:
                _set_completed(todo, value)
            continue
        if value is None and key in ("category", "priority"):
            continue
        setattr(todo, key, value.value if hasattr(value, "value") else value)

    _commit(db)
    db.refresh(todo)
    return todo

def toggle_todo(db: Session, user_id: int, todo_id: int) -> ToDo:
    todo = get_todo(db, user_id, todo_id)
    _set_completed(todo, not todo.completed)
    _commit(db)
    db.refresh(todo)
    return todo

def delete_todo(db: Session, user_id: int, todo_id: int):
    todo = get_todo(db, user_id, todo_id)
    db.delete(todo)
    _commit(db)

def auto_generate_todos(db: Session, user: User) -> Tuple[List[ToDo], bool]:
    """
    Seed profile-driven to-dos when the user has none.
    Returns (todos, generated); existing to-dos are returned untouched.
    """
    existing = list_todos(db, user.id)
    if existing:
        return existing, False

    profile = get_profile(db, user.id)
    now = _now()

    # (title, description, category, priority, days, condition)
    if profile is None:
        rules = [("Complete your profile", "Fill in academics, goals, budget and exams",
                  TodoCategory.GENERAL, TodoPriority.URGENT, 3, True)]
    else:
        english_done = ExamStatus.COMPLETED.value in (profile.ielts_status, profile.toefl_status)
        graduate_exam = "GMAT" if profile.intended_degree == "MBA" else "GRE"
        graduate_status = profile.gmat_status if graduate_exam == "GMAT" else profile.gre_status
        rules = [
            ("Take IELTS or TOEFL", "Book and complete an English proficiency test",
             TodoCategory.EXAM, TodoPriority.HIGH, 60, not english_done),
            (f"Prepare for {graduate_exam}", f"Schedule and complete the {graduate_exam}",
             TodoCategory.EXAM, TodoPriority.MEDIUM, 90,
             profile.intended_degree != "Bachelor" and graduate_status != ExamStatus.COMPLETED.value),
            ("Finalize Statement of Purpose", "Draft, review and polish your SOP",
             TodoCategory.DOCUMENT, TodoPriority.HIGH, 30, profile.sop_status != SopStatus.READY.value),
            ("Set funding plan", "Decide between self-funding, scholarships and loans",
             TodoCategory.GENERAL, TodoPriority.MEDIUM, 14, not profile.funding_plan),
            ("Select preferred countries", "Pick the countries you want to study in",
             TodoCategory.GENERAL, TodoPriority.MEDIUM, 7, not profile.preferred_countries),
            ("Research and shortlist universities", "Review recommendations and shortlist your favourites",
             TodoCategory.APPLICATION, TodoPriority.MEDIUM, 21, True),
        ]

    todos = []
    for title, description, category, priority, days, condition in rules:
        if not condition:
            continue
        todo = ToDo(
            user_id=user.id,
            title=title,
            description=description,
            category=category.value,
            priority=priority.value,
            deadline=now + timedelta(days=days),
        )
        db.add(todo)
        todos.append(todo)

    _commit(db)
    logger.info(f"[TASKS] Auto-generated {len(todos)} tasks for user {user.id}")
    return list_todos(db, user.id), True

# Conversation operations
def get_conversation(db: Session, user_id: int, session_id: str) -> Optional[Conversation]:
    return db.query(Conversation).filter(
        and_(Conversation.user_id == user_id, Conversation.session_id == session_id)
    ).first()

def append_conversation_turns(
    db: Session,
    user_id: int,
    session_id: str,
    turns: List[Dict[str, str]],
) -> Conversation:
    conversation = get_conversation(db, user_id, session_id)
    if conversation is None:
        conversation = Conversation(user_id=user_id, session_id=session_id, messages=[])
        db.add(conversation)
    # Reassign so the JSON column is flagged dirty
    conversation.messages = list(conversation.messages or []) + list(turns)
    _commit(db)
    db.refresh(conversation)
    return conversation

def clear_conversation(db: Session, user_id: int, session_id: str) -> bool:
    conversation = get_conversation(db, user_id, session_id)
    if conversation is None:
        return False
    db.delete(conversation)
    _commit(db)
    return True

# Dashboard
def dashboard_stats(db: Session, user: User, completeness: int) -> schemas.DashboardStats:
    universities = list_universities(db, user.id)
    todos = list_todos(db, user.id)
    return schemas.DashboardStats(
        university_count=sum(1 for u in universities if u.status != UniversityStatus.REJECTED.value),
        shortlisted_count=sum(1 for u in universities if u.status == UniversityStatus.SHORTLISTED.value),
        locked_count=sum(1 for u in universities if u.status == UniversityStatus.LOCKED.value),
        pending_tasks=sum(1 for t in todos if not t.completed),
        completed_tasks=sum(1 for t in todos if t.completed),
        profile_status=completeness,
        current_stage=user.current_stage,
    )
