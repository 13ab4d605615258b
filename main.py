from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from config import settings
from models import User, CategoryEnum, UniversityStatus
import crud
import schemas
import service
from auth import hash_password, create_access_token, authenticate_user, get_current_user
from database import get_db, verify_tables_exist
from errors import CounsellorError, ProfileMissing
from fallback import FallbackExecutor, get_executor
from scoring import profile_completeness

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(title="AI Counsellor Backend")

# Ensure database tables exist on startup
@app.on_event("startup")
def startup_event():
    settings.validate()
    missing = verify_tables_exist()
    if missing:
        logger.info(f"[STARTUP] Created tables: {missing}")

# Global Custom Error Handlers
def error_response(status_code: int, error: str, message: str, fields=None) -> JSONResponse:
    # `fields` is omitted when empty
    content = schemas.ErrorResponse(error=error, message=message, fields=fields or [])
    return JSONResponse(status_code=status_code, content=content.model_dump(exclude_defaults=True))

@app.exception_handler(CounsellorError)
async def counsellor_exception_handler(request: Request, exc: CounsellorError):
    logger.info(f"[ERROR] {request.method} {request.url.path} -> {exc.status_code} {exc.error}: {exc.message}")
    return error_response(exc.status_code, exc.error, exc.message, exc.fields)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert 422 to 400 for frontend compatibility."""
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc and loc[-1] not in fields:
            fields.append(loc[-1])
    return error_response(400, "VALIDATION_ERROR", "Invalid data format", fields)

@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"[ERROR] Database failure on {request.url.path}: {str(exc)}")
    return error_response(500, "PERSISTENCE_ERROR", "Database error. Please try again.")

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions."""
    logger.exception(f"[ERROR] Unhandled error on {request.url.path}: {str(exc)}")
    return error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again.")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================
# HEALTH
# ============================================

@app.get("/", response_model=schemas.HealthResponse)
@app.get("/health", response_model=schemas.HealthResponse)
async def health():
    """Health check endpoint."""
    return schemas.HealthResponse()

# ============================================
# AUTH
# ============================================

def _auth_response(user: User) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        token=create_access_token(user.id),
        user=schemas.UserResponse.model_validate(user),
    )

@app.post("/auth/register", response_model=schemas.AuthResponse, status_code=201)
async def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    logger.info(f"[ENDPOINT] /auth/register called for {payload.email}")
    user = crud.create_user(db, payload.full_name.strip(), payload.email, hash_password(payload.password))
    logger.info(f"[SUCCESS] Registered user {user.id}")
    return _auth_response(user)

@app.post("/auth/login", response_model=schemas.AuthResponse)
async def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    logger.info(f"[ENDPOINT] /auth/login called for {payload.email}")
    user = authenticate_user(db, payload.email, payload.password)
    return _auth_response(user)

@app.get("/auth/user", response_model=schemas.UserResponse)
async def current_user(user: User = Depends(get_current_user)):
    return schemas.UserResponse.model_validate(user)

# ============================================
# PROFILE
# ============================================

@app.post("/profile", response_model=schemas.ProfileResponse)
async def upsert_profile(
    payload: schemas.ProfileUpsert,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create or update the profile (UPSERT logic).
    If profile exists -> UPDATE the supplied fields
    If new -> INSERT, mark onboarding complete and advance the stage
    """
    logger.info(f"[ENDPOINT] POST /profile called for user {user.id}")
    profile, created = crud.save_profile(db, user, payload)
    return crud.profile_to_response(profile)

@app.get("/profile", response_model=schemas.ProfileResponse)
async def read_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = crud.get_profile(db, user.id)
    if not profile:
        raise ProfileMissing()
    return crud.profile_to_response(profile)

@app.get("/profile/strength", response_model=schemas.ProfileStrengthReport)
async def profile_strength(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    logger.info(f"[ENDPOINT] /profile/strength called for user {user.id}")
    profile = crud.get_profile(db, user.id)
    if not profile:
        raise ProfileMissing()
    completeness = int(round(profile_completeness(profile)))
    return crud.build_profile_strength_report(profile, completeness)

# ============================================
# AI COUNSELLOR
# ============================================

@app.post("/counsellor/chat", response_model=schemas.ChatResponse)
async def counsellor_chat(
    request: schemas.ChatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    executor: FallbackExecutor = Depends(get_executor),
):
    """
    AI counsellor chat.
    Never fails on a missing profile or provider outage - answers with fallback guidance instead.
    """
    logger.info(f"[ENDPOINT] /counsellor/chat called for user {user.id}")
    return await service.chat(db, user, executor, request)

@app.get("/counsellor/conversation/{session_id}", response_model=schemas.ConversationResponse)
async def read_conversation(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = crud.get_conversation(db, user.id, session_id)
    messages = conversation.messages if conversation else []
    return schemas.ConversationResponse(session_id=session_id, messages=messages or [])

@app.delete("/counsellor/conversation/{session_id}", response_model=schemas.MessageResponse)
async def delete_conversation(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud.clear_conversation(db, user.id, session_id)
    return schemas.MessageResponse(message="Conversation cleared")

@app.post("/counsellor/recommend", response_model=schemas.RecommendResponse)
async def counsellor_recommend(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    executor: FallbackExecutor = Depends(get_executor),
):
    logger.info(f"[ENDPOINT] /counsellor/recommend called for user {user.id}")
    return await service.recommend_universities(db, user, executor)

@app.get("/counsellor/analyze", response_model=schemas.AnalyzeResponse)
async def counsellor_analyze(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    executor: FallbackExecutor = Depends(get_executor),
):
    logger.info(f"[ENDPOINT] /counsellor/analyze called for user {user.id}")
    return await service.analyze_profile(db, user, executor)

@app.post("/counsellor/predict", response_model=schemas.PredictResponse)
async def counsellor_predict(
    request: Optional[schemas.PredictRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    executor: FallbackExecutor = Depends(get_executor),
):
    logger.info(f"[ENDPOINT] /counsellor/predict called for user {user.id}")
    return await service.predict_chances(db, user, executor, request or schemas.PredictRequest())

@app.post("/counsellor/review-sop", response_model=schemas.SopReviewResponse)
async def counsellor_review_sop(
    request: schemas.SopReviewRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    executor: FallbackExecutor = Depends(get_executor),
):
    logger.info(f"[ENDPOINT] /counsellor/review-sop called for user {user.id}")
    return await service.review_sop(db, user, executor, request)

# ============================================
# UNIVERSITIES
# ============================================

def _action_response(message: str, university, todos) -> schemas.UniversityActionResponse:
    return schemas.UniversityActionResponse(
        message=message,
        university=schemas.UniversityResponse.model_validate(university),
        todos=[schemas.TodoResponse.model_validate(t) for t in todos],
    )

@app.get("/universities", response_model=schemas.UniversityListResponse)
async def list_universities(
    status: Optional[UniversityStatus] = None,
    category: Optional[CategoryEnum] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    universities = crud.list_universities(db, user.id, status, category.value if category else None)
    return schemas.UniversityListResponse(
        universities=[schemas.UniversityResponse.model_validate(u) for u in universities],
        count=len(universities),
    )

@app.post("/universities", response_model=schemas.UniversityResponse, status_code=201)
async def add_university(
    payload: schemas.UniversityCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"[ENDPOINT] POST /universities called for user {user.id}")
    university = crud.create_university(db, user.id, payload.model_dump())
    return schemas.UniversityResponse.model_validate(university)

@app.get("/universities/{university_id}", response_model=schemas.UniversityResponse)
async def read_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schemas.UniversityResponse.model_validate(crud.get_university(db, user.id, university_id))

@app.put("/universities/{university_id}/shortlist", response_model=schemas.UniversityActionResponse)
async def shortlist_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"[ENDPOINT] shortlist university {university_id} for user {user.id}")
    university, todos = crud.shortlist_university(db, user, university_id)
    return _action_response("University shortlisted", university, todos)

@app.put("/universities/{university_id}/lock", response_model=schemas.UniversityActionResponse)
async def lock_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"[ENDPOINT] lock university {university_id} for user {user.id}")
    university, todos = crud.lock_university(db, user, university_id)
    return _action_response("University locked. Application tasks created.", university, todos)

@app.put("/universities/{university_id}/unlock", response_model=schemas.UniversityActionResponse)
async def unlock_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"[ENDPOINT] unlock university {university_id} for user {user.id}")
    university, todos = crud.unlock_university(db, user, university_id)
    return _action_response("University unlocked. Related tasks removed.", university, todos)

@app.put("/universities/{university_id}/reject", response_model=schemas.UniversityActionResponse)
async def reject_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"[ENDPOINT] reject university {university_id} for user {user.id}")
    university, todos = crud.reject_university(db, user, university_id)
    return _action_response("University rejected", university, todos)

@app.delete("/universities/{university_id}", response_model=schemas.MessageResponse)
async def remove_university(
    university_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud.delete_university(db, user, university_id)
    return schemas.MessageResponse(message="University deleted")

# ============================================
# TODOS
# ============================================

@app.get("/todos", response_model=schemas.TodoListResponse)
async def list_todos(
    university_id: Optional[int] = Query(None, alias="universityId"),
    completed: Optional[bool] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    todos = crud.list_todos(db, user.id, university_id, completed)
    return schemas.TodoListResponse(
        todos=[schemas.TodoResponse.model_validate(t) for t in todos],
        count=len(todos),
    )

@app.post("/todos/auto-generate", response_model=schemas.AutoGenerateResponse)
async def auto_generate_todos(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    logger.info(f"[ENDPOINT] /todos/auto-generate called for user {user.id}")
    todos, generated = crud.auto_generate_todos(db, user)
    return schemas.AutoGenerateResponse(
        todos=[schemas.TodoResponse.model_validate(t) for t in todos],
        count=len(todos),
        generated=generated,
    )

@app.post("/todos", response_model=schemas.TodoResponse, status_code=201)
async def create_todo(
    payload: schemas.TodoCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schemas.TodoResponse.model_validate(crud.create_todo(db, user.id, payload))

@app.put("/todos/{todo_id}", response_model=schemas.TodoResponse)
async def update_todo(
    todo_id: int,
    payload: schemas.TodoUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schemas.TodoResponse.model_validate(crud.update_todo(db, user.id, todo_id, payload))

@app.put("/todos/{todo_id}/toggle", response_model=schemas.TodoResponse)
async def toggle_todo(
    todo_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schemas.TodoResponse.model_validate(crud.toggle_todo(db, user.id, todo_id))

@app.delete("/todos/{todo_id}", response_model=schemas.MessageResponse)
async def delete_todo(
    todo_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud.delete_todo(db, user.id, todo_id)
    return schemas.MessageResponse(message="To-do deleted")

# ============================================
# DASHBOARD
# ============================================

@app.get("/dashboard/stats", response_model=schemas.DashboardStats)
async def dashboard_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    completeness = int(round(profile_completeness(crud.get_profile(db, user.id))))
    return crud.dashboard_stats(db, user, completeness)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
