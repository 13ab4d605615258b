"""
Password hashing, JWT issuing and the bearer-token dependency.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from errors import AuthError
from models import User
import crud

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.TOKEN_EXPIRE_DAYS))
    payload = {"id": user_id, "sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id carried by the token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthError("Not authorized, token failed")

    user_id = payload.get("id")
    if user_id is None:
        raise AuthError("Not authorized, token failed")
    return int(user_id)


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = crud.get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise AuthError("Invalid credentials")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Dependency resolving `Authorization: Bearer <token>` to a User."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Not authorized, no token")

    user = crud.get_user(db, decode_access_token(credentials.credentials))
    if not user:
        raise AuthError("Not authorized, user not found")
    return user
