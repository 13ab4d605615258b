"""
Domain exceptions. main.py maps each one to an HTTP error envelope.
"""

from typing import List, Optional


class CounsellorError(Exception):
    status_code = 500
    error = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class AuthError(CounsellorError):
    status_code = 401
    error = "AUTH_ERROR"


class ValidationError(CounsellorError):
    status_code = 400
    error = "VALIDATION_ERROR"


class NotFoundError(CounsellorError):
    status_code = 404
    error = "NOT_FOUND"


class ProfileMissing(NotFoundError):
    error = "PROFILE_MISSING"

    def __init__(self, message: str = "Profile not found. Please complete onboarding first."):
        super().__init__(message)


class PersistenceError(CounsellorError):
    status_code = 500
    error = "PERSISTENCE_ERROR"


class ProviderUnavailable(Exception):
    """A completion backend cannot be used (missing key, client init failure)."""
