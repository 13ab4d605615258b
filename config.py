import os
import logging
from typing import List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "dev-secret-change-me"


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    # Provider API Keys
    OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./ai_counsellor.db")

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    TOKEN_EXPIRE_DAYS: int = int(os.getenv("TOKEN_EXPIRE_DAYS", "30"))

    # AI orchestration
    PROVIDER_BACKOFF_SECONDS: float = float(os.getenv("PROVIDER_BACKOFF_SECONDS", "1.0"))
    MIN_RESPONSE_LENGTH: int = int(os.getenv("MIN_RESPONSE_LENGTH", "10"))
    CHAT_HISTORY_LIMIT: int = int(os.getenv("CHAT_HISTORY_LIMIT", "20"))

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOWED_ORIGINS: list = _split_origins(os.getenv(
        "ALLOWED_ORIGINS",
        "https://ai-counsellor-frontend.vercel.app,http://localhost:3000,http://localhost:5173",
    ))

    @classmethod
    def validate(cls):
        """Warn about settings that degrade the service."""
        if not cls.OPENROUTER_API_KEY and not cls.GEMINI_API_KEY:
            logger.warning("No provider API key set. Advice endpoints will return fallback content.")
        if cls.JWT_SECRET == DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET not set. Using the development default.")


settings = Settings()
