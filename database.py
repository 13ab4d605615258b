from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from config import settings
from models import Base
import logging

logger = logging.getLogger(__name__)

# Country normalization mapping
COUNTRY_MAPPING = {
    "USA": "United States",
    "US": "United States",
    "United States": "United States",
    "UK": "United Kingdom",
    "United Kingdom": "United Kingdom",
    "Great Britain": "United Kingdom",
    "Canada": "Canada",
    "Australia": "Australia",
    "Germany": "Germany",
    "Ireland": "Ireland",
    "Netherlands": "Netherlands",
    "New Zealand": "New Zealand",
    # Add more as needed
}

def normalize_country(country: str) -> str:
    """Normalize country input to a canonical display name."""
    if not country:
        return ""

    # Try exact match first
    normalized = COUNTRY_MAPPING.get(country.strip())
    if normalized:
        return normalized

    # Try case-insensitive match
    for key, value in COUNTRY_MAPPING.items():
        if key.lower() == country.strip().lower():
            return value

    # Return original if no mapping found
    return country.strip()

def build_engine(url: str):
    """Create an engine. SQLite needs cross-thread access; in-memory SQLite needs one shared connection."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)

engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def verify_tables_exist(bind=None):
    """Ensure required tables exist, create if missing."""
    bind = bind or engine
    existing_tables = set(inspect(bind).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing_tables]
    if missing:
        logger.info(f"Creating missing tables: {missing}")
        Base.metadata.create_all(bind=bind)
    return missing
