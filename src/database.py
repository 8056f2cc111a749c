"""Engine and per-request sessions for the character store."""

import logging
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.config import get_settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the backend."""
    if database_url.startswith("sqlite"):
        # Sync routes run in a threadpool; one session may cross threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


settings = get_settings()

engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a session, rolled back if the request fails."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        logger.debug("Rolling back session after request failure")
        db.rollback()
        raise
    finally:
        db.close()
