"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from audit_trail.core.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine whose store access is bounded by ``db_timeout_seconds``."""
    if database_url.startswith("sqlite"):
        connect_args: dict[str, Any] = {"check_same_thread": False, "timeout": settings.db_timeout_seconds}
        return create_engine(database_url, connect_args=connect_args)
    return create_engine(database_url, pool_pre_ping=True, pool_timeout=settings.db_timeout_seconds)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
