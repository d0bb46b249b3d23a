"""
Database connection and session management for Relay Chat Backend
"""
import logging
import sqlite3
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from app.core.config import settings
from app.core.exceptions import ConstraintViolationError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "echo": False}
    return {
        "pool_pre_ping": True,      # Test connections before using
        "pool_size": 10,            # Connection pool size
        "max_overflow": 20,         # Overflow connections allowed
        "echo": settings.DEBUG,     # Log SQL queries in debug mode
    }


# Create database engine with connection pooling
engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Session factory for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    """
    Dependency for getting database session in endpoints

    Usage in FastAPI endpoints:
        def my_endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def write_transaction(db: Session, conflict_message: str):
    """
    Run the enclosed writes as one transaction and commit them.

    Any failure rolls the whole transaction back. A constraint failure is
    surfaced as ConstraintViolationError; the caller must not assume
    partial success.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Constraint violation: {conflict_message} ({e.orig})")
        raise ConstraintViolationError(conflict_message) from e
    except Exception:
        db.rollback()
        raise


def init_db():
    """Initialize database tables"""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
