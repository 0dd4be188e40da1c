"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from app.core.config import settings
from app.core.errors import WorkflowError, PersistenceError
from app.db.base import Base

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_recycle=3600
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Acquire a session from the pool; commit on success, roll back on error, always release it."""
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Session:
    """Dependency for getting database session."""
    with session_scope() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one unit of work.

    Commits when the block finishes. Domain errors roll back and propagate
    unchanged; anything else rolls back and is re-raised as an opaque
    PersistenceError.
    """
    try:
        yield db
        db.commit()
    except WorkflowError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("Transaction rolled back")
        raise PersistenceError("Persistence failed", cause=exc) from exc


def init_db():
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
