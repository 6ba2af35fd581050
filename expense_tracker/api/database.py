"""Database configuration for the expense tracking backend."""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from expense_tracker.config import load_settings

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine, preparing the parent folder of SQLite database files."""

    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args, future=True)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, future=True)
_engine: Optional[Engine] = None


def configure(database_url: str) -> Engine:
    """Point the engine and session factory at ``database_url``."""

    global _engine
    _engine = build_engine(database_url)
    SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine:
    """Return the configured engine, building it from the settings on first use."""

    if _engine is None:
        return configure(load_settings().database_url)
    return _engine


def init_db() -> None:
    """Create database tables if they do not already exist."""
    from . import models  # noqa: F401  # registers the tables on Base.metadata

    Base.metadata.create_all(bind=get_engine())


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency that provides a database session."""
    with session_scope() as session:
        yield session
