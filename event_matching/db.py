"""Centralized database engine factory.

Every SQL store and Dagster resource in a process shares one SQLAlchemy
engine. Uses NullPool: connections are opened on demand and handed back to
the server right after use, so an idle worker holds no connections.

``DATABASE_URL`` wins when set (handy for SQLite in local runs); otherwise
the URL is assembled from the ``POSTGRES_*`` variables.
"""

import os
import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

_lock = threading.Lock()
_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def build_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "matching")
    password = os.getenv("POSTGRES_PASSWORD", "matching_dev")
    database = os.getenv("POSTGRES_DB", "event_matching")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{database}"


def get_engine() -> Engine:
    """Return the process-wide SQLAlchemy engine, creating it on first call."""
    global _engine, _session_factory
    if _engine is None:
        with _lock:
            if _engine is None:
                _engine = create_engine(build_url(), poolclass=NullPool)
                _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_session() -> Session:
    """Create a new session from the shared engine."""
    get_engine()
    return _session_factory()


def reset_engine() -> None:
    """Drop the cached engine so the next call rebuilds it from the environment."""
    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None
