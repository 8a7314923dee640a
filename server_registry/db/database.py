"""
Database engine and session management.

Builds the process-wide SQLAlchemy engine from environment configuration,
sizes its connection pool, and exposes the FastAPI session dependency. The
engine is created on startup by ``init_engine`` and drained by
``dispose_engine``; both are safe to call more than once.
"""
import logging
import os
import threading
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import sessionmaker

from server_registry.errors import InternalError
from server_registry.utils.settings import get_pool_settings

logger = logging.getLogger(__name__)


# Database connection URL
# Generate dynamically from individual components if DATABASE_URL is not provided
def _get_database_url() -> str:
    # If DATABASE_URL is explicitly set, use it
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    # Otherwise, generate from individual components (all must be set)
    db_user = os.getenv("POSTGRES_USER")
    db_password = os.getenv("POSTGRES_PASSWORD")
    db_host = os.getenv("POSTGRES_HOST")
    db_port = os.getenv("POSTGRES_PORT")
    db_name = os.getenv("POSTGRES_DB")

    if not all([db_user, db_password, db_host, db_port, db_name]):
        missing = []
        if not db_user: missing.append("POSTGRES_USER")
        if not db_password: missing.append("POSTGRES_PASSWORD")
        if not db_host: missing.append("POSTGRES_HOST")
        if not db_port: missing.append("POSTGRES_PORT")
        if not db_name: missing.append("POSTGRES_DB")
        raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")

    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


# Bound to the engine by init_engine
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Optional[Engine] = None
_engine_lock = threading.Lock()


def init_engine(url: Optional[str] = None, *, ping: bool = True) -> Engine:
    """Create the shared engine once and bind ``SessionLocal`` to it.

    Pool sizing follows ``PoolSettings``: ``min_conns`` connections are kept
    open between requests, at most ``max_conns`` exist concurrently, and every
    connection is recycled after ``recycle_seconds``.
    """
    global _engine
    with _engine_lock:
        if _engine is not None:
            return _engine

        settings = get_pool_settings()
        eng = create_engine(
            url or _get_database_url(),
            pool_size=settings.min_conns,
            max_overflow=settings.max_overflow,
            pool_recycle=settings.recycle_seconds,
            pool_timeout=settings.timeout_seconds,
            pool_pre_ping=True,
            echo=settings.echo,
        )
        if ping:
            try:
                with eng.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except DBAPIError as exc:
                eng.dispose()
                raise InternalError(f"failed to ping PostgreSQL: {exc}") from exc

        SessionLocal.configure(bind=eng)
        _engine = eng
        logger.info(
            "db_engine_ready: pool_size=%s max_overflow=%s recycle=%ss",
            settings.min_conns,
            settings.max_overflow,
            settings.recycle_seconds,
        )
        return eng


def get_engine() -> Engine:
    """Return the shared engine, creating it from the environment if needed."""
    if _engine is None:
        return init_engine()
    return _engine


def dispose_engine() -> None:
    """Close every pooled connection and forget the engine. Idempotent."""
    global _engine
    with _engine_lock:
        if _engine is None:
            return
        _engine.dispose()
        _engine = None
        logger.info("db_engine_disposed")


def get_db():
    """Dependency to get a database session."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
