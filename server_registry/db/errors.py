"""
Translation of driver-level database failures into registry errors.

SQLAlchemy wraps psycopg2 exceptions in ``DBAPIError``; the original driver
exception carries the PostgreSQL SQLSTATE in ``pgcode``.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError

from server_registry.errors import (
    ConflictError,
    InternalError,
    OperationCancelledError,
    RegistryError,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
QUERY_CANCELED = "57014"
LOCK_NOT_AVAILABLE = "55P03"


def sqlstate(exc: DBAPIError) -> Optional[str]:
    """Return the PostgreSQL SQLSTATE behind ``exc`` when the driver exposes one."""
    return getattr(getattr(exc, "orig", None), "pgcode", None)


def translate_db_error(exc: DBAPIError, action: str) -> RegistryError:
    """Map ``exc`` to the registry error the caller should raise (chained)."""
    code = sqlstate(exc)
    if code == UNIQUE_VIOLATION:
        logger.warning("db_conflict: action=%s sqlstate=%s", action, code)
        return ConflictError(f"failed to {action}: record already exists")
    if code in (QUERY_CANCELED, LOCK_NOT_AVAILABLE):
        logger.warning("db_cancelled: action=%s sqlstate=%s", action, code)
        return OperationCancelledError(f"failed to {action}: cancelled by database deadline")
    logger.error("db_error: action=%s sqlstate=%s error=%s", action, code, exc)
    return InternalError(f"failed to {action}: {exc.orig if exc.orig is not None else exc}")
