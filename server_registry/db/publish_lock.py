"""
Per-name publish serialization with PostgreSQL advisory locks.

``with_publish_lock`` takes ``pg_advisory_xact_lock`` on a key derived from
the server name, runs the caller's function in the same transaction and
commits. PostgreSQL releases the lock when that transaction ends, so a crashed
or rolled-back publish never leaves it held. Waiting is unbounded here; a
caller that needs a deadline sets ``lock_timeout``/``statement_timeout`` on
the session or cancels externally.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from server_registry.db.errors import translate_db_error
from server_registry.utils.cancellation import ensure_not_cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FNV64_OFFSET = 14695981039346656037
_FNV64_PRIME = 1099511628211
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF
# pg_advisory_xact_lock takes a signed bigint; keep 63 bits
_BIGINT_POSITIVE_MASK = 0x7FFFFFFFFFFFFFFF


def hash_server_name(name: str) -> int:
    """FNV-1a 64-bit hash of ``name`` masked to a non-negative bigint.

    Distinct names can collide; colliding names then serialize against each
    other, which costs throughput but never correctness.
    """
    h = _FNV64_OFFSET
    for byte in name.encode("utf-8"):
        h ^= byte
        h = (h * _FNV64_PRIME) & _UINT64_MASK
    return h & _BIGINT_POSITIVE_MASK


def with_publish_lock(
    db: Session,
    server_name: str,
    fn: Callable[[Session], T],
    *,
    cancel: Optional[threading.Event] = None,
) -> T:
    """Run ``fn(db)`` while holding the publish lock for ``server_name``.

    Blocks until the lock is free. Any exception from ``fn`` rolls the
    transaction back and propagates unchanged.
    """
    ensure_not_cancelled(cancel, "acquire publish lock")
    lock_id = hash_server_name(server_name)
    try:
        try:
            db.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": lock_id})
        except DBAPIError as exc:
            raise translate_db_error(exc, "acquire publish lock") from exc
        logger.debug("publish_lock_acquired: name=%s lock_id=%s", server_name, lock_id)

        result = fn(db)

        try:
            db.commit()
        except DBAPIError as exc:
            raise translate_db_error(exc, "commit publish") from exc
    except BaseException:
        db.rollback()
        raise
    logger.debug("publish_lock_released: name=%s", server_name)
    return result
