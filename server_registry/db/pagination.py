"""
Keyset pagination over ``servers.version_id``.

The cursor is the last ``version_id`` of the previous page. Pages are ordered
by ``version_id`` ascending, a stable total order that is unrelated to
publication time. A resumed scan never revisits rows at or before the cursor,
so rows inserted later with a smaller key are not seen by it.
"""
from __future__ import annotations

import uuid
from typing import Optional, Sequence

from server_registry.db import models
from server_registry.errors import InvalidInputError


def parse_identifier(value: str, label: str = "identifier") -> uuid.UUID:
    """Parse a UUID key supplied by a caller, rejecting malformed input."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError) as exc:
        raise InvalidInputError(f"invalid {label} format: {value!r}") from exc


def parse_cursor(cursor: Optional[str]) -> Optional[uuid.UUID]:
    """Return the decoded cursor, or None when no cursor was supplied."""
    if not cursor:
        return None
    return parse_identifier(cursor, "cursor")


def apply_cursor(query, after: Optional[uuid.UUID]):
    """Restrict ``query`` to rows strictly after the cursor key."""
    if after is None:
        return query
    return query.filter(models.ServerVersion.version_id > after)


def next_cursor(rows: Sequence[models.ServerVersion], limit: int) -> Optional[str]:
    """Cursor for the following page: set only when the page came back full."""
    if rows and len(rows) >= limit:
        return str(rows[-1].version_id)
    return None
