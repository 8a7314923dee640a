"""
Listing filter compilation.

Turns a ``ServerFilter`` into a list of SQL predicates over the JSONB
document column. Each active field contributes exactly one clause; callers
combine them with ``Query.filter(*clauses)`` (logical AND).
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.sql.elements import ColumnElement

from server_registry.db import models
from server_registry.db.schemas import OFFICIAL_META_KEY, ServerFilter


def document_field(key: str):
    """Top-level document field as text (``value ->> key``)."""
    return models.ServerVersion.value[key].astext


def official_path(field: str):
    """JSON path of a registry-managed field inside the document."""
    return ("_meta", OFFICIAL_META_KEY, field)


def official_field(field: str):
    """Registry-managed field as text (``value #>> '{_meta,<official>,field}'``)."""
    return models.ServerVersion.value[official_path(field)].astext


def published_at_column():
    return official_field("publishedAt").cast(TIMESTAMP(timezone=True))


def is_latest_column():
    return official_field("isLatest").cast(Boolean)


def compile_server_filter(server_filter: Optional[ServerFilter]) -> List[ColumnElement[bool]]:
    """Compile ``server_filter`` into predicates; empty list means no filtering."""
    if server_filter is None:
        return []

    conditions: List[ColumnElement[bool]] = []
    if server_filter.name is not None:
        conditions.append(document_field("name") == server_filter.name)
    if server_filter.remote_url is not None:
        conditions.append(
            models.ServerVersion.value["remotes"].contains([{"url": server_filter.remote_url}])
        )
    if server_filter.updated_since is not None:
        conditions.append(
            official_field("updatedAt").cast(TIMESTAMP(timezone=True)) > server_filter.updated_since
        )
    if server_filter.substring_name is not None:
        # Wildcards in user input match literally
        conditions.append(document_field("name").icontains(server_filter.substring_name, autoescape=True))
    if server_filter.version is not None:
        conditions.append(document_field("version") == server_filter.version)
    if server_filter.is_latest is not None:
        conditions.append(is_latest_column() == server_filter.is_latest)
    return conditions
