"""
Server version repository functions.

Implements listing, point lookups, atomic publish (unmark previous latest and
insert) and full-document update over the ``servers`` JSONB table.
``create_server`` must run inside ``with_publish_lock`` for the server's
name; it joins that transaction and leaves the commit to the lock holder.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import cast, func, literal
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, array
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.types import Text

from server_registry.db import filters, models, pagination, schemas
from server_registry.db.errors import translate_db_error
from server_registry.errors import InternalError, InvalidInputError, NotFoundError
from server_registry.utils.cancellation import ensure_not_cancelled
from server_registry.utils.settings import get_pagination_settings

logger = logging.getLogger(__name__)


def _to_document(row: models.ServerVersion) -> schemas.ServerDocument:
    try:
        return schemas.ServerDocument.model_validate(row.value)
    except ValidationError as exc:
        raise InternalError(f"failed to decode server document {row.version_id}: {exc}") from exc


def _normalize_id(value: Optional[str]) -> Optional[str]:
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        return None


def _server_id_matches(server_id: str):
    return filters.official_field("serverId") == server_id


def list_servers(
    db: Session,
    server_filter: Optional[schemas.ServerFilter] = None,
    cursor: Optional[str] = None,
    limit: int = 0,
    *,
    cancel: Optional[threading.Event] = None,
) -> Tuple[List[schemas.ServerDocument], Optional[str]]:
    """Return one page of documents ordered by version id, plus the next cursor."""
    ensure_not_cancelled(cancel, "list servers")
    if limit <= 0:
        limit = get_pagination_settings().store_default_limit

    after = pagination.parse_cursor(cursor)
    query = db.query(models.ServerVersion).filter(*filters.compile_server_filter(server_filter))
    query = pagination.apply_cursor(query, after)
    try:
        rows = query.order_by(models.ServerVersion.version_id).limit(limit).all()
    except DBAPIError as exc:
        raise translate_db_error(exc, "query servers") from exc

    return [_to_document(row) for row in rows], pagination.next_cursor(rows, limit)


def get_by_version_id(
    db: Session, version_id: str, *, cancel: Optional[threading.Event] = None
) -> schemas.ServerDocument:
    ensure_not_cancelled(cancel, "get server by version id")
    key = pagination.parse_identifier(version_id, "version id")
    try:
        row = db.query(models.ServerVersion).filter(models.ServerVersion.version_id == key).first()
    except DBAPIError as exc:
        raise translate_db_error(exc, "get server by version id") from exc
    if row is None:
        raise NotFoundError(f"server version {version_id} not found")
    return _to_document(row)


def get_by_server_id(
    db: Session, server_id: str, *, cancel: Optional[threading.Event] = None
) -> schemas.ServerDocument:
    """Latest version of a server."""
    ensure_not_cancelled(cancel, "get server by server id")
    try:
        row = (
            db.query(models.ServerVersion)
            .filter(_server_id_matches(server_id), filters.is_latest_column().is_(True))
            .order_by(filters.published_at_column().desc())
            .first()
        )
    except DBAPIError as exc:
        raise translate_db_error(exc, "get server by server id") from exc
    if row is None:
        raise NotFoundError(f"server {server_id} not found")
    return _to_document(row)


def get_by_server_id_and_version(
    db: Session, server_id: str, version: str, *, cancel: Optional[threading.Event] = None
) -> schemas.ServerDocument:
    ensure_not_cancelled(cancel, "get server by server id and version")
    try:
        row = (
            db.query(models.ServerVersion)
            .filter(_server_id_matches(server_id), filters.document_field("version") == version)
            .first()
        )
    except DBAPIError as exc:
        raise translate_db_error(exc, "get server by server id and version") from exc
    if row is None:
        raise NotFoundError(f"server {server_id} version {version!r} not found")
    return _to_document(row)


def get_all_versions_by_server_id(
    db: Session, server_id: str, *, cancel: Optional[threading.Event] = None
) -> List[schemas.ServerDocument]:
    """Every version of a server, most recently published first."""
    ensure_not_cancelled(cancel, "get server versions")
    try:
        rows = (
            db.query(models.ServerVersion)
            .filter(_server_id_matches(server_id))
            .order_by(filters.published_at_column().desc())
            .all()
        )
    except DBAPIError as exc:
        raise translate_db_error(exc, "query server versions") from exc
    if not rows:
        raise NotFoundError(f"server {server_id} not found")
    return [_to_document(row) for row in rows]


def get_latest_by_name(
    db: Session, name: str, *, cancel: Optional[threading.Event] = None
) -> schemas.ServerDocument:
    """Current latest version published under ``name``."""
    ensure_not_cancelled(cancel, "get server by name")
    try:
        row = (
            db.query(models.ServerVersion)
            .filter(filters.document_field("name") == name, filters.is_latest_column().is_(True))
            .order_by(filters.published_at_column().desc())
            .first()
        )
    except DBAPIError as exc:
        raise translate_db_error(exc, "get server by name") from exc
    if row is None:
        raise NotFoundError(f"server named {name!r} not found")
    return _to_document(row)


def create_server(
    db: Session,
    server: schemas.ServerDocument,
    old_latest_version_id: Optional[str] = None,
    *,
    cancel: Optional[threading.Event] = None,
) -> schemas.ServerDocument:
    """Insert ``server`` and, if given, clear ``isLatest`` on the previous latest.

    Both writes run in one SAVEPOINT of the caller's transaction so they land
    together or not at all. Nothing is committed here.
    """
    ensure_not_cancelled(cancel, "create server")
    official = server.official
    if official is None or not official.server_id or not official.version_id:
        raise InvalidInputError("server must have registry metadata with serverId and versionId")
    version_key = pagination.parse_identifier(official.version_id, "version id")
    old_key = (
        pagination.parse_identifier(old_latest_version_id, "previous latest version id")
        if old_latest_version_id
        else None
    )

    try:
        with db.begin_nested():
            if old_key is not None:
                db.query(models.ServerVersion).filter(
                    models.ServerVersion.version_id == old_key
                ).update(
                    {
                        models.ServerVersion.value: func.jsonb_set(
                            models.ServerVersion.value,
                            cast(array(list(filters.official_path("isLatest"))), ARRAY(Text)),
                            cast(literal("false"), JSONB),
                        )
                    },
                    synchronize_session=False,
                )
            db.add(models.ServerVersion(version_id=version_key, value=server.to_document()))
    except DBAPIError as exc:
        raise translate_db_error(exc, "insert server") from exc

    logger.debug(
        "server_version_staged: server_id=%s version_id=%s unmarked=%s",
        official.server_id,
        official.version_id,
        old_latest_version_id,
    )
    return server


def update_server(
    db: Session,
    version_id: str,
    server: schemas.ServerDocument,
    *,
    cancel: Optional[threading.Event] = None,
) -> schemas.ServerDocument:
    """Replace the stored document of ``version_id`` with ``server``."""
    ensure_not_cancelled(cancel, "update server")
    key = pagination.parse_identifier(version_id, "version id")
    official = server.official
    if official is None or _normalize_id(official.version_id) != str(key):
        raise InvalidInputError(
            f"{schemas.OFFICIAL_META_KEY}.versionId must match path id ({version_id})"
        )

    try:
        updated = (
            db.query(models.ServerVersion)
            .filter(models.ServerVersion.version_id == key)
            .update({models.ServerVersion.value: server.to_document()}, synchronize_session=False)
        )
        if updated == 0:
            db.rollback()
            raise NotFoundError(f"server version {version_id} not found")
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        raise translate_db_error(exc, "update server") from exc
    return server
