"""
Registry service: the operations the HTTP layer calls.

Wraps the server repository with page-size clamping, the publish workflow
(serialize on the name, find the current latest, reject duplicate versions,
resolve the latest flag, stamp ids and timestamps, write) and edits.
"""

import logging
import threading
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from server_registry.db import pagination, schemas
from server_registry.db.models import now_utc
from server_registry.db.publish_lock import with_publish_lock
from server_registry.db.repositories import servers as server_repo
from server_registry.errors import DuplicateVersionError, InternalError, InvalidInputError, NotFoundError
from server_registry.services.versioning import resolve_latest
from server_registry.utils.settings import get_pagination_settings

logger = logging.getLogger(__name__)


def clamp_limit(limit: Optional[int]) -> int:
    """Bound a requested page size to the configured minimum and maximum."""
    settings = get_pagination_settings()
    if limit is None or limit <= 0:
        return settings.default_limit
    return min(max(limit, settings.min_limit), settings.max_limit)


class RegistryService:
    """Registry operations bound to one database session."""

    def __init__(self, db: Session):
        self.db = db

    def list_servers(
        self,
        server_filter: Optional[schemas.ServerFilter] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Tuple[List[schemas.ServerDocument], Optional[str]]:
        return server_repo.list_servers(
            self.db, server_filter, cursor, clamp_limit(limit), cancel=cancel
        )

    def get_by_version_id(self, version_id: str, *, cancel: Optional[threading.Event] = None):
        return server_repo.get_by_version_id(self.db, version_id, cancel=cancel)

    def get_by_server_id(self, server_id: str, *, cancel: Optional[threading.Event] = None):
        return server_repo.get_by_server_id(self.db, server_id, cancel=cancel)

    def get_by_server_id_and_version(
        self, server_id: str, version: str, *, cancel: Optional[threading.Event] = None
    ):
        return server_repo.get_by_server_id_and_version(self.db, server_id, version, cancel=cancel)

    def get_versions_by_server_id(self, server_id: str, *, cancel: Optional[threading.Event] = None):
        return server_repo.get_all_versions_by_server_id(self.db, server_id, cancel=cancel)

    def publish(
        self, server: schemas.ServerDocument, *, cancel: Optional[threading.Event] = None
    ) -> schemas.ServerDocument:
        """Publish a new version of ``server`` and return the stored document.

        Any registry metadata supplied by the publisher is replaced.
        """
        if not server.name or not server.version:
            raise InvalidInputError("server name and version are required")

        def _publish(db: Session) -> schemas.ServerDocument:
            try:
                current = server_repo.get_latest_by_name(db, server.name, cancel=cancel)
            except NotFoundError:
                current = None

            if current is not None and current.official is not None:
                server_id = current.official.server_id
                try:
                    server_repo.get_by_server_id_and_version(db, server_id, server.version, cancel=cancel)
                except NotFoundError:
                    pass
                else:
                    raise DuplicateVersionError(server.name, server.version)
                current_version = current.version
                current_version_id = current.official.version_id
            else:
                server_id = str(uuid.uuid4())
                current_version = None
                current_version_id = None

            decision = resolve_latest(server.version, current_version)
            now = now_utc()
            record = server.with_registry_meta(
                schemas.RegistryExtensions(
                    server_id=server_id,
                    version_id=str(uuid.uuid4()),
                    published_at=now,
                    updated_at=now,
                    is_latest=decision.is_latest,
                )
            )
            return server_repo.create_server(
                db,
                record,
                current_version_id if decision.unmark_previous else None,
                cancel=cancel,
            )

        published = with_publish_lock(self.db, server.name, _publish, cancel=cancel)
        logger.info(
            "server_published: name=%s version=%s server_id=%s is_latest=%s",
            published.name,
            published.version,
            published.official.server_id,
            published.official.is_latest,
        )
        return published


    def edit(
        self,
        version_id: str,
        server: schemas.ServerDocument,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> schemas.ServerDocument:
        """Replace the publisher-owned body of a stored version.

        The registry envelope (serverId, versionId, publishedAt, isLatest) is
        taken from the stored row, never from the request; only ``updatedAt``
        is refreshed. The name is immutable and a new version string must not
        collide with another version of the same server. Runs under the
        publish lock so it cannot interleave with a publish of the same name.
        """
        key = pagination.parse_identifier(version_id, "version id")
        supplied = server.official
        if supplied is not None and not _same_id(supplied.version_id, key):
            raise InvalidInputError(
                f"{schemas.OFFICIAL_META_KEY}.versionId must match path id ({version_id})"
            )

        def _edit(db: Session) -> schemas.ServerDocument:
            stored = server_repo.get_by_version_id(db, version_id, cancel=cancel)
            official = stored.official
            if official is None:
                raise InternalError(f"stored server version {version_id} has no registry metadata")
            if server.name != stored.name:
                raise InvalidInputError(
                    f"server name cannot be changed by an edit ({stored.name!r} -> {server.name!r})"
                )
            if server.version != stored.version:
                try:
                    server_repo.get_by_server_id_and_version(
                        db, official.server_id, server.version, cancel=cancel
                    )
                except NotFoundError:
                    pass
                else:
                    raise DuplicateVersionError(stored.name, server.version)

            record = server.with_registry_meta(official.model_copy(update={"updated_at": now_utc()}))
            return server_repo.update_server(db, version_id, record, cancel=cancel)

        edited = with_publish_lock(self.db, server.name, _edit, cancel=cancel)
        logger.info(
            "server_edited: name=%s version=%s version_id=%s",
            edited.name,
            edited.version,
            edited.official.version_id,
        )
        return edited


def _same_id(value: Optional[str], key: uuid.UUID) -> bool:
    try:
        return uuid.UUID(str(value)) == key
    except (ValueError, TypeError):
        return False
