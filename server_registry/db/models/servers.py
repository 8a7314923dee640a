from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import UUID, JSONB

from .base import Base


class ServerVersion(Base):
    """One published version of a server; the whole document lives in ``value``.

    Registry-managed fields (serverId, versionId, publishedAt, updatedAt,
    isLatest) are addressed inside ``value`` with JSON path operators. The
    expression indexes over serverId, name and the latest flag are created by
    the Alembic migration.
    """

    __tablename__ = 'servers'
    version_id = Column(UUID(as_uuid=True), primary_key=True)
    value = Column(JSONB, nullable=False)
