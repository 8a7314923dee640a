from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer

OFFICIAL_META_KEY = "io.modelcontextprotocol.registry/official"


class RegistryExtensions(BaseModel):
    """Registry-managed envelope stored under ``_meta[OFFICIAL_META_KEY]``."""

    server_id: str = Field(alias="serverId")
    version_id: str = Field(alias="versionId")
    published_at: datetime = Field(alias="publishedAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    is_latest: bool = Field(alias="isLatest")
    model_config = ConfigDict(populate_by_name=True)


class ServerMeta(BaseModel):
    """``_meta`` block; publisher-owned keys are kept as extras."""

    official: Optional[RegistryExtensions] = Field(default=None, alias=OFFICIAL_META_KEY)
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ServerDocument(BaseModel):
    """A server version document.

    Only the fields the registry reads are typed; packages, remotes and any
    other publisher keys pass through untouched.
    """

    name: str
    version: str
    description: Optional[str] = None
    remotes: Optional[List[Dict[str, Any]]] = None
    meta: Optional[ServerMeta] = Field(default=None, alias="_meta")
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def official(self) -> Optional[RegistryExtensions]:
        return self.meta.official if self.meta is not None else None

    def with_registry_meta(self, official: RegistryExtensions) -> "ServerDocument":
        """Return a copy whose registry envelope is replaced by ``official``."""
        meta = self.meta.model_copy(update={"official": official}) if self.meta else ServerMeta(official=official)
        return self.model_copy(update={"meta": meta})

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict in the stored/wire shape (camelCase, no nulls)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ServerFilter(BaseModel):
    """Conjunctive listing filter; unset fields contribute no predicate."""

    name: Optional[str] = None
    substring_name: Optional[str] = None
    remote_url: Optional[str] = None
    updated_since: Optional[datetime] = None
    version: Optional[str] = None
    is_latest: Optional[bool] = None


class ServerListMetadata(BaseModel):
    count: int
    next_cursor: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_empty_cursor(self, handler):
        data = handler(self)
        if data.get("next_cursor") is None:
            data.pop("next_cursor", None)
        return data


class ServerListResponse(BaseModel):
    servers: List[Dict[str, Any]]
    metadata: ServerListMetadata


class ServerVersionsResponse(BaseModel):
    versions: List[Dict[str, Any]]
