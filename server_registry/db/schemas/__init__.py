"""
Pydantic schemas for server documents, filters and list responses.
"""

from .servers import (
    OFFICIAL_META_KEY,
    RegistryExtensions,
    ServerMeta,
    ServerDocument,
    ServerFilter,
    ServerListMetadata,
    ServerListResponse,
    ServerVersionsResponse,
)

__all__ = [
    "OFFICIAL_META_KEY",
    "RegistryExtensions",
    "ServerMeta",
    "ServerDocument",
    "ServerFilter",
    "ServerListMetadata",
    "ServerListResponse",
    "ServerVersionsResponse",
]
