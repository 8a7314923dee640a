"""
Servers API endpoints (v0).

List, look up, publish and edit server versions. Query parsing and page-size
bounds live here; all persistence rules live in the service and repository.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from server_registry.api.deps import get_registry_service
from server_registry.db import schemas
from server_registry.services.registry_service import RegistryService

router = APIRouter(prefix="/v0", tags=["servers"])


@router.get("/servers", response_model=schemas.ServerListResponse)
def list_servers_endpoint(
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    updated_since: Optional[datetime] = None,
    search: Optional[str] = None,
    version: Optional[str] = None,
    name: Optional[str] = None,
    remote_url: Optional[str] = None,
    service: RegistryService = Depends(get_registry_service),
):
    server_filter = schemas.ServerFilter(
        name=name or None,
        substring_name=search or None,
        remote_url=remote_url or None,
        updated_since=updated_since,
    )
    if version == "latest":
        server_filter.is_latest = True
    elif version:
        server_filter.version = version

    servers, next_cursor = service.list_servers(server_filter, cursor, limit)
    return schemas.ServerListResponse(
        servers=[s.to_document() for s in servers],
        metadata=schemas.ServerListMetadata(count=len(servers), next_cursor=next_cursor),
    )


@router.get("/servers/{server_id}")
def get_server_endpoint(
    server_id: str,
    version: Optional[str] = None,
    service: RegistryService = Depends(get_registry_service),
):
    if version:
        server = service.get_by_server_id_and_version(server_id, version)
    else:
        server = service.get_by_server_id(server_id)
    return server.to_document()


@router.get("/servers/{server_id}/versions", response_model=schemas.ServerVersionsResponse)
def get_server_versions_endpoint(
    server_id: str,
    service: RegistryService = Depends(get_registry_service),
):
    versions = service.get_versions_by_server_id(server_id)
    return schemas.ServerVersionsResponse(versions=[v.to_document() for v in versions])


@router.post("/publish", status_code=status.HTTP_201_CREATED)
def publish_server_endpoint(
    server: schemas.ServerDocument = Body(...),
    service: RegistryService = Depends(get_registry_service),
):
    return service.publish(server).to_document()


@router.put("/servers/{version_id}")
def edit_server_endpoint(
    version_id: str,
    server: schemas.ServerDocument = Body(...),
    service: RegistryService = Depends(get_registry_service),
):
    return service.edit(version_id, server).to_document()
