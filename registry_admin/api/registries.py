"""
MCPRegistry endpoints: validate, CRUD, manual sync, status and the
servers deployed from a registry.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from registry_admin.api.deps import get_deployed_server_service, get_registry_service
from registry_admin.core.config import settings
from registry_admin.schemas.deployed_server import DeployedServersResponse
from registry_admin.schemas.registry import (
    CreateRegistryRequest,
    Registry,
    RegistryListResponse,
    RegistryOperationResult,
    RegistryStatus,
    RegistryStatusResponse,
    UpdateRegistryRequest,
)
from registry_admin.schemas.validation import RegistryValidationReport
from registry_admin.services.deployed_server_service import DeployedServerService
from registry_admin.services.registry_service import RegistryService

logger = logging.getLogger(__name__)

router = APIRouter()


def namespace_param(namespace: Optional[str] = Query(None, description="Registry namespace")) -> str:
    return namespace or settings.DEFAULT_NAMESPACE


@router.post("/validate", response_model=RegistryValidationReport)
async def validate_registry(
    request: CreateRegistryRequest,
    service: RegistryService = Depends(get_registry_service),
):
    """Run every create-time check without creating anything."""
    return await service.validate_create_request(request)


@router.post("", response_model=RegistryOperationResult, status_code=status.HTTP_201_CREATED)
async def create_registry(
    request: CreateRegistryRequest,
    response: Response,
    service: RegistryService = Depends(get_registry_service),
):
    result = await service.create_registry(request)
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.get("", response_model=RegistryListResponse)
async def list_registries(
    namespace: str = Depends(namespace_param),
    status_filter: Optional[RegistryStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: RegistryService = Depends(get_registry_service),
):
    return await service.list_registries(namespace, status=status_filter, limit=limit, offset=offset)


@router.get("/{name}", response_model=Registry)
async def get_registry(
    name: str,
    namespace: str = Depends(namespace_param),
    service: RegistryService = Depends(get_registry_service),
):
    return await service.get_registry(name, namespace)


@router.put("/{name}", response_model=RegistryOperationResult)
async def update_registry(
    name: str,
    request: UpdateRegistryRequest,
    response: Response,
    namespace: str = Depends(namespace_param),
    service: RegistryService = Depends(get_registry_service),
):
    """Update only the fields present in the body."""
    result = await service.update_registry(name, namespace, request)
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_registry(
    name: str,
    namespace: str = Depends(namespace_param),
    service: RegistryService = Depends(get_registry_service),
):
    if not await service.delete_registry(name, namespace):
        raise HTTPException(status_code=404, detail=f"Registry '{name}' not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{name}/sync", status_code=status.HTTP_202_ACCEPTED)
async def trigger_sync(
    name: str,
    namespace: str = Depends(namespace_param),
    service: RegistryService = Depends(get_registry_service),
):
    """
    Ask the registry reconciler to sync now.

    Returns as soon as the request is recorded; poll the status endpoint to
    follow the sync.
    """
    if not await service.trigger_sync(name, namespace):
        raise HTTPException(status_code=404, detail=f"Registry '{name}' not found")
    return {"success": True, "message": f"Sync triggered for registry '{name}'"}


@router.get("/{name}/status", response_model=RegistryStatusResponse)
async def get_registry_status(
    name: str,
    namespace: str = Depends(namespace_param),
    service: RegistryService = Depends(get_registry_service),
):
    return await service.get_registry_status(name, namespace)


@router.get("/{name}/deployed-servers", response_model=DeployedServersResponse)
async def list_deployed_servers(
    name: str,
    namespace: str = Depends(namespace_param),
    registries: RegistryService = Depends(get_registry_service),
    servers: DeployedServerService = Depends(get_deployed_server_service),
):
    """Instances labelled as deployed from this registry."""
    # Raises NotFoundError (404) for an unknown registry
    await registries.get_registry_status(name, namespace)

    instances = await servers.list_instances(namespace, registry_name=name)
    return DeployedServersResponse(servers=instances, total=len(instances), namespace=namespace)
