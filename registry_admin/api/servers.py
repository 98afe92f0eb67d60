"""
Deployed server endpoints: orphan listing, reattachment to a registry and
deletion.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from registry_admin.api.deps import get_deployed_server_service
from registry_admin.core.config import settings
from registry_admin.schemas.deployed_server import (
    ConnectToRegistryRequest,
    ConnectToRegistryResponse,
    DeployedServersResponse,
)
from registry_admin.services.deployed_server_service import DeployedServerService

logger = logging.getLogger(__name__)

orphans_router = APIRouter()
router = APIRouter()


def namespace_param(namespace: Optional[str] = Query(None, description="Server namespace")) -> str:
    return namespace or settings.DEFAULT_NAMESPACE


@orphans_router.get("", response_model=DeployedServersResponse)
async def list_orphaned_servers(
    namespace: str = Depends(namespace_param),
    service: DeployedServerService = Depends(get_deployed_server_service),
):
    """Servers missing at least one registry ownership label."""
    orphans = await service.list_orphans(namespace)
    return DeployedServersResponse(servers=orphans, total=len(orphans), namespace=namespace)


@orphans_router.post("/{name}/connect", response_model=ConnectToRegistryResponse)
async def connect_server(
    name: str,
    request: ConnectToRegistryRequest,
    namespace: str = Depends(namespace_param),
    service: DeployedServerService = Depends(get_deployed_server_service),
):
    server = await service.connect(name, namespace, request)
    return ConnectToRegistryResponse(
        message=f"Server '{name}' connected to registry '{request.registry_name}'",
        server=server,
    )


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_server(
    name: str,
    namespace: str = Depends(namespace_param),
    service: DeployedServerService = Depends(get_deployed_server_service),
):
    await service.delete_instance(name, namespace)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
