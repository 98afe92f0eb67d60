import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from registry_admin.api.deps import get_config_map_service
from registry_admin.core.config import settings
from registry_admin.schemas.config_map import ConfigMapKeysResponse, ConfigMapListResponse
from registry_admin.schemas.validation import ConfigMapValidateRequest, ValidationResult
from registry_admin.services.config_map_service import ConfigMapService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ConfigMapListResponse)
async def list_config_maps(
    namespace: Optional[str] = Query(None),
    service: ConfigMapService = Depends(get_config_map_service),
):
    """Config maps that could back a registry source."""
    namespace = namespace or settings.DEFAULT_NAMESPACE
    config_maps = await service.list_config_maps(namespace)
    return ConfigMapListResponse(config_maps=config_maps, namespace=namespace)


@router.get("/{namespace}/{name}/keys", response_model=ConfigMapKeysResponse)
async def get_config_map_keys(
    namespace: str,
    name: str,
    service: ConfigMapService = Depends(get_config_map_service),
):
    keys = await service.get_config_map_keys(name, namespace)
    return ConfigMapKeysResponse(name=name, namespace=namespace, keys=keys)


@router.post("/validate", response_model=ValidationResult)
async def validate_config_map(
    request: ConfigMapValidateRequest,
    service: ConfigMapService = Depends(get_config_map_service),
):
    namespace = request.namespace or settings.DEFAULT_NAMESPACE
    logger.info(f"Validating ConfigMap {request.name}, key {request.key} in namespace {namespace}")
    return await service.validate_config_map_key(request.name, namespace, request.key)
