"""
Request dependencies.

Long-lived components (cluster store, validation cache, HTTP client) are
built once by the application lifespan and kept on ``app.state``; the
services below are cheap wrappers assembled per request.
"""
import httpx
from fastapi import Depends, Request

from registry_admin.core.config import settings
from registry_admin.services.config_map_service import ConfigMapService
from registry_admin.services.content_probe import ContentProbe
from registry_admin.services.deployed_server_service import DeployedServerService
from registry_admin.services.kubernetes_client import ClusterStore
from registry_admin.services.registry_service import RegistryService
from registry_admin.services.registry_state import ServerCounter
from registry_admin.services.source_validator import SourceValidator
from registry_admin.services.validation_cache import ValidationCache


def get_store(request: Request) -> ClusterStore:
    return request.app.state.store


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_validation_cache(request: Request) -> ValidationCache:
    return request.app.state.validation_cache


def get_config_map_service(store: ClusterStore = Depends(get_store)) -> ConfigMapService:
    return ConfigMapService(store)


def get_source_validator(
    config_maps: ConfigMapService = Depends(get_config_map_service),
    cache: ValidationCache = Depends(get_validation_cache),
) -> SourceValidator:
    return SourceValidator(config_maps, cache)


def get_registry_service(
    store: ClusterStore = Depends(get_store),
    validator: SourceValidator = Depends(get_source_validator),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> RegistryService:
    return RegistryService(store, validator, ServerCounter(store, http_client, settings))


def get_deployed_server_service(store: ClusterStore = Depends(get_store)) -> DeployedServerService:
    return DeployedServerService(store)


def get_content_probe(http_client: httpx.AsyncClient = Depends(get_http_client)) -> ContentProbe:
    return ContentProbe(http_client, timeout=settings.PROBE_TIMEOUT_SECONDS)
