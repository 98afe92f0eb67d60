"""
Config Map Service

Lists config maps and their keys so a registry can be sourced from one.
Store errors (not found, access denied) propagate to the caller; only
``validate_config_map_key`` folds them into a ValidationResult.
"""
import logging
from typing import List

from kubernetes import client

from registry_admin.core.errors import AccessDeniedError, NotFoundError
from registry_admin.schemas.config_map import ConfigMapInfo
from registry_admin.schemas.validation import ValidationResult
from registry_admin.services.kubernetes_client import ClusterStore

logger = logging.getLogger(__name__)


def config_map_keys(config_map: client.V1ConfigMap) -> List[str]:
    """Keys of both the text and the binary data sections."""
    keys = list((config_map.data or {}).keys())
    keys.extend(k for k in (config_map.binary_data or {}) if k not in keys)
    return keys


class ConfigMapService:
    def __init__(self, store: ClusterStore):
        self.store = store

    async def list_config_maps(self, namespace: str) -> List[ConfigMapInfo]:
        logger.info(f"Fetching ConfigMaps from namespace: {namespace}")
        config_maps = await self.store.list_config_maps(namespace)
        logger.info(f"Found {len(config_maps)} ConfigMaps in namespace {namespace}")

        return [
            ConfigMapInfo(
                name=cm.metadata.name,
                namespace=cm.metadata.namespace or namespace,
                keys=config_map_keys(cm),
                created_at=cm.metadata.creation_timestamp,
            )
            for cm in config_maps
        ]

    async def get_config_map_keys(self, name: str, namespace: str) -> List[str]:
        """
        Return the keys of one config map.

        Raises:
            NotFoundError: The config map does not exist in ``namespace``.
            AccessDeniedError: The service account may not read it.
        """
        try:
            config_map = await self.store.get_config_map(namespace, name)
        except NotFoundError as e:
            raise NotFoundError(f"ConfigMap {name} not found in namespace {namespace}.") from e
        except AccessDeniedError as e:
            raise AccessDeniedError(
                f"Access denied to ConfigMap {name} in namespace {namespace}. Check RBAC permissions."
            ) from e

        keys = config_map_keys(config_map)
        logger.debug(f"ConfigMap {namespace}/{name} has keys: {keys}")
        return keys

    async def validate_config_map_key(self, name: str, namespace: str, key: str) -> ValidationResult:
        """
        Check that a config map exists and holds the entry ``key``.

        Absence and permission failures are reported in the result, not raised.
        """
        if not key:
            return ValidationResult.invalid(f"A key is required to use ConfigMap {name} as a registry source")

        try:
            keys = await self.get_config_map_keys(name, namespace)
        except (NotFoundError, AccessDeniedError) as e:
            logger.warning(f"ConfigMap validation failed: {e}")
            return ValidationResult.invalid(str(e))

        if key not in keys:
            return ValidationResult.invalid(
                f"Key '{key}' not found in ConfigMap {name} (available keys: {', '.join(keys) or 'none'})",
                accessible=True,
            )
        return ValidationResult.ok()
