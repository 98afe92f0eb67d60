"""
Cluster Store: async access to the MCPRegistry / MCPServer custom resources,
config maps and the API server service proxy.

The official ``kubernetes`` client is synchronous, so every call runs in a
worker thread. Cluster API failures are translated into the
``registry_admin.core.errors`` taxonomy so callers never see raw
``ApiException`` payloads.
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from registry_admin.core.config import Settings
from registry_admin.core.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    REGISTRY = "MCPRegistry"
    SERVER = "MCPServer"


def load_kubernetes_config(kubeconfig_path: Optional[str] = None) -> bool:
    """
    Load cluster credentials: in-cluster first, then the kubeconfig file.

    Returns:
        True if a configuration was loaded, False otherwise. Without one the
        store still starts; every call will then fail as StoreUnavailableError.
    """
    if not kubeconfig_path:
        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
            return True
        except ConfigException:
            logger.debug("Not running in a cluster, falling back to kubeconfig")

    try:
        config.load_kube_config(config_file=kubeconfig_path)
        logger.info(f"Loaded Kubernetes configuration from {kubeconfig_path or 'default kubeconfig'}")
        return True
    except (ConfigException, FileNotFoundError) as e:
        logger.warning(f"Kubernetes configuration unavailable: {e}. Cluster calls will fail.")
        return False


class ClusterStore:
    """Typed CRUD + merge-patch over the registry and server custom resources."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        core_api: client.CoreV1Api,
        group: str = "toolhive.stacklok.dev",
        version: str = "v1alpha1",
        plurals: Optional[Dict[ResourceKind, str]] = None,
    ):
        self.custom_api = custom_api
        self.core_api = core_api
        self.group = group
        self.version = version
        self.plurals = plurals or {
            ResourceKind.REGISTRY: "mcpregistries",
            ResourceKind.SERVER: "mcpservers",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClusterStore":
        load_kubernetes_config(settings.KUBECONFIG_PATH)
        return cls(
            custom_api=client.CustomObjectsApi(),
            core_api=client.CoreV1Api(),
            group=settings.CRD_GROUP,
            version=settings.CRD_VERSION,
            plurals={
                ResourceKind.REGISTRY: settings.REGISTRY_PLURAL,
                ResourceKind.SERVER: settings.SERVER_PLURAL,
            },
        )

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    # ── Custom resources ─────────────────────────────────────

    async def get_resource(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        """Fetch one resource; raises NotFoundError if it does not exist."""
        return await self._call(
            f"{kind.value} '{name}' in namespace '{namespace}'",
            self.custom_api.get_namespaced_custom_object,
            self.group, self.version, namespace, self.plurals[kind], name,
        )

    async def find_resource(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Like get_resource, but returns None instead of raising NotFoundError."""
        try:
            return await self.get_resource(kind, namespace, name)
        except NotFoundError:
            return None

    async def list_resources(
        self,
        kind: ResourceKind,
        namespace: str,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        kwargs = {"label_selector": label_selector} if label_selector else {}
        response = await self._call(
            f"{kind.value} list in namespace '{namespace}'",
            self.custom_api.list_namespaced_custom_object,
            self.group, self.version, namespace, self.plurals[kind],
            **kwargs,
        )
        return (response or {}).get("items", []) or []

    async def create_resource(self, kind: ResourceKind, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        name = body.get("metadata", {}).get("name", "")
        logger.info(f"Creating {kind.value} '{name}' in namespace '{namespace}'")
        return await self._call(
            f"{kind.value} '{name}' in namespace '{namespace}'",
            self.custom_api.create_namespaced_custom_object,
            self.group, self.version, namespace, self.plurals[kind], body,
        )

    async def patch_resource(
        self,
        kind: ResourceKind,
        namespace: str,
        name: str,
        body: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Apply a JSON merge patch.

        A dict body makes the client send ``application/merge-patch+json``,
        so the whole patch lands in a single update.
        """
        logger.info(f"Patching {kind.value} '{name}' in namespace '{namespace}'")
        return await self._call(
            f"{kind.value} '{name}' in namespace '{namespace}'",
            self.custom_api.patch_namespaced_custom_object,
            self.group, self.version, namespace, self.plurals[kind], name, body,
        )

    async def delete_resource(self, kind: ResourceKind, namespace: str, name: str) -> None:
        logger.info(f"Deleting {kind.value} '{name}' in namespace '{namespace}'")
        await self._call(
            f"{kind.value} '{name}' in namespace '{namespace}'",
            self.custom_api.delete_namespaced_custom_object,
            self.group, self.version, namespace, self.plurals[kind], name,
        )

    # ── Config maps ──────────────────────────────────────────

    async def list_config_maps(self, namespace: str) -> List[client.V1ConfigMap]:
        response = await self._call(
            f"ConfigMaps in namespace '{namespace}'",
            self.core_api.list_namespaced_config_map,
            namespace,
        )
        return list(response.items or [])

    async def get_config_map(self, namespace: str, name: str) -> client.V1ConfigMap:
        return await self._call(
            f"ConfigMap '{name}' in namespace '{namespace}'",
            self.core_api.read_namespaced_config_map,
            name, namespace,
        )

    # ── Service proxy ────────────────────────────────────────

    async def proxy_service_get(self, namespace: str, service: str, port: str, path: str) -> Any:
        """
        GET ``path`` on a cluster service through the API server proxy and
        decode the JSON body.
        """
        proxy_path = f"/api/v1/namespaces/{namespace}/services/{service}:{port}/proxy{path}"
        logger.debug(f"Making Kubernetes proxy request to: {proxy_path}")

        response = await self._call(
            f"service '{service}' in namespace '{namespace}'",
            self.core_api.connect_get_namespaced_service_proxy_with_path,
            f"{service}:{port}", namespace, path.lstrip("/"),
            _preload_content=False,
        )
        return json.loads(response.data)

    # ── Internals ────────────────────────────────────────────

    async def _call(self, target: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ApiException as e:
            raise self._translate(e, target) from e
        except Exception as e:
            logger.error(f"Cluster API unreachable while accessing {target}: {e}", exc_info=True)
            raise StoreUnavailableError(f"Cluster API unavailable while accessing {target}") from e

    @staticmethod
    def _translate(error: ApiException, target: str) -> Exception:
        if error.status == 404:
            return NotFoundError(f"{target} not found")
        if error.status == 403:
            return AccessDeniedError(f"Access denied to {target}. Check RBAC permissions.")
        if error.status == 409:
            return ConflictError(f"Conflicting write for {target}")
        logger.error(f"Cluster API error ({error.status}) for {target}: {error.reason}")
        return StoreUnavailableError(f"Cluster API error ({error.status}) for {target}")
