"""
Deployed Server Service

Tracks MCPServer instances and which registry they belong to. Ownership is
three labels on the instance; an instance missing any of them is orphaned
and can be reattached with ``connect``.
"""
import logging
from typing import Any, Dict, List, Optional

from registry_admin.core.errors import NotFoundError
from registry_admin.schemas.deployed_server import ConnectToRegistryRequest, DeployedServerInstance
from registry_admin.services.kubernetes_client import ClusterStore, ResourceKind

logger = logging.getLogger(__name__)

REGISTRY_NAME_LABEL = "toolhive.stacklok.dev/registry-name"
REGISTRY_NAMESPACE_LABEL = "toolhive.stacklok.dev/registry-namespace"
SERVER_NAME_LABEL = "toolhive.stacklok.dev/server-name"

OWNERSHIP_LABELS = (REGISTRY_NAME_LABEL, REGISTRY_NAMESPACE_LABEL, SERVER_NAME_LABEL)

KNOWN_PHASES = {"Pending", "Running", "Failed", "Terminating"}


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def to_instance(resource: Dict[str, Any]) -> DeployedServerInstance:
    """Build the display model for one MCPServer resource."""
    metadata = resource.get("metadata") or {}
    spec = resource.get("spec") or {}
    status = resource.get("status") or {}
    labels = metadata.get("labels") or {}

    phase = status.get("phase")
    return DeployedServerInstance(
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace", ""),
        registry_name=labels.get(REGISTRY_NAME_LABEL) or None,
        registry_namespace=labels.get(REGISTRY_NAMESPACE_LABEL) or None,
        server_name_in_registry=labels.get(SERVER_NAME_LABEL) or None,
        status=phase if phase in KNOWN_PHASES else "Pending",
        url=status.get("url") or None,
        image=spec.get("image") or "",
        transport=spec.get("transport"),
        port=_optional_int(spec.get("port")),
        target_port=_optional_int(spec.get("targetPort")),
        created_at=metadata.get("creationTimestamp"),
        labels=labels,
    )


class DeployedServerService:
    def __init__(self, store: ClusterStore):
        self.store = store

    async def list_instances(
        self,
        namespace: str,
        registry_name: Optional[str] = None,
        registry_namespace: Optional[str] = None,
    ) -> List[DeployedServerInstance]:
        """
        List MCPServer instances in ``namespace``.

        Args:
            namespace: Namespace to scan.
            registry_name: When given, only instances owned by this registry.
            registry_namespace: Namespace of the owning registry; defaults to
                ``namespace`` when ``registry_name`` is given.
        """
        selector = None
        if registry_name:
            selector = (
                f"{REGISTRY_NAME_LABEL}={registry_name},"
                f"{REGISTRY_NAMESPACE_LABEL}={registry_namespace or namespace}"
            )

        resources = await self.store.list_resources(ResourceKind.SERVER, namespace, label_selector=selector)
        return [to_instance(resource) for resource in resources]

    async def list_orphans(self, namespace: str) -> List[DeployedServerInstance]:
        """Instances missing at least one ownership label, in the order the cluster returned them."""
        instances = await self.list_instances(namespace)
        orphans = [instance for instance in instances if instance.orphaned]
        logger.info(f"Found {len(orphans)} orphaned servers out of {len(instances)} in namespace {namespace}")
        return orphans

    async def connect(
        self,
        name: str,
        namespace: str,
        request: ConnectToRegistryRequest,
    ) -> DeployedServerInstance:
        """
        Attach an instance to a registry by writing all three ownership labels
        in a single merge patch.

        Raises:
            NotFoundError: The registry or the instance does not exist. A
                vanished instance is reported, not retried.
        """
        registry = await self.store.find_resource(
            ResourceKind.REGISTRY, request.registry_namespace, request.registry_name
        )
        if registry is None:
            raise NotFoundError(f"Registry '{request.registry_name}' not found")

        patch = {
            "metadata": {
                "labels": {
                    REGISTRY_NAME_LABEL: request.registry_name,
                    REGISTRY_NAMESPACE_LABEL: request.registry_namespace,
                    SERVER_NAME_LABEL: request.server_name_in_registry,
                }
            }
        }
        updated = await self.store.patch_resource(ResourceKind.SERVER, namespace, name, patch)

        logger.info(
            f"Connected server {namespace}/{name} to registry "
            f"{request.registry_namespace}/{request.registry_name} as '{request.server_name_in_registry}'"
        )
        return to_instance(updated)

    async def delete_instance(self, name: str, namespace: str) -> None:
        """Raises NotFoundError if the instance does not exist."""
        await self.store.delete_resource(ResourceKind.SERVER, namespace, name)
