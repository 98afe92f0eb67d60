"""
Registry State Mapper

Derives the display state of a registry from its MCPRegistry resource:
the display status from the reconciler phase and the number of servers the
registry is currently serving.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from registry_admin.core.config import Settings
from registry_admin.services.kubernetes_client import ClusterStore
from registry_admin.utils.url_helpers import parse_cluster_service_url

logger = logging.getLogger(__name__)

PHASE_TO_STATUS = {
    "Ready": "active",
    "Syncing": "syncing",
    "Error": "error",
}


def to_display_status(phase: Optional[str]) -> str:
    """
    Map a reconciler phase to a display status.

    Total over every input: unknown phases, Pending and None are "inactive".
    """
    return PHASE_TO_STATUS.get(phase, "inactive") if isinstance(phase, str) else "inactive"


def serving_endpoint(resource: Dict[str, Any]) -> Optional[str]:
    """``status.apiEndpoint`` if the reconciler published one, else the legacy ``spec.url``."""
    for section, field in (("status", "apiEndpoint"), ("spec", "url")):
        values = resource.get(section)
        endpoint = values.get(field) if isinstance(values, dict) else None
        if endpoint and isinstance(endpoint, str):
            return endpoint
    return None


def count_from_listing(body: Any) -> int:
    """Read a server count from a ``/v0/servers`` response body."""
    if not isinstance(body, dict):
        return 0

    servers = body.get("servers")
    if isinstance(servers, list) and servers:
        return len(servers)

    total = body.get("total")
    # bool is an int subclass; a boolean total is not a count
    if isinstance(total, int) and not isinstance(total, bool) and total >= 0:
        return total
    return 0


class ServerCounter:
    """
    Counts the servers a registry is serving.

    In-cluster endpoints (``<svc>.<ns>.svc.cluster.local``) are not routable
    from outside the cluster, so they are reached through the API server
    service proxy. Anything else gets a direct GET. Counting is best-effort:
    every failure is logged and reported as 0.
    """

    def __init__(self, store: ClusterStore, http_client: httpx.AsyncClient, settings: Settings):
        self.store = store
        self.http_client = http_client
        self.listing_path = settings.SERVERS_LISTING_PATH
        self.default_port = settings.DEFAULT_SERVICE_PORT
        self.timeout = settings.SERVER_COUNT_TIMEOUT_SECONDS

    async def count(self, resource: Dict[str, Any]) -> int:
        endpoint = serving_endpoint(resource)
        if not endpoint:
            return 0

        name = (resource.get("metadata") or {}).get("name", "<unknown>")
        try:
            body = await asyncio.wait_for(self._fetch_listing(endpoint), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Could not get server count for registry {name} from {endpoint}: {e}")
            return 0

        count = count_from_listing(body)
        logger.debug(f"Registry {name} is serving {count} servers")
        return count

    async def _fetch_listing(self, endpoint: str) -> Any:
        service = parse_cluster_service_url(endpoint)
        if service is not None:
            return await self.store.proxy_service_get(
                service.namespace,
                service.service,
                service.port or self.default_port,
                self.listing_path,
            )

        response = await self.http_client.get(f"{endpoint.rstrip('/')}{self.listing_path}")
        response.raise_for_status()
        return response.json()
