import logging
from datetime import datetime, timezone
from typing import Callable

from registry_admin.core.errors import NotFoundError
from registry_admin.services.kubernetes_client import ClusterStore, ResourceKind

logger = logging.getLogger(__name__)

SYNC_REQUESTED_ANNOTATION = "toolhive.stacklok.dev/sync-requested"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncTrigger:
    """
    Requests a manual registry sync by stamping an annotation.

    The registry reconciler watches for annotation changes and re-syncs, so a
    fresh timestamp is all it takes. Repeating a request only refreshes the
    timestamp. Nothing here waits for the sync to happen.
    """

    def __init__(self, store: ClusterStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    async def trigger_sync(self, name: str, namespace: str) -> bool:
        """
        Stamp the sync-requested annotation on a registry.

        Returns:
            True if the annotation was written, False if the registry does
            not exist (in which case nothing is written).
        """
        if await self.store.find_resource(ResourceKind.REGISTRY, namespace, name) is None:
            logger.warning(f"Cannot trigger sync: registry {namespace}/{name} not found")
            return False

        requested_at = self.clock().isoformat()
        patch = {"metadata": {"annotations": {SYNC_REQUESTED_ANNOTATION: requested_at}}}

        try:
            await self.store.patch_resource(ResourceKind.REGISTRY, namespace, name, patch)
        except NotFoundError:
            # Deleted between the lookup and the patch
            logger.warning(f"Registry {namespace}/{name} disappeared before sync could be requested")
            return False

        logger.info(f"Sync requested for registry {namespace}/{name} at {requested_at}")
        return True
