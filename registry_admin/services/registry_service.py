import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from registry_admin.core.errors import ConflictError, MalformedInputError, NotFoundError
from registry_admin.schemas.registry import (
    AuthConfig,
    CreateRegistryRequest,
    Registry,
    RegistryFilter,
    RegistryListResponse,
    RegistryOperationResult,
    RegistrySource,
    RegistryStatusResponse,
    UpdateRegistryRequest,
)
from registry_admin.schemas.validation import RegistryValidationReport
from registry_admin.services.kubernetes_client import ClusterStore, ResourceKind
from registry_admin.services.registry_state import ServerCounter, serving_endpoint, to_display_status
from registry_admin.services.source_resolver import parse_source, resolve_source, source_to_spec
from registry_admin.services.source_validator import SourceValidator
from registry_admin.services.sync_trigger import SyncTrigger

logger = logging.getLogger(__name__)

# Catalog-content checks run after the source itself validated. Each returns
# a list of error messages (empty when the catalog is acceptable).
CatalogCheck = Callable[[RegistrySource], Awaitable[List[str]]]

NO_SYNC_POLICY_WARNING = "No sync policy specified. Registry will need to be manually synced."
NO_FILTER_WARNING = "No filtering specified. All servers from the source will be included."


def _section(resource: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = resource.get(key)
    return value if isinstance(value, dict) else {}


def _has_stored_sync_policy(spec: Dict[str, Any]) -> bool:
    policy = spec.get("syncPolicy")
    return isinstance(policy, dict) and bool(policy.get("interval"))


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value}")
        return None


class RegistryService:
    """
    Registry CRUD on top of MCPRegistry resources.

    Every read derives status, source and server count from the live
    resource; nothing is stored here.
    """

    def __init__(
        self,
        store: ClusterStore,
        validator: SourceValidator,
        counter: ServerCounter,
        sync_trigger: Optional[SyncTrigger] = None,
        catalog_checks: Sequence[CatalogCheck] = (),
    ):
        self.store = store
        self.validator = validator
        self.counter = counter
        self.sync_trigger = sync_trigger or SyncTrigger(store)
        self.catalog_checks = list(catalog_checks)

    # ── Validation ───────────────────────────────────────────

    async def validate_create_request(self, request: CreateRegistryRequest) -> RegistryValidationReport:
        return await self._validate(
            name=request.name,
            namespace=request.namespace,
            source=request.source,
            has_sync_policy=request.sync_policy is not None,
            has_filter=request.filter is not None and bool(request.filter.names or request.filter.tags),
            check_uniqueness=True,
        )

    async def _validate(
        self,
        name: str,
        namespace: str,
        source: Optional[RegistrySource],
        has_sync_policy: bool,
        has_filter: bool,
        check_uniqueness: bool,
    ) -> RegistryValidationReport:
        """
        Structural checks, then the source, then catalog checks.

        Each stage only runs when the previous one passed.
        """
        # Stage 1: structure. Shape and sync interval were checked by the schema.
        errors: List[str] = []
        if check_uniqueness and await self.store.find_resource(ResourceKind.REGISTRY, namespace, name):
            errors.append(f"Registry with name '{name}' already exists")
        if source is None:
            errors.append("Registry source is required")
        if errors:
            return RegistryValidationReport(valid=False, errors=errors)

        warnings: List[str] = []
        if not has_sync_policy:
            warnings.append(NO_SYNC_POLICY_WARNING)
        if not has_filter:
            warnings.append(NO_FILTER_WARNING)

        # Stage 2: source
        source_result = await self.validator.validate(source, namespace)
        warnings.extend(source_result.warnings)
        if not source_result.valid:
            return RegistryValidationReport(
                valid=False,
                errors=[source_result.error or "Registry source is invalid"],
                warnings=warnings,
                source_validation=source_result,
            )

        # Stage 3: catalog content
        for check in self.catalog_checks:
            errors.extend(await check(source))

        return RegistryValidationReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            source_validation=source_result,
        )

    # ── Mutations ────────────────────────────────────────────

    async def create_registry(self, request: CreateRegistryRequest) -> RegistryOperationResult:
        logger.info(f"Creating registry {request.namespace}/{request.name}")

        report = await self.validate_create_request(request)
        if not report.valid:
            logger.info(f"Registry {request.name} failed validation: {report.errors}")
            return RegistryOperationResult(success=False, message="Validation failed", errors=report.errors)

        body = {
            "apiVersion": self.store.api_version,
            "kind": ResourceKind.REGISTRY.value,
            "metadata": {"name": request.name, "namespace": request.namespace},
            "spec": self._build_spec(request),
        }

        try:
            created = await self.store.create_resource(ResourceKind.REGISTRY, request.namespace, body)
        except ConflictError:
            message = f"Registry with name '{request.name}' already exists"
            return RegistryOperationResult(success=False, message=message, errors=[message])

        logger.info(f"Registry {request.namespace}/{request.name} created")
        return RegistryOperationResult(
            success=True,
            message=f"Registry '{request.name}' created successfully",
            registry=await self.to_registry(created),
        )

    @staticmethod
    def _build_spec(request: CreateRegistryRequest) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "displayName": request.display_name,
            "enforceServers": request.enforce_servers,
            "source": source_to_spec(request.source),
        }
        if request.sync_policy:
            spec["syncPolicy"] = request.sync_policy.model_dump(by_alias=True)
        if request.filter:
            spec["filter"] = request.filter.model_dump(by_alias=True, exclude_none=True)
        return spec

    async def update_registry(
        self,
        name: str,
        namespace: str,
        request: UpdateRegistryRequest,
    ) -> RegistryOperationResult:
        """
        Merge-patch only the spec fields present in ``request``.

        The merged result (request over existing resource) is validated first,
        without the duplicate-name rule.

        Raises:
            NotFoundError: The registry does not exist.
        """
        existing = await self.store.find_resource(ResourceKind.REGISTRY, namespace, name)
        if existing is None:
            raise NotFoundError(f"Registry '{name}' not found in namespace '{namespace}'")

        spec = _section(existing, "spec")
        source = request.source if request.source is not None else parse_source(spec)
        merged_filter = request.filter or self._existing_filter(spec)

        report = await self._validate(
            name=name,
            namespace=namespace,
            source=source,
            has_sync_policy=request.sync_policy is not None or _has_stored_sync_policy(spec),
            has_filter=merged_filter is not None and bool(merged_filter.names or merged_filter.tags),
            check_uniqueness=False,
        )
        if not report.valid:
            return RegistryOperationResult(success=False, message="Validation failed", errors=report.errors)

        patch_spec = self._build_patch_spec(request)
        if not patch_spec:
            logger.info(f"No changes requested for registry {namespace}/{name}")
            return RegistryOperationResult(
                success=True,
                message=f"Registry '{name}' is unchanged",
                registry=await self.to_registry(existing),
            )

        updated = await self.store.patch_resource(ResourceKind.REGISTRY, namespace, name, {"spec": patch_spec})
        logger.info(f"Registry {namespace}/{name} updated: {sorted(patch_spec)}")
        return RegistryOperationResult(
            success=True,
            message=f"Registry '{name}' updated successfully",
            registry=await self.to_registry(updated),
        )

    @staticmethod
    def _existing_filter(spec: Dict[str, Any]) -> Optional[RegistryFilter]:
        raw = spec.get("filter")
        if not raw:
            return None
        try:
            return RegistryFilter.model_validate(raw)
        except ValidationError:
            logger.warning("Existing registry filter does not match the expected shape, ignoring it")
            return None

    @staticmethod
    def _build_patch_spec(request: UpdateRegistryRequest) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        if request.display_name is not None:
            patch["displayName"] = request.display_name
        if request.enforce_servers is not None:
            patch["enforceServers"] = request.enforce_servers
        if request.source is not None:
            patch["source"] = source_to_spec(request.source, for_patch=True)
        if request.sync_policy is not None:
            patch["syncPolicy"] = request.sync_policy.model_dump(by_alias=True)
        if request.filter is not None:
            patch["filter"] = request.filter.model_dump(by_alias=True, exclude_none=True)
        return patch

    async def delete_registry(self, name: str, namespace: str) -> bool:
        """Returns False if there was nothing to delete."""
        try:
            await self.store.delete_resource(ResourceKind.REGISTRY, namespace, name)
        except NotFoundError:
            logger.info(f"Registry {namespace}/{name} already gone")
            return False
        return True

    async def trigger_sync(self, name: str, namespace: str) -> bool:
        return await self.sync_trigger.trigger_sync(name, namespace)

    # ── Reads ────────────────────────────────────────────────

    async def get_registry(self, name: str, namespace: str) -> Registry:
        resource = await self._get_resource(name, namespace)
        return await self.to_registry(resource)

    async def list_registries(
        self,
        namespace: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> RegistryListResponse:
        resources = await self.store.list_resources(ResourceKind.REGISTRY, namespace)

        # Server counts hit the network, so build all display models concurrently
        registries = list(await asyncio.gather(*(self.to_registry(r) for r in resources)))
        if status:
            registries = [r for r in registries if r.status == status]

        return RegistryListResponse(
            registries=registries[offset:offset + limit],
            total=len(registries),
            limit=limit,
            offset=offset,
        )

    async def get_registry_status(self, name: str, namespace: str) -> RegistryStatusResponse:
        resource = await self._get_resource(name, namespace)
        status = _section(resource, "status")
        servers = status.get("servers")
        return RegistryStatusResponse(
            phase=status.get("phase"),
            status=to_display_status(status.get("phase")),
            servers=servers if isinstance(servers, int) else None,
            last_sync=status.get("lastSync"),
            message=status.get("message"),
        )

    async def _get_resource(self, name: str, namespace: str) -> Dict[str, Any]:
        resource = await self.store.find_resource(ResourceKind.REGISTRY, namespace, name)
        if resource is None:
            raise NotFoundError(f"Registry '{name}' not found in namespace '{namespace}'")
        return resource

    async def to_registry(self, resource: Dict[str, Any]) -> Registry:
        """Build the display model for one MCPRegistry resource."""
        metadata = _section(resource, "metadata")
        spec = _section(resource, "spec")
        status = _section(resource, "status")
        name = metadata.get("name", "")

        try:
            source = resolve_source(spec)
        except MalformedInputError as e:
            logger.warning(f"Registry {name} has a malformed source: {e}")
            source = None

        try:
            auth_config = AuthConfig.model_validate(spec.get("auth") or {"type": "none"})
        except ValidationError:
            logger.warning(f"Registry {name} has an unrecognised auth configuration")
            auth_config = AuthConfig()

        return Registry(
            id=name,
            name=name,
            namespace=metadata.get("namespace", ""),
            display_name=spec.get("displayName"),
            url=serving_endpoint(resource) or "",
            description=spec.get("description"),
            status=to_display_status(status.get("phase")),
            server_count=await self.counter.count(resource),
            last_sync_at=_parse_timestamp(status.get("lastSync")),
            created_at=_parse_timestamp(metadata.get("creationTimestamp")),
            auth_config=auth_config,
            source=source,
            metadata={
                "namespace": metadata.get("namespace"),
                "uid": metadata.get("uid"),
                "phase": status.get("phase"),
            },
        )
