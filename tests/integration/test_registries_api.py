import pytest
from httpx import AsyncClient

from registry_admin.core.errors import MalformedInputError, NotFoundError, StoreUnavailableError
from registry_admin.schemas.registry import (
    Registry,
    RegistryListResponse,
    RegistryOperationResult,
    RegistryStatusResponse,
    ResolvedSource,
)
from registry_admin.schemas.validation import RegistryValidationReport
from registry_admin.services.deployed_server_service import to_instance
from tests.factories import make_server

CREATE_BODY = {
    "name": "demo",
    "displayName": "Demo Registry",
    "namespace": "toolhive-system",
    "source": {"type": "git", "repository": "https://github.com/acme/tools", "path": "registry.json"},
    "syncPolicy": {"interval": "1h"},
}


def demo_registry(**overrides) -> Registry:
    values = {
        "id": "demo",
        "name": "demo",
        "namespace": "toolhive-system",
        "status": "active",
        "server_count": 3,
        "source": ResolvedSource(type="git", location="https://github.com/acme/tools@main/registry.json"),
    }
    values.update(overrides)
    return Registry(**values)


@pytest.mark.asyncio
async def test_validate_registry(client: AsyncClient, registry_service):
    registry_service.validate_create_request.return_value = RegistryValidationReport(
        valid=True, warnings=["No filtering specified. All servers from the source will be included."]
    )

    response = await client.post("/api/v1/mcpregistries/validate", json=CREATE_BODY)

    assert response.status_code == 200
    assert response.json()["valid"] is True
    request = registry_service.validate_create_request.await_args.args[0]
    assert request.source.repository == "https://github.com/acme/tools"
    assert request.sync_policy.interval == "1h"


@pytest.mark.asyncio
async def test_create_registry(client: AsyncClient, registry_service):
    registry_service.create_registry.return_value = RegistryOperationResult(
        success=True, message="Registry 'demo' created successfully", registry=demo_registry()
    )

    response = await client.post("/api/v1/mcpregistries", json=CREATE_BODY)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["registry"]["serverCount"] == 3
    assert data["registry"]["authConfig"] == {"type": "none"}


@pytest.mark.asyncio
async def test_create_registry_validation_failure(client: AsyncClient, registry_service):
    registry_service.create_registry.return_value = RegistryOperationResult(
        success=False, message="Validation failed", errors=["Registry with name 'demo' already exists"]
    )

    response = await client.post("/api/v1/mcpregistries", json=CREATE_BODY)

    assert response.status_code == 400
    assert response.json()["errors"] == ["Registry with name 'demo' already exists"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body_change", [
    {"name": "Not_A_K8s_Name"},
    {"syncPolicy": {"interval": "every hour"}},
    {"source": {"type": "svn", "url": "svn://x"}},
    {"source": {"type": "configmap"}},
    {"source": {"type": "configmap", "name": "my-cm"}},
    {"source": {"type": "configmap", "name": "", "key": "registry.json"}},
])
async def test_create_registry_rejects_malformed_bodies(client: AsyncClient, registry_service, body_change):
    response = await client.post("/api/v1/mcpregistries", json={**CREATE_BODY, **body_change})

    assert response.status_code == 422
    registry_service.create_registry.assert_not_called()


@pytest.mark.asyncio
async def test_list_registries(client: AsyncClient, registry_service):
    registry_service.list_registries.return_value = RegistryListResponse(
        registries=[demo_registry()], total=1, limit=10, offset=0
    )

    response = await client.get("/api/v1/mcpregistries", params={"namespace": "team-a", "status": "active", "limit": 10})

    assert response.status_code == 200
    assert response.json()["total"] == 1
    registry_service.list_registries.assert_awaited_once_with("team-a", status="active", limit=10, offset=0)


@pytest.mark.asyncio
async def test_list_registries_rejects_unknown_status(client: AsyncClient):
    response = await client.get("/api/v1/mcpregistries", params={"status": "sleeping"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_registry_uses_default_namespace(client: AsyncClient, registry_service):
    registry_service.get_registry.return_value = demo_registry()

    response = await client.get("/api/v1/mcpregistries/demo")

    assert response.status_code == 200
    assert response.json()["source"]["syncInterval"] == "manual"
    registry_service.get_registry.assert_awaited_once_with("demo", "toolhive-system")


@pytest.mark.asyncio
async def test_get_missing_registry_is_404(client: AsyncClient, registry_service):
    registry_service.get_registry.side_effect = NotFoundError("Registry 'ghost' not found in namespace 'toolhive-system'")

    response = await client.get("/api/v1/mcpregistries/ghost")

    assert response.status_code == 404
    assert "ghost" in response.json()["detail"]


@pytest.mark.asyncio
async def test_store_outage_is_503(client: AsyncClient, registry_service):
    registry_service.get_registry.side_effect = StoreUnavailableError("Cluster API unavailable")

    response = await client.get("/api/v1/mcpregistries/demo")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_update_registry(client: AsyncClient, registry_service):
    registry_service.update_registry.return_value = RegistryOperationResult(
        success=True, message="Registry 'demo' updated successfully", registry=demo_registry()
    )

    response = await client.put("/api/v1/mcpregistries/demo", json={"displayName": "Renamed"})

    assert response.status_code == 200
    name, namespace, request = registry_service.update_registry.await_args.args
    assert (name, namespace) == ("demo", "toolhive-system")
    assert request.display_name == "Renamed"
    assert request.source is None


@pytest.mark.asyncio
async def test_update_registry_with_malformed_stored_source(client: AsyncClient, registry_service):
    registry_service.update_registry.side_effect = MalformedInputError("Registry source must define exactly one")

    response = await client.put("/api/v1/mcpregistries/demo", json={"enforceServers": True})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_registry(client: AsyncClient, registry_service):
    registry_service.delete_registry.return_value = True

    response = await client.delete("/api/v1/mcpregistries/demo")

    assert response.status_code == 204


@pytest.mark.asyncio
async def test_delete_missing_registry(client: AsyncClient, registry_service):
    registry_service.delete_registry.return_value = False

    response = await client.delete("/api/v1/mcpregistries/ghost")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_trigger_sync(client: AsyncClient, registry_service):
    registry_service.trigger_sync.return_value = True

    response = await client.post("/api/v1/mcpregistries/demo/sync")

    assert response.status_code == 202
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_trigger_sync_missing_registry(client: AsyncClient, registry_service):
    registry_service.trigger_sync.return_value = False

    response = await client.post("/api/v1/mcpregistries/missing-registry/sync")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_registry_status(client: AsyncClient, registry_service):
    registry_service.get_registry_status.return_value = RegistryStatusResponse(
        phase="Syncing", status="syncing", servers=5, last_sync="2024-05-03T09:00:00Z"
    )

    response = await client.get("/api/v1/mcpregistries/demo/status")

    assert response.status_code == 200
    assert response.json()["lastSync"] == "2024-05-03T09:00:00Z"


@pytest.mark.asyncio
async def test_deployed_servers_of_a_registry(client: AsyncClient, registry_service, deployed_server_service):
    registry_service.get_registry_status.return_value = RegistryStatusResponse(status="active")
    deployed_server_service.list_instances.return_value = [to_instance(make_server("weather"))]

    response = await client.get("/api/v1/mcpregistries/demo/deployed-servers")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["servers"][0]["name"] == "weather"
    deployed_server_service.list_instances.assert_awaited_once_with("toolhive-system", registry_name="demo")


@pytest.mark.asyncio
async def test_deployed_servers_of_unknown_registry(client: AsyncClient, registry_service, deployed_server_service):
    registry_service.get_registry_status.side_effect = NotFoundError("Registry 'ghost' not found")

    response = await client.get("/api/v1/mcpregistries/ghost/deployed-servers")

    assert response.status_code == 404
    deployed_server_service.list_instances.assert_not_called()
