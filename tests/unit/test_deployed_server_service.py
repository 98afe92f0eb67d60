import pytest

from registry_admin.core.errors import NotFoundError
from registry_admin.schemas.deployed_server import ConnectToRegistryRequest
from registry_admin.services.deployed_server_service import (
    REGISTRY_NAME_LABEL,
    REGISTRY_NAMESPACE_LABEL,
    SERVER_NAME_LABEL,
    DeployedServerService,
    to_instance,
)
from registry_admin.services.kubernetes_client import ResourceKind
from tests.factories import make_registry, make_server

OWNED = {
    REGISTRY_NAME_LABEL: "demo",
    REGISTRY_NAMESPACE_LABEL: "toolhive-system",
    SERVER_NAME_LABEL: "weather",
}


@pytest.fixture
def service(store):
    return DeployedServerService(store)


def connect_request():
    return ConnectToRegistryRequest(
        registry_name="demo",
        registry_namespace="toolhive-system",
        server_name_in_registry="weather",
    )


def test_to_instance_reads_labels_and_connection_info():
    instance = to_instance(make_server("weather", labels=OWNED, targetPort="9090"))

    assert instance.registry_name == "demo"
    assert instance.server_name_in_registry == "weather"
    assert instance.status == "Running"
    assert instance.url == "http://weather.toolhive-system.svc.cluster.local:8080"
    assert instance.image == "ghcr.io/acme/weather:latest"
    assert instance.port == 8080
    assert instance.target_port == 9090
    assert instance.orphaned is False


def test_unknown_phase_is_pending():
    assert to_instance(make_server(phase="Exploded")).status == "Pending"
    assert to_instance({"metadata": {"name": "bare", "namespace": "ns"}}).status == "Pending"


@pytest.mark.parametrize("missing", list(OWNED))
def test_any_missing_label_makes_an_orphan(missing):
    labels = {k: v for k, v in OWNED.items() if k != missing}

    assert to_instance(make_server(labels=labels)).orphaned is True


def test_empty_label_value_counts_as_missing():
    assert to_instance(make_server(labels={**OWNED, SERVER_NAME_LABEL: ""})).orphaned is True


@pytest.mark.asyncio
async def test_list_orphans_keeps_cluster_order(service, store):
    store.list_resources.return_value = [
        make_server("c", labels={}),
        make_server("owned", labels=OWNED),
        make_server("a", labels={REGISTRY_NAME_LABEL: "demo"}),
    ]

    orphans = await service.list_orphans("toolhive-system")

    assert [o.name for o in orphans] == ["c", "a"]
    store.list_resources.assert_awaited_once_with(ResourceKind.SERVER, "toolhive-system", label_selector=None)


@pytest.mark.asyncio
async def test_list_instances_for_a_registry_uses_a_label_selector(service, store):
    store.list_resources.return_value = [make_server("weather", labels=OWNED)]

    instances = await service.list_instances("toolhive-system", registry_name="demo")

    assert [i.name for i in instances] == ["weather"]
    store.list_resources.assert_awaited_once_with(
        ResourceKind.SERVER,
        "toolhive-system",
        label_selector=f"{REGISTRY_NAME_LABEL}=demo,{REGISTRY_NAMESPACE_LABEL}=toolhive-system",
    )


@pytest.mark.asyncio
async def test_connect_writes_all_labels_in_one_patch(service, store):
    store.find_resource.return_value = make_registry("demo")
    store.patch_resource.return_value = make_server("weather", labels=OWNED)

    instance = await service.connect("weather", "toolhive-system", connect_request())

    assert instance.orphaned is False
    store.patch_resource.assert_awaited_once_with(
        ResourceKind.SERVER,
        "toolhive-system",
        "weather",
        {"metadata": {"labels": OWNED}},
    )


@pytest.mark.asyncio
async def test_connected_instance_leaves_the_orphan_list(service, store):
    store.find_resource.return_value = make_registry("demo")
    store.patch_resource.return_value = make_server("weather", labels=OWNED)
    await service.connect("weather", "toolhive-system", connect_request())

    store.list_resources.return_value = [store.patch_resource.return_value]

    assert await service.list_orphans("toolhive-system") == []


@pytest.mark.asyncio
async def test_connect_to_unknown_registry(service, store):
    store.find_resource.return_value = None

    with pytest.raises(NotFoundError, match="Registry 'demo' not found"):
        await service.connect("weather", "toolhive-system", connect_request())

    store.patch_resource.assert_not_called()


@pytest.mark.asyncio
async def test_connect_vanished_instance_is_reported_once(service, store):
    store.find_resource.return_value = make_registry("demo")
    store.patch_resource.side_effect = NotFoundError("MCPServer 'weather' not found")

    with pytest.raises(NotFoundError):
        await service.connect("weather", "toolhive-system", connect_request())

    assert store.patch_resource.await_count == 1


@pytest.mark.asyncio
async def test_delete_instance(service, store):
    await service.delete_instance("weather", "toolhive-system")

    store.delete_resource.assert_awaited_once_with(ResourceKind.SERVER, "toolhive-system", "weather")
