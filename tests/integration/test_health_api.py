import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient

from registry_admin.main import app


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test that the health check endpoint returns success."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_health_check_without_cluster():
    # No lifespan: the probe must not depend on the cluster store
    client = TestClient(app)
    response = client.get("/api/v1/health")
    assert response.status_code == 200
