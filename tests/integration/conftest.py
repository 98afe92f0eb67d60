from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from registry_admin.api.deps import (
    get_config_map_service,
    get_content_probe,
    get_deployed_server_service,
    get_registry_service,
    get_source_validator,
)
from registry_admin.main import app
from registry_admin.services.config_map_service import ConfigMapService
from registry_admin.services.content_probe import ContentProbe
from registry_admin.services.deployed_server_service import DeployedServerService
from registry_admin.services.registry_service import RegistryService
from registry_admin.services.source_validator import SourceValidator
from registry_admin.services.validation_cache import ValidationCache


@pytest.fixture
def registry_service():
    return MagicMock(spec=RegistryService)


@pytest.fixture
def config_map_service():
    return MagicMock(spec=ConfigMapService)


@pytest.fixture
def deployed_server_service():
    return MagicMock(spec=DeployedServerService)


@pytest.fixture
def content_probe():
    probe = MagicMock(spec=ContentProbe)
    probe.discover_logo = AsyncMock(return_value=None)
    return probe


@pytest_asyncio.fixture
async def client(
    registry_service,
    config_map_service,
    deployed_server_service,
    content_probe,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an AsyncClient for the FastAPI app with every cluster-facing service mocked."""
    # Format-only git checks run for real; they never leave the process
    validator = SourceValidator(config_map_service, ValidationCache())

    app.dependency_overrides[get_registry_service] = lambda: registry_service
    app.dependency_overrides[get_config_map_service] = lambda: config_map_service
    app.dependency_overrides[get_deployed_server_service] = lambda: deployed_server_service
    app.dependency_overrides[get_content_probe] = lambda: content_probe
    app.dependency_overrides[get_source_validator] = lambda: validator

    # Use ASGITransport for testing FastAPI apps
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()
