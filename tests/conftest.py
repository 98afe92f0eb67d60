from unittest.mock import MagicMock

import pytest

from registry_admin.services.kubernetes_client import ClusterStore


@pytest.fixture
def store():
    """A ClusterStore double: every async method is an AsyncMock."""
    mock_store = MagicMock(spec=ClusterStore)
    mock_store.api_version = "toolhive.stacklok.dev/v1alpha1"
    return mock_store
