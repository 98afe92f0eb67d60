import pytest
from pydantic import ValidationError

from registry_admin.core.config import Settings


def test_defaults():
    settings = Settings()

    assert settings.DEFAULT_NAMESPACE == "toolhive-system"
    assert settings.SERVERS_LISTING_PATH == "/v0/servers"
    assert settings.VALIDATION_CACHE_TTL_SECONDS == 300.0


def test_listing_path_gets_a_leading_slash():
    assert Settings(SERVERS_LISTING_PATH="v1/servers").SERVERS_LISTING_PATH == "/v1/servers"


@pytest.mark.parametrize("overrides", [
    {"PROBE_TIMEOUT_SECONDS": 0},
    {"SERVER_COUNT_TIMEOUT_SECONDS": -1},
    {"VALIDATION_CACHE_TTL_SECONDS": 0},
    {"VALIDATION_CACHE_MAX_ENTRIES": 0},
])
def test_unusable_limits_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)
