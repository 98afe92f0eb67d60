from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import List, Optional

class Settings(BaseSettings):
    """
    Application-wide settings managed by Pydantic.
    Reads configuration from environment variables and .env files.
    """
    # General project metadata
    PROJECT_NAME: str = "MCP Registry Admin"
    API_V1_STR: str = "/api/v1"

    # Namespace used when a request does not name one
    DEFAULT_NAMESPACE: str = "toolhive-system"

    # Custom resource coordinates for MCPRegistry / MCPServer
    CRD_GROUP: str = "toolhive.stacklok.dev"
    CRD_VERSION: str = "v1alpha1"
    REGISTRY_PLURAL: str = "mcpregistries"
    SERVER_PLURAL: str = "mcpservers"

    # Kubernetes Configuration
    # Unset means: try in-cluster config first, then the default kubeconfig
    KUBECONFIG_PATH: Optional[str] = None

    # Registry serving endpoint (used for server counts)
    SERVERS_LISTING_PATH: str = "/v0/servers"
    DEFAULT_SERVICE_PORT: str = "8080"
    SERVER_COUNT_TIMEOUT_SECONDS: float = 5.0

    # Best-effort content / logo probes must stay short
    PROBE_TIMEOUT_SECONDS: float = 3.0

    # Git URL validation cache
    VALIDATION_CACHE_TTL_SECONDS: float = 300.0
    VALIDATION_CACHE_MAX_ENTRIES: int = 512

    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("SERVERS_LISTING_PATH")
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        """The listing path is appended to a base URL, so it must start with '/'."""
        if not v.startswith("/"):
            return f"/{v}"
        return v

    @model_validator(mode='after')
    def validate_limits(self) -> 'Settings':
        """
        Reject timeouts, TTLs and capacities that would disable the component
        they configure.
        """
        for field_name in (
            "SERVER_COUNT_TIMEOUT_SECONDS",
            "PROBE_TIMEOUT_SECONDS",
            "VALIDATION_CACHE_TTL_SECONDS",
        ):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"{field_name} must be greater than zero")

        if self.VALIDATION_CACHE_MAX_ENTRIES < 1:
            raise ValueError("VALIDATION_CACHE_MAX_ENTRIES must be at least 1")
        return self

    # Pydantic Configuration
    model_config = SettingsConfigDict(
        env_file=".env",              # Load variables from .env file
        env_file_encoding="utf-8",    # Ensure correct encoding
        case_sensitive=True,          # Environment variables are case-sensitive
        extra="ignore"                # Ignore extra fields in .env not defined here
    )

# Instantiate the settings object to be imported elsewhere
settings = Settings()
