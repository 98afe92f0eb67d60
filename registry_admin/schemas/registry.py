from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for API payloads: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Kubernetes object names: lowercase alphanumerics and hyphens
KubernetesName = Annotated[
    str,
    StringConstraints(min_length=1, max_length=253, pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"),
]
NamePattern = Annotated[str, StringConstraints(min_length=1, max_length=100)]
Tag = Annotated[str, StringConstraints(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9._-]+$")]
# Entry keys inside a config map
ConfigMapKey = Annotated[str, StringConstraints(min_length=1, max_length=253, pattern=r"^[a-zA-Z0-9._-]+$")]

# "manual" or a duration such as 30m, 1h, 2h30m
SYNC_INTERVAL_PATTERN = r"^(manual|(\d+[smhd])+)$"

SourceType = Literal["configmap", "git", "http", "https"]
RegistryStatus = Literal["inactive", "syncing", "active", "error"]


# ── Registry sources ────────────────────────────────────────

class ConfigMapSource(ApiModel):
    type: Literal["configmap"] = "configmap"
    name: KubernetesName
    key: ConfigMapKey


class GitSource(ApiModel):
    type: Literal["git"] = "git"
    repository: str
    branch: Optional[str] = None
    # Path checks (relative, charset, extension) live in the source validator
    path: Optional[str] = None


class HttpSource(ApiModel):
    type: Literal["http"] = "http"
    url: str


RegistrySource = Annotated[
    Union[ConfigMapSource, GitSource, HttpSource],
    Field(discriminator="type"),
]


class ResolvedSource(ApiModel):
    """Canonical display form of a registry source."""
    type: SourceType
    location: str
    sync_interval: str = "manual"


# ── Requests ────────────────────────────────────────────────

class SyncPolicy(ApiModel):
    interval: Annotated[str, StringConstraints(pattern=SYNC_INTERVAL_PATTERN)]


class NameFilter(ApiModel):
    include: Optional[Annotated[List[NamePattern], Field(max_length=20)]] = None
    exclude: Optional[Annotated[List[NamePattern], Field(max_length=20)]] = None


class TagFilter(ApiModel):
    include: Optional[Annotated[List[Tag], Field(max_length=50)]] = None
    exclude: Optional[Annotated[List[Tag], Field(max_length=50)]] = None


class RegistryFilter(ApiModel):
    names: Optional[NameFilter] = None
    tags: Optional[TagFilter] = None


class CreateRegistryRequest(ApiModel):
    name: KubernetesName
    display_name: Annotated[str, StringConstraints(min_length=1, max_length=100)]
    namespace: KubernetesName
    enforce_servers: bool = False
    source: RegistrySource
    sync_policy: Optional[SyncPolicy] = None
    filter: Optional[RegistryFilter] = None


class UpdateRegistryRequest(ApiModel):
    display_name: Optional[Annotated[str, StringConstraints(min_length=1, max_length=100)]] = None
    enforce_servers: Optional[bool] = None
    source: Optional[RegistrySource] = None
    sync_policy: Optional[SyncPolicy] = None
    filter: Optional[RegistryFilter] = None


# ── Responses ───────────────────────────────────────────────

class AuthConfig(ApiModel):
    """Opaque beyond its type tag."""
    model_config = ConfigDict(extra="allow")

    type: Literal["none", "basic", "bearer", "oauth"] = "none"


class Registry(ApiModel):
    id: str
    name: str
    namespace: str
    display_name: Optional[str] = None
    url: str = ""
    description: Optional[str] = None
    status: RegistryStatus = "inactive"
    server_count: int = 0
    last_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    auth_config: AuthConfig = Field(default_factory=AuthConfig)
    source: Optional[ResolvedSource] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RegistryListResponse(ApiModel):
    registries: List[Registry]
    total: int
    limit: int
    offset: int


class RegistryStatusResponse(ApiModel):
    phase: Optional[str] = None
    status: RegistryStatus
    servers: Optional[int] = None
    last_sync: Optional[str] = None
    message: Optional[str] = None


class RegistryOperationResult(ApiModel):
    success: bool
    message: Optional[str] = None
    registry: Optional[Registry] = None
    errors: List[str] = Field(default_factory=list)
