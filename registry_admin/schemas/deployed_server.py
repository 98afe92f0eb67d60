from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import Field, StringConstraints, computed_field

from registry_admin.schemas.registry import ApiModel

ServerStatus = Literal["Pending", "Running", "Failed", "Terminating"]

# Ownership markers are stored as label values
LabelValue = Annotated[
    str,
    StringConstraints(min_length=1, max_length=63, pattern=r"^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$"),
]


class DeployedServerInstance(ApiModel):
    """A deployed MCPServer resource as seen by the admin API."""
    name: str
    namespace: str

    # Ownership markers, read from the resource labels
    registry_name: Optional[str] = None
    registry_namespace: Optional[str] = None
    server_name_in_registry: Optional[str] = None

    status: ServerStatus = "Pending"
    url: Optional[str] = None
    image: str = ""
    transport: Optional[str] = None
    port: Optional[int] = None
    target_port: Optional[int] = None
    created_at: Optional[datetime] = None
    labels: Dict[str, str] = Field(default_factory=dict)

    @computed_field
    @property
    def orphaned(self) -> bool:
        """True when any ownership marker is missing."""
        return not (
            self.registry_name
            and self.registry_namespace
            and self.server_name_in_registry
        )


class DeployedServersResponse(ApiModel):
    servers: List[DeployedServerInstance]
    total: int
    namespace: str


class ConnectToRegistryRequest(ApiModel):
    registry_name: LabelValue
    registry_namespace: LabelValue
    server_name_in_registry: LabelValue


class ConnectToRegistryResponse(ApiModel):
    status: str = "success"
    message: str
    server: DeployedServerInstance
