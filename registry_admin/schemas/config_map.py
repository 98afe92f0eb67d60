from datetime import datetime
from typing import List, Optional

from registry_admin.schemas.registry import ApiModel


class ConfigMapInfo(ApiModel):
    name: str
    namespace: str
    keys: List[str] = []
    created_at: Optional[datetime] = None


class ConfigMapListResponse(ApiModel):
    config_maps: List[ConfigMapInfo]
    namespace: str


class ConfigMapKeysResponse(ApiModel):
    name: str
    namespace: str
    keys: List[str]
