from typing import List, Optional

from pydantic import Field

from registry_admin.schemas.registry import ApiModel, ConfigMapKey, KubernetesName


class ValidationResult(ApiModel):
    """
    Uniform result of every source validator.

    ``accessible`` is independent of ``valid``: a well-formed source that
    could not be reached is ``valid=True, accessible=False``.
    """
    valid: bool
    accessible: bool
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, warnings: Optional[List[str]] = None) -> "ValidationResult":
        return cls(valid=True, accessible=True, warnings=warnings or [])

    @classmethod
    def invalid(cls, error: str, accessible: bool = False) -> "ValidationResult":
        return cls(valid=False, accessible=accessible, error=error)


class RegistryValidationReport(ApiModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    source_validation: Optional[ValidationResult] = None


class GitValidateRequest(ApiModel):
    repository: str
    branch: Optional[str] = None
    path: Optional[str] = None


class GitFileValidateRequest(ApiModel):
    repository: str
    path: str
    branch: str = "main"


class GitBranchesRequest(ApiModel):
    repository: str
    search: Optional[str] = None


class GitBranchInfo(ApiModel):
    name: str
    is_default: bool = False


class GitLogoResponse(ApiModel):
    logo_url: Optional[str] = None


class ConfigMapValidateRequest(ApiModel):
    name: KubernetesName
    key: ConfigMapKey
    namespace: Optional[str] = None
