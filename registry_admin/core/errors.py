"""Exception hierarchy for the registry admin backend.

All exceptions inherit from RegistryAdminError (single catch point).
Messages are user-facing: they name the resource and never carry raw
cluster API payloads.
"""


class RegistryAdminError(Exception):
    """Base exception for all registry admin errors."""


class MalformedInputError(RegistryAdminError):
    """Input has the wrong shape or charset (user-fixable)."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class NotFoundError(RegistryAdminError):
    """A named registry, server instance or config map does not exist."""


class AccessDeniedError(RegistryAdminError):
    """The backing store refused the request (RBAC / permission failure)."""


class UnreachableError(RegistryAdminError):
    """A best-effort network probe failed."""


class ConflictError(RegistryAdminError):
    """A write raced with another write or a deletion."""


class StoreUnavailableError(RegistryAdminError):
    """The cluster store could not be reached or returned an unexpected fault."""
