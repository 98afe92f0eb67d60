"""
Source Validator

Format-only validation for the three registry source kinds. Nothing here
fetches git content or probes URLs: a well-formed git or direct URL source
is assumed accessible. Config-map sources are checked against the cluster,
since the config map lives next to the registry.

Every check returns a ValidationResult; validation failures are never raised.
"""
import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

from registry_admin.schemas.registry import ConfigMapSource, GitSource, RegistrySource
from registry_admin.schemas.validation import GitBranchInfo, ValidationResult
from registry_admin.services.config_map_service import ConfigMapService
from registry_admin.services.validation_cache import ValidationCache
from registry_admin.utils.git_providers import allowed_hosts, parse_repository_url
from registry_admin.utils.url_helpers import normalize_repository_url

logger = logging.getLogger(__name__)

BRANCH_NAME = re.compile(r"^[a-zA-Z0-9._/-]+$")
INVALID_PATH_CHARS = re.compile(r'[<>:"|?*]')
REGISTRY_FILE_EXTENSIONS = (".json", ".yaml", ".yml")

INVALID_GIT_URL = "Invalid Git URL format. Expected HTTPS URL (e.g., https://github.com/user/repo.git)"
INVALID_BRANCH = (
    "Branch name contains invalid characters. Use only letters, numbers, dots, "
    "underscores, hyphens, and forward slashes."
)
PATH_REQUIRED = "File path is required"
PATH_INVALID_CHARS = "File path contains invalid characters"
PATH_NOT_RELATIVE = (
    'File path should be relative to repository root (e.g., "registry.json" or "data/registry.json")'
)
PATH_EXTENSION_NOTE = "Note: Common registry file extensions are .json, .yaml, or .yml"

COMMON_BRANCHES = [
    GitBranchInfo(name="main", is_default=True),
    GitBranchInfo(name="master"),
    GitBranchInfo(name="develop"),
    GitBranchInfo(name="dev"),
    GitBranchInfo(name="staging"),
    GitBranchInfo(name="production"),
    GitBranchInfo(name="release"),
    GitBranchInfo(name="feature"),
    GitBranchInfo(name="hotfix"),
]


def validate_file_path(path: Optional[str]) -> ValidationResult:
    """
    Check the shape of a file path inside a repository.

    An unusual extension is not an error: the result stays valid and carries
    an advisory warning.
    """
    if not path or not path.strip():
        return ValidationResult.invalid(PATH_REQUIRED)

    if INVALID_PATH_CHARS.search(path):
        return ValidationResult.invalid(PATH_INVALID_CHARS)

    if path.startswith(("/", "\\")):
        return ValidationResult.invalid(PATH_NOT_RELATIVE)

    if not path.lower().endswith(REGISTRY_FILE_EXTENSIONS):
        return ValidationResult.ok(warnings=[PATH_EXTENSION_NOTE])

    return ValidationResult.ok()


def validate_http_source(url: str) -> ValidationResult:
    """A direct URL source must be a well-formed http(s) URL. Reachability is not checked."""
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return ValidationResult.invalid(f"Invalid URL: {url}")

    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return ValidationResult.invalid("Registry URL must be an absolute http:// or https:// URL")
    return ValidationResult.ok()


def get_branch_suggestions(search: Optional[str] = None) -> List[GitBranchInfo]:
    """
    Suggest common branch names, optionally filtered by a search term.

    A term of two or more characters that matches nothing is offered back
    as a custom branch.
    """
    if not search:
        return list(COMMON_BRANCHES)

    term = search.lower()
    branches = [branch for branch in COMMON_BRANCHES if term in branch.name.lower()]
    if not branches and len(search) >= 2:
        branches = [GitBranchInfo(name=search)]
    return branches


class SourceValidator:
    """Dispatches a registry source to the validator for its kind."""

    def __init__(
        self,
        config_maps: ConfigMapService,
        cache: Optional[ValidationCache[ValidationResult]] = None,
    ):
        self.config_maps = config_maps
        self.cache = cache if cache is not None else ValidationCache()

    async def validate(self, source: RegistrySource, namespace: str) -> ValidationResult:
        """
        Validate one registry source.

        Args:
            source: The source variant.
            namespace: Namespace the registry (and any config map) lives in.
        """
        if isinstance(source, GitSource):
            return self.validate_git_source(source.repository, source.branch, source.path)
        if isinstance(source, ConfigMapSource):
            return await self.config_maps.validate_config_map_key(source.name, namespace, source.key)
        return validate_http_source(source.url)

    def validate_git_url(self, repository: str) -> ValidationResult:
        """
        Check that ``repository`` is an HTTPS URL to a known git host.

        Results are cached per normalized URL.
        """
        cache_key = normalize_repository_url(repository)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if parse_repository_url(repository) is None:
            logger.info(f"Rejected git repository URL: {repository}")
            result = ValidationResult.invalid(
                f"{INVALID_GIT_URL}. Supported hosts: {', '.join(allowed_hosts())}"
            )
        else:
            result = ValidationResult.ok()

        self.cache.set(cache_key, result)
        return result

    def validate_git_source(
        self,
        repository: str,
        branch: Optional[str] = None,
        path: Optional[str] = None,
    ) -> ValidationResult:
        """Repository URL, then branch charset, then file path; first failure wins."""
        url_result = self.validate_git_url(repository)
        if not url_result.valid:
            return url_result

        # The repository itself is fine, so the source counts as accessible
        if branch and not BRANCH_NAME.match(branch):
            return ValidationResult.invalid(INVALID_BRANCH, accessible=True)

        if path is not None:
            return validate_file_path(path)

        return ValidationResult.ok()
