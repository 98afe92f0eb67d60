"""
Source Resolver

Turns the ``spec`` of an MCPRegistry resource into a typed registry source
and its canonical display triple ``(type, location, sync_interval)``.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from registry_admin.core.errors import MalformedInputError
from registry_admin.schemas.registry import (
    ConfigMapSource,
    GitSource,
    HttpSource,
    RegistrySource,
    ResolvedSource,
)

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
MANUAL_SYNC = "manual"


def parse_source(spec: Dict[str, Any], allow_missing_key: bool = False) -> Optional[RegistrySource]:
    """
    Build a typed source from a raw registry spec.

    A structured ``spec.source`` always wins. Without one, a legacy bare
    ``spec.url`` starting with http:// or https:// is read as a direct URL
    source.

    Args:
        spec: The ``spec`` mapping of an MCPRegistry resource.
        allow_missing_key: Accept a config map source without an entry key.
            Only for display of resources written before the key was
            mandatory; such a source never passes validation.

    Returns:
        The source variant, or None when no source is configured.

    Raises:
        MalformedInputError: If the source is not an object, more than one
            variant is populated or a variant is missing its required fields.
    """
    spec = spec or {}
    source = spec.get("source") or {}
    if not isinstance(source, dict):
        raise MalformedInputError("Registry source must be an object", field="source")

    # Accept both spellings: the CRD uses configMap, older writers used configmap
    variants = {
        "configmap": source.get("configMap") or source.get("configmap"),
        "git": source.get("git"),
        "http": source.get("http"),
    }
    populated = [kind for kind, value in variants.items() if value]

    if len(populated) > 1:
        raise MalformedInputError(
            f"Registry source must define exactly one of configmap, git or http "
            f"(found: {', '.join(populated)})",
            field="source",
        )

    if not populated:
        return _legacy_url_source(spec.get("url"))

    kind = populated[0]
    raw = variants[kind]
    if not isinstance(raw, dict):
        raise MalformedInputError(f"Registry source '{kind}' must be an object", field=f"source.{kind}")

    try:
        if kind == "configmap":
            if allow_missing_key and not raw.get("key"):
                return _keyless_config_map(raw.get("name"))
            return ConfigMapSource(name=raw.get("name", ""), key=raw.get("key", ""))
        if kind == "git":
            return GitSource(
                repository=raw.get("repository", ""),
                branch=raw.get("branch") or None,
                path=raw.get("path") or None,
            )
        return HttpSource(url=raw.get("url", ""))
    except ValidationError as e:
        raise MalformedInputError(f"Invalid {kind} source: {e.errors()[0]['msg']}", field=f"source.{kind}") from e


def _keyless_config_map(name: Any) -> ConfigMapSource:
    if not isinstance(name, str) or not name:
        raise MalformedInputError("Invalid configmap source: name is required", field="source.configmap")
    return ConfigMapSource.model_construct(name=name, key=None)


def _legacy_url_source(url: Any) -> Optional[HttpSource]:
    if isinstance(url, str) and url.startswith(("http://", "https://")):
        return HttpSource(url=url)
    return None


def sync_interval(spec: Dict[str, Any]) -> str:
    """``spec.syncPolicy.interval``, then the legacy ``spec.sync.interval``, else "manual"."""
    spec = spec or {}
    for key in ("syncPolicy", "sync"):
        policy = spec.get(key)
        if not isinstance(policy, dict):
            continue
        interval = policy.get("interval")
        if interval and isinstance(interval, str):
            return interval
    return MANUAL_SYNC


def describe_source(source: RegistrySource) -> Tuple[str, str]:
    """Return the display ``(type, location)`` pair for a source variant."""
    if isinstance(source, ConfigMapSource):
        location = f"{source.name}:{source.key}" if source.key else source.name
        return "configmap", location

    if isinstance(source, GitSource):
        branch = source.branch or DEFAULT_BRANCH
        path = f"/{source.path}" if source.path else ""
        return "git", f"{source.repository}@{branch}{path}"

    scheme = "https" if source.url.startswith("https://") else "http"
    return scheme, source.url


def resolve_source(spec: Dict[str, Any]) -> Optional[ResolvedSource]:
    """
    Resolve a registry spec to its canonical display form.

    Pure and idempotent: the same spec always yields the same triple. A
    legacy config map source without a key resolves to the bare name.

    Returns:
        ResolvedSource, or None when no source is configured.

    Raises:
        MalformedInputError: See ``parse_source``.
    """
    source = parse_source(spec, allow_missing_key=True)
    if source is None:
        return None

    source_type, location = describe_source(source)
    return ResolvedSource(type=source_type, location=location, sync_interval=sync_interval(spec))


def source_to_spec(source: RegistrySource, for_patch: bool = False) -> Dict[str, Any]:
    """
    Serialize a source variant into the MCPRegistry ``spec.source`` shape.

    With ``for_patch`` the other variants are set to None so a merge patch
    removes them instead of leaving two variants populated.
    """
    spec_source = _source_body(source)
    if for_patch:
        for key in ("configMap", "configmap", "git", "http"):
            spec_source.setdefault(key, None)
    return spec_source


def _source_body(source: RegistrySource) -> Dict[str, Any]:
    if isinstance(source, ConfigMapSource):
        return {"type": "configmap", "format": "toolhive", "configMap": {"name": source.name, "key": source.key}}

    if isinstance(source, GitSource):
        body = {"repository": source.repository}
        if source.branch:
            body["branch"] = source.branch
        if source.path:
            body["path"] = source.path
        return {"type": "git", "format": "toolhive", "git": body}

    return {"type": "http", "format": "toolhive", "http": {"url": source.url}}
