"""
URL helpers shared by the validators and the registry state mapper.

``normalize_repository_url`` gives consistent cache keys regardless of URL
variations (trailing slashes, host case). ``parse_cluster_service_url``
recognises registry endpoints that live inside the cluster and must be
reached through the API server proxy.
"""
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse, urlunparse

# http(s)://<service>.<namespace>.svc.cluster.local[:port][/...]
CLUSTER_SERVICE_URL = re.compile(
    r"^https?://([^./:]+)\.([^./:]+)\.svc\.cluster\.local(?::(\d+))?(?:/.*)?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ClusterServiceRef:
    service: str
    namespace: str
    port: Optional[str] = None


def normalize_repository_url(url: str) -> str:
    """
    Normalize a repository URL to a consistent cache key.

    This ensures that the following URLs are treated as identical:
    - https://github.com/user/repo
    - https://github.com/user/repo/
    - HTTPS://GitHub.com/user/repo

    Args:
        url: The repository URL to normalize.

    Returns:
        The URL with lowercase scheme and host, no trailing slash and no
        query or fragment.

    Examples:
        >>> normalize_repository_url("HTTPS://GitHub.com/User/Repo/")
        'https://github.com/User/Repo'
    """
    url = (url or "").strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    # Not a URL at all; keep the raw string so it still works as a key
    if not parsed.scheme or not parsed.netloc:
        return url

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path.rstrip("/"),
        "",  # params
        "",  # query
        ""   # fragment
    ))


def parse_cluster_service_url(url: str) -> Optional[ClusterServiceRef]:
    """
    Extract service name, namespace and port from an in-cluster service URL.

    Returns None when the URL does not point at ``*.svc.cluster.local``.

    Examples:
        >>> parse_cluster_service_url("http://reg.ns.svc.cluster.local:8080")
        ClusterServiceRef(service='reg', namespace='ns', port='8080')
    """
    if not url:
        return None
    match = CLUSTER_SERVICE_URL.match(url.strip())
    if not match:
        return None
    service, namespace, port = match.groups()
    return ClusterServiceRef(service=service, namespace=namespace, port=port)
