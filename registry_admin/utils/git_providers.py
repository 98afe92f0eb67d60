"""
Git hosting provider table.

Each provider knows the host it serves and how to build a raw-content URL
for a file in one of its repositories. The table doubles as the allow-list
for git registry sources: a repository URL is only accepted when its host
belongs to a provider listed here. Adding a provider is a new table entry.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote, urlparse


@dataclass(frozen=True)
class GitProvider:
    name: str
    host: str
    raw_url: Callable[[str, str, str, str], str]
    # GitLab allows nested groups: everything before the last segment is the owner
    nested_groups: bool = False

    def matches(self, hostname: str) -> bool:
        hostname = hostname.lower()
        return hostname == self.host or hostname.endswith(f".{self.host}")


@dataclass(frozen=True)
class RepositoryRef:
    provider: GitProvider
    owner: str
    repo: str

    def raw_url(self, branch: str, path: str) -> str:
        return self.provider.raw_url(self.owner, self.repo, branch, quote(path.lstrip("/")))


GIT_PROVIDERS: List[GitProvider] = [
    GitProvider(
        name="github",
        host="github.com",
        raw_url=lambda owner, repo, branch, path: (
            f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{path}"
        ),
    ),
    GitProvider(
        name="gitlab",
        host="gitlab.com",
        raw_url=lambda owner, repo, branch, path: (
            f"https://gitlab.com/{owner}/{repo}/-/raw/{branch}/{path}"
        ),
        nested_groups=True,
    ),
    GitProvider(
        name="bitbucket",
        host="bitbucket.org",
        raw_url=lambda owner, repo, branch, path: (
            f"https://bitbucket.org/{owner}/{repo}/raw/{branch}/{path}"
        ),
    ),
]


def allowed_hosts() -> List[str]:
    return [provider.host for provider in GIT_PROVIDERS]


def find_provider(hostname: Optional[str]) -> Optional[GitProvider]:
    """Return the provider serving ``hostname``, or None for unknown hosts."""
    if not hostname:
        return None
    for provider in GIT_PROVIDERS:
        if provider.matches(hostname):
            return provider
    return None


def parse_repository_url(url: str) -> Optional[RepositoryRef]:
    """
    Parse an HTTPS repository URL hosted by a known provider.

    Returns None unless the URL uses https, its host belongs to a provider
    in the table and its path has at least two non-empty segments
    (owner and repository).

    Examples:
        >>> parse_repository_url("https://github.com/acme/tools.git").repo
        'tools'

        >>> parse_repository_url("ftp://github.com/acme/tools") is None
        True
    """
    if not url or not isinstance(url, str):
        return None

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None

    if parsed.scheme.lower() != "https":
        return None

    provider = find_provider(parsed.hostname)
    if provider is None:
        return None

    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) < 2:
        return None

    if provider.nested_groups:
        owner, repo = "/".join(segments[:-1]), segments[-1]
    else:
        owner, repo = segments[0], segments[1]

    if repo.endswith(".git"):
        repo = repo[:-4]
    if not repo:
        return None

    return RepositoryRef(provider=provider, owner=owner, repo=repo)
