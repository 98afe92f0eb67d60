"""
Content Probe

Best-effort reads of raw repository content through the git provider table:
fetching a registry file and discovering a repository logo. Every request is
bounded by a short deadline and every failure collapses to None, so callers
can use the result as a hint and never have to handle an error.
"""
import asyncio
import logging
from typing import Optional

import httpx

from registry_admin.utils.git_providers import RepositoryRef, parse_repository_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0

LOGO_CANDIDATES = [
    "logo.png",
    "logo.svg",
    "assets/logo.png",
    "assets/logo.svg",
    "docs/logo.png",
    ".github/logo.png",
]


class ContentProbe:
    def __init__(self, http_client: httpx.AsyncClient, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.http_client = http_client
        self.timeout = timeout

    async def fetch_raw_content(self, repository: str, branch: str, path: str) -> Optional[str]:
        """
        Fetch the raw text of ``path`` at ``branch``.

        Returns:
            The file body, or None if the repository is not on a known host,
            the file is missing, or the request failed or timed out.
        """
        ref = parse_repository_url(repository)
        if ref is None:
            return None

        response = await self._get(ref.raw_url(branch, path))
        if response is None or response.status_code != 200:
            return None
        return response.text

    async def discover_logo(self, repository: str, branch: str = "main") -> Optional[str]:
        """Return the raw URL of the first conventional logo file that exists."""
        ref = parse_repository_url(repository)
        if ref is None:
            return None

        for candidate in LOGO_CANDIDATES:
            url = await self._probe(ref, branch, candidate)
            if url:
                logger.info(f"Discovered logo for {repository}: {url}")
                return url

        logger.debug(f"No logo found for {repository}@{branch}")
        return None

    async def _probe(self, ref: RepositoryRef, branch: str, path: str) -> Optional[str]:
        url = ref.raw_url(branch, path)
        response = await self._get(url, method="HEAD")
        if response is not None and response.status_code == 200:
            return url
        return None

    async def _get(self, url: str, method: str = "GET") -> Optional[httpx.Response]:
        try:
            return await asyncio.wait_for(
                self.http_client.request(method, url, follow_redirects=True),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {self.timeout}s probing {url}")
        except httpx.HTTPError as e:
            logger.warning(f"Probe failed for {url}: {e}")
        except httpx.InvalidURL as e:
            logger.warning(f"Skipping probe of malformed URL {url!r}: {e}")
        return None
