"""List an account's repositories from the Bitbucket Cloud REST API."""

from __future__ import annotations

import asyncio
import logging

import httpx

from confaudit.errors import ListingError
from confaudit.models import RepositoryRef

logger = logging.getLogger(__name__)

API_URL = "https://api.bitbucket.org/2.0"


def repositories_url(owner: str) -> str:
    return f"{API_URL}/repositories/{owner}"


def _https_clone_url(repo_node: dict) -> str | None:
    """Pick the HTTPS clone link; Bitbucket also offers an ssh one."""
    for link in repo_node.get("links", {}).get("clone", []) or []:
        if link.get("name") == "https" and link.get("href"):
            return link["href"]
    return None


def _repository_name(repo_node: dict, clone_url: str) -> str:
    slug = repo_node.get("slug")
    if slug:
        return slug
    # "https://user@bitbucket.org/team/alert-enricher.git" -> "alert-enricher"
    tail = clone_url.rstrip("/").rsplit("/", 1)[-1]
    return tail.removesuffix(".git")


def _extract_repository(repo_node: dict) -> RepositoryRef | None:
    clone_url = _https_clone_url(repo_node)
    if clone_url is None:
        logger.warning(
            "Skipping %s: no https clone link", repo_node.get("full_name", "<unknown>")
        )
        return None
    return RepositoryRef(name=_repository_name(repo_node, clone_url), clone_url=clone_url)


async def fetch_repositories(
    username: str,
    password: str,
    owner: str,
    *,
    role: str = "owner",
    max_pages: int = 100,
) -> list[RepositoryRef]:
    """Fetch every repository of ``owner`` the user holds ``role`` on.

    Args:
        username: Bitbucket username for HTTP basic auth.
        password: Bitbucket app password.
        owner: Workspace or account whose repositories are listed.
        role: Bitbucket role filter.
        max_pages: Safety bound on the number of result pages followed.

    Returns:
        RepositoryRef objects sorted by name.

    Raises:
        ListingError: on any transport, HTTP or payload error, or when more
            than ``max_pages`` pages would be needed.
    """
    url: str | None = repositories_url(owner)
    params: dict[str, str] | None = {"role": role, "pagelen": "100"}
    repositories: list[RepositoryRef] = []

    try:
        async with httpx.AsyncClient(auth=(username, password), timeout=30.0) as client:
            for _ in range(max_pages):
                if url is None:
                    break

                response = await client.get(url, params=params)

                # Handle rate limiting
                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", "60"))
                    logger.warning("Rate limited, sleeping %ds", retry_after)
                    await asyncio.sleep(retry_after)
                    # Retry the same page
                    response = await client.get(url, params=params)

                response.raise_for_status()
                data = response.json()

                for repo_node in data.get("values", []):
                    ref = _extract_repository(repo_node)
                    if ref is not None:
                        repositories.append(ref)

                # The "next" link already carries the query string
                url = data.get("next")
                params = None
    except httpx.HTTPStatusError as exc:
        raise ListingError(
            f"listing repositories of {owner} failed: HTTP {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise ListingError(f"listing repositories of {owner} failed: {exc}") from exc
    except ValueError as exc:
        raise ListingError(f"unexpected response listing {owner}: {exc}") from exc

    if url is not None:
        raise ListingError(
            f"listing repositories of {owner} stopped after {max_pages} pages with more remaining"
        )

    logger.info("Listed %d repositories of %s", len(repositories), owner)
    return sorted(repositories, key=lambda r: r.name)
