"""
GitHub REST client for the publishing workflow.

Wraps httpx.AsyncClient and turns every response (or transport failure)
into a RemoteResult. Authentication and rate limiting are left to GitHub.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from vault_publisher import __version__
from vault_publisher.core.error_taxonomy import Outcome, outcome_for_status
from vault_publisher.core.settings import Settings

from .api import RemoteResult

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
PER_PAGE = 100


class GitHubClient:
    """Async GitHub client implementing the GitHubApi protocol."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None

        if client is None:
            headers = {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": f"VaultPublisher/{__version__}",
            }
            if token:
                headers["Authorization"] = f"Bearer {token}"
            client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=timeout,
                transport=transport,
            )
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "GitHubClient":
        return cls(
            token=settings.GITHUB_TOKEN,
            base_url=settings.GITHUB_API_URL,
            timeout=settings.GITHUB_REQUEST_TIMEOUT,
            **kwargs,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # GitHubApi operations
    # ------------------------------------------------------------------

    async def list_branches(self, owner: str, repo: str) -> RemoteResult:
        """List every branch, following Link pagination."""
        return await self._paginate(
            f"/repos/{owner}/{repo}/branches", owner, repo, {"per_page": PER_PAGE}
        )

    async def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> RemoteResult:
        result, _ = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            owner,
            repo,
            json={"ref": ref, "sha": sha},
        )
        return result

    async def delete_ref(self, owner: str, repo: str, ref: str) -> RemoteResult:
        # ref is "refs/heads/<name>"; the endpoint drops the leading "refs/"
        short_ref = ref[len("refs/"):] if ref.startswith("refs/") else ref
        # Branch names may contain "#", "?" or "%"
        short_ref = quote(short_ref, safe="/")
        result, _ = await self._send(
            "DELETE", f"/repos/{owner}/{repo}/git/refs/{short_ref}", owner, repo
        )
        return result

    async def create_pull(
        self, owner: str, repo: str, *, title: str, body: str, head: str, base: str
    ) -> RemoteResult:
        result, _ = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            owner,
            repo,
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return result

    async def list_open_pulls(self, owner: str, repo: str) -> RemoteResult:
        return await self._paginate(
            f"/repos/{owner}/{repo}/pulls",
            owner,
            repo,
            {"state": "open", "per_page": PER_PAGE},
        )

    async def merge_pull(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        *,
        commit_title: str,
        merge_method: str = "squash",
    ) -> RemoteResult:
        result, _ = await self._send(
            "PUT",
            f"/repos/{owner}/{repo}/pulls/{pull_number}/merge",
            owner,
            repo,
            json={"commit_title": commit_title, "merge_method": merge_method},
        )
        return result

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _paginate(
        self, url: str, owner: str, repo: str, params: Dict[str, Any]
    ) -> RemoteResult:
        """GET every page of a list endpoint, following Link rel="next"."""
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = params
        items: List[Any] = []

        while next_url:
            result, response = await self._send(
                "GET", next_url, owner, repo, params=next_params
            )
            if not result.ok:
                return result
            items.extend(result.data or [])
            # The next link already carries the query string
            next_url = response.links.get("next", {}).get("url") if response else None
            next_params = None

        return RemoteResult(Outcome.OK, status_code=200, data=items)

    async def _send(
        self,
        method: str,
        url: str,
        owner: str,
        repo: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> tuple[RemoteResult, Optional[httpx.Response]]:
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(
                "GitHub request failed",
                method=method,
                url=url,
                owner=owner,
                repo=repo,
                error=str(e),
            )
            return RemoteResult(Outcome.FATAL, message=str(e)), None

        data = _decode_body(response)
        outcome = outcome_for_status(response.status_code)
        message = ""
        if outcome is not Outcome.OK:
            message = (
                data.get("message", "") if isinstance(data, dict) else response.text[:200]
            )

        logger.info(
            "GitHub request",
            method=method,
            url=url,
            owner=owner,
            repo=repo,
            status=response.status_code,
            outcome=outcome.value,
        )
        return (
            RemoteResult(
                outcome,
                status_code=response.status_code,
                data=data,
                message=message,
            ),
            response,
        )


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
