"""
Remote capability surface consumed by the publisher.

Every operation returns a RemoteResult variant instead of raising, so the
orchestrator can switch on the outcome rather than on exception identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from vault_publisher.core.error_taxonomy import Outcome, error_code_for_status


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one round trip to the hosting API."""

    outcome: Outcome
    status_code: Optional[int] = None
    data: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def error_code(self) -> str:
        if self.status_code is None:
            return "TRANSPORT_ERROR"
        return error_code_for_status(self.status_code)


class GitHubApi(Protocol):
    """The six REST operations the branch publisher needs."""

    async def list_branches(self, owner: str, repo: str) -> RemoteResult:
        """GET /repos/{owner}/{repo}/branches -> data: list of {name, commit.sha}"""
        ...

    async def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> RemoteResult:
        """POST /repos/{owner}/{repo}/git/refs"""
        ...

    async def delete_ref(self, owner: str, repo: str, ref: str) -> RemoteResult:
        """DELETE /repos/{owner}/{repo}/git/<ref>"""
        ...

    async def create_pull(
        self, owner: str, repo: str, *, title: str, body: str, head: str, base: str
    ) -> RemoteResult:
        """POST /repos/{owner}/{repo}/pulls -> data: {number, ...}"""
        ...

    async def list_open_pulls(self, owner: str, repo: str) -> RemoteResult:
        """GET /repos/{owner}/{repo}/pulls?state=open -> data: list of {number, ...}"""
        ...

    async def merge_pull(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        *,
        commit_title: str,
        merge_method: str = "squash",
    ) -> RemoteResult:
        """PUT /repos/{owner}/{repo}/pulls/{pull_number}/merge"""
        ...


def branch_names(branches: List[Dict[str, Any]]) -> List[str]:
    return [branch.get("name", "") for branch in branches]
