"""Value types for one publish cycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from vault_publisher.core.settings import Settings

from .errors import PublishErrorKind


@dataclass(frozen=True)
class RepositoryReference:
    """Target repository and the name of its mainline branch."""

    owner: str
    repo: str
    branch: str = "main"
    autoclean: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RepositoryReference":
        return cls(
            owner=settings.GITHUB_OWNER,
            repo=settings.GITHUB_REPO,
            branch=settings.GITHUB_BRANCH,
            autoclean=settings.GITHUB_AUTOCLEAN,
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class PublishResult:
    """Summary of one branch -> PR -> merge -> cleanup cycle."""

    repository: RepositoryReference
    branch_name: str
    pull_request_number: Optional[int] = None
    merged: bool = False
    branch_deleted: bool = False
    error_kind: Optional[PublishErrorKind] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None and self.pull_request_number is not None
