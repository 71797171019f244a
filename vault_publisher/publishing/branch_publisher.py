"""
Branch Publisher

Responsibility:
- Cut a short-lived publishing branch from the mainline of a remote repository
- Open (or discover) the pull request for that branch
- Squash-merge it and delete the branch afterwards

Flow:
1. create_branch            NoBranch -> BranchCreated
2. (caller writes files to the branch)
3. open_or_find_pull_request BranchCreated -> PullRequestOpen
4. merge_pull_request        PullRequestOpen -> Merged | MergeFailed
5. delete_branch             Merged -> BranchDeleted (best effort)

State lives entirely on the remote host. Every operation is parameterized by
its RepositoryReference, so independent cycles can run concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

import structlog

from vault_publisher.core.error_taxonomy import Outcome
from vault_publisher.core.settings import Settings
from vault_publisher.integrations.github.api import GitHubApi, RemoteResult, branch_names

from .errors import (
    NoOpenPullRequest,
    PublishError,
    PublishErrorKind,
    ReferenceNotFound,
    RemoteRequestError,
)
from .models import PublishResult, RepositoryReference
from .naming import DEFAULT_BRANCH_PREFIX, generate_branch_name
from .notifier import LoggingNotifier, Notifier

logger = structlog.get_logger(__name__)

WriteFiles = Callable[[str, RepositoryReference], Awaitable[Any]]


def pull_request_title(branch_name: str) -> str:
    return f"PullRequest {branch_name} from Obsidian"


def merge_commit_title(pull_request_number: int) -> str:
    return f"[PUBLISHER] Merge #{pull_request_number}"


class BranchPublisher:
    """
    Owns the branch -> PR -> merge -> cleanup lifecycle of a publish operation.

    Expected conflicts (branch or PR already exists) are recovered with a
    single read-after-write query. Terminal failures are returned as False
    (or raised, for a missing mainline) and reported to the notifier.
    """

    MERGE_METHOD = "squash"

    def __init__(
        self,
        api: GitHubApi,
        notifier: Optional[Notifier] = None,
        *,
        auto_merge: bool = True,
        branch_prefix: str = DEFAULT_BRANCH_PREFIX,
    ) -> None:
        self.api = api
        self.notifier = notifier or LoggingNotifier()
        self.auto_merge = auto_merge
        self.branch_prefix = branch_prefix

    @classmethod
    def from_settings(
        cls, api: GitHubApi, settings: Settings, notifier: Optional[Notifier] = None
    ) -> "BranchPublisher":
        return cls(
            api,
            notifier or LoggingNotifier(enabled=settings.NOTICE_ERROR),
            auto_merge=settings.AUTO_MERGE_PR,
            branch_prefix=settings.BRANCH_PREFIX,
        )

    # ------------------------------------------------------------------
    # Lifecycle steps
    # ------------------------------------------------------------------

    async def create_branch(self, branch_name: str, repo: RepositoryReference) -> bool:
        """
        Create refs/heads/<branch_name> at the current mainline commit.

        An existing branch of that name is reused as is. Returns False only
        when the ref could not be created and is still absent afterwards.

        Raises:
            ReferenceNotFound: the mainline branch is missing from the listing
            RemoteRequestError: the branch listing itself failed
        """
        log = logger.bind(repository=repo.full_name, branch=branch_name)

        listing = await self.api.list_branches(repo.owner, repo.repo)
        if not listing.ok:
            raise RemoteRequestError(
                f"Unable to list branches of {repo.full_name}: {listing.message}",
                status_code=listing.status_code,
            )

        branches: List[Dict[str, Any]] = listing.data or []
        mainline = next((b for b in branches if b.get("name") == repo.branch), None)
        if mainline is None:
            raise ReferenceNotFound(
                f"Mainline branch '{repo.branch}' not found in {repo.full_name}"
            )

        if branch_name in branch_names(branches):
            log.info("Publishing branch already exists, reusing it")
            return True

        sha = mainline["commit"]["sha"]
        created = await self.api.create_ref(
            repo.owner, repo.repo, f"refs/heads/{branch_name}", sha
        )
        if created.ok:
            log.info("Created publishing branch", sha=sha, status=created.status_code)
            return True

        log.info(
            "Branch creation rejected, checking for an existing branch",
            kind=PublishErrorKind.REF_ALREADY_EXISTS.value,
            status=created.status_code,
            error=created.message,
        )
        relisting = await self.api.list_branches(repo.owner, repo.repo)
        if not relisting.ok:
            log.error("Branch re-listing failed", status=relisting.status_code)
            return False
        return branch_name in branch_names(relisting.data or [])

    async def open_or_find_pull_request(
        self, branch_name: str, repo: RepositoryReference
    ) -> int:
        """
        Open a PR from branch_name into the mainline and return its number.

        If GitHub rejects the PR (one already exists, or there is no diff),
        fall back to the open PRs of the repository: the one whose head is
        branch_name wins, otherwise the first one listed.

        Raises:
            NoOpenPullRequest: creation failed and no open PR was found
        """
        log = logger.bind(repository=repo.full_name, branch=branch_name)

        created = await self.api.create_pull(
            repo.owner,
            repo.repo,
            title=pull_request_title(branch_name),
            body="",
            head=branch_name,
            base=repo.branch,
        )
        if created.ok and isinstance(created.data, dict) and "number" in created.data:
            number = int(created.data["number"])
            log.info("Opened pull request", pr_number=number)
            return number

        log.info(
            "Pull request creation rejected, looking for an open one",
            kind=PublishErrorKind.PULL_REQUEST_CONFLICT.value,
            status=created.status_code,
            error=created.message,
        )
        listing = await self.api.list_open_pulls(repo.owner, repo.repo)
        pulls: List[Dict[str, Any]] = listing.data if listing.ok and listing.data else []
        if not pulls:
            raise NoOpenPullRequest(
                f"No open pull request found in {repo.full_name} for '{branch_name}'",
                status_code=listing.status_code,
            )

        for pull in pulls:
            if (pull.get("head") or {}).get("ref") == branch_name:
                log.info("Found open pull request for branch", pr_number=pull["number"])
                return int(pull["number"])

        number = int(pulls[0]["number"])
        log.warning(
            "No open pull request matches the branch, using the first open one",
            pr_number=number,
            open_count=len(pulls),
        )
        return number

    async def merge_pull_request(
        self, pull_request_number: int, repo: RepositoryReference, silent: bool = False
    ) -> bool:
        """Squash-merge the PR. Failures are reported, never retried."""
        result = await self._squash_merge(pull_request_number, repo)
        if not result.ok and not silent:
            self._notify_merge_conflict(pull_request_number, repo, result.message)
        return result.ok

    async def _squash_merge(
        self, pull_request_number: int, repo: RepositoryReference
    ) -> RemoteResult:
        result = await self.api.merge_pull(
            repo.owner,
            repo.repo,
            pull_request_number,
            commit_title=merge_commit_title(pull_request_number),
            merge_method=self.MERGE_METHOD,
        )
        if result.ok:
            logger.info(
                "Merged pull request",
                repository=repo.full_name,
                pr_number=pull_request_number,
            )
            return result

        logger.warning(
            "Pull request merge rejected",
            repository=repo.full_name,
            pr_number=pull_request_number,
            status=result.status_code,
            error=result.message,
        )
        return result

    async def delete_branch(self, branch_name: str, repo: RepositoryReference) -> bool:
        """Delete the publishing branch. A failure leaves an orphaned branch and nothing else."""
        result = await self.api.delete_ref(
            repo.owner, repo.repo, f"refs/heads/{branch_name}"
        )
        if result.ok:
            logger.info("Deleted publishing branch", repository=repo.full_name, branch=branch_name)
            return True

        logger.warning(
            "Publishing branch deletion failed",
            repository=repo.full_name,
            branch=branch_name,
            kind=PublishErrorKind.DELETE_FAILED.value,
            status=result.status_code,
            not_found=result.outcome is Outcome.NOT_FOUND,
            error=result.message,
        )
        return False

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def publish_and_merge(self, branch_name: str, repo: RepositoryReference) -> bool:
        """Open or find the PR, merge it, then delete the branch. True iff merged."""
        result = await self._finish(branch_name, repo, auto_merge=True)
        return result.merged

    async def submit(self, branch_name: str, repo: RepositoryReference) -> bool:
        """Run the update step, merging only when auto-merge is enabled."""
        result = await self._finish(branch_name, repo, auto_merge=self.auto_merge)
        return result.success

    async def publish_cycle(
        self,
        repo: RepositoryReference,
        branch_name: Optional[str] = None,
        write_files: Optional[WriteFiles] = None,
    ) -> PublishResult:
        """
        Run one whole cycle: create the branch, let the caller write files, submit.

        Publish failures are reported through the result; exceptions raised
        by write_files propagate.
        """
        branch_name = branch_name or generate_branch_name(self.branch_prefix)

        try:
            created = await self.create_branch(branch_name, repo)
        except PublishError as e:
            self.notifier.notify(e.kind, str(e), repository=repo.full_name, branch=branch_name)
            return PublishResult(repo, branch_name, error_kind=e.kind)

        if not created:
            self.notifier.notify(
                PublishErrorKind.REMOTE_ERROR,
                f"Unable to create branch '{branch_name}' in {repo.full_name}",
                repository=repo.full_name,
                branch=branch_name,
            )
            return PublishResult(repo, branch_name, error_kind=PublishErrorKind.REMOTE_ERROR)

        if write_files is not None:
            await write_files(branch_name, repo)

        return await self._finish(branch_name, repo, auto_merge=self.auto_merge)

    async def publish_to_repositories(
        self,
        repos: Iterable[RepositoryReference],
        branch_name: Optional[str] = None,
        write_files: Optional[WriteFiles] = None,
    ) -> List[Union[PublishResult, BaseException]]:
        """Run independent cycles concurrently, one per repository, in input order."""
        branch_name = branch_name or generate_branch_name(self.branch_prefix)
        return await asyncio.gather(
            *(self.publish_cycle(repo, branch_name, write_files) for repo in repos),
            return_exceptions=True,
        )

    async def _finish(
        self, branch_name: str, repo: RepositoryReference, *, auto_merge: bool
    ) -> PublishResult:
        try:
            number = await self.open_or_find_pull_request(branch_name, repo)
        except NoOpenPullRequest as e:
            self.notifier.notify(e.kind, str(e), repository=repo.full_name, branch=branch_name)
            return PublishResult(repo, branch_name, error_kind=e.kind)

        if not auto_merge:
            return PublishResult(repo, branch_name, pull_request_number=number)

        merge = await self._squash_merge(number, repo)
        if not merge.ok:
            self._notify_merge_conflict(number, repo, merge.message)
            return PublishResult(
                repo,
                branch_name,
                pull_request_number=number,
                error_kind=PublishErrorKind.MERGE_CONFLICT,
            )

        deleted = await self.delete_branch(branch_name, repo)
        return PublishResult(
            repo,
            branch_name,
            pull_request_number=number,
            merged=True,
            branch_deleted=deleted,
        )

    def _notify_merge_conflict(
        self, pull_request_number: int, repo: RepositoryReference, detail: str = ""
    ) -> None:
        message = f"Merge conflict on pull request #{pull_request_number} in {repo.full_name}"
        if detail:
            message = f"{message}: {detail}"
        self.notifier.notify(
            PublishErrorKind.MERGE_CONFLICT,
            message,
            repository=repo.full_name,
            pr_number=pull_request_number,
        )
