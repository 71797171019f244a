"""Pytest configuration and fixtures for publisher tests

Provides:
- fake_github: in-memory GitHub REST API served through httpx.MockTransport
- github_client: GitHubClient wired to fake_github
- notifier: RecordingNotifier capturing user-visible failures
- publisher: BranchPublisher using both
- repo: RepositoryReference for owner "a", repo "b", mainline "main"
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from vault_publisher.integrations.github import GitHubClient
from vault_publisher.publishing import (
    BranchPublisher,
    RecordingNotifier,
    RepositoryReference,
)

TEST_API_URL = "https://api.github.com"
MAINLINE_SHA = "abc123"


@dataclass
class FakeRepository:
    """Remote state of one repository plus failure injection knobs."""

    branches: Dict[str, str] = field(default_factory=lambda: {"main": MAINLINE_SHA})
    pulls: List[Dict[str, Any]] = field(default_factory=list)
    next_pull_number: int = 1

    # Failure injection: a status code forces that response
    branches_status: Optional[int] = None
    create_ref_status: Optional[int] = None
    create_pull_status: Optional[int] = None
    list_pulls_status: Optional[int] = None
    merge_status: Optional[int] = None
    delete_status: Optional[int] = None
    # POST git/refs creates the ref but answers 422, like a concurrent writer
    ref_created_concurrently: bool = False


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: Dict[str, str]
    body: Any


class FakeGitHub:
    """Minimal GitHub REST API covering branches, refs and pulls."""

    def __init__(self) -> None:
        self.repos: Dict[Tuple[str, str], FakeRepository] = {}
        self.requests: List[RecordedRequest] = []
        self.page_size: Optional[int] = None

    def add_repo(self, owner: str, name: str, **kwargs: Any) -> FakeRepository:
        repository = FakeRepository(**kwargs)
        self.repos[(owner, name)] = repository
        return repository

    def calls(self, method: str, suffix: str = "") -> List[RecordedRequest]:
        return [
            r for r in self.requests if r.method == method and r.path.endswith(suffix)
        ]

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        params = dict(request.url.params)
        path = request.url.path
        self.requests.append(RecordedRequest(request.method, path, params, body))

        match = re.match(r"^/repos/([^/]+)/([^/]+)/(.+)$", path)
        if not match or (match.group(1), match.group(2)) not in self.repos:
            return _error(404, "Not Found")
        repository = self.repos[(match.group(1), match.group(2))]
        rest = match.group(3)

        if rest == "branches" and request.method == "GET":
            return self._list_branches(request, repository, params)
        if rest == "git/refs" and request.method == "POST":
            return self._create_ref(repository, body)
        if rest.startswith("git/refs/heads/") and request.method == "DELETE":
            return self._delete_ref(repository, rest[len("git/refs/heads/"):])
        if rest == "pulls" and request.method == "POST":
            return self._create_pull(repository, body)
        if rest == "pulls" and request.method == "GET":
            return self._list_pulls(request, repository, params)
        merge = re.match(r"^pulls/(\d+)/merge$", rest)
        if merge and request.method == "PUT":
            return self._merge_pull(repository, int(merge.group(1)))
        return _error(404, "Not Found")

    def _list_branches(
        self, request: httpx.Request, repository: FakeRepository, params: Dict[str, str]
    ) -> httpx.Response:
        if repository.branches_status:
            return _error(repository.branches_status, "Server Error")

        items = [
            {"name": name, "commit": {"sha": sha}}
            for name, sha in repository.branches.items()
        ]
        return self._paginated(request, items, params)

    def _create_ref(self, repository: FakeRepository, body: Dict[str, Any]) -> httpx.Response:
        name = body["ref"][len("refs/heads/"):]
        if repository.ref_created_concurrently:
            repository.branches[name] = body["sha"]
            return _error(422, "Reference already exists")
        if repository.create_ref_status:
            return _error(repository.create_ref_status, "Forbidden")
        if name in repository.branches:
            return _error(422, "Reference already exists")
        repository.branches[name] = body["sha"]
        return httpx.Response(
            201, json={"ref": body["ref"], "object": {"sha": body["sha"]}}
        )

    def _delete_ref(self, repository: FakeRepository, name: str) -> httpx.Response:
        if repository.delete_status:
            return _error(repository.delete_status, "Forbidden")
        if name not in repository.branches:
            return _error(422, "Reference does not exist")
        del repository.branches[name]
        return httpx.Response(204)

    def _create_pull(self, repository: FakeRepository, body: Dict[str, Any]) -> httpx.Response:
        if repository.create_pull_status:
            return _error(repository.create_pull_status, "Validation Failed")
        if body["head"] not in repository.branches:
            return _error(422, "Validation Failed")
        if any(
            p["head"]["ref"] == body["head"] and p["state"] == "open"
            for p in repository.pulls
        ):
            return _error(422, "A pull request already exists")

        pull = {
            "number": repository.next_pull_number,
            "title": body["title"],
            "body": body["body"],
            "state": "open",
            "head": {"ref": body["head"]},
            "base": {"ref": body["base"]},
        }
        repository.next_pull_number += 1
        repository.pulls.append(pull)
        return httpx.Response(201, json=pull)

    def _list_pulls(
        self, request: httpx.Request, repository: FakeRepository, params: Dict[str, str]
    ) -> httpx.Response:
        if repository.list_pulls_status:
            return _error(repository.list_pulls_status, "Server Error")
        state = params.get("state", "open")
        return self._paginated(
            request, [p for p in repository.pulls if p["state"] == state], params
        )

    def _paginated(
        self, request: httpx.Request, items: List[Any], params: Dict[str, str]
    ) -> httpx.Response:
        per_page = self.page_size or int(params.get("per_page", 30))
        page = int(params.get("page", 1))
        chunk = items[(page - 1) * per_page : page * per_page]

        headers = {}
        if page * per_page < len(items):
            next_url = request.url.copy_merge_params(
                {"per_page": per_page, "page": page + 1}
            )
            headers["Link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json=chunk, headers=headers)

    def _merge_pull(self, repository: FakeRepository, number: int) -> httpx.Response:
        if repository.merge_status:
            return _error(repository.merge_status, "Merge conflict")
        pull = next((p for p in repository.pulls if p["number"] == number), None)
        if pull is None:
            return _error(404, "Not Found")
        pull["state"] = "closed"
        return httpx.Response(
            200,
            json={
                "sha": "def456",
                "merged": True,
                "message": "Pull Request successfully merged",
            },
        )


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"message": message})


@pytest.fixture
def fake_github():
    fake = FakeGitHub()
    fake.add_repo("a", "b")
    return fake


@pytest_asyncio.fixture
async def github_client(fake_github):
    client = GitHubClient(
        token="test-token",
        base_url=TEST_API_URL,
        transport=httpx.MockTransport(fake_github.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def publisher(github_client, notifier):
    return BranchPublisher(github_client, notifier)


@pytest.fixture
def repo():
    return RepositoryReference(owner="a", repo="b", branch="main")
