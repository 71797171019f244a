"""
GitHub integration for the publishing workflow.

- GitHubApi: protocol of the remote operations the publisher consumes
- GitHubClient: httpx implementation of that protocol
- RemoteResult: Ok / Conflict / NotFound / Fatal variant returned by every call
"""

from .api import GitHubApi, RemoteResult
from .client import GitHubClient

__all__ = ["GitHubApi", "GitHubClient", "RemoteResult"]
