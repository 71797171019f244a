"""
Publishing workflow package

- BranchPublisher: branch -> pull request -> squash merge -> branch cleanup
- RepositoryReference / PublishResult: per-cycle input and summary
- Notifier implementations for user-visible failure reports
- generate_branch_name: timestamped publishing branch names
"""

from .branch_publisher import BranchPublisher, merge_commit_title, pull_request_title
from .errors import (
    NoOpenPullRequest,
    PublishError,
    PublishErrorKind,
    ReferenceNotFound,
    RemoteRequestError,
)
from .models import PublishResult, RepositoryReference
from .naming import generate_branch_name
from .notifier import LoggingNotifier, Notification, Notifier, RecordingNotifier

__all__ = [
    # Orchestration
    "BranchPublisher",
    "merge_commit_title",
    "pull_request_title",
    # Data model
    "RepositoryReference",
    "PublishResult",
    # Errors
    "PublishError",
    "PublishErrorKind",
    "ReferenceNotFound",
    "NoOpenPullRequest",
    "RemoteRequestError",
    # Notifications
    "Notifier",
    "Notification",
    "LoggingNotifier",
    "RecordingNotifier",
    # Naming
    "generate_branch_name",
]
