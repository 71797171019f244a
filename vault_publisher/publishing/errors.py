"""Error kinds raised or reported by the branch publisher."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class PublishErrorKind(str, Enum):
    """Every failure a publish cycle can run into."""

    REFERENCE_NOT_FOUND = "reference_not_found"  # fatal
    REF_ALREADY_EXISTS = "ref_already_exists"  # recovered
    PULL_REQUEST_CONFLICT = "pull_request_conflict"  # recovered
    NO_OPEN_PULL_REQUEST = "no_open_pull_request"  # propagated
    MERGE_CONFLICT = "merge_conflict"  # reported, never retried
    DELETE_FAILED = "delete_failed"  # swallowed
    REMOTE_ERROR = "remote_error"  # fatal


class PublishError(RuntimeError):
    """Base class for failures surfaced to the caller."""

    kind: PublishErrorKind = PublishErrorKind.REMOTE_ERROR

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReferenceNotFound(PublishError):
    """Raised when the mainline branch is absent from the remote listing"""

    kind = PublishErrorKind.REFERENCE_NOT_FOUND


class NoOpenPullRequest(PublishError):
    """Raised when PR creation failed and no open PR could be found"""

    kind = PublishErrorKind.NO_OPEN_PULL_REQUEST


class RemoteRequestError(PublishError):
    """Raised when a read the cycle cannot do without fails outright"""

    kind = PublishErrorKind.REMOTE_ERROR
