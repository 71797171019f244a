from __future__ import annotations

from enum import Enum
from typing import Dict

_STATUS_TO_CODE: Dict[int, str] = {
    400: "INVALID_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
    502: "UPSTREAM_ERROR",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}

# GitHub answers "already exists" / "not mergeable" with 405, 409 or 422
_CONFLICT_STATUSES = frozenset({405, 409, 422})


class Outcome(str, Enum):
    """Result variant of a single remote call."""

    OK = "ok"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    FATAL = "fatal"


def error_code_for_status(status_code: int) -> str:
    return _STATUS_TO_CODE.get(status_code, "UNKNOWN_ERROR")


def outcome_for_status(status_code: int) -> Outcome:
    if 200 <= status_code < 300:
        return Outcome.OK
    if status_code == 404:
        return Outcome.NOT_FOUND
    if status_code in _CONFLICT_STATUSES:
        return Outcome.CONFLICT
    return Outcome.FATAL
