from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

DEFAULT_BRANCH_PREFIX = "vault"

# Characters git refuses in a ref component, plus whitespace
_INVALID_REF_CHARS = re.compile(r"[\s~^:?*\[\\]+|\.\.|@\{")


def sanitize_ref_component(text: str) -> str:
    """Make text usable as a single branch-name component."""
    text = _INVALID_REF_CHARS.sub("-", text)
    text = re.sub(r"-{2,}", "-", text)
    text = text.strip("-./")
    if text.endswith(".lock"):
        text = text[: -len(".lock")]
    return text or DEFAULT_BRANCH_PREFIX


def generate_branch_name(
    prefix: str = DEFAULT_BRANCH_PREFIX, now: Optional[datetime] = None
) -> str:
    """Generate a publishing branch name like ``vault-2024-05-01-134501`` (UTC)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    timestamp = now.strftime("%Y-%m-%d-%H%M%S")
    return f"{sanitize_ref_component(prefix)}-{timestamp}"
