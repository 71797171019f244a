"""
User-visible notification channel.

The publisher reports terminal failures (merge conflicts, missing PRs)
here in addition to its return value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

import structlog

from .errors import PublishErrorKind

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    def notify(self, kind: PublishErrorKind, message: str, **context: Any) -> None:
        ...


class LoggingNotifier:
    """Emit notifications as structlog warnings."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def notify(self, kind: PublishErrorKind, message: str, **context: Any) -> None:
        if self.enabled:
            logger.warning(message, kind=kind.value, **context)
        else:
            logger.debug(message, kind=kind.value, **context)


@dataclass(frozen=True)
class Notification:
    kind: PublishErrorKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


class RecordingNotifier:
    """Keep notifications in memory so an embedding UI can display them later."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, kind: PublishErrorKind, message: str, **context: Any) -> None:
        self.notifications.append(Notification(kind, message, dict(context)))

    def kinds(self) -> List[PublishErrorKind]:
        return [n.kind for n in self.notifications]

    def clear(self) -> None:
        self.notifications.clear()
