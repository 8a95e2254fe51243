"""
🔔 User-facing notifications for Vicify commands
Every command reports its result as exactly one ``Notification``. Where it
ends up (terminal, HTTP response, test list) is up to the ``Notifier``.
"""

import logging
import sys
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO

from .api.errors import ErrorKind


class NotificationStyle(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    style: NotificationStyle
    title: str
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def is_failure(self) -> bool:
        return self.style is NotificationStyle.FAILURE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["style"] = self.style.value
        data["error_kind"] = self.error_kind.value if self.error_kind else None
        return data

    @classmethod
    def success(cls, title: str, message: Optional[str] = None) -> "Notification":
        return cls(NotificationStyle.SUCCESS, title, message)

    @classmethod
    def info(cls, title: str, message: Optional[str] = None) -> "Notification":
        return cls(NotificationStyle.INFO, title, message)

    @classmethod
    def failure(cls, title: str, message: Optional[str] = None,
                error_kind: Optional[ErrorKind] = None) -> "Notification":
        return cls(NotificationStyle.FAILURE, title, message, error_kind)


class Notifier:
    """Sink for notifications; the base class only logs them."""

    def __init__(self):
        self.logger = logging.getLogger("vicify.notify")

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.is_failure else logging.INFO
        self.logger.log(
            level,
            "notify.%s",
            notification.style.value,
            extra={"title": notification.title, "detail": notification.message},
        )


class ConsoleNotifier(Notifier):
    """Prints notifications for the CLI; failures go to stderr."""

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        super().__init__()
        self._out = out
        self._err = err

    def notify(self, notification: Notification) -> None:
        super().notify(notification)
        stream = (self._err or sys.stderr) if notification.is_failure else (self._out or sys.stdout)
        line = notification.title
        if notification.message:
            line = f"{line}: {notification.message}"
        print(line, file=stream)


class CollectingNotifier(Notifier):
    """Keeps every notification in memory (HTTP responses and tests)."""

    def __init__(self):
        super().__init__()
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        super().notify(notification)
        self.notifications.append(notification)

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def clear(self) -> None:
        self.notifications.clear()
