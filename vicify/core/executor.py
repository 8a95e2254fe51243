"""
Classification-aware execution of remote calls.

Every Spotify call made by a command or a poller goes through
``SafeCallExecutor.execute``, which turns raised exceptions into a
``CallOutcome`` and retries the kinds that are worth retrying.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from ..api.errors import ClassifiedError, ErrorKind, SpotifyError, classify_error

T = TypeVar("T")

logger = logging.getLogger("vicify.executor")


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


DEFAULT_MAX_RETRIES = max(0, int(_float_env("VICIFY_CALL_RETRIES", 2)))
DEFAULT_BACKOFF_BASE = max(0.0, _float_env("VICIFY_CALL_BACKOFF", 0.5))
BACKOFF_CAP_SECONDS = 10.0


@dataclass(frozen=True)
class CallOutcome(Generic[T]):
    """Result of one executed call: a value or a classified error, never both."""

    value: Optional[T] = None
    error: Optional[ClassifiedError] = None
    attempts: int = 1

    def __post_init__(self):
        if self.value is not None and self.error is not None:
            raise ValueError("CallOutcome cannot carry both a value and an error")

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def ok(cls, value: Optional[T] = None, attempts: int = 1) -> "CallOutcome[T]":
        return cls(value=value, attempts=attempts)

    @classmethod
    def failed(cls, error: ClassifiedError, attempts: int = 1) -> "CallOutcome[T]":
        return cls(error=error, attempts=attempts)


class SpotifyCallError(SpotifyError):
    """Raised to abort a command after a call failed with ``outcome``."""

    def __init__(self, outcome: CallOutcome):
        self.outcome = outcome
        message = outcome.error.message if outcome.error else "Spotify call failed"
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return self.outcome.kind or ErrorKind.PERMANENT


def compute_backoff(base: float, attempt: int, jitter: float = 0.0, cap: float = BACKOFF_CAP_SECONDS) -> float:
    """Exponential backoff: ``base * 2**(attempt - 1)`` plus optional jitter, capped."""
    delay = base * (2 ** max(attempt - 1, 0))
    if jitter > 0:
        delay += random.uniform(0, delay * jitter)
    return min(delay, cap)


class SafeCallExecutor:
    """Runs remote calls with bounded retry for transient and throttled failures.

    Args:
        max_retries: Additional attempts after the first for retryable kinds
        backoff_base: Delay before the first retry when the server gave no hint
        jitter: Fraction of random jitter added on top of each delay
        sleep: Injected for tests
    """

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        jitter: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = max(0, int(max_retries))
        self.backoff_base = max(0.0, float(backoff_base))
        self.jitter = max(0.0, float(jitter))
        self._sleep = sleep

    def execute(self, operation: Callable[[], T], *, label: str = "spotify.call") -> CallOutcome[T]:
        attempt = 0
        while True:
            attempt += 1
            try:
                value = operation()
            except Exception as exc:
                classified = classify_error(exc)
            else:
                if attempt > 1:
                    logger.info("%s.ok_after_retry", label, extra={"attempts": attempt})
                return CallOutcome.ok(value, attempts=attempt)

            if not classified.kind.retryable or attempt > self.max_retries:
                level = logging.DEBUG if classified.kind is ErrorKind.NO_ACTIVE_DEVICE else logging.WARNING
                logger.log(
                    level,
                    "%s.failed",
                    label,
                    extra={
                        "kind": classified.kind.value,
                        "status": classified.status,
                        "attempts": attempt,
                        "error": classified.message,
                    },
                )
                return CallOutcome.failed(classified, attempts=attempt)

            # Seed the backoff from Retry-After when the server sent one
            base = classified.retry_after if classified.retry_after is not None else self.backoff_base
            delay = compute_backoff(base, attempt, self.jitter)
            # The cap never shortens a wait the server asked for
            if classified.retry_after is not None:
                delay = max(delay, classified.retry_after)
            logger.warning(
                "%s.retry",
                label,
                extra={
                    "kind": classified.kind.value,
                    "status": classified.status,
                    "attempt": attempt,
                    "delay": round(delay, 3),
                },
            )
            self._sleep(delay)

    def run(self, operation: Callable[[], T], *, label: str = "spotify.call") -> T:
        """Like ``execute`` but raise ``SpotifyCallError`` on failure."""
        outcome = self.execute(operation, label=label)
        if not outcome.success:
            raise SpotifyCallError(outcome)
        return outcome.value  # type: ignore[return-value]
