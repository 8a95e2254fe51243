#!/usr/bin/env python3
"""Shared HTTP session for the Spotify Web API and accounts service.

One ``requests.Session`` is reused by every client so connections stay warm
between launcher commands. urllib3 retries only failed connects; retrying on
status (429/5xx) is left to ``SafeCallExecutor`` so it is classified and
logged in one place.
"""

import logging
import os
import platform
from threading import Lock
from typing import Any, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ..version import VERSION

_LOGGER = logging.getLogger("vicify.http")
_SESSION_LOCK = Lock()
_SESSION: Optional[requests.Session] = None

FALLBACK_TIMEOUT: Tuple[float, float] = (4.0, 10.0)


def load_timeouts() -> Tuple[float, float]:
    """Read ``VICIFY_HTTP_TIMEOUTS`` as ``"connect,read"`` seconds."""
    raw = os.getenv("VICIFY_HTTP_TIMEOUTS", "")
    parts = [p.strip() for p in raw.replace(";", ",").split(",") if p.strip()]
    if len(parts) != 2:
        return FALLBACK_TIMEOUT
    try:
        return max(0.5, float(parts[0])), max(1.0, float(parts[1]))
    except ValueError:
        _LOGGER.warning("http.invalid_timeouts", extra={"value": raw})
        return FALLBACK_TIMEOUT


def connect_retry() -> Retry:
    """Retry policy for the adapters: connects only, never reads or statuses."""
    try:
        attempts = max(0, int(os.getenv("VICIFY_HTTP_RETRY_CONNECT", "2")))
    except ValueError:
        attempts = 2
    return Retry(
        total=attempts,
        connect=attempts,
        read=0,
        status=0,
        backoff_factor=0.3,
        status_forcelist=(),
        allowed_methods=None,
        raise_on_status=False,
    )


class SpotifySession(requests.Session):
    """Session that applies a default (connect, read) timeout to every request."""

    def __init__(self, timeout: Optional[Tuple[float, float]] = None):
        super().__init__()
        self.default_timeout = timeout or load_timeouts()

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.default_timeout
        return super().request(method, url, **kwargs)


def build_session(timeout: Optional[Tuple[float, float]] = None) -> SpotifySession:
    session = SpotifySession(timeout)
    adapter = HTTPAdapter(max_retries=connect_retry())
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept": "application/json",
            "User-Agent": f"Vicify/{VERSION} (Python {platform.python_version()}; Requests {requests.__version__})",
        }
    )
    _LOGGER.debug("http.session_created", extra={"timeout": list(session.default_timeout)})
    return session


def get_http_session() -> requests.Session:
    """Return the shared HTTP session, creating it on first use."""
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = build_session()
        return _SESSION


def set_http_session(session: Optional[requests.Session]) -> None:
    """Replace the shared session; None makes the next call build a fresh one."""
    global _SESSION
    with _SESSION_LOCK:
        _SESSION = session


__all__ = ["SpotifySession", "build_session", "connect_retry", "get_http_session",
           "load_timeouts", "set_http_session"]
