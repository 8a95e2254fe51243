"""
Spotify error taxonomy and classification.

Every failure raised by a remote call is mapped to exactly one ``ErrorKind``.
The mapping is total: anything unrecognised is ``PERMANENT``.
"""

from __future__ import annotations

import email.utils
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import requests

TRANSIENT_STATUSES = frozenset({500, 502, 503, 504})


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NO_ACTIVE_DEVICE = "no_active_device"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PERMANENT = "permanent"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.TRANSIENT, ErrorKind.RATE_LIMITED)


class SpotifyError(Exception):
    """Base exception for all Spotify-related errors."""


class SpotifyApiError(SpotifyError):
    """Raised when the Spotify Web API answers with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response
        payload: Decoded JSON body, empty when the body was not JSON
        retry_after: Seconds from a ``Retry-After`` header, if any
    """

    def __init__(
        self,
        status_code: int,
        message: str = "",
        *,
        payload: Optional[Dict[str, Any]] = None,
        retry_after: Optional[float] = None,
    ):
        self.status_code = status_code
        self.payload = payload or {}
        self.retry_after = retry_after
        self.message = message or _payload_message(self.payload) or f"HTTP {status_code}"
        super().__init__(self.message)

    @property
    def reason(self) -> Optional[str]:
        error = self.payload.get("error")
        if isinstance(error, dict):
            reason = error.get("reason")
            return reason if isinstance(reason, str) else None
        return None

    @classmethod
    def from_response(cls, response: requests.Response) -> "SpotifyApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        message = _payload_message(payload) or (response.text or "")[:200]
        return cls(response.status_code, message, payload=payload, retry_after=retry_after)


class NoActiveDeviceError(SpotifyError):
    """Raised when Spotify reports no device eligible to receive commands."""

    def __init__(self, message: str = "No active device found"):
        super().__init__(message)


class AuthenticationError(SpotifyError):
    """Raised when no usable access token can be obtained."""


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    status: Optional[int] = None
    retry_after: Optional[float] = None


def _payload_message(payload: Dict[str, Any]) -> str:
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) else ""
    if isinstance(error, str):
        # Accounts service shape: {"error": "invalid_grant", "error_description": "..."}
        description = payload.get("error_description")
        return f"{error}: {description}" if description else error
    return ""


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` header given as seconds or an HTTP date."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, parsed.timestamp() - time.time())


def _is_device_related(error: SpotifyApiError) -> bool:
    if error.reason == "NO_ACTIVE_DEVICE":
        return True
    return "device" in error.message.lower()


def classify_status(error: SpotifyApiError) -> ErrorKind:
    status = error.status_code
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status == 404 and _is_device_related(error):
        return ErrorKind.NO_ACTIVE_DEVICE
    if status in TRANSIENT_STATUSES or status >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def classify_error(exc: BaseException) -> ClassifiedError:
    """Map a raw failure from a remote call to a ``ClassifiedError``."""
    if isinstance(exc, SpotifyApiError):
        kind = classify_status(exc)
        return ClassifiedError(
            kind=kind,
            message=exc.message,
            status=exc.status_code,
            retry_after=exc.retry_after if kind is ErrorKind.RATE_LIMITED else None,
        )
    if isinstance(exc, NoActiveDeviceError):
        return ClassifiedError(ErrorKind.NO_ACTIVE_DEVICE, str(exc))
    if isinstance(exc, AuthenticationError):
        return ClassifiedError(ErrorKind.UNAUTHORIZED, str(exc))
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_error(SpotifyApiError.from_response(exc.response))
    if isinstance(exc, (requests.ConnectionError, requests.Timeout,
                        requests.exceptions.ChunkedEncodingError)):
        return ClassifiedError(ErrorKind.TRANSIENT, f"Network error: {exc.__class__.__name__}")
    return ClassifiedError(ErrorKind.PERMANENT, str(exc) or exc.__class__.__name__)
