#!/usr/bin/env python3
"""
🎟️ Spotify access token cache for Vicify
Keeps one access token in memory and refreshes it shortly before expiry, so a
burst of launcher commands costs a single token request.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

# Refresh this long before Spotify's stated expiry
EXPIRY_BUFFER_SECONDS = 5 * 60

# Spotify never issues shorter-lived tokens; guards against a bogus expires_in
MIN_TOKEN_LIFETIME_SECONDS = 60

_logger = logging.getLogger("vicify.token_cache")


@dataclass
class TokenResponse:
    """Normalized token refresh response from Spotify."""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None
    received_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.received_at + max(MIN_TOKEN_LIFETIME_SECONDS, int(self.expires_in))

    @property
    def needs_refresh(self) -> bool:
        return time.time() >= self.expires_at - EXPIRY_BUFFER_SECONDS


class TokenCache:
    """
    Thread-safe access token cache.

    Concurrent callers that find the token stale wait on one refresh instead
    of each asking Spotify for a new token.

    Args:
        refresh_function: Returns a fresh ``TokenResponse`` (or None on failure)
    """

    def __init__(self, refresh_function: Callable[[], Optional[TokenResponse]]):
        self._refresh_function = refresh_function
        self._token: Optional[TokenResponse] = None
        self._lock = threading.Lock()

    def get_valid_token(self) -> Optional[str]:
        """Return a usable access token, refreshing if necessary; None when refresh failed."""
        with self._lock:
            if self._token is not None and not self._token.needs_refresh:
                return self._token.access_token

            _logger.debug("token.refresh")
            try:
                response = self._refresh_function()
            except Exception as exc:
                _logger.error("token.refresh_failed", extra={"error": str(exc)})
                return None
            if not response:
                _logger.error("token.refresh_failed", extra={"error": "no token returned"})
                return None

            self._token = response
            return response.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next request refreshes."""
        with self._lock:
            if self._token is not None:
                _logger.debug("token.invalidated")
            self._token = None
