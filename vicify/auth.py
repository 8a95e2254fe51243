#!/usr/bin/env python3
"""
🔑 Access token providers for Vicify

Token *acquisition* (the browser OAuth dance) happens once via
``generate_token.py``; at runtime a provider turns stored credentials into a
ready ``SpotifyClient`` and forgets its token when Spotify answers 401.
"""

import logging
import os
import random
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests
from dotenv import find_dotenv, load_dotenv

from .api.errors import AuthenticationError
from .api.http import get_http_session
from .api.spotify import SpotifyClient
from .utils.token_cache import TokenCache, TokenResponse

TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"
TOKEN_REFRESH_MAX_ATTEMPTS = max(1, int(os.getenv("VICIFY_TOKEN_REFRESH_ATTEMPTS", "3")))
TOKEN_REFRESH_BACKOFF_BASE = 0.5

logger = logging.getLogger("vicify.auth")


def get_app_config_dir() -> Path:
    """Directory holding the ``.env`` with Spotify credentials."""
    app_name = os.getenv("VICIFY_APP_NAME", "vicify")
    return Path.home() / f".{app_name}"


def load_credentials_env() -> None:
    """Load ``~/.vicify/.env`` and a project-root ``.env`` into the environment."""
    env_path = get_app_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    load_dotenv(find_dotenv(usecwd=True))


class AuthProvider(ABC):
    """Supplies authenticated API handles."""

    @abstractmethod
    def get_access_token(self) -> str:
        """Return a usable access token or raise ``AuthenticationError``."""

    def invalidate(self) -> None:
        """Forget any cached token; the next call re-authenticates."""

    def get_client(self) -> SpotifyClient:
        return SpotifyClient(self.get_access_token())


class StaticTokenAuthProvider(AuthProvider):
    """Wraps a fixed access token (``SPOTIFY_ACCESS_TOKEN``)."""

    def __init__(self, access_token: str):
        if not access_token:
            raise AuthenticationError("Access token is empty")
        self._access_token = access_token

    def get_access_token(self) -> str:
        return self._access_token


class RefreshTokenAuthProvider(AuthProvider):
    """Exchanges a long-lived refresh token for short-lived access tokens."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        session: Optional[requests.Session] = None,
    ):
        if not all([client_id, client_secret, refresh_token]):
            raise AuthenticationError("Spotify credentials missing for token refresh")
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._session = session
        self._cache = TokenCache(self._refresh)

    def get_access_token(self) -> str:
        token = self._cache.get_valid_token()
        if not token:
            raise AuthenticationError("Could not refresh the Spotify access token")
        return token

    def invalidate(self) -> None:
        self._cache.invalidate()

    def _refresh(self) -> TokenResponse:
        session = self._session or get_http_session()
        attempts = 0
        while True:
            attempts += 1
            try:
                response = session.post(
                    TOKEN_ENDPOINT,
                    data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                    auth=(self._client_id, self._client_secret),
                )
                if response.status_code in (429, 500, 502, 503, 504):
                    raise requests.HTTPError(f"retryable status {response.status_code}", response=response)
                response.raise_for_status()
            except (requests.ConnectionError, requests.Timeout, requests.HTTPError) as exc:
                status = exc.response.status_code if getattr(exc, "response", None) is not None else None
                retryable = status is None or status in (429, 500, 502, 503, 504)
                logger.warning(
                    "token.refresh.retry" if retryable else "token.refresh.http_error",
                    extra={"attempt": attempts, "status": status, "reason": exc.__class__.__name__},
                )
                if not retryable or attempts >= TOKEN_REFRESH_MAX_ATTEMPTS:
                    raise
                delay = TOKEN_REFRESH_BACKOFF_BASE * (2 ** (attempts - 1))
                time.sleep(delay + random.uniform(0, delay * 0.3))
                continue

            payload = response.json()
            access_token = payload.get("access_token")
            if not access_token:
                raise RuntimeError("Token response missing access_token")
            # Spotify may rotate the refresh token
            if payload.get("refresh_token"):
                self._refresh_token = payload["refresh_token"]
            logger.info("token.refresh.ok", extra={"attempts": attempts})
            return TokenResponse(
                access_token=access_token,
                expires_in=int(payload.get("expires_in", 3600)),
                refresh_token=payload.get("refresh_token"),
                scope=payload.get("scope"),
                token_type=payload.get("token_type"),
            )


_provider: Optional[AuthProvider] = None
_provider_lock = threading.Lock()


def provider_from_env() -> AuthProvider:
    """Build a provider from environment credentials.

    ``SPOTIFY_ACCESS_TOKEN`` wins when set; otherwise client id, secret and
    refresh token are required.
    """
    load_credentials_env()
    static_token = os.getenv("SPOTIFY_ACCESS_TOKEN")
    if static_token:
        return StaticTokenAuthProvider(static_token)
    return RefreshTokenAuthProvider(
        os.getenv("SPOTIFY_CLIENT_ID", ""),
        os.getenv("SPOTIFY_CLIENT_SECRET", ""),
        os.getenv("SPOTIFY_REFRESH_TOKEN", ""),
    )


def get_auth_provider() -> AuthProvider:
    """Return the process-wide provider, building it from the environment once."""
    global _provider
    if _provider is None:
        with _provider_lock:
            if _provider is None:
                _provider = provider_from_env()
    return _provider


def set_auth_provider(provider: Optional[AuthProvider]) -> None:
    """Override the process-wide provider (primarily for testing)."""
    global _provider
    with _provider_lock:
        _provider = provider
