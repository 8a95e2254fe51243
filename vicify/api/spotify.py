#!/usr/bin/env python3
"""
🎵 Spotify Web API client for Vicify
Thin, exception-raising wrapper over the subset of the Web API the launcher
commands use: player state and transport, queue, search, followed artists,
recommendations and device transfer.

Retries and error classification are *not* done here; callers run these
methods through ``SafeCallExecutor``.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import SpotifyApiError
from .http import get_http_session
from .models import (Artist, Device, PlaybackState, QueueState, ResultKind,
                     SearchResult, Track, parse_search_results)

API_BASE_URL = "https://api.spotify.com/v1"

logger = logging.getLogger("vicify.spotify")


class SpotifyClient:
    """Authenticated handle on the Spotify Web API.

    Instances are cheap; ``AuthProvider`` creates one per access token.
    """

    def __init__(self, access_token: str, session: Optional[requests.Session] = None):
        self._access_token = access_token
        self._session = session

    @property
    def session(self) -> requests.Session:
        return self._session or get_http_session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Optional[Any]:
        """Issue one request; return the decoded body, or None for empty responses."""
        method_upper = method.upper()
        url = f"{API_BASE_URL}{path}"
        headers = {"Authorization": f"Bearer {self._access_token}"}
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        start = time.perf_counter()
        try:
            resp = self.session.request(
                method_upper,
                url,
                headers=headers,
                params=params or None,
                json=json,
            )
        except requests.exceptions.RequestException as exc:
            logger.debug(
                "spotify.request.error",
                extra={
                    "method": method_upper,
                    "path": path,
                    "elapsed": round(time.perf_counter() - start, 3),
                    "error": exc.__class__.__name__,
                },
            )
            raise

        logger.debug(
            "spotify.request",
            extra={
                "method": method_upper,
                "path": path,
                "status": resp.status_code,
                "elapsed": round(time.perf_counter() - start, 3),
            },
        )

        if not 200 <= resp.status_code < 300:
            raise SpotifyApiError.from_response(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            # Player commands sometimes answer 200 with a non-JSON body
            return None

    # ▶️ Player state
    def get_playback_state(self) -> Optional[PlaybackState]:
        """Current playback state, or None when no player is active (204)."""
        data = self._request("GET", "/me/player", params={"additional_types": "track"})
        if not isinstance(data, dict):
            return None
        return PlaybackState.from_api(data)

    def get_currently_playing(self) -> Optional[PlaybackState]:
        data = self._request("GET", "/me/player/currently-playing")
        if not isinstance(data, dict):
            return None
        return PlaybackState.from_api(data)

    def get_queue(self) -> QueueState:
        data = self._request("GET", "/me/player/queue")
        return QueueState.from_api(data if isinstance(data, dict) else {})

    def get_devices(self) -> List[Device]:
        data = self._request("GET", "/me/player/devices") or {}
        return [Device.from_api(d) for d in data.get("devices", []) if isinstance(d, dict)]

    # ⏯️ Transport
    def start_resume_playback(
        self,
        *,
        context_uri: Optional[str] = None,
        uris: Optional[Sequence[str]] = None,
        device_id: Optional[str] = None,
    ) -> None:
        """Resume playback, or start ``context_uri`` / explicit track ``uris``."""
        payload: Dict[str, Any] = {}
        if context_uri:
            payload["context_uri"] = context_uri
        if uris:
            payload["uris"] = list(uris)
        self._request(
            "PUT",
            "/me/player/play",
            params={"device_id": device_id},
            json=payload or None,
        )

    def pause(self, device_id: Optional[str] = None) -> None:
        self._request("PUT", "/me/player/pause", params={"device_id": device_id})

    def skip_next(self, device_id: Optional[str] = None) -> None:
        self._request("POST", "/me/player/next", params={"device_id": device_id})

    def skip_previous(self, device_id: Optional[str] = None) -> None:
        self._request("POST", "/me/player/previous", params={"device_id": device_id})

    def set_volume(self, volume_percent: int, device_id: Optional[str] = None) -> None:
        volume = int(volume_percent)
        if not 0 <= volume <= 100:
            raise ValueError(f"volume_percent must be between 0 and 100, got {volume}")
        self._request(
            "PUT",
            "/me/player/volume",
            params={"volume_percent": volume, "device_id": device_id},
        )

    def add_to_queue(self, uri: str, device_id: Optional[str] = None) -> None:
        self._request("POST", "/me/player/queue", params={"uri": uri, "device_id": device_id})

    def transfer_playback(self, device_id: str, *, play: bool = False) -> None:
        self._request("PUT", "/me/player", json={"device_ids": [device_id], "play": play})

    # 🔍 Catalogue
    def search(self, query: str, kind: ResultKind, limit: int = 20) -> List[SearchResult]:
        data = self._request(
            "GET",
            "/search",
            params={"q": query, "type": kind.value, "limit": limit},
        )
        return parse_search_results(kind, data if isinstance(data, dict) else {})

    def get_recommendations(self, seed_tracks: Sequence[str], limit: int = 20) -> List[Track]:
        data = self._request(
            "GET",
            "/recommendations",
            params={"seed_tracks": ",".join(seed_tracks), "limit": limit},
        ) or {}
        return [Track.from_api(t) for t in data.get("tracks", []) if isinstance(t, dict)]

    # 🎤 Followed artists
    def get_followed_artists(self, limit: int = 50) -> List[Artist]:
        artists: List[Artist] = []
        after: Optional[str] = None
        while True:
            data = self._request(
                "GET",
                "/me/following",
                params={"type": "artist", "limit": limit, "after": after},
            ) or {}
            section = data.get("artists") or {}
            artists.extend(Artist.from_api(a) for a in section.get("items", []) if isinstance(a, dict))
            after = (section.get("cursors") or {}).get("after")
            if not section.get("next") or not after:
                return artists

    def is_following_artists(self, artist_ids: Sequence[str]) -> List[bool]:
        if not artist_ids:
            return []
        data = self._request(
            "GET",
            "/me/following/contains",
            params={"type": "artist", "ids": ",".join(artist_ids)},
        )
        return [bool(v) for v in data] if isinstance(data, list) else [False] * len(artist_ids)

    def follow_artists(self, artist_ids: Sequence[str]) -> None:
        self._request("PUT", "/me/following", params={"type": "artist"}, json={"ids": list(artist_ids)})

    def unfollow_artists(self, artist_ids: Sequence[str]) -> None:
        self._request("DELETE", "/me/following", params={"type": "artist"}, json={"ids": list(artist_ids)})


__all__ = ["API_BASE_URL", "SpotifyClient"]
