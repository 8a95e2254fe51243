"""Shared pytest fixtures for the Vicify test suite."""

from __future__ import annotations

import json as jsonlib
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from vicify.api.spotify import SpotifyClient
from vicify.app import create_app
from vicify.auth import AuthProvider, set_auth_provider
from vicify.config import ConfigStore, set_config_store
from vicify.core.executor import SafeCallExecutor
from vicify.notifications import CollectingNotifier
from vicify.services.player_service import PlayerService


class FakeResponse:
    """Just enough of ``requests.Response`` for the client and classifier."""

    def __init__(self, status_code: int = 200, payload: Any = None,
                 headers: Optional[Dict[str, str]] = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        if text is None:
            text = jsonlib.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeSession:
    """Records requests and replays queued responses (or raises queued exceptions)."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            return FakeResponse(204)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


class FakeAuthProvider(AuthProvider):
    def __init__(self, client):
        self.client = client
        self.invalidations = 0

    def get_access_token(self) -> str:
        return "test-token"

    def get_client(self):
        return self.client

    def invalidate(self) -> None:
        self.invalidations += 1


def playback_payload(*, is_playing: bool = True, active: bool = True, device_name: str = "Office Speaker",
                     track: Optional[Dict[str, Any]] = None, progress_ms: int = 30_000) -> Dict[str, Any]:
    return {
        "is_playing": is_playing,
        "progress_ms": progress_ms,
        "repeat_state": "off",
        "shuffle_state": False,
        "device": {
            "id": "dev-1",
            "name": device_name,
            "type": "Speaker",
            "is_active": active,
            "volume_percent": 40,
        },
        "item": track if track is not None else track_payload(),
    }


def track_payload(track_id: str = "t1", name: str = "Song One", duration_ms: int = 120_000) -> Dict[str, Any]:
    return {
        "type": "track",
        "id": track_id,
        "name": name,
        "uri": f"spotify:track:{track_id}",
        "duration_ms": duration_ms,
        "popularity": 50,
        "artists": [{"name": "Artist A", "id": "a1"}, {"name": "Artist B", "id": "a2"}],
        "album": {"name": "Album X", "images": [{"url": "https://img/album.jpg"}]},
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
    }


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    """Point the config store at a temporary XDG config home."""
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    set_config_store(None)
    set_auth_provider(None)
    yield home
    set_config_store(None)
    set_auth_provider(None)


@pytest.fixture
def config_store(config_home) -> ConfigStore:
    return ConfigStore()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def executor(sleeps) -> SafeCallExecutor:
    return SafeCallExecutor(max_retries=2, backoff_base=0.5, sleep=sleeps.append)


@pytest.fixture
def fake_client():
    return MagicMock(spec=SpotifyClient)


@pytest.fixture
def auth(fake_client) -> FakeAuthProvider:
    return FakeAuthProvider(fake_client)


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def service(auth, executor, config_store, notifier) -> PlayerService:
    return PlayerService(auth, executor=executor, config_store=config_store, notifier=notifier)


@pytest.fixture
def app(service):
    flask_app = create_app(service)
    flask_app.config.update({"TESTING": True})
    return flask_app


@pytest.fixture
def client(app):
    """Provide a fresh Flask test client for each test."""
    with app.test_client() as test_client:
        yield test_client
