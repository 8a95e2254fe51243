"""Active-device gate for playback-mutating commands.

- Fetches playback state through ``SafeCallExecutor``
- Remembers the name of the last device seen active
- Hands a ``DevicePrompt`` to the UI when nothing is active; never transfers on its own
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..api.errors import ErrorKind, NoActiveDeviceError
from ..api.models import PlaybackState
from ..api.spotify import SpotifyClient
from ..config import ConfigStore
from .executor import CallOutcome, SafeCallExecutor, SpotifyCallError

_logger = logging.getLogger("vicify.devices")


@dataclass(frozen=True)
class DevicePrompt:
    """Asks the user to open Spotify on a device, optionally naming the last one used."""

    suggested_device: Optional[str] = None

    @property
    def message(self) -> str:
        if self.suggested_device:
            return f"Open Spotify on {self.suggested_device} and try again"
        return "Open Spotify on any device and try again"


class DeviceResolver:
    def __init__(
        self,
        client: SpotifyClient,
        executor: SafeCallExecutor,
        config_store: ConfigStore,
        on_prompt: Optional[Callable[[DevicePrompt], None]] = None,
    ):
        self._client = client
        self._executor = executor
        self._config_store = config_store
        self._on_prompt = on_prompt

    def _fetch_active_state(self) -> PlaybackState:
        state = self._client.get_playback_state()
        if state is None or not state.has_active_device:
            raise NoActiveDeviceError()
        return state

    def ensure_active_device(self) -> Optional[PlaybackState]:
        """Return the current state if a device is active, else prompt and return None.

        Raises:
            SpotifyCallError: state could not be fetched for any reason other
                than a missing device
        """
        outcome: CallOutcome[PlaybackState] = self._executor.execute(
            self._fetch_active_state, label="devices.ensure_active"
        )
        if outcome.success:
            state = outcome.value
            if state is not None and state.device is not None:
                self._config_store.write_hint(state.device.name)
            return state

        if outcome.kind is ErrorKind.NO_ACTIVE_DEVICE:
            prompt = DevicePrompt(suggested_device=self._config_store.read_hint())
            _logger.info("devices.none_active", extra={"suggested_device": prompt.suggested_device})
            if self._on_prompt is not None:
                self._on_prompt(prompt)
            return None

        raise SpotifyCallError(outcome)

