"""Now-playing poller.

Keeps a local ``PlaybackState`` snapshot loosely in sync with Spotify, which
changes out-of-band (other clients, track ends, device switches).

- Fetches immediately on start, then once per interval until stopped
- A failed fetch keeps the previous snapshot and does not stop the cadence
- One background thread per poller; starting twice reuses it
- Results of a fetch still in flight when ``stop()`` runs are discarded
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

from ..api.models import PlaybackState
from ..constants import POLL_INTERVAL_SECONDS
from .executor import CallOutcome, SafeCallExecutor

_logger = logging.getLogger("vicify.poller")


def _default_interval() -> float:
    try:
        value = float(os.getenv("VICIFY_POLL_INTERVAL", POLL_INTERVAL_SECONDS))
    except ValueError:
        return POLL_INTERVAL_SECONDS
    return value if value > 0 else POLL_INTERVAL_SECONDS


class PollHandle:
    """Caller-side view of a running poller."""

    def __init__(self, poller: "PlaybackStatePoller"):
        self._poller = poller

    @property
    def running(self) -> bool:
        return self._poller.running

    @property
    def latest(self) -> Optional[PlaybackState]:
        return self._poller.latest

    def refresh(self) -> Optional[PlaybackState]:
        return self._poller.refresh()

    def stop(self) -> None:
        self._poller.stop()


class PlaybackStatePoller:
    def __init__(
        self,
        fetch: Callable[[], Optional[PlaybackState]],
        executor: SafeCallExecutor,
        *,
        interval: Optional[float] = None,
        on_update: Optional[Callable[[Optional[PlaybackState]], None]] = None,
        on_error: Optional[Callable[[CallOutcome], None]] = None,
        join_timeout: float = 2.0,
    ):
        self._fetch = fetch
        self._executor = executor
        self.interval = interval if interval is not None else _default_interval()
        self._on_update = on_update
        self._on_error = on_error
        self._join_timeout = join_timeout

        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._handle: Optional[PollHandle] = None
        self._running = False
        # Bumped on every start/stop; a fetch only publishes if it still matches
        self._generation = 0
        self._latest: Optional[PlaybackState] = None
        self._has_snapshot = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def latest(self) -> Optional[PlaybackState]:
        with self._lock:
            return self._latest

    @property
    def has_snapshot(self) -> bool:
        with self._lock:
            return self._has_snapshot

    def start(self) -> PollHandle:
        with self._lock:
            if self._running and self._handle is not None:
                return self._handle
            self._generation += 1
            self._stop_event = threading.Event()
            self._wake_event = threading.Event()
            self._running = True
            self._handle = PollHandle(self)
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(self._generation, self._stop_event, self._wake_event),
                name="PlaybackStatePoller",
                daemon=True,
            )
            self._thread.start()
            _logger.debug("poller.started", extra={"interval": self.interval})
            return self._handle

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            self._stop_event.set()
            self._wake_event.set()
            thread = self._thread
            self._thread = None
            self._handle = None
        # Callbacks run on the poller thread and may stop it themselves
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout)
        _logger.debug("poller.stopped")

    def refresh(self) -> Optional[PlaybackState]:
        """Fetch now on the calling thread; a stopped poller just returns the last snapshot."""
        with self._lock:
            if not self._running:
                return self._latest
            generation = self._generation
        self._poll_once(generation)
        return self.latest

    def _poll_once(self, generation: int) -> None:
        outcome = self._executor.execute(self._fetch, label="poller.fetch")
        # Callbacks run under the lock so none can start once stop() has returned
        with self._lock:
            if generation != self._generation or not self._running:
                _logger.debug("poller.discarded_after_stop")
                return
            if outcome.success:
                self._latest = outcome.value
                self._has_snapshot = True
            try:
                if outcome.success:
                    if self._on_update is not None:
                        self._on_update(outcome.value)
                elif self._on_error is not None:
                    self._on_error(outcome)
            except Exception:
                _logger.exception("poller.callback_failed")

    def _run_loop(self, generation: int, stop_event: threading.Event, wake_event: threading.Event) -> None:
        while not stop_event.is_set():
            wake_event.clear()
            self._poll_once(generation)
            wake_event.wait(timeout=self.interval)
