"""
🎵 Player Service - Launcher Commands
=====================================

One method per launcher command. Each command:

1. obtains a client from the ``AuthProvider``
2. gates playback-mutating work on ``DeviceResolver``
3. runs its own Spotify calls through ``SafeCallExecutor``
4. emits exactly one ``Notification`` and returns a ``ServiceResult``
"""

from typing import Any, Callable, Dict, List, Optional

from . import BaseService, ServiceResult
from ..api.errors import AuthenticationError, ClassifiedError, ErrorKind
from ..api.models import PlaybackState, ResultKind, format_artists
from ..api.spotify import SpotifyClient
from ..auth import AuthProvider, get_auth_provider
from ..config import ConfigStore, get_config_store
from ..constants import (DJ_PLAYLIST_URI, MIN_SEARCH_QUERY_LENGTH,
                         RADIO_RECOMMENDATION_LIMIT)
from ..core.devices import DevicePrompt, DeviceResolver
from ..core.executor import CallOutcome, SafeCallExecutor, SpotifyCallError
from ..core.poller import PlaybackStatePoller, PollHandle
from ..notifications import Notification, Notifier
from ..utils.library_utils import (serialize_device, serialize_playback_state,
                                   serialize_queue, serialize_result)

CommandBody = Callable[[SpotifyClient, Optional[PlaybackState]], ServiceResult]

NO_ACTIVE_DEVICE_TITLE = "No Active Device"
AUTH_FAILED_MESSAGE = "Spotify authentication failed. Run generate_token.py to authorize Vicify again"
RATE_LIMITED_MESSAGE = "Spotify is rate limiting requests. Try again in a moment"
NOW_PLAYING_FAILED_TITLE = "Failed to load currently playing track"


def _uri_kind(uri: str) -> str:
    parts = uri.split(":")
    return parts[1] if len(parts) >= 3 and parts[0] == "spotify" else ""


class PlayerService(BaseService):
    """Playback control, search, queue, artists and devices."""

    def __init__(
        self,
        auth: Optional[AuthProvider] = None,
        *,
        executor: Optional[SafeCallExecutor] = None,
        config_store: Optional[ConfigStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        super().__init__("player")
        self._auth = auth
        self.executor = executor or SafeCallExecutor()
        self._config_store = config_store
        self.notifier = notifier or Notifier()
        self._poller: Optional[PlaybackStatePoller] = None
        self._update_listeners: List[Callable[[Optional[PlaybackState]], None]] = []
        self._error_listeners: List[Callable[[CallOutcome], None]] = []
        self._poll_error_kind: Optional[ErrorKind] = None

    @property
    def auth(self) -> AuthProvider:
        if self._auth is None:
            self._auth = get_auth_provider()
        return self._auth

    @property
    def config_store(self) -> ConfigStore:
        if self._config_store is None:
            self._config_store = get_config_store()
        return self._config_store

    # ------------------------------------------------------------------
    # Command plumbing
    # ------------------------------------------------------------------
    def _run_command(self, operation: str, failure_title: str, body: CommandBody,
                     *, requires_device: bool = False) -> ServiceResult:
        try:
            client = self.auth.get_client()
            state: Optional[PlaybackState] = None
            if requires_device:
                prompts: List[DevicePrompt] = []
                resolver = DeviceResolver(client, self.executor, self.config_store, on_prompt=prompts.append)
                state = resolver.ensure_active_device()
                if state is None:
                    prompt = prompts[-1] if prompts else DevicePrompt(self.config_store.read_hint())
                    result = self._no_device_result(prompt)
                    return self._finish(operation, result)
            result = body(client, state)
        except SpotifyCallError as exc:
            result = self._failure_result(failure_title, exc.outcome.error)
        except AuthenticationError as exc:
            result = self._failure_result(failure_title, ClassifiedError(ErrorKind.UNAUTHORIZED, str(exc)))
        except Exception as exc:
            self.logger.error("command.unexpected_error", extra={"operation": operation}, exc_info=True)
            result = self._failure_result(failure_title, ClassifiedError(ErrorKind.PERMANENT, str(exc)))
        return self._finish(operation, result)

    def _finish(self, operation: str, result: ServiceResult) -> ServiceResult:
        if result.notification is not None:
            self.notifier.notify(result.notification)
        self.logger.debug(
            "command.done",
            extra={"operation": operation, "success": result.success, "error_code": result.error_code},
        )
        return result

    def _call(self, operation: Callable[[], Any], label: str) -> Any:
        return self.executor.run(operation, label=label)

    def _no_device_result(self, prompt: DevicePrompt) -> ServiceResult:
        return self._error_result(
            prompt.message,
            error_code=ErrorKind.NO_ACTIVE_DEVICE.value,
            data={"suggested_device": prompt.suggested_device},
            notification=Notification.failure(NO_ACTIVE_DEVICE_TITLE, prompt.message, ErrorKind.NO_ACTIVE_DEVICE),
        )

    def _failure_result(self, title: str, error: Optional[ClassifiedError]) -> ServiceResult:
        if error is None:
            error = ClassifiedError(ErrorKind.PERMANENT, title)
        kind = error.kind
        if kind is ErrorKind.NO_ACTIVE_DEVICE:
            return self._no_device_result(DevicePrompt(self.config_store.read_hint()))
        if kind is ErrorKind.UNAUTHORIZED:
            # No provider yet means credentials are missing; nothing to invalidate
            if self._auth is not None:
                self._auth.invalidate()
            message = AUTH_FAILED_MESSAGE
        elif kind is ErrorKind.RATE_LIMITED:
            message = RATE_LIMITED_MESSAGE
        else:
            message = error.message or title
        return self._error_result(
            message,
            error_code=kind.value,
            notification=Notification.failure(title, message, kind),
        )

    def _aborted(self, title: str, message: str, error_code: str) -> ServiceResult:
        return self._error_result(message, error_code=error_code,
                                  notification=Notification.failure(title, message))

    def _done(self, title: str, message: Optional[str] = None, data: Any = None,
              *, info: bool = False) -> ServiceResult:
        notification = Notification.info(title, message) if info else Notification.success(title, message)
        return self._success_result(data=data, message=message or title, notification=notification)

    # ------------------------------------------------------------------
    # ⏯️ Transport
    # ------------------------------------------------------------------
    def just_play(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(client.start_resume_playback, "player.play")
            return self._done("Playback Started")
        return self._run_command("just_play", "Failed to start playback", body, requires_device=True)

    def pause(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(client.pause, "player.pause")
            return self._done("Playback Paused")
        return self._run_command("pause", "Failed to pause playback", body, requires_device=True)

    def toggle_play_pause(self) -> ServiceResult:
        def body(client: SpotifyClient, state: PlaybackState):
            if state.is_playing:
                self._call(client.pause, "player.pause")
                return self._done("Playback Paused", data={"is_playing": False})
            self._call(client.start_resume_playback, "player.play")
            return self._done("Playback Resumed", data={"is_playing": True})
        return self._run_command("toggle_play_pause", "Failed to toggle playback", body, requires_device=True)

    def next_track(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(client.skip_next, "player.next")
            return self._done("Skipped to Next Track")
        return self._run_command("next_track", "Failed to skip to next track", body, requires_device=True)

    def previous_track(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(client.skip_previous, "player.previous")
            return self._done("Skipped to Previous Track")
        return self._run_command("previous_track", "Failed to skip to previous track", body, requires_device=True)

    def set_volume(self, preset: int) -> ServiceResult:
        """Set the volume to ``preset`` percent; no device gate, Spotify targets the active one."""
        def body(client: SpotifyClient, state):
            try:
                volume = int(preset)
            except (TypeError, ValueError):
                return self._aborted("Failed to set volume", f"Invalid volume: {preset!r}", "invalid_volume")
            if not 0 <= volume <= 100:
                return self._aborted("Failed to set volume", "Volume must be between 0 and 100", "invalid_volume")
            self._call(lambda: client.set_volume(volume), "player.volume")
            return self._done(f"Volume Set to {volume}%", data={"volume_percent": volume})
        return self._run_command("set_volume", "Failed to set volume", body)

    # ------------------------------------------------------------------
    # 🔍 Catalogue
    # ------------------------------------------------------------------
    def play_uri(self, uri: str, name: Optional[str] = None) -> ServiceResult:
        kind = _uri_kind(uri or "")
        label = kind or "item"

        def body(client: SpotifyClient, state):
            if not kind:
                return self._aborted(f"Failed to play {label}", f"Not a Spotify URI: {uri!r}", "invalid_uri")
            if kind == ResultKind.TRACK.value:
                self._call(lambda: client.start_resume_playback(uris=[uri]), "player.play_uri")
            else:
                self._call(lambda: client.start_resume_playback(context_uri=uri), "player.play_uri")
            return self._done(f"Playing {label.capitalize()}", name, data={"uri": uri})
        return self._run_command("play_uri", f"Failed to play {label}", body, requires_device=True)

    def add_to_queue(self, uri: str, name: Optional[str] = None) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(lambda: client.add_to_queue(uri), "player.queue_add")
            return self._done("Added to Queue", name, data={"uri": uri})
        return self._run_command("add_to_queue", "Failed to add to queue", body, requires_device=True)

    def search(self, query: str, kind: ResultKind = ResultKind.TRACK, limit: int = 20) -> ServiceResult:
        """Search one result type. Queries shorter than two characters never reach Spotify."""
        query = (query or "").strip()
        kind = ResultKind(kind)
        if len(query) < MIN_SEARCH_QUERY_LENGTH:
            return self._finish(
                "search",
                self._done("Search Spotify", f"Type at least {MIN_SEARCH_QUERY_LENGTH} characters",
                           data=[], info=True),
            )

        def body(client: SpotifyClient, state):
            results = self._call(lambda: client.search(query, kind, limit=limit), "search")
            items = [serialize_result(item) for item in results]
            if not items:
                return self._done("No Results Found", f'No {kind.value}s found for "{query}"', data=[], info=True)
            return self._done("Search Results", f"{len(items)} {kind.value}s", data=items, info=True)
        return self._run_command("search", "Failed to search Spotify", body)

    def view_queue(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            queue = self._call(client.get_queue, "player.queue")
            data = serialize_queue(queue)
            if not data["queue"]:
                return self._done("Queue is Empty", "Add tracks to your queue to see them here", data=data, info=True)
            return self._done("Queue", f"Up Next ({len(data['queue'])} tracks)", data=data, info=True)
        return self._run_command("view_queue", "Failed to load queue", body)

    # ------------------------------------------------------------------
    # 📻 Radio and DJ
    # ------------------------------------------------------------------
    def start_radio(self) -> ServiceResult:
        """Play recommendations seeded by the current track, current track first."""
        def body(client: SpotifyClient, state: PlaybackState):
            current = state.item
            if current is None or not current.id:
                return self._aborted("No Track Playing", "Please start playing a track first", "no_track")
            recommendations = self._call(
                lambda: client.get_recommendations([current.id], limit=RADIO_RECOMMENDATION_LIMIT),
                "player.recommendations",
            )
            if not recommendations:
                return self._aborted("No Recommendations", "Could not find similar tracks", "no_recommendations")
            uris = [current.uri] + [track.uri for track in recommendations if track.uri]
            self._call(lambda: client.start_resume_playback(uris=uris), "player.radio")
            return self._done(
                "Radio Started",
                f"Based on {current.name} - {format_artists(current.artists)}",
                data={"seed_track": current.uri, "track_count": len(uris)},
            )
        return self._run_command("start_radio", "Failed to start radio", body, requires_device=True)

    def start_dj(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            self._call(lambda: client.start_resume_playback(context_uri=DJ_PLAYLIST_URI), "player.dj")
            return self._done("DJ Started", "Enjoy your personalized mix")
        return self._run_command("start_dj", "Failed to start DJ", body, requires_device=True)

    # ------------------------------------------------------------------
    # 🎤 Artists
    # ------------------------------------------------------------------
    def followed_artists(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            artists = self._call(client.get_followed_artists, "artists.followed")
            items = [dict(serialize_result(artist), is_following=True) for artist in artists]
            if not items:
                return self._done("No Followed Artists",
                                  "Search for artists or follow some to see them here", data=[], info=True)
            return self._done("Followed Artists", f"{len(items)} artists", data=items, info=True)
        return self._run_command("followed_artists", "Failed to load followed artists", body)

    def search_artists(self, query: str) -> ServiceResult:
        query = (query or "").strip()
        if not query:
            return self.followed_artists()
        if len(query) < MIN_SEARCH_QUERY_LENGTH:
            return self._finish(
                "search_artists",
                self._done("Search Artists", f"Type at least {MIN_SEARCH_QUERY_LENGTH} characters",
                           data=[], info=True),
            )

        def body(client: SpotifyClient, state):
            artists = self._call(lambda: client.search(query, ResultKind.ARTIST), "artists.search")
            ids = [artist.id for artist in artists if artist.id]
            following: Dict[str, bool] = {}
            if ids:
                flags = self._call(lambda: client.is_following_artists(ids), "artists.contains")
                following = dict(zip(ids, flags))
            items = [dict(serialize_result(a), is_following=following.get(a.id, False)) for a in artists]
            if not items:
                return self._done("No Artists Found", f'No artists found for "{query}"', data=[], info=True)
            return self._done("Artists", f"{len(items)} artists", data=items, info=True)
        return self._run_command("search_artists", "Failed to search artists", body)

    def toggle_follow(self, artist_id: str, name: Optional[str] = None, following: bool = False) -> ServiceResult:
        """Unfollow when ``following`` is true, follow otherwise."""
        display = name or artist_id

        def body(client: SpotifyClient, state):
            if following:
                self._call(lambda: client.unfollow_artists([artist_id]), "artists.unfollow")
                return self._done("Unfollowed", f"Stopped following {display}",
                                  data={"artist_id": artist_id, "is_following": False})
            self._call(lambda: client.follow_artists([artist_id]), "artists.follow")
            return self._done("Following", f"Now following {display}",
                              data={"artist_id": artist_id, "is_following": True})
        return self._run_command("toggle_follow", "Failed to toggle follow", body)

    # ------------------------------------------------------------------
    # 🔊 Devices
    # ------------------------------------------------------------------
    def list_devices(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            devices = self._call(client.get_devices, "devices.list")
            for device in devices:
                if device.is_active:
                    self.config_store.write_hint(device.name)
            data = [serialize_device(device) for device in devices]
            if not data:
                return self._done("No Devices Found", "Open Spotify on a device to control it", data=[], info=True)
            return self._done("Devices", f"{len(data)} devices", data=data, info=True)
        return self._run_command("list_devices", "Failed to load devices", body)

    def transfer_playback(self, device: str, play: bool = True) -> ServiceResult:
        """Move playback to the device matching ``device`` by id or name (case-insensitive)."""
        wanted = (device or "").strip()

        def body(client: SpotifyClient, state):
            devices = self._call(client.get_devices, "devices.list")
            match = next((d for d in devices if d.id and d.id == wanted), None)
            if match is None:
                match = next((d for d in devices if d.name.casefold() == wanted.casefold()), None)
            if match is None or not match.id:
                return self._aborted("Device Not Found", f'No device named "{wanted}"', "device_not_found")
            self._call(lambda: client.transfer_playback(match.id, play=play), "devices.transfer")
            return self._done("Playback Transferred", f"Now playing on {match.name}",
                              data=serialize_device(match))
        return self._run_command("transfer_playback", "Failed to transfer playback", body)

    # ------------------------------------------------------------------
    # 🎧 Now playing
    # ------------------------------------------------------------------
    def now_playing(self) -> ServiceResult:
        def body(client: SpotifyClient, state):
            current = self._call(client.get_playback_state, "player.state")
            data = serialize_playback_state(current)
            if current is None or current.item is None:
                return self._done("Nothing Playing", "Start playing something in Spotify", data=data, info=True)
            track = current.item
            return self._done(
                "Now Playing",
                f"{track.name} - {format_artists(track.artists)}",
                data=data,
                info=True,
            )
        return self._run_command("now_playing", NOW_PLAYING_FAILED_TITLE, body)

    def _fetch_playback_state(self) -> Optional[PlaybackState]:
        return self.auth.get_client().get_playback_state()

    def _on_poll_update(self, state: Optional[PlaybackState]) -> None:
        self._poll_error_kind = None
        for callback in list(self._update_listeners):
            callback(state)

    def _on_poll_error(self, outcome: CallOutcome) -> None:
        # One notification per run of identical failures, not one per tick
        if outcome.kind is not self._poll_error_kind:
            self._poll_error_kind = outcome.kind
            result = self._failure_result(NOW_PLAYING_FAILED_TITLE, outcome.error)
            self.notifier.notify(result.notification)
        elif outcome.kind is ErrorKind.UNAUTHORIZED and self._auth is not None:
            self._auth.invalidate()
        for callback in list(self._error_listeners):
            callback(outcome)

    def watch_now_playing(
        self,
        on_update: Optional[Callable[[Optional[PlaybackState]], None]] = None,
        on_error: Optional[Callable[[CallOutcome], None]] = None,
        *,
        interval: Optional[float] = None,
    ) -> PollHandle:
        """Start the now-playing poller, or join the one already running.

        Callbacks passed while a poller runs are added to its listeners; the
        running poller keeps its interval.
        """
        if self._poller is not None and self._poller.running:
            if on_update is not None:
                self._update_listeners.append(on_update)
            if on_error is not None:
                self._error_listeners.append(on_error)
            return self._poller.start()

        self._update_listeners = [on_update] if on_update is not None else []
        self._error_listeners = [on_error] if on_error is not None else []
        self._poll_error_kind = None
        self._poller = PlaybackStatePoller(
            self._fetch_playback_state,
            self.executor,
            interval=interval,
            on_update=self._on_poll_update,
            on_error=self._on_poll_error,
        )
        handle = self._poller.start()
        self.notifier.notify(Notification.info("Watching Now Playing", f"Refreshing every {self._poller.interval:g}s"))
        return handle

    def stop_watching(self) -> bool:
        """Stop the now-playing poller; returns False when none was running."""
        poller = self._poller
        if poller is None or not poller.running:
            return False
        poller.stop()
        return True

    @property
    def watcher(self) -> Optional[PlaybackStatePoller]:
        return self._poller
