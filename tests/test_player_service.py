"""
Service-level tests for the launcher commands: device gating, one
notification per command, and failure mapping.
"""
import threading

import pytest

from tests.conftest import playback_payload, track_payload
from vicify.api.errors import AuthenticationError, ErrorKind, SpotifyApiError
from vicify.api.models import Artist, Device, PlaybackState, QueueState, ResultKind, Track
from vicify.constants import DJ_PLAYLIST_URI, RADIO_RECOMMENDATION_LIMIT
from vicify.notifications import NotificationStyle
from vicify.services.player_service import NOW_PLAYING_FAILED_TITLE, PlayerService


def _active(fake_client, **kwargs):
    fake_client.get_playback_state.return_value = PlaybackState.from_api(playback_payload(**kwargs))


def _only_notification(notifier):
    assert len(notifier.notifications) == 1
    return notifier.notifications[0]


class TestTransport:
    def test_next_track(self, service, fake_client, notifier):
        _active(fake_client)
        result = service.next_track()
        assert result.success
        fake_client.skip_next.assert_called_once_with()
        assert _only_notification(notifier).title == "Skipped to Next Track"

    def test_previous_track(self, service, fake_client, notifier):
        _active(fake_client)
        assert service.previous_track().success
        fake_client.skip_previous.assert_called_once_with()
        assert _only_notification(notifier).title == "Skipped to Previous Track"

    def test_just_play(self, service, fake_client, notifier):
        _active(fake_client, is_playing=False)
        assert service.just_play().success
        fake_client.start_resume_playback.assert_called_once_with()
        assert _only_notification(notifier).title == "Playback Started"

    def test_toggle_pauses_when_playing(self, service, fake_client, notifier):
        _active(fake_client, is_playing=True)
        result = service.toggle_play_pause()
        fake_client.pause.assert_called_once_with()
        assert result.data == {"is_playing": False}
        assert _only_notification(notifier).title == "Playback Paused"

    def test_toggle_resumes_when_paused(self, service, fake_client, notifier):
        _active(fake_client, is_playing=False)
        result = service.toggle_play_pause()
        fake_client.start_resume_playback.assert_called_once_with()
        assert result.data == {"is_playing": True}

    def test_active_device_is_remembered(self, service, fake_client, config_store):
        _active(fake_client, device_name="Den")
        service.pause()
        assert config_store.read_hint() == "Den"


class TestNoActiveDevice:
    def test_gated_command_is_not_sent(self, service, fake_client, notifier, config_store):
        config_store.write_hint("Office Laptop")
        fake_client.get_playback_state.return_value = None

        result = service.next_track()

        assert not result.success
        assert result.error_code == ErrorKind.NO_ACTIVE_DEVICE.value
        fake_client.skip_next.assert_not_called()
        note = _only_notification(notifier)
        assert note.title == "No Active Device"
        assert "Office Laptop" in note.message
        assert result.data == {"suggested_device": "Office Laptop"}

    def test_device_404_during_command(self, service, fake_client, notifier):
        _active(fake_client)
        fake_client.add_to_queue.side_effect = SpotifyApiError(
            404, "Player command failed: No active device found", payload={"error": {"reason": "NO_ACTIVE_DEVICE"}}
        )
        result = service.add_to_queue("spotify:track:1", "Song")
        assert result.error_code == "no_active_device"
        assert _only_notification(notifier).title == "No Active Device"


class TestFailures:
    def test_unauthorized_invalidates_token(self, service, fake_client, notifier, auth):
        fake_client.get_playback_state.side_effect = SpotifyApiError(401, "The access token expired")
        result = service.next_track()
        assert result.error_code == "unauthorized"
        assert auth.invalidations == 1
        note = _only_notification(notifier)
        assert note.title == "Failed to skip to next track"
        assert note.style is NotificationStyle.FAILURE
        assert "authentication" in note.message.lower()

    def test_missing_credentials_are_unauthorized(self, service, auth, notifier, monkeypatch):
        def boom():
            raise AuthenticationError("Spotify credentials missing for token refresh")
        monkeypatch.setattr(auth, "get_client", boom)
        result = service.view_queue()
        assert result.error_code == "unauthorized"
        assert _only_notification(notifier).title == "Failed to load queue"

    def test_unconfigured_credentials_report_unauthorized(self, executor, config_store, notifier,
                                                         monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.chdir(tmp_path)
        for name in ("SPOTIFY_ACCESS_TOKEN", "SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET", "SPOTIFY_REFRESH_TOKEN"):
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
        service = PlayerService(executor=executor, config_store=config_store, notifier=notifier)

        result = service.view_queue()

        assert not result.success
        assert result.error_code == "unauthorized"
        note = _only_notification(notifier)
        assert note.title == "Failed to load queue"
        assert "authentication" in note.message.lower()

    def test_permanent_error_keeps_stable_title(self, service, fake_client, notifier):
        _active(fake_client)
        fake_client.skip_next.side_effect = SpotifyApiError(403, "Restriction violated")
        result = service.next_track()
        assert result.error_code == "permanent"
        note = _only_notification(notifier)
        assert note.title == "Failed to skip to next track"
        assert note.message == "Restriction violated"

    def test_transient_error_is_retried_then_reported(self, service, fake_client, notifier, sleeps):
        _active(fake_client)
        fake_client.skip_next.side_effect = SpotifyApiError(503, "unavailable")
        result = service.next_track()
        assert result.error_code == "transient"
        assert fake_client.skip_next.call_count == 3
        assert sleeps == [0.5, 1.0]
        assert len(notifier.notifications) == 1

    def test_rate_limited_message(self, service, fake_client, notifier):
        fake_client.get_queue.side_effect = SpotifyApiError(429, "slow", retry_after=0)
        result = service.view_queue()
        assert result.error_code == "rate_limited"
        assert "rate limiting" in _only_notification(notifier).message

    def test_unexpected_exception_still_notifies_once(self, service, fake_client, notifier):
        fake_client.get_devices.side_effect = RuntimeError("kaboom")
        result = service.list_devices()
        assert not result.success
        assert _only_notification(notifier).title == "Failed to load devices"


class TestVolume:
    def test_set_volume_without_device_gate(self, service, fake_client, notifier):
        result = service.set_volume(75)
        assert result.success
        fake_client.get_playback_state.assert_not_called()
        fake_client.set_volume.assert_called_once_with(75)
        assert _only_notification(notifier).title == "Volume Set to 75%"

    def test_same_preset_twice_sends_same_request(self, service, fake_client):
        service.set_volume(50)
        service.set_volume(50)
        assert [c.args for c in fake_client.set_volume.call_args_list] == [(50,), (50,)]

    @pytest.mark.parametrize("value", [-1, 101, "loud"])
    def test_invalid_volume_is_rejected(self, service, fake_client, notifier, value):
        result = service.set_volume(value)
        assert result.error_code == "invalid_volume"
        fake_client.set_volume.assert_not_called()
        assert _only_notification(notifier).title == "Failed to set volume"


class TestCatalogue:
    def test_play_track_uri_uses_uris(self, service, fake_client, notifier):
        _active(fake_client)
        service.play_uri("spotify:track:abc", "Song")
        fake_client.start_resume_playback.assert_called_once_with(uris=["spotify:track:abc"])
        note = _only_notification(notifier)
        assert note.title == "Playing Track"
        assert note.message == "Song"

    @pytest.mark.parametrize("uri", ["spotify:album:1", "spotify:playlist:2", "spotify:artist:3"])
    def test_play_context_uri(self, service, fake_client, uri):
        _active(fake_client)
        service.play_uri(uri)
        fake_client.start_resume_playback.assert_called_once_with(context_uri=uri)

    def test_play_rejects_non_spotify_uri(self, service, fake_client):
        _active(fake_client)
        result = service.play_uri("https://example.com")
        assert result.error_code == "invalid_uri"
        fake_client.start_resume_playback.assert_not_called()

    def test_add_to_queue(self, service, fake_client, notifier):
        _active(fake_client)
        assert service.add_to_queue("spotify:track:9", "Nine").success
        fake_client.add_to_queue.assert_called_once_with("spotify:track:9")
        assert _only_notification(notifier).title == "Added to Queue"

    @pytest.mark.parametrize("query", ["", " ", "a", " b "])
    def test_short_search_makes_no_call(self, service, fake_client, query):
        result = service.search(query)
        assert result.success
        assert result.data == []
        fake_client.search.assert_not_called()

    def test_search_serializes_results(self, service, fake_client, notifier):
        fake_client.search.return_value = [Track.from_api(track_payload("x"))]
        result = service.search("song", ResultKind.TRACK)
        fake_client.search.assert_called_once_with("song", ResultKind.TRACK, limit=20)
        item = result.data[0]
        assert item["kind"] == "track"
        assert item["subtitle"] == "Artist A, Artist B"
        assert item["icon"] == "https://img/album.jpg"
        assert len(notifier.notifications) == 1

    def test_view_queue(self, service, fake_client):
        fake_client.get_queue.return_value = QueueState(
            currently_playing=Track.from_api(track_payload("now")),
            queue=[Track.from_api(track_payload("n1")), Track.from_api(track_payload("n2"))],
        )
        result = service.view_queue()
        assert result.data["currently_playing"]["id"] == "now"
        assert [t["position"] for t in result.data["queue"]] == [1, 2]


class TestRadioAndDj:
    def test_radio_puts_current_track_first(self, service, fake_client, notifier):
        _active(fake_client, track=track_payload("seed", name="Seed"))
        fake_client.get_recommendations.return_value = [Track.from_api(track_payload("r1")),
                                                        Track.from_api(track_payload("r2"))]
        result = service.start_radio()
        fake_client.get_recommendations.assert_called_once_with(["seed"], limit=RADIO_RECOMMENDATION_LIMIT)
        fake_client.start_resume_playback.assert_called_once_with(
            uris=["spotify:track:seed", "spotify:track:r1", "spotify:track:r2"]
        )
        note = _only_notification(notifier)
        assert note.title == "Radio Started"
        assert note.message == "Based on Seed - Artist A, Artist B"
        assert result.data["track_count"] == 3

    def test_radio_without_track(self, service, fake_client, notifier):
        fake_client.get_playback_state.return_value = PlaybackState(
            is_playing=False, device=Device(id="d", name="Desk", type="Computer", is_active=True)
        )
        result = service.start_radio()
        assert result.error_code == "no_track"
        assert _only_notification(notifier).title == "No Track Playing"
        fake_client.get_recommendations.assert_not_called()

    def test_radio_without_recommendations(self, service, fake_client, notifier):
        _active(fake_client)
        fake_client.get_recommendations.return_value = []
        result = service.start_radio()
        assert result.error_code == "no_recommendations"
        fake_client.start_resume_playback.assert_not_called()

    def test_dj_plays_dj_playlist(self, service, fake_client, notifier):
        _active(fake_client)
        service.start_dj()
        fake_client.start_resume_playback.assert_called_once_with(context_uri=DJ_PLAYLIST_URI)
        assert _only_notification(notifier).title == "DJ Started"


class TestArtistsAndDevices:
    def test_followed_artists(self, service, fake_client):
        fake_client.get_followed_artists.return_value = [Artist(name="Band", id="b1", followers=10)]
        result = service.followed_artists()
        assert result.data[0]["is_following"] is True
        assert result.data[0]["subtitle"] == "10 followers"

    def test_search_artists_marks_following(self, service, fake_client):
        fake_client.search.return_value = [Artist(name="A", id="1"), Artist(name="B", id="2")]
        fake_client.is_following_artists.return_value = [False, True]
        result = service.search_artists("band")
        assert [a["is_following"] for a in result.data] == [False, True]

    def test_follow_and_unfollow(self, service, fake_client, notifier):
        service.toggle_follow("a1", "Band", following=False)
        fake_client.follow_artists.assert_called_once_with(["a1"])
        service.toggle_follow("a1", "Band", following=True)
        fake_client.unfollow_artists.assert_called_once_with(["a1"])
        assert [n.title for n in notifier.notifications] == ["Following", "Unfollowed"]

    def test_list_devices_records_active_hint(self, service, fake_client, config_store):
        fake_client.get_devices.return_value = [
            Device(id="1", name="Phone", type="Smartphone", is_active=False),
            Device(id="2", name="Desk", type="Computer", is_active=True),
        ]
        result = service.list_devices()
        assert [d["name"] for d in result.data] == ["Phone", "Desk"]
        assert config_store.read_hint() == "Desk"

    def test_transfer_by_name(self, service, fake_client, notifier):
        fake_client.get_devices.return_value = [Device(id="7", name="Kitchen", type="Speaker", is_active=False)]
        result = service.transfer_playback("kitchen")
        fake_client.transfer_playback.assert_called_once_with("7", play=True)
        assert _only_notification(notifier).title == "Playback Transferred"
        assert result.data["id"] == "7"

    def test_transfer_unknown_device(self, service, fake_client):
        fake_client.get_devices.return_value = []
        result = service.transfer_playback("Nowhere")
        assert result.error_code == "device_not_found"
        fake_client.transfer_playback.assert_not_called()


class TestNowPlaying:
    def test_now_playing_includes_progress(self, service, fake_client, notifier):
        _active(fake_client, progress_ms=60_000)
        result = service.now_playing()
        assert result.data["progress_percent"] == 50
        assert result.data["track"]["name"] == "Song One"
        assert _only_notification(notifier).title == "Now Playing"

    def test_nothing_playing(self, service, fake_client, notifier):
        fake_client.get_playback_state.return_value = None
        result = service.now_playing()
        assert result.success
        assert result.data is None
        assert _only_notification(notifier).title == "Nothing Playing"

    def test_watch_reuses_running_poller(self, service, fake_client):
        fake_client.get_playback_state.return_value = None
        first = service.watch_now_playing(interval=60)
        try:
            assert service.watch_now_playing(interval=60) is first
            assert first.running
        finally:
            assert service.stop_watching() is True
        assert service.stop_watching() is False

    def test_watch_invalidates_token_on_unauthorized(self, service, fake_client, auth):
        import threading

        failed = threading.Event()
        fake_client.get_playback_state.side_effect = SpotifyApiError(401, "expired")
        handle = service.watch_now_playing(on_error=lambda outcome: failed.set(), interval=60)
        try:
            assert failed.wait(2.0)
            assert auth.invalidations == 1
        finally:
            handle.stop()

    def test_watch_failure_is_notified_once_per_run(self, service, fake_client, notifier):
        errors = []
        failed = threading.Event()

        def on_error(outcome):
            errors.append(outcome)
            failed.set()

        fake_client.get_playback_state.side_effect = SpotifyApiError(403, "Forbidden")
        handle = service.watch_now_playing(on_error=on_error, interval=60)
        try:
            assert failed.wait(2.0)
            handle.refresh()
            assert len(errors) == 2
            failures = [n for n in notifier.notifications if n.style is NotificationStyle.FAILURE]
            assert [n.title for n in failures] == [NOW_PLAYING_FAILED_TITLE]
            assert failures[0].message == "Forbidden"

            # A successful poll re-arms the notification
            fake_client.get_playback_state.side_effect = None
            _active(fake_client)
            handle.refresh()
            fake_client.get_playback_state.side_effect = SpotifyApiError(403, "Forbidden")
            handle.refresh()
            failures = [n for n in notifier.notifications if n.style is NotificationStyle.FAILURE]
            assert len(failures) == 2
        finally:
            handle.stop()

    def test_second_watcher_receives_updates(self, service, fake_client):
        _active(fake_client)
        first_seen = []
        second_seen = []
        ready = threading.Event()

        def first(state):
            first_seen.append(state)
            ready.set()

        handle = service.watch_now_playing(first, interval=60)
        try:
            assert ready.wait(2.0)
            assert service.watch_now_playing(second_seen.append, interval=60) is handle
            handle.refresh()
            assert len(first_seen) == 2
            assert len(second_seen) == 1
            assert second_seen[0].item.name == "Song One"
        finally:
            handle.stop()
