"""
🎧 Now Playing Routes Blueprint
One-shot state, plus a background watcher whose latest snapshot is served
without hitting Spotify on every request.
"""

from flask import Blueprint

from ..utils.library_utils import serialize_playback_state
from .helpers import api_response, api_error_handler, get_player_service, result_response

now_playing_bp = Blueprint("now_playing", __name__, url_prefix="/api/now-playing")


def _watch_meta(poller) -> dict:
    return {
        "watching": bool(poller and poller.running),
        "interval": poller.interval if poller else None,
    }


@now_playing_bp.route("", methods=["GET"])
@api_error_handler
def now_playing():
    service = get_player_service()
    poller = service.watcher
    if poller is not None and poller.running and poller.has_snapshot:
        return api_response(
            True,
            data={"state": serialize_playback_state(poller.latest), **_watch_meta(poller)},
        )
    result = service.now_playing()
    if result.success:
        result.data = {"state": result.data, **_watch_meta(poller)}
    return result_response(result)


@now_playing_bp.route("", methods=["POST"])
@api_error_handler
def start_watching():
    service = get_player_service()
    service.watch_now_playing()
    return api_response(True, data=_watch_meta(service.watcher), message="Watching now playing")


@now_playing_bp.route("", methods=["DELETE"])
@api_error_handler
def stop_watching():
    service = get_player_service()
    stopped = service.stop_watching()
    return api_response(True, data={"stopped": stopped, **_watch_meta(service.watcher)})
