"""
▶️ Player Routes Blueprint
Transport, volume and playback-start endpoints.
"""

from flask import Blueprint, request

from .helpers import api_error, api_error_handler, get_player_service, result_response

player_bp = Blueprint("player", __name__, url_prefix="/api/player")

# URL command -> PlayerService method (no arguments)
_SIMPLE_COMMANDS = {
    "play": "just_play",
    "pause": "pause",
    "toggle": "toggle_play_pause",
    "next": "next_track",
    "previous": "previous_track",
    "radio": "start_radio",
    "dj": "start_dj",
}


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@player_bp.route("/volume", methods=["POST"])
@api_error_handler
def volume_endpoint():
    volume = _payload().get("volume")
    if volume is None:
        return api_error("Missing 'volume'", status=400, error_code="invalid_volume")
    return result_response(get_player_service().set_volume(volume))


@player_bp.route("/play-uri", methods=["POST"])
@api_error_handler
def play_uri_endpoint():
    payload = _payload()
    uri = payload.get("uri")
    if not uri:
        return api_error("Missing 'uri'", status=400, error_code="invalid_uri")
    return result_response(get_player_service().play_uri(uri, payload.get("name")))


@player_bp.route("/queue", methods=["POST"])
@api_error_handler
def queue_endpoint():
    payload = _payload()
    uri = payload.get("uri")
    if not uri:
        return api_error("Missing 'uri'", status=400, error_code="invalid_uri")
    return result_response(get_player_service().add_to_queue(uri, payload.get("name")))


@player_bp.route("/transfer", methods=["POST"])
@api_error_handler
def transfer_endpoint():
    payload = _payload()
    device = payload.get("device")
    if not device:
        return api_error("Missing 'device'", status=400, error_code="device_not_found")
    play = payload.get("play", True)
    if isinstance(play, str):
        play = play.lower() in ("1", "true", "yes", "on")
    return result_response(get_player_service().transfer_playback(device, play=bool(play)))


@player_bp.route("/<command>", methods=["POST"])
@api_error_handler
def command_endpoint(command: str):
    method_name = _SIMPLE_COMMANDS.get(command)
    if method_name is None:
        return api_error(f"Unknown command: {command}", status=404, error_code="not_found")
    return result_response(getattr(get_player_service(), method_name)())
