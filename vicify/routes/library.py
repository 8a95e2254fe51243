"""
🔍 Library Routes Blueprint
Search, queue, devices and followed artists.
"""

from flask import Blueprint, request

from ..api.models import ResultKind
from ..constants import SEARCH_TYPES
from .helpers import api_error, api_error_handler, get_player_service, result_response

library_bp = Blueprint("library", __name__, url_prefix="/api")


@library_bp.route("/search", methods=["GET"])
@api_error_handler
def search():
    query = request.args.get("q", "")
    kind = request.args.get("type", ResultKind.TRACK.value)
    if kind not in SEARCH_TYPES:
        return api_error(f"Unsupported search type: {kind}", status=400, error_code="invalid_type")
    limit = request.args.get("limit", default=20, type=int)
    limit = max(1, min(50, limit or 20))
    return result_response(get_player_service().search(query, ResultKind(kind), limit=limit))


@library_bp.route("/queue", methods=["GET"])
@api_error_handler
def queue():
    return result_response(get_player_service().view_queue())


@library_bp.route("/devices", methods=["GET"])
@api_error_handler
def devices():
    return result_response(get_player_service().list_devices())


@library_bp.route("/artists", methods=["GET"])
@api_error_handler
def artists():
    query = request.args.get("q", "").strip()
    service = get_player_service()
    return result_response(service.search_artists(query) if query else service.followed_artists())


@library_bp.route("/artists/<artist_id>/follow", methods=["POST", "DELETE"])
@api_error_handler
def follow_artist(artist_id: str):
    name = request.args.get("name")
    following = request.method == "DELETE"
    return result_response(get_player_service().toggle_follow(artist_id, name, following=following))
