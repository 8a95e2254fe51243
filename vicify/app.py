"""
Vicify HTTP application
Flask app exposing the launcher commands as a JSON remote-control API.
"""

import logging
from typing import Optional

from flask import Flask

from .api.errors import AuthenticationError
from .notifications import Notifier
from .routes import library_bp, now_playing_bp, player_bp
from .routes.helpers import PLAYER_SERVICE_KEY, api_error, api_response
from .services.player_service import PlayerService
from .version import VERSION, get_app_info

logger = logging.getLogger("vicify.app")


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers on the Flask app."""

    @app.errorhandler(404)
    def not_found_error(_error):
        return api_error("Not found", status=404, error_code="not_found")

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return api_error("Method not allowed", status=405, error_code="method_not_allowed")

    @app.errorhandler(500)
    def internal_error(_error):
        return api_error("Internal server error", status=500, error_code="internal_error")


def create_app(service: Optional[PlayerService] = None) -> Flask:
    """Return a freshly constructed Flask application.

    Args:
        service: Command layer to serve; built from the environment when omitted
    """
    app = Flask(__name__)
    app.extensions[PLAYER_SERVICE_KEY] = service or PlayerService(notifier=Notifier())

    app.register_blueprint(player_bp)
    app.register_blueprint(library_bp)
    app.register_blueprint(now_playing_bp)
    register_error_handlers(app)

    @app.route("/healthz", methods=["GET"])
    def healthz():
        player: PlayerService = app.extensions[PLAYER_SERVICE_KEY]
        try:
            authenticated = bool(player.auth.get_access_token())
        except AuthenticationError:
            authenticated = False
        return api_response(
            True,
            data={"version": VERSION, "app": get_app_info(), "authenticated": authenticated},
        )

    logger.debug("app.created", extra={"version": VERSION})
    return app


__all__ = ["create_app", "register_error_handlers"]
