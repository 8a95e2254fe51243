"""
🛠️ Route Helpers
Shared utilities for all route blueprints.
"""

import datetime
import logging
import uuid
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import Response, current_app, jsonify

from ..api.errors import ErrorKind
from ..services import ServiceResult
from ..services.player_service import PlayerService

logger = logging.getLogger("vicify.routes")

PLAYER_SERVICE_KEY = "vicify.player_service"

# HTTP status per ServiceResult.error_code
_ERROR_STATUS: Dict[str, int] = {
    ErrorKind.UNAUTHORIZED.value: 401,
    ErrorKind.NO_ACTIVE_DEVICE.value: 409,
    ErrorKind.RATE_LIMITED.value: 429,
    ErrorKind.TRANSIENT.value: 503,
    ErrorKind.PERMANENT.value: 502,
    "invalid_volume": 400,
    "invalid_uri": 400,
    "device_not_found": 404,
    "no_track": 409,
    "no_recommendations": 404,
}


def _iso_timestamp_now() -> str:
    """Return ISO 8601 timestamp in UTC with a trailing Z."""
    now_utc = datetime.datetime.now(tz=datetime.timezone.utc)
    return now_utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def api_response(
    success: bool,
    *,
    data: Optional[Any] = None,
    message: str = "",
    status: int = 200,
    error_code: Optional[str] = None,
    notification: Optional[Dict[str, Any]] = None,
) -> Response:
    """Create a standardized API response with consistent envelope.

    Args:
        success: Whether the operation succeeded
        data: Optional response data
        message: Optional message string
        status: HTTP status code (default 200)
        error_code: Optional error code for failures
        notification: The command's notification, if it produced one

    Returns:
        Flask Response object with JSON payload
    """
    req_id = str(uuid.uuid4())
    timestamp = _iso_timestamp_now()
    payload = {
        "success": success,
        "timestamp": timestamp,
        "request_id": req_id
    }
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    if error_code:
        payload["error_code"] = error_code
    if notification is not None:
        payload["notification"] = notification
    resp = jsonify(payload)
    resp.status_code = status
    # Correlation headers
    resp.headers['X-Request-ID'] = req_id
    resp.headers['X-Response-Timestamp'] = timestamp
    return resp


def api_error(
    message: str,
    *,
    status: int = 400,
    error_code: Optional[str] = None,
    data: Optional[Any] = None,
) -> Response:
    """Convenience wrapper for standardized error responses."""
    return api_response(
        False,
        data=data,
        message=message,
        status=status,
        error_code=error_code,
    )


def result_response(result: ServiceResult) -> Response:
    """Translate a command's ``ServiceResult`` into the response envelope."""
    notification = result.notification.to_dict() if result.notification is not None else None
    if result.success:
        return api_response(True, data=result.data, message=result.message or "", notification=notification)
    status = _ERROR_STATUS.get(result.error_code or "", 500)
    return api_response(
        False,
        data=result.data,
        message=result.message or "",
        status=status,
        error_code=result.error_code,
        notification=notification,
    )


def api_error_handler(func: Callable) -> Callable:
    """Decorator returning a JSON 500 envelope for unexpected exceptions."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception("route.unhandled_exception", extra={"endpoint": func.__name__})
            return api_error(
                "An internal error occurred",
                status=500,
                error_code="unhandled_exception",
            )
    return wrapper


def get_player_service() -> PlayerService:
    return current_app.extensions[PLAYER_SERVICE_KEY]
