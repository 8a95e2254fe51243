"""
Unit tests for Spotify error classification.

Every raw failure must map to exactly one ErrorKind; unknown failures are
permanent.
"""
import pytest
import requests

from tests.conftest import FakeResponse
from vicify.api.errors import (AuthenticationError, ErrorKind, NoActiveDeviceError,
                               SpotifyApiError, classify_error, parse_retry_after)


def _api_error(status, payload=None, headers=None):
    return SpotifyApiError.from_response(FakeResponse(status, payload, headers=headers))


class TestStatusClassification:
    def test_401_is_unauthorized(self):
        result = classify_error(_api_error(401, {"error": {"status": 401, "message": "The access token expired"}}))
        assert result.kind is ErrorKind.UNAUTHORIZED
        assert result.status == 401
        assert "expired" in result.message

    def test_429_is_rate_limited_with_retry_after(self):
        result = classify_error(_api_error(429, {"error": {"message": "rate"}}, headers={"Retry-After": "3"}))
        assert result.kind is ErrorKind.RATE_LIMITED
        assert result.retry_after == 3.0

    def test_429_without_header_has_no_retry_after(self):
        result = classify_error(_api_error(429))
        assert result.kind is ErrorKind.RATE_LIMITED
        assert result.retry_after is None

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_are_transient(self, status):
        assert classify_error(_api_error(status)).kind is ErrorKind.TRANSIENT

    def test_404_with_no_active_device_reason(self):
        payload = {"error": {"status": 404, "message": "Player command failed", "reason": "NO_ACTIVE_DEVICE"}}
        assert classify_error(_api_error(404, payload)).kind is ErrorKind.NO_ACTIVE_DEVICE

    def test_404_mentioning_device(self):
        payload = {"error": {"status": 404, "message": "Player command failed: No active device found"}}
        assert classify_error(_api_error(404, payload)).kind is ErrorKind.NO_ACTIVE_DEVICE

    def test_plain_404_is_permanent(self):
        payload = {"error": {"status": 404, "message": "Non existing id"}}
        assert classify_error(_api_error(404, payload)).kind is ErrorKind.PERMANENT

    @pytest.mark.parametrize("status", [400, 403])
    def test_other_client_errors_are_permanent(self, status):
        assert classify_error(_api_error(status)).kind is ErrorKind.PERMANENT

    def test_retry_after_ignored_for_non_rate_limited(self):
        result = classify_error(_api_error(503, headers={"Retry-After": "10"}))
        assert result.kind is ErrorKind.TRANSIENT
        assert result.retry_after is None


class TestExceptionClassification:
    def test_local_no_active_device(self):
        assert classify_error(NoActiveDeviceError()).kind is ErrorKind.NO_ACTIVE_DEVICE

    def test_authentication_error_is_unauthorized(self):
        assert classify_error(AuthenticationError("no token")).kind is ErrorKind.UNAUTHORIZED

    @pytest.mark.parametrize("exc", [
        requests.ConnectionError("reset"),
        requests.Timeout("slow"),
        requests.exceptions.ChunkedEncodingError("cut"),
    ])
    def test_network_failures_are_transient(self, exc):
        assert classify_error(exc).kind is ErrorKind.TRANSIENT

    def test_requests_http_error_uses_its_response(self):
        exc = requests.HTTPError("boom", response=FakeResponse(429, headers={"Retry-After": "2"}))
        result = classify_error(exc)
        assert result.kind is ErrorKind.RATE_LIMITED
        assert result.retry_after == 2.0

    def test_unknown_exception_is_permanent(self):
        result = classify_error(KeyError("item"))
        assert result.kind is ErrorKind.PERMANENT
        assert result.message

    def test_only_transient_kinds_are_retryable(self):
        retryable = {kind for kind in ErrorKind if kind.retryable}
        assert retryable == {ErrorKind.TRANSIENT, ErrorKind.RATE_LIMITED}


class TestApiErrorParsing:
    def test_accounts_error_shape(self):
        error = _api_error(400, {"error": "invalid_grant", "error_description": "Refresh token revoked"})
        assert error.message == "invalid_grant: Refresh token revoked"

    def test_non_json_body_falls_back_to_text(self):
        error = SpotifyApiError.from_response(FakeResponse(502, None, text="Bad Gateway"))
        assert error.message == "Bad Gateway"
        assert error.payload == {}

    def test_parse_retry_after_variants(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("  ") is None
        assert parse_retry_after("5") == 5.0
        assert parse_retry_after("-1") == 0.0
        assert parse_retry_after("not a date") is None
        # A date in the past clamps to zero
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
