"""Tests for failure classification (agents_os.mcp_servers.errors)."""

from __future__ import annotations

import httpx
import pytest

from agents_os.exceptions import (
    AuthenticationFailure,
    NetworkFailure,
    NotFound,
    PermissionFailure,
    RateLimited,
    ReadOnlyViolation,
    ServerFailure,
    UnexpectedFailure,
    VendorApiFailure,
)
from agents_os.mcp_servers.errors import classify_error


def _status_error(status: int, body: dict | None = None, headers: dict | None = None):
    request = httpx.Request("GET", "https://app.asana.com/api/1.0/tasks/1")
    response = httpx.Response(status, json=body or {}, headers=headers, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


# ── Transport Failures ──────────────────────────────────────────────


class TestNetworkFailures:
    """Transport problems classify as NetworkFailure before anything else."""

    def test_httpx_timeout(self) -> None:
        request = httpx.Request("GET", "https://app.asana.com")
        error = classify_error(httpx.ReadTimeout("timed out", request=request))
        assert isinstance(error, NetworkFailure)

    def test_httpx_connect_error(self) -> None:
        error = classify_error(httpx.ConnectError("refused"))
        assert isinstance(error, NetworkFailure)

    def test_builtin_connection_error(self) -> None:
        assert isinstance(classify_error(ConnectionResetError("reset")), NetworkFailure)

    @pytest.mark.parametrize("code", ["ENOTFOUND", "ECONNREFUSED", "ETIMEDOUT", "ECONNRESET", "EAI_AGAIN"])
    def test_error_codes(self, code: str) -> None:
        error = classify_error({"code": code, "message": "getaddrinfo failed"})
        assert isinstance(error, NetworkFailure)
        assert error.message == "getaddrinfo failed"

    def test_network_wins_over_status(self) -> None:
        error = classify_error({"code": "ETIMEDOUT", "status": 500})
        assert isinstance(error, NetworkFailure)


# ── HTTP Status ─────────────────────────────────────────────────────


class TestStatusClassification:
    """HTTP statuses map onto the taxonomy and keep the status."""

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (401, AuthenticationFailure),
            (403, PermissionFailure),
            (404, NotFound),
            (429, RateLimited),
            (500, ServerFailure),
            (503, ServerFailure),
        ],
    )
    def test_status_kinds(self, status: int, kind: type) -> None:
        error = classify_error(_status_error(status))
        assert isinstance(error, kind)
        assert error.status == status

    def test_rate_limit_suggests_waiting(self) -> None:
        error = classify_error(_status_error(429))
        assert isinstance(error, RateLimited)
        assert error.status == 429
        assert "wait before retrying" in error.suggestion.lower()

    def test_rate_limit_surfaces_retry_after(self) -> None:
        error = classify_error(_status_error(429, headers={"Retry-After": "30"}))
        assert "Retry-After: 30s" in error.suggestion
        assert "wait before retrying" in error.suggestion.lower()

    def test_vendor_message_used(self) -> None:
        body = {"errors": [{"message": "task: Unknown object: 1"}]}
        error = classify_error(_status_error(404, body))
        assert error.message == "task: Unknown object: 1"

    def test_status_attribute_on_plain_object(self) -> None:
        class Failure(Exception):
            status = 403

        error = classify_error(Failure("nope"))
        assert isinstance(error, PermissionFailure)
        assert error.message == "nope"

    def test_status_key_on_mapping(self) -> None:
        assert isinstance(classify_error({"status_code": 401}), AuthenticationFailure)

    def test_context_prefixes_message(self) -> None:
        error = classify_error(_status_error(500), context="get task")
        assert error.message.startswith("get task: ")


# ── Vendor Errors & Fallback ────────────────────────────────────────


class TestVendorAndFallback:
    """Vendor error arrays and unrecognized shapes."""

    def test_bad_request_with_errors_array(self) -> None:
        body = {"errors": [{"message": "projects: Not a valid GID"}, {"message": "second"}]}
        error = classify_error(_status_error(400, body))
        assert isinstance(error, VendorApiFailure)
        assert error.message == "projects: Not a valid GID"
        assert error.status == 400

    def test_errors_array_on_value(self) -> None:
        class Wrapped:
            value = {"errors": [{"message": "from value"}]}

        error = classify_error(Wrapped())
        assert isinstance(error, VendorApiFailure)
        assert error.message == "from value"

    def test_errors_array_on_object(self) -> None:
        error = classify_error({"errors": [{"message": "direct"}]})
        assert isinstance(error, VendorApiFailure)

    def test_plain_exception_is_unexpected(self) -> None:
        error = classify_error(RuntimeError("boom"))
        assert isinstance(error, UnexpectedFailure)
        assert error.message == "boom"

    @pytest.mark.parametrize("odd", [None, 42, "text", [], object()])
    def test_never_raises(self, odd) -> None:
        assert isinstance(classify_error(odd), UnexpectedFailure)

    def test_connector_errors_pass_through(self) -> None:
        original = ReadOnlyViolation("asana_create_task")
        assert classify_error(original) is original


class TestErrorPayload:
    """The structured payload returned to callers."""

    def test_payload_shape(self) -> None:
        payload = classify_error(_status_error(429)).to_payload()
        assert payload["error"]["kind"] == "RateLimited"
        assert payload["error"]["status"] == 429
        assert "suggestion" in payload["error"]
