"""Classification of vendor and transport failures into the connector taxonomy.

``classify_error`` accepts anything a tool call can raise (httpx
exceptions, builtin network errors, decoded vendor bodies, plain objects)
and returns a ``ConnectorError``. It never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from agents_os.exceptions import (
    AuthenticationFailure,
    ConnectorError,
    NetworkFailure,
    NotFound,
    PermissionFailure,
    RateLimited,
    ServerFailure,
    UnexpectedFailure,
    VendorApiFailure,
)

logger = logging.getLogger(__name__)

NETWORK_ERROR_CODES = frozenset(
    {"ENOTFOUND", "ECONNREFUSED", "ETIMEDOUT", "ECONNRESET", "EAI_AGAIN"}
)


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _is_network_failure(error: Any) -> bool:
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.ConnectError)):
        return True
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    return _get(error, "code") in NETWORK_ERROR_CODES


def _response_of(error: Any) -> httpx.Response | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    response = _get(error, "response")
    return response if isinstance(response, httpx.Response) else None


def _status_of(error: Any) -> int | None:
    response = _response_of(error)
    if response is not None:
        return response.status_code
    for name in ("status", "status_code"):
        value = _get(error, name)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _body_of(error: Any) -> Any:
    response = _response_of(error)
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _first_vendor_message(error: Any) -> str | None:
    """Find the first message in an Asana-style ``errors`` array."""
    for candidate in (_body_of(error), _get(error, "value"), error):
        errors = _get(candidate, "errors") if candidate is not None else None
        if isinstance(errors, list) and errors:
            first = errors[0]
            message = _get(first, "message")
            return str(message) if message else str(first)
    return None


def _message_of(error: Any) -> str:
    vendor_message = _first_vendor_message(error)
    if vendor_message:
        return vendor_message
    if isinstance(error, BaseException):
        text = str(error)
        return text or type(error).__name__
    message = _get(error, "message")
    if message:
        return str(message)
    return str(error)


def _retry_after(error: Any) -> str | None:
    response = _response_of(error)
    if response is not None:
        return response.headers.get("Retry-After")
    headers = _get(error, "headers")
    if isinstance(headers, Mapping):
        return headers.get("Retry-After") or headers.get("retry-after")
    return None


def _from_status(status: int, error: Any, context: str | None) -> ConnectorError | None:
    message = _message_of(error)
    if context:
        message = f"{context}: {message}"

    if status == 401:
        return AuthenticationFailure(message, status=status, original=error)
    if status == 403:
        return PermissionFailure(message, status=status, original=error)
    if status == 404:
        return NotFound(message, status=status, original=error)
    if status == 429:
        retry_after = _retry_after(error)
        suggestion = None
        if retry_after:
            suggestion = f"Rate limit exceeded. Wait before retrying (Retry-After: {retry_after}s)"
        return RateLimited(message, status=status, suggestion=suggestion, original=error)
    if 500 <= status < 600:
        return ServerFailure(message, status=status, original=error)
    return None


def classify_error(error: Any, context: str | None = None) -> ConnectorError:
    """Map any failure onto the connector error taxonomy.

    The first matching rule wins: transport failure, HTTP status, vendor
    ``errors`` array, then a generic fallback. ``ConnectorError`` instances
    are returned unchanged.

    Args:
        error: The raised exception or decoded error object.
        context: Optional operation label prefixed to the message.

    Returns:
        A ``ConnectorError`` subclass instance describing the failure.
    """
    if isinstance(error, ConnectorError):
        return error

    try:
        if _is_network_failure(error):
            message = _message_of(error)
            if context:
                message = f"{context}: {message}"
            return NetworkFailure(message, original=error)

        status = _status_of(error)
        if status is not None:
            classified = _from_status(status, error, context)
            if classified is not None:
                return classified

        vendor_message = _first_vendor_message(error)
        if vendor_message:
            if context:
                vendor_message = f"{context}: {vendor_message}"
            return VendorApiFailure(vendor_message, status=status, original=error)

        message = _message_of(error)
        if context:
            message = f"{context}: {message}"
        return UnexpectedFailure(message, status=status, original=error)
    except Exception:  # odd shapes must still classify
        logger.exception("Failed to classify error of type %s", type(error).__name__)
        return UnexpectedFailure(repr(error), original=error)
