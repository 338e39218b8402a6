"""Custom exceptions for the Agents OS connectors.

Every failure a tool call can produce is a ``ConnectorError`` subclass.
The ``kind`` attribute is the stable, machine-readable name returned to
the caller in the error payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ConfigError(Exception):
    """Raised at startup when required configuration is missing or invalid."""


class ConnectorError(Exception):
    """Base exception for tool-call failures.

    Args:
        message: Human-readable, normalized message.
        status: HTTP status of the vendor response, when there was one.
        suggestion: Remediation hint for the caller.
        original: The underlying error, kept for debugging.
    """

    kind = "UnexpectedFailure"
    default_suggestion: str | None = None

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        suggestion: str | None = None,
        original: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.suggestion = suggestion if suggestion is not None else self.default_suggestion
        self.original = original

    def details(self) -> Any:
        """Extra structured data for the payload (none by default)."""
        return None

    def to_payload(self) -> dict[str, Any]:
        """Build the structured error payload returned to the caller."""
        error: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.status is not None:
            error["status"] = self.status
        if self.suggestion:
            error["suggestion"] = self.suggestion
        details = self.details()
        if details:
            error["details"] = details
        return {"error": error}


@dataclass(frozen=True)
class FieldIssue:
    """One failing field: dotted path, message, and the offending raw value."""

    path: str
    message: str
    value: Any = None

    def as_dict(self) -> dict[str, Any]:
        return {"path": self.path, "message": self.message, "value": self.value}


class ValidationFailure(ConnectorError):
    """Raised when tool arguments fail validation. Never partially applied."""

    kind = "ValidationFailure"
    default_suggestion = "Fix the listed parameters and call the tool again"

    def __init__(self, issues: list[FieldIssue], tool: str | None = None) -> None:
        self.issues = issues
        self.tool = tool
        if len(issues) == 1:
            issue = issues[0]
            message = f"Invalid {issue.path or 'parameters'}: {issue.message}"
        else:
            fields = ", ".join(issue.path or "parameters" for issue in issues)
            message = f"Validation failed for fields: {fields}"
        if tool:
            message = f"{tool}: {message}"
        super().__init__(message)

    def details(self) -> list[dict[str, Any]]:
        return [issue.as_dict() for issue in self.issues]


class MalformedInput(ConnectorError):
    """Raised when an argument cannot be decoded (e.g. custom_fields JSON)."""

    kind = "MalformedInput"
    default_suggestion = "Pass custom_fields as a JSON object, e.g. {\"123\": {\"contains\": \"eng\"}}"


class AuthenticationFailure(ConnectorError):
    """Raised on HTTP 401: the credential is missing, bad, or expired."""

    kind = "AuthenticationFailure"
    default_suggestion = "Verify the access token is valid and has not expired"


class PermissionFailure(ConnectorError):
    """Raised on HTTP 403: the credential lacks the required scope."""

    kind = "PermissionFailure"
    default_suggestion = (
        "Check that the access token has the required permissions "
        "for this workspace and operation"
    )


class NotFound(ConnectorError):
    """Raised on HTTP 404: the resource is missing or not visible."""

    kind = "NotFound"
    default_suggestion = "Verify the identifier is correct and the resource still exists"


class RateLimited(ConnectorError):
    """Raised on HTTP 429. Never retried automatically."""

    kind = "RateLimited"
    default_suggestion = "Wait before retrying the request; calls are not retried automatically"


class ServerFailure(ConnectorError):
    """Raised on HTTP 5xx from the vendor."""

    kind = "ServerFailure"
    default_suggestion = "This is a vendor-side problem. Try again later"


class NetworkFailure(ConnectorError):
    """Raised on DNS, connection, or timeout failures."""

    kind = "NetworkFailure"
    default_suggestion = "Check the network connection and try again"


class VendorApiFailure(ConnectorError):
    """Raised when the vendor reports an error in its own payload format."""

    kind = "VendorApiFailure"


class UnexpectedFailure(ConnectorError):
    """Fallback for errors of unrecognized shape."""

    kind = "UnexpectedFailure"


class UnknownToolFailure(ConnectorError):
    """Raised when the requested tool name is not registered."""

    kind = "UnknownToolFailure"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Unknown tool: {name}",
            suggestion="Call list_tools to see the tools this server offers",
        )


class ReadOnlyViolation(ConnectorError):
    """Raised when a mutating tool is called while read-only mode is active."""

    kind = "ReadOnlyViolation"
    default_suggestion = "To perform write operations, disable read-only mode in the configuration"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Tool "{name}" is not allowed in read-only mode')
