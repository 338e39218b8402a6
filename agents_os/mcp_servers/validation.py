"""Parameter validation shared by the MCP tool handlers.

Each tool declares a pydantic model for its arguments; the annotated
types below carry the element-level rules (GIDs, dates, comma lists,
string booleans) so every model reports failures the same way.
``validate`` turns a pydantic error into one ``ValidationFailure`` listing
every failing field, so callers can fix all problems in one round trip.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    StrictBool,
    StrictInt,
    WithJsonSchema,
)
from pydantic import ValidationError as PydanticValidationError

from agents_os.exceptions import FieldIssue, MalformedInput, ValidationFailure

ModelT = TypeVar("ModelT", bound=BaseModel)

GID_RE = re.compile(r"^\d+$")
INT_RE = re.compile(r"^-?\d+$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?$")
OPT_FIELDS_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(?:\.[a-zA-Z_][a-zA-Z0-9_]*)*"
    r"(?:,[a-zA-Z_][a-zA-Z0-9_]*(?:\.[a-zA-Z_][a-zA-Z0-9_]*)*)*$"
)

ME = "me"

# Tags Asana accepts in html_notes / html_text.
ALLOWED_HTML_TAGS = frozenset(
    {
        "body", "h1", "h2", "ol", "ul", "li", "strong", "em", "u", "s",
        "code", "pre", "blockquote", "a", "hr", "img", "table", "tr", "td",
    }
)
_TAG_RE = re.compile(r"<(/?[a-zA-Z][a-zA-Z0-9\-]*)[^>]*>")


# ── Element rules ───────────────────────────────────────────────────


def _coerce_id(value: Any) -> Any:
    """Accept integer ids from callers that send GIDs as JSON numbers."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _check_gid(value: str) -> str:
    if not GID_RE.match(value):
        raise ValueError("Must be a valid GID (numeric string)")
    return value


def _check_user_id(value: str) -> str:
    if value != ME and not GID_RE.match(value):
        raise ValueError('Must be "me" or a valid GID (numeric string)')
    return value


def _check_date(value: str) -> str:
    if not DATE_RE.match(value):
        raise ValueError("Must be ISO 8601 date format (YYYY-MM-DD)")
    return value


def _check_datetime(value: str) -> str:
    if not DATETIME_RE.match(value):
        raise ValueError(
            "Must be ISO 8601 datetime format (YYYY-MM-DDTHH:MM:SS[.sss][Z|±HH:MM])"
        )
    return value


def _check_opt_fields(value: str) -> str:
    if not OPT_FIELDS_RE.match(value):
        raise ValueError("Must be comma-separated field names (nested fields use dots)")
    return value


def parse_bool(value: Any) -> Any:
    """Map case-insensitive ``"true"``/``"false"`` strings to booleans."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        raise ValueError('Must be a boolean or the string "true"/"false"')
    return value


def parse_int(value: Any) -> Any:
    """Map numeric strings such as ``"50"`` to ints; booleans stay booleans."""
    if isinstance(value, str) and INT_RE.match(value.strip()):
        return int(value.strip())
    return value


def split_comma_list(value: Any) -> Any:
    """Normalize a comma-separated string (or list) into an ordered list.

    Entries are trimmed; empty entries and repeats are dropped, keeping the
    first occurrence. Anything that is neither a string nor a list is left
    for the list validator to reject.

    Examples:
        >>> split_comma_list("1, 2 ,3,,4")
        ['1', '2', '3', '4']
    """
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return value

    result: list[Any] = []
    for item in items:
        item = _coerce_id(item)
        if item == "" or item in result:
            continue
        result.append(item)
    return result


def check_html(value: str) -> list[str]:
    """Return the problems Asana would reject in an HTML rich-text body."""
    problems = []
    for match in _TAG_RE.finditer(value):
        tag = match.group(1).lstrip("/").lower()
        if tag not in ALLOWED_HTML_TAGS:
            problems.append(f"Invalid HTML tag: <{match.group(1)}>")
    try:
        ET.fromstring(value)
    except ET.ParseError as exc:
        problems.append(f"Not well-formed XML: {exc}")
    return problems


def _check_html(value: str) -> str:
    problems = check_html(value)
    if problems:
        raise ValueError("; ".join(problems))
    return value


# ── Annotated types ─────────────────────────────────────────────────

_GID_SCHEMA = {"type": "string", "pattern": r"^\d+$"}
_USER_SCHEMA = {"type": "string", "description": 'User GID or "me"'}

Gid = Annotated[
    str,
    BeforeValidator(_coerce_id),
    AfterValidator(_check_gid),
    WithJsonSchema(_GID_SCHEMA),
]
UserId = Annotated[
    str,
    BeforeValidator(_coerce_id),
    AfterValidator(_check_user_id),
    WithJsonSchema(_USER_SCHEMA),
]
GidList = Annotated[
    list[Gid],
    BeforeValidator(split_comma_list),
    WithJsonSchema(
        {
            "anyOf": [
                {"type": "string", "description": "Comma-separated GIDs"},
                {"type": "array", "items": _GID_SCHEMA},
            ]
        }
    ),
]
UserIdList = Annotated[
    list[UserId],
    BeforeValidator(split_comma_list),
    WithJsonSchema(
        {
            "anyOf": [
                {"type": "string", "description": 'Comma-separated user GIDs or "me"'},
                {"type": "array", "items": _USER_SCHEMA},
            ]
        }
    ),
]
IsoDate = Annotated[
    str,
    AfterValidator(_check_date),
    WithJsonSchema({"type": "string", "pattern": DATE_RE.pattern}),
]
IsoDateTime = Annotated[
    str,
    AfterValidator(_check_datetime),
    WithJsonSchema({"type": "string", "description": "ISO 8601 date-time"}),
]
BoolLike = Annotated[
    StrictBool,
    BeforeValidator(parse_bool),
    WithJsonSchema({"type": "boolean"}),
]
Count = Annotated[StrictInt, BeforeValidator(parse_int)]
Limit = Annotated[Count, Field(ge=1, le=100, description="Results per page (1-100)")]
OptFields = Annotated[
    str,
    AfterValidator(_check_opt_fields),
    WithJsonSchema(
        {"type": "string", "description": "Comma-separated optional fields to include"}
    ),
]
HtmlText = Annotated[str, AfterValidator(_check_html)]
NonEmptyStr = Annotated[str, Field(min_length=1)]

Scalar = str | int | float | bool
SortBy = Literal["due_date", "created_at", "completed_at", "likes", "modified_at"]
ResourceSubtype = Literal["default_task", "milestone", "section", "approval"]
CustomFieldOperation = Literal[
    "is_set", "value", "contains", "starts_with", "ends_with", "less_than", "greater_than"
]
CustomFieldFilter = dict[Gid, Scalar | dict[CustomFieldOperation, Scalar]]


# ── Entry points ────────────────────────────────────────────────────


def _issue_from_error(error: Mapping[str, Any]) -> FieldIssue:
    loc = error.get("loc", ())
    path = ".".join(str(part) for part in loc)
    message = str(error.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if message.startswith("Assertion failed, "):
        message = message[len("Assertion failed, ") :]
    value = error.get("input") if loc and error.get("type") != "missing" else None
    return FieldIssue(path=path, message=message, value=value)


def validate(
    model: type[ModelT],
    arguments: Mapping[str, Any] | None,
    *,
    tool: str | None = None,
) -> ModelT:
    """Validate raw tool arguments against a tool's input model.

    Args:
        model: The pydantic model describing the tool's input.
        arguments: Raw arguments from the tool call (may be None).
        tool: Tool name, used to prefix the error message.

    Returns:
        The validated model instance.

    Raises:
        ValidationFailure: With one issue per failing field. Rules spanning
            several fields (``cross_field_problems`` on the model) are
            checked on the raw arguments too, so they are reported even when
            a field failed and pydantic skipped the model-level check.
    """
    raw = dict(arguments or {})
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        issues = [_issue_from_error(error) for error in exc.errors()]
        reported = " ".join(issue.message for issue in issues)
        cross_field_problems = getattr(model, "cross_field_problems", None)
        if cross_field_problems is not None:
            for problem in cross_field_problems(raw):
                if problem not in reported:
                    issues.append(FieldIssue(path="", message=problem))
        raise ValidationFailure(issues, tool=tool) from exc


def decode_json_object(arguments: Mapping[str, Any], key: str) -> dict[str, Any]:
    """Return a copy of ``arguments`` with ``key`` decoded from a JSON string.

    Values that are not strings are left alone for the model to validate.

    Raises:
        MalformedInput: If the string is not valid JSON or not a JSON object.
    """
    decoded = dict(arguments)
    raw = decoded.get(key)
    if not isinstance(raw, str):
        return decoded
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedInput(
            f"{key} must be a JSON object: {exc.msg} (line {exc.lineno} column {exc.colno})",
            original=exc,
        ) from exc
    if not isinstance(value, dict):
        raise MalformedInput(f"{key} must be a JSON object, got {type(value).__name__}")
    decoded[key] = value
    return decoded
