"""Query parameter normalization for Asana task search.

Asana's search endpoint takes flat dot-path query keys such as
``projects.any`` or ``custom_fields.<gid>.contains``. Callers may describe
custom-field filters as a nested object; these helpers flatten it into
the vendor's key format and, on the way back, collapse the verbose
custom-field arrays in search results into a readable mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

DEFAULT_PAGE_SIZE = 20

CUSTOM_FIELDS_KEY = "custom_fields"


def expand_custom_fields(params: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a nested ``custom_fields`` filter into dot-path keys.

    A scalar value means equality and becomes ``custom_fields.<id>.value``;
    an operator mapping becomes one ``custom_fields.<id>.<op>`` key per
    pair. The ``custom_fields`` key itself is always removed.

    Examples:
        >>> expand_custom_fields({"custom_fields": {"111": "high"}})
        {'custom_fields.111.value': 'high'}
        >>> expand_custom_fields({"custom_fields": {"111": {"contains": "eng"}}})
        {'custom_fields.111.contains': 'eng'}
    """
    expanded = {k: v for k, v in params.items() if k != CUSTOM_FIELDS_KEY}
    filters = params.get(CUSTOM_FIELDS_KEY) or {}

    for field_id, condition in filters.items():
        if isinstance(condition, Mapping):
            for operation, value in condition.items():
                expanded[f"{CUSTOM_FIELDS_KEY}.{field_id}.{operation}"] = value
        else:
            expanded[f"{CUSTOM_FIELDS_KEY}.{field_id}.value"] = condition

    return expanded


def _query_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return value


def build_search_query(params: Mapping[str, Any]) -> dict[str, Any]:
    """Build the outbound query for a task search.

    Custom-field filters are expanded and list values joined with ``,``.
    Every other key, dot-noted or not, is forwarded as given.
    """
    return {key: _query_value(value) for key, value in expand_custom_fields(params).items()}


def simplify_custom_fields(item: Mapping[str, Any]) -> Mapping[str, Any]:
    """Replace a task's ``custom_fields`` array with ``{"<name> (<gid>)": display}``.

    Enum fields with a selected option render as ``"<display> (<option gid>)"``.
    Items without custom fields, or whose custom fields were already
    simplified, are returned unchanged.
    """
    fields = item.get(CUSTOM_FIELDS_KEY)
    if not fields or not isinstance(fields, list):
        return item

    simplified: dict[str, Any] = {}
    for field in fields:
        key = f"{field.get('name')} ({field.get('gid')})"
        value = field.get("display_value")
        enum_value = field.get("enum_value")
        if field.get("type") == "enum" and enum_value:
            value = f"{field.get('display_value')} ({enum_value.get('gid')})"
        simplified[key] = value

    return {**item, CUSTOM_FIELDS_KEY: simplified}


def pagination_params(limit: int | None = None, offset: str | None = None) -> dict[str, Any]:
    """Outbound paging parameters for list endpoints (default page size 20)."""
    params: dict[str, Any] = {"limit": limit if limit is not None else DEFAULT_PAGE_SIZE}
    if offset:
        params["offset"] = offset
    return params
