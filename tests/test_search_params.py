"""Tests for search query normalization (agents_os.mcp_servers.search_params)."""

from __future__ import annotations

from agents_os.mcp_servers.search_params import (
    build_search_query,
    expand_custom_fields,
    pagination_params,
    simplify_custom_fields,
)


# ── Custom Field Expansion ──────────────────────────────────────────


class TestExpandCustomFields:
    """Tests for flattening nested custom-field filters."""

    def test_scalar_becomes_value_key(self) -> None:
        assert expand_custom_fields({"custom_fields": {"111": "high"}}) == {
            "custom_fields.111.value": "high"
        }

    def test_operator_map_becomes_one_key_per_pair(self) -> None:
        assert expand_custom_fields({"custom_fields": {"111": {"contains": "eng"}}}) == {
            "custom_fields.111.contains": "eng"
        }

    def test_multiple_fields_and_operators(self) -> None:
        expanded = expand_custom_fields(
            {
                "text": "bug",
                "custom_fields": {
                    "1": {"greater_than": 3, "less_than": 9},
                    "2": True,
                },
            }
        )
        assert expanded == {
            "text": "bug",
            "custom_fields.1.greater_than": 3,
            "custom_fields.1.less_than": 9,
            "custom_fields.2.value": True,
        }

    def test_nested_key_never_survives(self) -> None:
        assert "custom_fields" not in expand_custom_fields({"custom_fields": {}})
        assert "custom_fields" not in expand_custom_fields({"custom_fields": None})

    def test_input_not_mutated(self) -> None:
        params = {"custom_fields": {"1": "x"}}
        expand_custom_fields(params)
        assert params == {"custom_fields": {"1": "x"}}


class TestBuildSearchQuery:
    """Tests for the outbound search query."""

    def test_lists_joined_with_commas(self) -> None:
        query = build_search_query({"projects.any": ["1", "2"], "completed": False})
        assert query == {"projects.any": "1,2", "completed": False}

    def test_dot_keys_forwarded_unchanged(self) -> None:
        query = build_search_query(
            {"due_on.before": "2025-01-31", "some.future.key": "x", "sort_by": "due_date"}
        )
        assert query == {
            "due_on.before": "2025-01-31",
            "some.future.key": "x",
            "sort_by": "due_date",
        }

    def test_custom_fields_expanded(self) -> None:
        query = build_search_query({"custom_fields": {"111": {"is_set": True}}})
        assert query == {"custom_fields.111.is_set": True}


# ── Response Reshaping ──────────────────────────────────────────────


class TestSimplifyCustomFields:
    """Tests for collapsing custom-field arrays in search results."""

    def test_maps_name_and_gid_to_display_value(self) -> None:
        task = {
            "gid": "9",
            "custom_fields": [
                {"gid": "111", "name": "Estimate", "type": "number", "display_value": "5"},
            ],
        }
        assert simplify_custom_fields(task) == {
            "gid": "9",
            "custom_fields": {"Estimate (111)": "5"},
        }

    def test_enum_includes_option_gid(self) -> None:
        task = {
            "custom_fields": [
                {
                    "gid": "222",
                    "name": "Priority",
                    "type": "enum",
                    "display_value": "High",
                    "enum_value": {"gid": "333", "name": "High"},
                }
            ]
        }
        assert simplify_custom_fields(task)["custom_fields"] == {"Priority (222)": "High (333)"}

    def test_enum_without_selection_keeps_display_value(self) -> None:
        task = {
            "custom_fields": [
                {"gid": "222", "name": "Priority", "type": "enum", "display_value": None,
                 "enum_value": None}
            ]
        }
        assert simplify_custom_fields(task)["custom_fields"] == {"Priority (222)": None}

    def test_missing_custom_fields_unchanged(self) -> None:
        task = {"gid": "1", "name": "Plain"}
        assert simplify_custom_fields(task) is task

    def test_empty_custom_fields_unchanged(self) -> None:
        task = {"gid": "1", "custom_fields": []}
        assert simplify_custom_fields(task) is task

    def test_idempotent(self) -> None:
        task = {"custom_fields": [{"gid": "1", "name": "A", "display_value": "x"}]}
        once = simplify_custom_fields(task)
        assert simplify_custom_fields(once) == once


class TestPaginationParams:
    """Tests for outbound paging parameters."""

    def test_defaults_limit_to_20(self) -> None:
        assert pagination_params() == {"limit": 20}

    def test_keeps_given_values(self) -> None:
        assert pagination_params(50, "eyJ0") == {"limit": 50, "offset": "eyJ0"}
