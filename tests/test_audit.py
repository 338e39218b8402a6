"""Tests for the audit trail (agents_os.utils.audit)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from agents_os.utils.audit import audit_entry, log_action, redact_params


class TestRedactParams:
    """Tests for audit-safe parameter copies."""

    def test_free_text_replaced_by_length(self) -> None:
        assert redact_params({"task_id": "12", "notes": "call the bank"}) == {
            "task_id": "12",
            "notes": "[13 characters]",
        }

    def test_nested_values_redacted(self) -> None:
        params = {"updates": {"html_notes": "<body>x</body>"}, "tasks": [{"text": "hi"}, "7"]}
        assert redact_params(params) == {
            "updates": {"html_notes": "[14 characters]"},
            "tasks": [{"text": "[2 characters]"}, "7"],
        }

    def test_input_not_mutated(self) -> None:
        params = {"text": "hello"}
        redact_params(params)
        assert params == {"text": "hello"}


class TestAuditEntry:
    """Tests for audit entry construction."""

    def test_fields_and_redaction(self) -> None:
        entry = audit_entry(
            actor="asana_mcp",
            action_type="asana_update_task",
            target="12",
            result="success",
            cid="abc",
            duration_ms=40,
            parameters={"task_id": "12", "notes": "four"},
        )
        assert entry["actor"] == "asana_mcp"
        assert entry["correlation_id"] == "abc"
        assert entry["duration_ms"] == 40
        assert entry["parameters"] == {"task_id": "12", "notes": "[4 characters]"}
        assert entry["timestamp"].endswith("Z")


class TestAuditLog:
    """Tests for the daily JSON audit files."""

    def test_entries_appended_to_daily_file(self, tmp_path: Path) -> None:
        with patch("agents_os.utils.audit.today_iso", return_value="2025-02-04"):
            log_action(tmp_path / "actions", {"action_type": "a"})
            log_action(tmp_path / "actions", {"action_type": "b"})

        data = json.loads((tmp_path / "actions" / "2025-02-04.json").read_text(encoding="utf-8"))
        assert data["date"] == "2025-02-04"
        assert [e["action_type"] for e in data["entries"]] == ["a", "b"]

