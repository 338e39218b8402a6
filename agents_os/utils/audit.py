"""Audit trail for tool calls.

Every tool call is recorded as one JSON entry in a per-day file
(``<log_dir>/<YYYY-MM-DD>.json``) holding ``{"date", "entries"}``.
Free-text parameters are reduced to their length before they are written.
"""

import json
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Parameters whose content is user text; only their length is logged.
FREE_TEXT_PARAMS = frozenset({"text", "notes", "html_notes", "html_text"})


def _now() -> datetime:
    return datetime.now(UTC)


def today_iso() -> str:
    """Today's UTC date (YYYY-MM-DD), used to name the daily file."""
    return _now().strftime("%Y-%m-%d")


def correlation_id() -> str:
    """A fresh UUID v4 linking one tool call to its audit entry."""
    return str(uuid.uuid4())


def redact_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of tool parameters that is safe to write to the audit log.

    Free-text values are replaced by ``[N characters]``; nested mappings and
    lists of mappings are redacted recursively.

    Examples:
        >>> redact_params({"task_id": "12", "notes": "call the bank"})
        {'task_id': '12', 'notes': '[13 characters]'}
    """
    safe: dict[str, Any] = {}
    for key, value in params.items():
        if key in FREE_TEXT_PARAMS and isinstance(value, str):
            safe[key] = f"[{len(value)} characters]"
        elif isinstance(value, Mapping):
            safe[key] = redact_params(value)
        elif isinstance(value, list):
            safe[key] = [redact_params(v) if isinstance(v, Mapping) else v for v in value]
        else:
            safe[key] = value
    return safe


def audit_entry(
    *,
    actor: str,
    action_type: str,
    target: str,
    result: str,
    cid: str,
    duration_ms: int = 0,
    parameters: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build one audit entry, stamped now, with redacted parameters."""
    return {
        "timestamp": _now().strftime("%Y-%m-%dT%H:%M:%SZ"),
        "correlation_id": cid,
        "actor": actor,
        "action_type": action_type,
        "target": target,
        "result": result,
        "duration_ms": duration_ms,
        "parameters": redact_params(parameters or {}),
    }


def log_action(log_dir: str | Path, entry: dict[str, Any]) -> None:
    """Append an entry to today's audit file, creating it if needed.

    Args:
        log_dir: Audit log directory (e.g. ``logs/actions``).
        entry: Entry as built by ``audit_entry``.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    date = today_iso()
    log_file = log_path / f"{date}.json"

    if log_file.exists():
        data = json.loads(log_file.read_text(encoding="utf-8"))
    else:
        data = {"date": date, "entries": []}

    data["entries"].append(entry)

    log_file.write_text(
        json.dumps(data, indent=2, ensure_ascii=False, default=str),
        encoding="utf-8",
    )

