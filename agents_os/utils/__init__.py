"""Shared utilities for the connectors."""

from agents_os.utils.audit import (
    audit_entry,
    correlation_id,
    log_action,
    redact_params,
    today_iso,
)
from agents_os.utils.logging_utils import configure_logging

__all__ = [
    "audit_entry",
    "configure_logging",
    "correlation_id",
    "log_action",
    "redact_params",
    "today_iso",
]
