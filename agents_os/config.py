"""Environment-backed settings for the MCP servers.

Settings are read once at startup (after ``load_dotenv()``) and passed
explicitly into the request path. Nothing below the server entry point
reads ``os.environ`` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from agents_os.exceptions import ConfigError

ASANA_BASE_URL = "https://app.asana.com/api/1.0"
SLACK_BASE_URL = "https://slack.com/api"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_AUDIT_LOG_DIR = "logs/actions"

_TRUE_VALUES = {"true", "1", "yes", "on"}


def env_flag(env: Mapping[str, str], *names: str) -> bool:
    """Return True if any of the named variables holds a truthy value."""
    return any(env.get(name, "").strip().lower() in _TRUE_VALUES for name in names)


def _timeout(env: Mapping[str, str]) -> float:
    raw = env.get("HTTP_TIMEOUT_SECONDS", "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"HTTP_TIMEOUT_SECONDS must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError("HTTP_TIMEOUT_SECONDS must be positive")
    return value


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError(f"{name} environment variable is required")
    return value


@dataclass(frozen=True)
class AsanaSettings:
    """Configuration for the Asana MCP server."""

    access_token: str
    read_only: bool = False
    enable_goals: bool = False
    base_url: str = ASANA_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    audit_log_dir: str = DEFAULT_AUDIT_LOG_DIR
    log_level: str = "INFO"


@dataclass(frozen=True)
class SlackSettings:
    """Configuration for the Slack MCP server."""

    bot_token: str
    team_id: str
    channel_ids: tuple[str, ...] = ()
    read_only: bool = False
    base_url: str = SLACK_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    audit_log_dir: str = DEFAULT_AUDIT_LOG_DIR
    log_level: str = "INFO"


def load_asana_settings(env: Mapping[str, str] | None = None) -> AsanaSettings:
    """Build Asana settings from the environment.

    Args:
        env: Mapping to read from. Defaults to ``os.environ`` after loading
            a ``.env`` file from the working directory.

    Raises:
        ConfigError: If ``ASANA_ACCESS_TOKEN`` is missing or a value is invalid.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return AsanaSettings(
        access_token=_require(env, "ASANA_ACCESS_TOKEN"),
        read_only=env_flag(env, "ASANA_READ_ONLY", "READ_ONLY_MODE"),
        enable_goals=env_flag(env, "ASANA_ENABLE_GOALS"),
        base_url=env.get("ASANA_BASE_URL", "").strip() or ASANA_BASE_URL,
        timeout=_timeout(env),
        audit_log_dir=env.get("AUDIT_LOG_DIR", DEFAULT_AUDIT_LOG_DIR).strip(),
        log_level=env.get("LOG_LEVEL", "INFO").strip() or "INFO",
    )


def load_slack_settings(env: Mapping[str, str] | None = None) -> SlackSettings:
    """Build Slack settings from the environment.

    Raises:
        ConfigError: If ``SLACK_BOT_TOKEN`` or ``SLACK_TEAM_ID`` is missing.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    channel_ids = tuple(
        cid.strip() for cid in env.get("SLACK_CHANNEL_IDS", "").split(",") if cid.strip()
    )
    return SlackSettings(
        bot_token=_require(env, "SLACK_BOT_TOKEN"),
        team_id=_require(env, "SLACK_TEAM_ID"),
        channel_ids=channel_ids,
        read_only=env_flag(env, "SLACK_READ_ONLY"),
        timeout=_timeout(env),
        audit_log_dir=env.get("AUDIT_LOG_DIR", DEFAULT_AUDIT_LOG_DIR).strip(),
        log_level=env.get("LOG_LEVEL", "INFO").strip() or "INFO",
    )
