"""Tests for environment settings (agents_os.config)."""

from __future__ import annotations

import pytest

from agents_os.config import (
    ASANA_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    env_flag,
    load_asana_settings,
    load_slack_settings,
)
from agents_os.exceptions import ConfigError


class TestEnvFlag:
    """Tests for boolean environment flags."""

    @pytest.mark.parametrize("raw", ["true", "1", "YES", " on "])
    def test_truthy(self, raw: str) -> None:
        assert env_flag({"FLAG": raw}, "FLAG") is True

    @pytest.mark.parametrize("raw", ["", "false", "0", "nope"])
    def test_falsy(self, raw: str) -> None:
        assert env_flag({"FLAG": raw}, "FLAG") is False

    def test_any_alias(self) -> None:
        assert env_flag({"B": "true"}, "A", "B") is True


class TestAsanaSettings:
    """Tests for load_asana_settings."""

    def test_defaults(self) -> None:
        settings = load_asana_settings({"ASANA_ACCESS_TOKEN": "tok"})
        assert settings.access_token == "tok"
        assert settings.read_only is False
        assert settings.enable_goals is False
        assert settings.base_url == ASANA_BASE_URL
        assert settings.timeout == DEFAULT_TIMEOUT_SECONDS

    def test_missing_token(self) -> None:
        with pytest.raises(ConfigError, match="ASANA_ACCESS_TOKEN"):
            load_asana_settings({})

    def test_read_only_alias(self) -> None:
        settings = load_asana_settings({"ASANA_ACCESS_TOKEN": "t", "READ_ONLY_MODE": "true"})
        assert settings.read_only is True

    def test_flags_and_overrides(self) -> None:
        settings = load_asana_settings(
            {
                "ASANA_ACCESS_TOKEN": "t",
                "ASANA_ENABLE_GOALS": "1",
                "HTTP_TIMEOUT_SECONDS": "5",
                "AUDIT_LOG_DIR": "",
            }
        )
        assert settings.enable_goals is True
        assert settings.timeout == 5.0
        assert settings.audit_log_dir == ""

    @pytest.mark.parametrize("raw", ["soon", "0", "-3"])
    def test_bad_timeout(self, raw: str) -> None:
        with pytest.raises(ConfigError, match="HTTP_TIMEOUT_SECONDS"):
            load_asana_settings({"ASANA_ACCESS_TOKEN": "t", "HTTP_TIMEOUT_SECONDS": raw})


class TestSlackSettings:
    """Tests for load_slack_settings."""

    def test_channel_ids_split(self) -> None:
        settings = load_slack_settings(
            {"SLACK_BOT_TOKEN": "x", "SLACK_TEAM_ID": "T1", "SLACK_CHANNEL_IDS": "C1, C2,,"}
        )
        assert settings.channel_ids == ("C1", "C2")
        assert settings.team_id == "T1"

    def test_team_required(self) -> None:
        with pytest.raises(ConfigError, match="SLACK_TEAM_ID"):
            load_slack_settings({"SLACK_BOT_TOKEN": "x"})
