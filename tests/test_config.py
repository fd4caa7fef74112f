"""Tests for config.py."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from config import DEFAULT_API_BASE_URL, DeployWatchConfig

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_defaults_without_environment(self) -> None:
        cfg = DeployWatchConfig()

        assert cfg.account_id == ""
        assert cfg.api_token == ""
        assert cfg.api_base_url == DEFAULT_API_BASE_URL
        assert cfg.projects == []
        assert cfg.discord_webhook == ""
        assert cfg.message_style == "text"
        assert cfg.schedule == "* * * * *"
        assert cfg.timezone == "UTC"
        assert cfg.state_file == Path(".deploywatch") / "state.json"
        assert cfg.redis_url is None
        assert cfg.state_key_prefix == "deploy:"
        assert cfg.http_timeout == 15.0
        assert cfg.dry_run is False


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_reads_upstream_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACCOUNT_ID", "acct-9")
        monkeypatch.setenv("CF_API_TOKEN", "secret")
        monkeypatch.setenv("DISCORD_WEBHOOK", "https://discord.test/hook")

        cfg = DeployWatchConfig()

        assert cfg.account_id == "acct-9"
        assert cfg.api_token == "secret"
        assert cfg.discord_webhook == "https://discord.test/hook"

    def test_reads_json_projects(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROJECTS", '["site-a", "site-b"]')

        assert DeployWatchConfig().projects == ["site-a", "site-b"]

    def test_reads_comma_separated_projects(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PROJECTS", "site-a, site-b ,,site-c")

        assert DeployWatchConfig().projects == ["site-a", "site-b", "site-c"]

    def test_reads_prefixed_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEPLOYWATCH_SCHEDULE", "*/5 * * * *")
        monkeypatch.setenv("DEPLOYWATCH_TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("DEPLOYWATCH_MESSAGE_STYLE", "embed")
        monkeypatch.setenv("DEPLOYWATCH_REDIS_URL", "redis://localhost:6379/2")
        monkeypatch.setenv("DEPLOYWATCH_HTTP_TIMEOUT", "30")
        monkeypatch.setenv("DEPLOYWATCH_DRY_RUN", "true")

        cfg = DeployWatchConfig()

        assert cfg.schedule == "*/5 * * * *"
        assert cfg.timezone == "Europe/Berlin"
        assert cfg.message_style == "embed"
        assert cfg.redis_url == "redis://localhost:6379/2"
        assert cfg.http_timeout == 30.0
        assert cfg.dry_run is True

    def test_empty_env_values_fall_back_to_defaults(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEPLOYWATCH_SCHEDULE", "")
        monkeypatch.setenv("CF_API_BASE_URL", "")

        cfg = DeployWatchConfig()

        assert cfg.schedule == "* * * * *"
        assert cfg.api_base_url == DEFAULT_API_BASE_URL

    def test_overrides_beat_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PROJECTS", "from-env")
        monkeypatch.setenv("DEPLOYWATCH_DRY_RUN", "false")

        cfg = DeployWatchConfig.from_overrides(projects=["from-cli"], dry_run=True)

        assert cfg.projects == ["from-cli"]
        assert cfg.dry_run is True

    def test_overrides_leave_other_fields_to_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ACCOUNT_ID", "acct-env")

        cfg = DeployWatchConfig.from_overrides(schedule="0 * * * *")

        assert cfg.account_id == "acct-env"
        assert cfg.schedule == "0 * * * *"


# ---------------------------------------------------------------------------
# PROJECTS parsing
# ---------------------------------------------------------------------------


class TestProjectsParsing:
    def test_malformed_json_yields_empty_list(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="deploywatch.config"):
            cfg = DeployWatchConfig(projects='["site-a", ')

        assert cfg.projects == []
        assert "not valid JSON" in caplog.text

    def test_json_object_yields_empty_list(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="deploywatch.config"):
            cfg = DeployWatchConfig(projects='{"name": "site-a"}')

        assert cfg.projects == []
        assert "must be a list" in caplog.text

    def test_blank_string_yields_empty_list(self) -> None:
        assert DeployWatchConfig(projects="   ").projects == []

    def test_duplicates_and_blanks_are_dropped(self) -> None:
        cfg = DeployWatchConfig(projects=["a", " a ", "", "b", None])

        assert cfg.projects == ["a", "b"]

    def test_order_is_preserved(self) -> None:
        assert DeployWatchConfig(projects="c,a,b").projects == ["c", "a", "b"]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_invalid_cron_expression_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DeployWatchConfig(schedule="every minute")

    def test_unknown_timezone_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown timezone"):
            DeployWatchConfig(timezone="Mars/Olympus")

    def test_unknown_message_style_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DeployWatchConfig(message_style="markdown")

    @pytest.mark.parametrize("timeout", [0, -1, 121])
    def test_http_timeout_bounds(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            DeployWatchConfig(http_timeout=timeout)

    def test_api_base_url_trailing_slash_is_stripped(self) -> None:
        cfg = DeployWatchConfig(api_base_url="https://api.test/client/v4/")

        assert cfg.api_base_url == "https://api.test/client/v4"
