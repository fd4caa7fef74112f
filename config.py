"""deploywatch configuration via Pydantic settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Literal

import pytz
from apscheduler.triggers.cron import CronTrigger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger("deploywatch.config")

DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"


class DeployWatchConfig(BaseSettings):
    """Configuration for the deployment watcher.

    Every field can be set from the environment variable named in its
    ``alias``; keyword arguments (CLI overrides, tests) use field names.
    """

    model_config = SettingsConfigDict(
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream deployments API
    account_id: str = Field(
        default="", alias="ACCOUNT_ID", description="Cloudflare account identifier"
    )
    api_token: str = Field(
        default="",
        alias="CF_API_TOKEN",
        description="API token with Pages read access",
    )
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        alias="CF_API_BASE_URL",
        description="Base URL of the Cloudflare v4 API",
    )
    projects: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        alias="PROJECTS",
        description="Pages project names to watch (JSON array or comma-separated)",
    )

    # Notification sink
    discord_webhook: str = Field(
        default="", alias="DISCORD_WEBHOOK", description="Discord webhook URL"
    )
    message_style: Literal["text", "embed"] = Field(
        default="text",
        alias="DEPLOYWATCH_MESSAGE_STYLE",
        description="Plain text messages or rich embeds",
    )

    # Schedule
    schedule: str = Field(
        default="* * * * *",
        alias="DEPLOYWATCH_SCHEDULE",
        description="Crontab expression for poll invocations",
    )
    timezone: str = Field(
        default="UTC",
        alias="DEPLOYWATCH_TIMEZONE",
        description="Timezone the schedule is evaluated in",
    )

    # Tracked state
    state_file: Path = Field(
        default=Path(".deploywatch") / "state.json",
        alias="DEPLOYWATCH_STATE_FILE",
        description="JSON file backing the state store",
    )
    redis_url: str | None = Field(
        default=None,
        alias="DEPLOYWATCH_REDIS_URL",
        description="Use Redis for tracked state instead of the state file",
    )
    state_key_prefix: str = Field(
        default="deploy:",
        alias="DEPLOYWATCH_STATE_KEY_PREFIX",
        description="Prefix prepended to project names to form state keys",
    )

    # HTTP
    http_timeout: float = Field(
        default=15.0,
        gt=0,
        le=120,
        alias="DEPLOYWATCH_HTTP_TIMEOUT",
        description="Seconds before an upstream or webhook request times out",
    )

    # Execution mode
    dry_run: bool = Field(
        default=False,
        alias="DEPLOYWATCH_DRY_RUN",
        description="Log notifications without sending them",
    )

    @classmethod
    def from_overrides(cls, **overrides: Any) -> DeployWatchConfig:
        """Build from the environment, with *overrides* (by field name) winning.

        Overrides are re-keyed to the env alias so they replace the
        environment value instead of sitting beside it.
        """
        return cls(
            **{
                (cls.model_fields[name].alias or name): value
                for name, value in overrides.items()
            }
        )

    @field_validator("projects", mode="before")
    @classmethod
    def _parse_projects(cls, v: Any) -> list[str]:
        """Accept a JSON array or a comma-separated string.

        Malformed input yields an empty list so the invocation becomes a
        logged no-op instead of a startup failure.
        """
        if v is None:
            return []
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return []
            if raw.startswith(("[", "{")):
                try:
                    v = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("PROJECTS is not valid JSON; ignoring it")
                    return []
            else:
                v = raw.split(",")
        if not isinstance(v, (list, tuple)):
            logger.warning("PROJECTS must be a list of project names; ignoring it")
            return []
        names: list[str] = []
        for item in v:
            name = str(item).strip() if item is not None else ""
            if name and name not in names:
                names.append(name)
        return names

    @field_validator("schedule")
    @classmethod
    def _validate_schedule(cls, v: str) -> str:
        CronTrigger.from_crontab(v, timezone=pytz.utc)
        return v

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")
