"""Shared test helpers for deploywatch tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from config import DeployWatchConfig
from models import Observation, TrackedState


class ConfigFactory:
    """Factory for DeployWatchConfig instances."""

    @staticmethod
    def create(
        *,
        account_id: str = "acct-123",
        api_token: str = "cf-token",
        api_base_url: str = "https://api.test/client/v4",
        projects: list[str] | None = None,
        discord_webhook: str = "https://discord.test/api/webhooks/1/abc",
        message_style: str = "text",
        schedule: str = "* * * * *",
        timezone: str = "UTC",
        state_file: Path = Path("state.json"),
        redis_url: str | None = None,
        state_key_prefix: str = "deploy:",
        http_timeout: float = 5.0,
        dry_run: bool = False,
    ) -> DeployWatchConfig:
        return DeployWatchConfig(
            account_id=account_id,
            api_token=api_token,
            api_base_url=api_base_url,
            projects=projects if projects is not None else ["site-a", "site-b"],
            discord_webhook=discord_webhook,
            message_style=message_style,
            schedule=schedule,
            timezone=timezone,
            state_file=state_file,
            redis_url=redis_url,
            state_key_prefix=state_key_prefix,
            http_timeout=http_timeout,
            dry_run=dry_run,
        )


def make_deployment(
    deployment_id: str | None = "dep-1",
    status: str | None = "active",
    *,
    stage: str = "build",
    url: str = "https://abc123.site-a.pages.dev",
    environment: str = "production",
    branch: str = "main",
    commit_hash: str = "0123456789abcdef",
    commit_message: str = "Fix header\n\nLonger body",
    source_type: str = "github",
) -> dict[str, Any]:
    """Build a Pages API deployment record."""
    return {
        "id": deployment_id,
        "url": url,
        "environment": environment,
        "created_on": "2026-10-19T12:00:00.000000Z",
        "latest_stage": {"name": stage, "status": status},
        "deployment_trigger": {
            "type": "github:push",
            "metadata": {
                "branch": branch,
                "commit_hash": commit_hash,
                "commit_message": commit_message,
            },
        },
        "source": {
            "type": source_type,
            "config": {"owner": "acme", "repo_name": "site-a"},
        },
    }


def make_observation(
    deployment_id: str = "A", status: str = "active", **kwargs: Any
) -> Observation:
    return Observation(id=deployment_id, status=status, **kwargs)


def make_state(deployment_id: str = "A", status: str = "active") -> TrackedState:
    return TrackedState(id=deployment_id, status=status)


def pages_response(*deployments: dict[str, Any]) -> dict[str, Any]:
    """Wrap deployment records in the Cloudflare v4 response envelope."""
    return {
        "success": True,
        "errors": [],
        "messages": [],
        "result": list(deployments),
    }


def mock_client(handler: Any) -> httpx.AsyncClient:
    """Return an AsyncClient whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
