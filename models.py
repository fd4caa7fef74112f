"""Data models for deploywatch."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Upstream observations ---


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


_COMMIT_URL_TEMPLATES: dict[str, str] = {
    "github": "https://github.com/{owner}/{repo}/commit/{sha}",
    "gitlab": "https://gitlab.com/{owner}/{repo}/-/commit/{sha}",
}


class Observation(BaseModel):
    """The latest deployment of a project as reported at poll time.

    Only ``id`` and ``status`` drive transition logic; everything else is
    carried through for display.
    """

    id: str = ""
    status: str = ""
    stage: str = ""
    url: str = ""
    environment: str = ""
    branch: str = ""
    commit_hash: str = ""
    commit_message: str = ""
    commit_author: str = ""
    commit_url: str = ""
    created_on: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        """The Pages API uses ``null`` liberally; normalise it to ``""``."""
        return "" if v is None else v

    @classmethod
    def from_deployment(cls, record: dict[str, Any]) -> Observation:
        """Build an observation from a Cloudflare Pages deployment record."""
        latest_stage = _as_dict(record.get("latest_stage"))
        trigger = _as_dict(record.get("deployment_trigger"))
        trigger_meta = _as_dict(trigger.get("metadata"))
        commit_hash = _as_str(trigger_meta.get("commit_hash"))

        return cls(
            id=_as_str(record.get("id")),
            status=_as_str(latest_stage.get("status")),
            stage=_as_str(latest_stage.get("name")),
            url=_as_str(record.get("url")),
            environment=_as_str(record.get("environment")),
            branch=_as_str(trigger_meta.get("branch")),
            commit_hash=commit_hash,
            commit_message=_as_str(trigger_meta.get("commit_message")),
            commit_author=_as_str(trigger_meta.get("commit_author")),
            commit_url=_commit_url(_as_dict(record.get("source")), commit_hash),
            created_on=_as_str(record.get("created_on")),
        )


def _commit_url(source: dict[str, Any], commit_hash: str) -> str:
    """Return a browsable commit link for git-backed projects, else ``""``."""
    template = _COMMIT_URL_TEMPLATES.get(_as_str(source.get("type")))
    source_config = _as_dict(source.get("config"))
    owner = _as_str(source_config.get("owner"))
    repo = _as_str(source_config.get("repo_name"))
    if not (template and owner and repo and commit_hash):
        return ""
    return template.format(owner=owner, repo=repo, sha=commit_hash)


# --- State Persistence ---


class TrackedState(BaseModel):
    """Last deployment id and status a notification decision was made for."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: str = ""


# --- Poll results ---


class PollResult(StrEnum):
    """What happened to one project during one invocation."""

    NOTIFIED = "notified"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    ERROR = "error"


class PollOutcome(BaseModel):
    """Per-project summary of a single poll pass."""

    project: str
    result: PollResult
    deployment_id: str = ""
    status: str = ""
    actions: list[str] = Field(default_factory=list)
    error: str | None = None
