"""Discord webhook notifications for deployment transitions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Literal

import httpx

from models import Observation
from status import normalise_status
from transitions import NotifyAction, NotifyKind

logger = logging.getLogger("deploywatch.notifier")

MessageStyle = Literal["text", "embed"]

# Embed sidebar colours.
COLOR_STARTED = 0xF1C40F
COLOR_SUCCESS = 0x2ECC71
COLOR_SKIPPED = 0x95A5A6
COLOR_FAILED = 0xE74C3C

# Discord rejects embed fields longer than 1024 characters.
_MAX_FIELD_CHARS = 1024
_MAX_COMMIT_SUBJECT_CHARS = 100


# --- text messages ---


def _outcome_emoji(status: str) -> str:
    if status == "success":
        return "✅"
    if status == "skipped":
        return "⏭️"
    return "❌"


def started_message(project: str, obs: Observation) -> str:
    """Render the plain-text STARTED message."""
    bits = [
        "🚧 **Deploy STARTED**",
        f"**{project}**",
        f"({obs.environment})" if obs.environment else "",
        f"stage: `{obs.stage}`" if obs.stage else "",
        f"\n{obs.url}" if obs.url else "",
    ]
    return " ".join(bit for bit in bits if bit)


def finished_message(project: str, obs: Observation) -> str:
    """Render the plain-text FINISHED message."""
    status = normalise_status(obs.status)
    status_text = status.upper() if status else "DONE"
    bits = [
        f"{_outcome_emoji(status)} **Deploy {status_text}**",
        f"**{project}**",
        f"({obs.environment})" if obs.environment else "",
        f"\n{obs.url}" if obs.url else "",
    ]
    return " ".join(bit for bit in bits if bit)


# --- embeds ---


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _commit_field(obs: Observation) -> str:
    short = obs.commit_hash[:7]
    ref = f"[`{short}`]({obs.commit_url})" if obs.commit_url else f"`{short}`"
    lines = obs.commit_message.strip().splitlines()
    subject = lines[0] if lines else ""
    if subject:
        ref = f"{ref} {_truncate(subject, _MAX_COMMIT_SUBJECT_CHARS)}"
    return _truncate(ref, _MAX_FIELD_CHARS)


def build_embed(project: str, action: NotifyAction) -> dict[str, Any]:
    """Render *action* as a Discord embed object."""
    obs = action.observation
    status = normalise_status(obs.status)

    if action.kind is NotifyKind.STARTED:
        title = f"🚧 Deploy started · {project}"
        color = COLOR_STARTED
        description = f"Stage `{obs.stage}`" if obs.stage else ""
    else:
        status_text = status.upper() if status else "DONE"
        title = f"{_outcome_emoji(status)} Deploy {status_text} · {project}"
        color = {"success": COLOR_SUCCESS, "skipped": COLOR_SKIPPED}.get(
            status, COLOR_FAILED
        )
        description = ""

    fields: list[dict[str, Any]] = []
    if obs.environment:
        fields.append({"name": "Environment", "value": obs.environment, "inline": True})
    if obs.branch:
        fields.append({"name": "Branch", "value": obs.branch, "inline": True})
    if obs.commit_hash:
        fields.append({"name": "Commit", "value": _commit_field(obs), "inline": False})
    if obs.commit_author:
        fields.append({"name": "Author", "value": obs.commit_author, "inline": True})

    embed: dict[str, Any] = {
        "title": _truncate(title, 256),
        "color": color,
        "timestamp": obs.created_on or datetime.now(UTC).isoformat(),
    }
    if description:
        embed["description"] = description
    if obs.url:
        embed["url"] = obs.url
    if fields:
        embed["fields"] = fields
    return embed


# --- sender ---


class DiscordNotifier:
    """Renders notify actions and posts them to a Discord webhook.

    Delivery is best effort: failures are logged and reported through the
    return value of :meth:`send`, never raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        webhook_url: str,
        style: MessageStyle = "text",
    ) -> None:
        self._client = client
        self._webhook_url = webhook_url
        self._style = style

    def render(self, project: str, action: NotifyAction) -> dict[str, Any]:
        """Build the webhook JSON body for *action*."""
        if self._style == "embed":
            return {"embeds": [build_embed(project, action)]}
        if action.kind is NotifyKind.STARTED:
            return {"content": started_message(project, action.observation)}
        return {"content": finished_message(project, action.observation)}

    async def send(self, payload: dict[str, Any]) -> bool:
        """POST *payload* to the webhook; return *True* on a 2xx response."""
        if not self._webhook_url:
            logger.warning("No Discord webhook configured; dropping notification")
            return False
        try:
            response = await self._client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Discord webhook request failed: %s", exc)
            return False
        # Discord answers 204 No Content on success.
        if not response.is_success:
            logger.warning(
                "Discord webhook returned %d: %s",
                response.status_code,
                response.text[:200],
            )
            return False
        return True
