"""Deployment status classification."""

from __future__ import annotations

from enum import StrEnum


class StatusClass(StrEnum):
    """Coarse lifecycle bucket for a raw deployment stage status."""

    NON_TERMINAL = "non_terminal"
    TERMINAL = "terminal"
    UNKNOWN = "unknown"


# Still running / about to run.
NON_TERMINAL_STATUSES: frozenset[str] = frozenset(
    {"pending", "active", "in_progress", "idle"}
)

# The deployment will not transition any further.
TERMINAL_STATUSES: frozenset[str] = frozenset(
    {"success", "failed", "canceled", "error", "skipped"}
)


def normalise_status(status: str | None) -> str:
    """Return *status* lower-cased, or ``""`` when it is missing."""
    if not isinstance(status, str):
        return ""
    return status.lower()


def classify(status: str | None) -> StatusClass:
    """Map a raw status string onto a :class:`StatusClass`.

    Unmapped values (including ``""`` and ``None``) yield
    :attr:`StatusClass.UNKNOWN` rather than failing.
    """
    value = normalise_status(status)
    if value in NON_TERMINAL_STATUSES:
        return StatusClass.NON_TERMINAL
    if value in TERMINAL_STATUSES:
        return StatusClass.TERMINAL
    return StatusClass.UNKNOWN
