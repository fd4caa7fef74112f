"""Deployment state-transition detection.

:func:`decide` is a pure function of the previously tracked state and a
fresh observation.  It never touches storage or the network; the caller
sends whatever notifications it returns and persists ``new_state``.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from models import Observation, TrackedState
from status import StatusClass, classify, normalise_status


class NotifyKind(StrEnum):
    """Which notification to send."""

    STARTED = "started"
    FINISHED = "finished"


class NotifyAction(BaseModel):
    """A notification to emit, carrying the observation it describes."""

    model_config = ConfigDict(frozen=True)

    kind: NotifyKind
    observation: Observation


class Decision(BaseModel):
    """Result of :func:`decide`: notifications to send and state to persist."""

    model_config = ConfigDict(frozen=True)

    actions: tuple[NotifyAction, ...] = ()
    new_state: TrackedState | None = None

    @property
    def kinds(self) -> list[NotifyKind]:
        return [action.kind for action in self.actions]

    def state_changed(self, previous: TrackedState | None) -> bool:
        """Return *True* when ``new_state`` must be written over *previous*."""
        return self.new_state is not None and self.new_state != previous


def _action_for(
    status_class: StatusClass, current: Observation
) -> tuple[NotifyAction, ...]:
    if status_class is StatusClass.NON_TERMINAL:
        return (NotifyAction(kind=NotifyKind.STARTED, observation=current),)
    if status_class is StatusClass.TERMINAL:
        return (NotifyAction(kind=NotifyKind.FINISHED, observation=current),)
    return ()


def decide(previous: TrackedState | None, current: Observation) -> Decision:
    """Decide which notification (if any) *current* warrants.

    - No previous state, or a different deployment id: fire STARTED for a
      running deployment, FINISHED for one already done, nothing for an
      unknown status.  State is always rewritten.  A deployment that both
      started and finished between polls only gets FINISHED.
    - Same deployment id: fire FINISHED only on the first poll that sees a
      terminal status.  Otherwise nothing fires and state is left as is.
    - An observation without an id is ignored.
    """
    if not current.id:
        return Decision(new_state=previous)

    status = normalise_status(current.status)
    status_class = classify(status)
    observed = TrackedState(id=current.id, status=status)

    if previous is None or previous.id != current.id:
        return Decision(
            actions=_action_for(status_class, current), new_state=observed
        )

    if (
        status_class is StatusClass.TERMINAL
        and classify(previous.status) is not StatusClass.TERMINAL
    ):
        return Decision(
            actions=(NotifyAction(kind=NotifyKind.FINISHED, observation=current),),
            new_state=observed,
        )

    return Decision(new_state=previous)
