"""Poll orchestration: fetch, decide, notify, persist, for every project."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

import httpx

from config import DeployWatchConfig
from exceptions import DeployWatchError
from log import for_project
from models import PollOutcome, PollResult
from notifier import DiscordNotifier
from pages_client import PagesClient
from state import (
    StateStore,
    build_state_store,
    load_tracked_state,
    save_tracked_state,
    state_key,
)
from transitions import NotifyAction, decide

logger = logging.getLogger("deploywatch.poller")


class DeployPoller:
    """Runs one poll pass over every configured project.

    Projects are processed concurrently and independently: a failure for
    one project is logged and reported in its :class:`PollOutcome` without
    affecting the others.
    """

    def __init__(
        self,
        config: DeployWatchConfig,
        pages: PagesClient,
        store: StateStore,
        notifier: DiscordNotifier,
    ) -> None:
        self._config = config
        self._pages = pages
        self._store = store
        self._notifier = notifier

    async def run_once(self) -> list[PollOutcome]:
        """Poll every project once and return their outcomes in config order."""
        projects = self._config.projects
        if not projects:
            logger.info("No projects configured; nothing to poll")
            return []

        outcomes = await asyncio.gather(
            *(self._poll_guarded(project) for project in projects)
        )

        failed = sum(1 for o in outcomes if o.result is PollResult.ERROR)
        notified = sum(1 for o in outcomes if o.result is PollResult.NOTIFIED)
        logger.info(
            "Polled %d project(s): %d notified, %d failed",
            len(outcomes),
            notified,
            failed,
        )
        return list(outcomes)

    async def _poll_guarded(self, project: str) -> PollOutcome:
        log = for_project(logger, project)
        try:
            return await self.poll_project(project)
        except DeployWatchError as exc:
            log.warning("Poll failed for %s: %s", project, exc)
            return PollOutcome(project=project, result=PollResult.ERROR, error=str(exc))
        except Exception as exc:
            log.exception("Poll failed for %s; will retry next cycle", project)
            return PollOutcome(
                project=project,
                result=PollResult.ERROR,
                error=str(exc) or type(exc).__name__,
            )

    async def poll_project(self, project: str) -> PollOutcome:
        """Fetch, decide, notify and persist for a single project.

        Raises whatever the upstream fetch or the state store raises; the
        caller owns the error boundary.
        """
        log = for_project(logger, project)

        observation = await self._pages.fetch_latest(project)
        if observation is None or not observation.id:
            log.debug("No usable deployment for %s", project)
            return PollOutcome(project=project, result=PollResult.SKIPPED)

        key = state_key(project, self._config.state_key_prefix)
        previous = await load_tracked_state(self._store, key)
        decision = decide(previous, observation)

        undelivered = 0
        for action in decision.actions:
            if not await self._deliver(project, action):
                undelivered += 1

        # Recorded even when delivery failed: notifications are best effort.
        if decision.state_changed(previous) and decision.new_state is not None:
            await save_tracked_state(self._store, key, decision.new_state)
            log.debug(
                "Stored %s for %s",
                decision.new_state.model_dump_json(),
                project,
                extra={"deployment": observation.id},
            )

        return PollOutcome(
            project=project,
            result=PollResult.NOTIFIED if decision.actions else PollResult.UNCHANGED,
            deployment_id=observation.id,
            status=observation.status,
            actions=[kind.value for kind in decision.kinds],
            error=(
                f"{undelivered} notification(s) not delivered" if undelivered else None
            ),
        )

    async def _deliver(self, project: str, action: NotifyAction) -> bool:
        log = for_project(logger, project)
        context = {
            "deployment": action.observation.id,
            "status": action.observation.status,
            "action": action.kind.value,
        }
        payload = self._notifier.render(project, action)
        if self._config.dry_run:
            log.info(
                "[dry-run] Would send %s notification for %s: %s",
                action.kind.value,
                project,
                payload,
                extra=context,
            )
            return True

        sent = await self._notifier.send(payload)
        if sent:
            log.info(
                "Sent %s notification for %s", action.kind.value, project, extra=context
            )
        else:
            log.warning(
                "Could not deliver %s notification for %s",
                action.kind.value,
                project,
                extra=context,
            )
        return sent


@contextlib.asynccontextmanager
async def open_poller(config: DeployWatchConfig) -> AsyncIterator[DeployPoller]:
    """Build a :class:`DeployPoller` and its HTTP client / state store.

    Both are closed when the context exits.
    """
    store = build_state_store(config)
    try:
        async with httpx.AsyncClient(timeout=config.http_timeout) as client:
            pages = PagesClient(
                client,
                account_id=config.account_id,
                api_token=config.api_token,
                base_url=config.api_base_url,
            )
            notifier = DiscordNotifier(
                client, config.discord_webhook, style=config.message_style
            )
            yield DeployPoller(config, pages, store, notifier)
    finally:
        await store.close()
