"""CLI entry point for deploywatch."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from config import DeployWatchConfig
from log import setup_logging
from models import PollOutcome
from poller import open_poller
from scheduler import PollScheduler
from state import build_state_store, state_key

logger = logging.getLogger("deploywatch.cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="deploywatch",
        description="Post Cloudflare Pages deployment starts and results to Discord.",
    )

    parser.add_argument(
        "--projects",
        default=None,
        help="Pages projects to watch, comma-separated (default: $PROJECTS)",
    )
    parser.add_argument(
        "--schedule",
        default=None,
        help="Crontab expression for poll invocations (default: '* * * * *')",
    )
    parser.add_argument(
        "--message-style",
        choices=("text", "embed"),
        default=None,
        help="Discord message format (default: text)",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="JSON file for tracked state (default: .deploywatch/state.json)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll pass, print the outcome and exit",
    )
    parser.add_argument(
        "--reset",
        metavar="PROJECT",
        default=None,
        help="Forget the tracked deployment for PROJECT, then exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log notifications instead of sending them (state is still recorded)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug-level, plain-text logging",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write JSON logs to this rotating file",
    )

    return parser.parse_args(argv)


def _parse_list_arg(value: str) -> list[str]:
    """Split a comma-separated string into a list."""
    return [part.strip() for part in value.split(",") if part.strip()]


def build_config(args: argparse.Namespace) -> DeployWatchConfig:
    """Convert parsed CLI args into a :class:`DeployWatchConfig`.

    Only explicitly-provided CLI values are passed through; the
    environment and DeployWatchConfig supply everything else.
    """
    kwargs: dict[str, Any] = {}

    for field in ("schedule", "message_style", "state_file"):
        val = getattr(args, field)
        if val is not None:
            kwargs[field] = val

    if args.projects is not None:
        kwargs["projects"] = _parse_list_arg(args.projects)
    if args.dry_run:
        kwargs["dry_run"] = True

    return DeployWatchConfig.from_overrides(**kwargs)


def _print_outcomes(outcomes: list[PollOutcome]) -> None:
    for outcome in outcomes:
        line = f"{outcome.project}: {outcome.result.value}"
        if outcome.deployment_id:
            line += f" ({outcome.deployment_id} {outcome.status or '?'})"
        if outcome.actions:
            line += f" -> {', '.join(outcome.actions)}"
        if outcome.error:
            line += f" [{outcome.error}]"
        print(line)


async def _run_once(config: DeployWatchConfig) -> list[PollOutcome]:
    """Run a single poll pass."""
    async with open_poller(config) as poller:
        return await poller.run_once()


async def _run_reset(config: DeployWatchConfig, project: str) -> bool:
    """Delete the tracked state for *project*."""
    store = build_state_store(config)
    try:
        removed = await store.delete(state_key(project, config.state_key_prefix))
    finally:
        await store.close()
    if removed:
        logger.info("Cleared tracked deployment for %s", project)
    else:
        logger.info("No tracked deployment for %s", project)
    return removed


async def _run_main(config: DeployWatchConfig) -> None:
    """Poll on the configured schedule until SIGINT/SIGTERM."""
    if not config.projects:
        logger.warning("No projects configured; invocations will be no-ops")
    if not config.discord_webhook and not config.dry_run:
        logger.warning("DISCORD_WEBHOOK is not set; notifications will be dropped")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    async with open_poller(config) as poller:
        scheduler = PollScheduler(config, poller.run_once)
        scheduler.start()
        try:
            await stop_event.wait()
        finally:
            scheduler.shutdown(wait=False)


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    load_dotenv()
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level=level, json_output=not args.verbose, log_file=args.log_file)

    try:
        config = build_config(args)
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)

    if args.reset is not None:
        asyncio.run(_run_reset(config, args.reset))
        sys.exit(0)

    if args.once:
        _print_outcomes(asyncio.run(_run_once(config)))
        sys.exit(0)

    asyncio.run(_run_main(config))


if __name__ == "__main__":
    main()
