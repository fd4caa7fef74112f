"""Pytest configuration for deploywatch tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from config import DeployWatchConfig
from state import FileStateStore
from tests.helpers import ConfigFactory

# Environment variables DeployWatchConfig reads; cleared so a developer's
# shell or .env never leaks into a test.
_CONFIG_ENV_VARS = (
    "ACCOUNT_ID",
    "CF_API_TOKEN",
    "CF_API_BASE_URL",
    "PROJECTS",
    "DISCORD_WEBHOOK",
    "DEPLOYWATCH_MESSAGE_STYLE",
    "DEPLOYWATCH_SCHEDULE",
    "DEPLOYWATCH_TIMEZONE",
    "DEPLOYWATCH_STATE_FILE",
    "DEPLOYWATCH_REDIS_URL",
    "DEPLOYWATCH_STATE_KEY_PREFIX",
    "DEPLOYWATCH_HTTP_TIMEOUT",
    "DEPLOYWATCH_DRY_RUN",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_deploywatch_logger() -> Iterator[None]:
    """Undo setup_logging() so caplog sees records from every test."""
    yield
    logger = logging.getLogger("deploywatch")
    for handler in logger.handlers[:]:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path: Path) -> DeployWatchConfig:
    return ConfigFactory.create(state_file=tmp_path / "state.json")


@pytest.fixture
def file_store(tmp_path: Path) -> FileStateStore:
    return FileStateStore(tmp_path / "state.json")
