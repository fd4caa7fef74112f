"""Keyed persistence for tracked deployment state.

Each watched project owns exactly one record, stored under
``<prefix><project>`` as the JSON text of a :class:`~models.TrackedState`.
Two backends are provided: a local JSON file (default) and Redis.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import redis.asyncio as redis
from pydantic import ValidationError

from exceptions import StateStoreError
from models import TrackedState

if TYPE_CHECKING:
    from config import DeployWatchConfig

logger = logging.getLogger("deploywatch.state")


class StateStore(Protocol):
    """Minimal async key-value interface the poller depends on."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def close(self) -> None: ...


# --- file backend ---


class FileStateStore:
    """JSON-file backed key-value store.

    The whole file is a single JSON object mapping keys to serialized
    records.  Writes go through a temp file and ``os.replace`` so the file
    is always either the old or the new version.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        # Projects are polled concurrently but share this one file.
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_sync(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning(
                "Corrupt state file %s, starting empty: %s", self._path, exc
            )
            return {}
        if not isinstance(loaded, dict):
            logger.warning(
                "State file %s is not a JSON object, starting empty", self._path
            )
            return {}
        return {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def _write_sync(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.stem}-",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(data, indent=2, sort_keys=True) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise

    async def get(self, key: str) -> str | None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_sync)
            except OSError as exc:
                raise StateStoreError(key, str(exc)) from exc
        return data.get(key)

    async def put(self, key: str, value: str) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_sync)
                data[key] = value
                await asyncio.to_thread(self._write_sync, data)
            except OSError as exc:
                raise StateStoreError(key, str(exc)) from exc

    async def delete(self, key: str) -> bool:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_sync)
                if key not in data:
                    return False
                del data[key]
                await asyncio.to_thread(self._write_sync, data)
            except OSError as exc:
                raise StateStoreError(key, str(exc)) from exc
        return True

    async def close(self) -> None:
        return None


# --- redis backend ---


class RedisStateStore:
    """Redis-backed key-value store (one string key per project)."""

    def __init__(self, redis_url: str, client: redis.Redis | None = None) -> None:
        self.redis_url = redis_url
        self._client = client

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._client

    async def get(self, key: str) -> str | None:
        try:
            return await self._get_client().get(key)
        except redis.RedisError as exc:
            raise StateStoreError(key, str(exc)) from exc

    async def put(self, key: str, value: str) -> None:
        try:
            await self._get_client().set(key, value)
        except redis.RedisError as exc:
            raise StateStoreError(key, str(exc)) from exc

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._get_client().delete(key)
        except redis.RedisError as exc:
            raise StateStoreError(key, str(exc)) from exc
        return bool(removed)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_state_store(config: DeployWatchConfig) -> StateStore:
    """Return the store selected by *config* (Redis when a URL is set)."""
    if config.redis_url:
        logger.info("Tracking deployment state in Redis")
        return RedisStateStore(config.redis_url)
    logger.info("Tracking deployment state in %s", config.state_file)
    return FileStateStore(config.state_file)


# --- TrackedState (de)serialization ---


def state_key(project: str, prefix: str = "deploy:") -> str:
    """Return the store key for *project*."""
    return f"{prefix}{project}"


async def load_tracked_state(store: StateStore, key: str) -> TrackedState | None:
    """Read and parse the record at *key*; ``None`` when never observed."""
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return TrackedState.model_validate_json(raw)
    except ValidationError as exc:
        raise StateStoreError(key, f"unreadable record {raw!r}") from exc


async def save_tracked_state(
    store: StateStore, key: str, state: TrackedState
) -> None:
    """Overwrite the record at *key* with *state*."""
    await store.put(key, state.model_dump_json())
