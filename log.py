"""Structured JSON logging for deploywatch."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# Context fields lifted from ``extra=`` into the JSON entry.
CONTEXT_FIELDS = ("project", "deployment", "status", "action")

# Third-party loggers that log every request / job run at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "apscheduler")


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            {
                key: getattr(record, key)
                for key in CONTEXT_FIELDS
                if getattr(record, key, None) is not None
            }
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ProjectLogAdapter(logging.LoggerAdapter):
    """Stamp every record with the project being polled."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def for_project(logger: logging.Logger, project: str) -> ProjectLogAdapter:
    """Return *logger* wrapped so its records carry ``project``."""
    return ProjectLogAdapter(logger, {"project": project})


def setup_logging(
    *,
    level: int = logging.INFO,
    json_output: bool = True,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the ``deploywatch`` logger tree.

    Parameters
    ----------
    level:
        Level for deploywatch's own loggers.  Request-level chatter from
        httpx and APScheduler is capped at WARNING unless *level* is DEBUG.
    json_output:
        Emit JSON lines on stdout; plain text when *False*.
    log_file:
        Optional path for a rotating log file (10 MB, 5 backups).  The
        file is always JSON so it can be shipped as-is.

    Returns
    -------
    logging.Logger
        The configured ``deploywatch`` logger.
    """
    logger = logging.getLogger("deploywatch")
    logger.setLevel(level)
    logger.propagate = False
    for handler in logger.handlers[:]:
        handler.close()
    logger.handlers.clear()

    stream_formatter: logging.Formatter = (
        JSONFormatter()
        if json_output
        else logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(stream_formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return logger
