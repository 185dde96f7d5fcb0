"""
Logging setup for the decarbonization planner.

Call ``configure_logging(config)`` once at CLI entry (before any planning
work) to set up the root logger with the configured level and optional file
handler.

Library modules use ``logging.getLogger(__name__)`` and never call
``configure_logging`` or ``basicConfig`` themselves.

JSON format (``json_format = true`` in config/default.toml [logging]) emits
one object per line::

    {"ts": "2026-02-24T15:00:00Z", "level": "INFO", "logger": "...", "msg": "..."}

Fields passed through ``extra=`` appear at top level.  Planning modules tag
per-company records with ``extra={"company_id": ...}``; the text format shows
it after the logger name::

    2026-02-24T15:00:00Z [INFO] decarb_planner.planning.engine [acme-metal]: Planned ...
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from decarb_planner.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s%(context)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came from extra=.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "context"}


class _TextFormatter(logging.Formatter):
    """``LOG_FORMAT`` with an optional `` [company_id]`` context."""

    def format(self, record: logging.LogRecord) -> str:
        company_id = getattr(record, "company_id", None)
        record.context = f" [{company_id}]" if company_id else ""
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """One JSON object per log line: ``ts``, ``level``, ``logger``, ``msg`` plus extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from a ``LoggingConfig``.

    Sets up a stdout handler, an optional file handler when
    ``config.log_file`` is non-empty, and JSON lines when
    ``config.json_format`` is set.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = _TextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers.append(console)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
