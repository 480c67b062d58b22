"""
The `treecover` package logger.

Lines are human readable when run locally. In Cloud Run jobs they are JSON
objects with the field names Cloud Logging reads (`severity`, `timestamp`).
The level comes from TREECOVER_LOG_LEVEL and defaults to DEBUG.
"""

from __future__ import annotations

import os
import sys
from datetime import UTC, datetime
from logging import DEBUG, Formatter, Logger, LogRecord, StreamHandler, getLevelName, getLogger

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "treecover"

LOCAL_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | [%(threadName)s] %(message)s"
LOCAL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

STRUCTURED_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s"
STRUCTURED_RENAMES = {
    "levelname": "severity",
    "asctime": "timestamp",
    "name": "logger",
}


def _in_cloud_run_job() -> bool:
    return bool(
        os.getenv("CLOUD_RUN_JOB") or os.getenv("CLOUD_RUN_TASK_INDEX"),
    )


def _log_level() -> int:
    name = os.getenv("TREECOVER_LOG_LEVEL", "").strip().upper()
    if not name:
        return DEBUG
    level = getLevelName(name)
    if not isinstance(level, int):
        msg = f"TREECOVER_LOG_LEVEL must be a logging level name, got '{name}'."
        raise ValueError(msg)
    return level


class _CloudRunJsonFormatter(JsonFormatter):
    def formatTime(self, record: LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002, N802
        # RFC 3339 in UTC, microsecond precision
        instant = datetime.fromtimestamp(record.created, tz=UTC).replace(tzinfo=None)
        return f"{instant.isoformat()}Z"


def build_formatter(*, structured: bool) -> Formatter:
    """Return the JSON formatter for Cloud Run or the plain local one."""
    if structured:
        return _CloudRunJsonFormatter(STRUCTURED_FORMAT, rename_fields=STRUCTURED_RENAMES)
    return Formatter(LOCAL_FORMAT, LOCAL_DATE_FORMAT)


def _configure() -> Logger:
    configured = getLogger(LOGGER_NAME)
    configured.setLevel(_log_level())
    configured.handlers.clear()

    handler = StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(structured=_in_cloud_run_job()))
    configured.addHandler(handler)
    return configured


logger: Logger = _configure()
