"""Structured logging configuration for the fragments service."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from loguru import logger

SERVICE_NAME = "fragments"

HUMAN_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


class JSONFormatter:
    """One JSON object per line; bound and keyword fields become top-level keys."""

    def __call__(self, record: dict[str, Any]) -> str:
        entry: dict[str, Any] = {
            "time": record["time"].isoformat(),
            "level": record["level"].name,
            "service": SERVICE_NAME,
            "logger": record["name"],
            "line": record["line"],
            "msg": record["message"],
        }
        for key, value in record["extra"].items():
            entry.setdefault(key, _jsonable(value))

        exception = record["exception"]
        if exception is not None and exception.type is not None:
            entry["error"] = {"type": exception.type.__name__, "message": str(exception.value)}

        # loguru formats the returned string again, so braces are doubled
        line = json.dumps(entry, ensure_ascii=False)
        return line.replace("{", "{{").replace("}", "}}") + "\n"


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Replace loguru's handlers with a stderr sink and an optional rotating file.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Emit JSON lines instead of the coloured human format.
        log_file: Also write to this file, rotated at 10 MB and kept 7 days.
    """
    logger.remove()
    formatter: Any = JSONFormatter() if json_format else HUMAN_FORMAT

    logger.add(sys.stderr, format=formatter, level=level.upper(), colorize=not json_format)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level.upper(),
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """Configure logging from ``LOG_LEVEL``, ``JSON_LOGGING`` and ``LOG_FILE``."""
    env = os.environ if environ is None else environ
    log_file = env.get("LOG_FILE")
    setup_logging(
        level=env.get("LOG_LEVEL", "INFO"),
        json_format=env.get("JSON_LOGGING", "false").strip().lower() in _TRUE_VALUES,
        log_file=Path(log_file) if log_file else None,
    )


__all__ = ["JSONFormatter", "setup_logging", "setup_logging_from_env"]
