"""
Logging for the run board.

Every line has the form

    2026-01-06T14:05:52Z [source] LEVEL message

where ``source`` is the component that emitted the record: ``board`` for the
draft, reconciliation and placement engine, ``gateway`` for backend traffic,
``config`` for the tuning loader, and the process tag passed to
``configure_logging`` (``api`` under uvicorn) for everything else.

Environment Variables:
    LOG_LEVEL: process level, one of TRACE, DEBUG, INFO (default), WARNING, ERROR
    LOG_LEVEL_BOARD, LOG_LEVEL_GATEWAY, LOG_LEVEL_CONFIG: override one
        component, e.g. LOG_LEVEL_GATEWAY=TRACE dumps backend responses
        without the draft mutation noise of a global DEBUG

TRACE (5) sits below DEBUG and is only used for raw gateway payloads.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from datetime import UTC, datetime

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Logger name prefix -> source tag
COMPONENTS = {
    "runboard.board": "board",
    "runboard.gateway": "gateway",
    "runboard.config": "config",
}

# pocketbase rides on httpx, the facility client on urllib3
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")


def _trace(self: logging.Logger, message: object, *args: object, **kw: object) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kw)  # type: ignore[arg-type]


logging.Logger.trace = _trace  # type: ignore[attr-defined]


def parse_level(value: str | None, default: int = logging.INFO) -> int:
    """Level for a name such as "trace" or "Warning"; blank or unknown names give ``default``."""
    if not value or not value.strip():
        return default
    name = value.strip().upper()
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def component_for(logger_name: str, default: str) -> str:
    for prefix, component in COMPONENTS.items():
        if logger_name == prefix or logger_name.startswith(prefix + "."):
            return component
    return default


class ISO8601Formatter(logging.Formatter):
    """``<UTC timestamp> [component] LEVEL message``, with any traceback appended."""

    def __init__(self, source: str = "runboard"):
        super().__init__()
        self.source = source

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        text = record.getMessage()
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} [{component_for(record.name, self.source)}] {record.levelname} {text}"


class HealthCheckFilter(logging.Filter):
    """Drops uvicorn access lines for the health endpoint unless the record is DEBUG or lower."""

    HEALTH_REQUEST = re.compile(r'"GET /(?:api/)?health[ ?]')

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno <= logging.DEBUG:
            return True
        return self.HEALTH_REQUEST.search(record.getMessage()) is None


def configure_logging(
    source: str = "runboard",
    level: int | None = None,
    debug: bool | None = None,
) -> logging.Logger:
    """Install the run board handler on the root logger.

    Args:
        source: Tag for records outside the runboard components (e.g. "api")
        level: Process level; defaults to LOG_LEVEL, or INFO
        debug: Lower the process level to at least DEBUG

    Returns:
        The configured root logger
    """
    if level is None:
        level = parse_level(os.getenv("LOG_LEVEL"))
    if debug:
        level = min(level, logging.DEBUG)

    # No handler level: component loggers may sit below the root level
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ISO8601Formatter(source=source))
    handler.addFilter(HealthCheckFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for prefix, component in COMPONENTS.items():
        override = os.getenv(f"LOG_LEVEL_{component.upper()}")
        logging.getLogger(prefix).setLevel(parse_level(override, level) if override else logging.NOTSET)

    # Uvicorn installs its own handlers, which would bypass HealthCheckFilter
    for uvicorn_logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
