"""Structured logging configuration."""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, List

import structlog
from structlog.types import EventDict, Processor

IGNORED_LOGGERS = ["mcp.server.lowlevel", "mcp.server.stdio", "aiohttp", "asyncio"]


def add_timestamp(_, __, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to the event dict."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def drop_ignored(logger: Any, name: str, event_dict: EventDict) -> EventDict:
    """Drop events from noisy third-party loggers."""
    logger_name = getattr(logger, "name", "") or ""
    if any(logger_name.startswith(ignored) for ignored in IGNORED_LOGGERS):
        raise structlog.DropEvent
    return event_dict


class CompactJSONRenderer:
    """Single-line JSON renderer with minimal output."""

    def __call__(self, _: Any, __: str, event_dict: EventDict) -> str:
        items = {
            "ts": event_dict.pop("timestamp", None),
            "lvl": event_dict.pop("level", "???"),
            "msg": event_dict.pop("event", ""),
        }
        if logger_name := event_dict.pop("logger", None):
            items["logger"] = logger_name
        if event_dict:
            items["data"] = event_dict
        return json.dumps(items, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured logging for the application.

    Everything goes to stderr: compact JSON lines when stderr is piped,
    structlog's console renderer when attached to a terminal. Stdout is left
    alone because the MCP stdio transport owns it.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        drop_ignored,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if sys.stderr.isatty():
        processors += [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors += [add_timestamp, CompactJSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def default_to_stderr() -> None:
    """Route an unconfigured structlog to stderr instead of stdout.

    Applications that call ``configure_logging`` or configure structlog
    themselves are left alone.
    """
    if not structlog.is_configured():
        structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))


default_to_stderr()
