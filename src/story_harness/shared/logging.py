"""Logging configuration for story-harness.

Harness events are structlog key/value records rendered for a terminal by
default, or as JSON lines when a CI job collects them. Credential fields are
redacted before rendering, whichever renderer is used.
"""

import logging
import sys
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

import structlog

REDACTED = "[redacted]"
SECRET_KEYS = frozenset({"password", "token", "access_token", "authorization"})


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace credential values in an event with a placeholder."""
    for key in event_dict.keys() & SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _handler_for(log_file: str | Path | None) -> logging.Handler:
    if not log_file:
        return logging.StreamHandler(sys.stderr)
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(str(log_path))


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure stdlib logging and structlog for a harness run.

    Args:
        level: Log level name; unknown names fall back to warning
        log_file: Write to this file instead of stderr
        json_output: Render events as JSON lines
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler = _handler_for(log_file)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(log_level if log_level <= logging.DEBUG else logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def verbosity_to_level(verbose: int) -> str:
    """Map a -v count to a log level name."""
    if verbose >= 2:
        return "debug"
    if verbose == 1:
        return "info"
    return "warning"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger; name is typically __name__."""
    return structlog.get_logger(name)
