"""Structured logging for the storefront.

structlog renders through the standard library so that uvicorn, SQLAlchemy
and Stripe records share the same handlers: stdout plus two rotating files
(everything, and errors only). Production and staging render JSON lines;
other environments use the coloured console renderer with rich tracebacks.

Request-scoped values (request id, path) are carried in contextvars and merged
into every event emitted while the request is being served.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

from shared.config import get_settings

_DEFAULT_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_JSON_ENVS = {"production", "staging"}

# Third-party loggers that are too chatty at DEBUG
_QUIET_LOGGERS = ("urllib3", "stripe", "sqlalchemy.engine", "httpx")

_MAX_BYTES = 10 * 1024 * 1024


def log_level_for(env: str) -> str:
    """``LOG_LEVEL`` wins; otherwise the level follows the environment."""
    return (os.getenv("LOG_LEVEL") or _DEFAULT_LEVELS.get(env, "INFO")).upper()


def _rotating_file(path: Path, level: str | int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _install_handlers(level: str, log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        console,
        _rotating_file(log_dir / "storefront.log", level),
        _rotating_file(log_dir / "storefront_error.log", logging.ERROR),
    ]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer(env: str):
    if env in _JSON_ENVS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def _processors(env: str) -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _renderer(env),
    ]


def configure_logging(log_dir: Path | None = None) -> None:
    """Configure stdlib handlers and structlog once, at application start."""
    env = get_settings().env
    level = log_level_for(env)
    _install_handlers(level, log_dir or Path(os.getenv("LOG_DIR", "logs")))

    structlog.configure(
        processors=_processors(env),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Attach values to every log event emitted from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
