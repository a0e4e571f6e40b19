"""Logging configuration for the vending domain.

The stdlib root logger owns the handlers (console, rotating file, and an
operator file that only takes errors such as unfulfilled paid orders and
failed deliveries). structlog renders on top: JSON in production and
staging, the rich console renderer everywhere else.
"""

import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import structlog

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_QUIET_LOGGERS = ("urllib3", "asyncio", "apscheduler", "protean", "stripe")

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


@dataclass(frozen=True)
class LogSettings:
    level: str
    directory: Path
    as_json: bool

    @classmethod
    def from_env(cls) -> "LogSettings":
        env = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
        return cls(
            level=os.getenv("LOG_LEVEL", _LEVELS_BY_ENV.get(env, "INFO")).upper(),
            directory=Path(os.getenv("LOG_DIR", "logs")),
            as_json=env in ("production", "staging"),
        )


def _rotating(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _install_handlers(settings: LogSettings) -> None:
    settings.directory.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.handlers = [
        console,
        _rotating(settings.directory / "vending.log", settings.level),
        _rotating(settings.directory / "vending_operator.log", logging.ERROR),
    ]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer(settings: LogSettings):
    if settings.as_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=3),
    )


def configure_logging(settings: LogSettings | None = None) -> None:
    """Install handlers and the structlog pipeline."""
    settings = settings or LogSettings.from_env()
    _install_handlers(settings)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_context(**values):
    """Bind ``values`` (order_id, buyer_id, ...) to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**{k: str(v) for k, v in values.items() if v is not None}):
        yield
