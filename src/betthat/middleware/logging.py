"""structlog setup shared by the API and stdlib loggers."""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from betthat.config import Settings

# libraries whose INFO output drowns the request log
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "uvicorn.access", "aiosqlite")


def _app_context(settings: Settings) -> Processor:
    def add_context(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", "betthat")
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_context


def setup_logging(settings: Settings) -> None:
    """JSON lines in deployed environments, coloured console output when log_format is 'console'."""
    renderer: Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _app_context(settings),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
