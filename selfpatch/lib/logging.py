"""
Structured logging configuration for SelfPatch.

Engine modules log through ``structlog.get_logger(__name__)`` with dotted
event names (``lifecycle.transition``, ``diagnostics.run_complete``) and
key/value fields. This module routes those events, and anything emitted via
stdlib ``logging`` (SQLAlchemy, aiosqlite), through one stderr handler.

Usage:
    from selfpatch.lib.logging import setup_logging

    setup_logging()                 # from SELFPATCH_DEV_MODE / LOG_LEVEL
    setup_logging(dev_mode=True)    # explicit, e.g. from a test or script
"""

import logging
import os
import sys

import structlog

# Storage-layer loggers that are only useful when debugging queries
QUIET_LOGGERS: tuple[str, ...] = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        # user_id bound by bind_user() rides along on every event
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(dev_mode: bool) -> structlog.types.Processor:
    if dev_mode:
        # Colored key=value lines for a terminal
        return structlog.dev.ConsoleRenderer()
    # One JSON object per line
    return structlog.processors.JSONRenderer()


def setup_logging(dev_mode: bool | None = None, level: str | None = None) -> None:
    """
    Configure structlog and stdlib logging for the engine.

    Args:
        dev_mode: Console output instead of JSON. Defaults to
            SELFPATCH_DEV_MODE=1 in the environment.
        level: Root log level name. Defaults to LOG_LEVEL, then INFO;
            unknown names fall back to INFO.
    """
    if dev_mode is None:
        dev_mode = os.environ.get("SELFPATCH_DEV_MODE") == "1"
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Final rendering happens in the stdlib handler so both APIs share it
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(dev_mode),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_user(user_id: object) -> None:
    """Attach the acting user's id to every log line emitted in this context."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))


def clear_bound_context() -> None:
    """Drop context bound by :func:`bind_user`."""
    structlog.contextvars.clear_contextvars()
