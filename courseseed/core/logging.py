import logging
import sys
from typing import Optional

import structlog


def configure_logging(level: int = logging.INFO, json_logs: bool = True) -> None:
    """Configure stdlib logging and structlog to emit to stdout.

    Call this once at the start of a seeding run so library logs (SQLAlchemy)
    and seeder logs are formatted the same way. ``json_logs=False`` switches
    to the human-friendly console renderer.
    """

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    processor_formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[timestamper, structlog.stdlib.add_log_level],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(processor_formatter)

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def level_from_name(name: str) -> int:
    """Map a LOG_LEVEL string such as "debug" to its logging constant."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: Optional[str] = None):
    """Return a structlog logger for the given name.

    Use this in modules: `logger = get_logger(__name__)`.
    """
    return structlog.get_logger(name)
