"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog

from domainscope.core.config import get_settings


def setup_logging(output: TextIO = sys.stderr) -> None:
    """Configure structlog from application settings.

    JSON output is the default; ``log_format=text`` switches to the
    console renderer for interactive use.
    """
    settings = get_settings()
    level = logging.getLevelName(settings.log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a component."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_domain_context(domain: str, kind: str | None = None) -> None:
    """Attach the domain being acquired to subsequent log lines."""
    structlog.contextvars.bind_contextvars(domain=domain)
    if kind:
        structlog.contextvars.bind_contextvars(artifact=kind)


def clear_domain_context() -> None:
    """Remove the domain context."""
    structlog.contextvars.unbind_contextvars("domain", "artifact")
