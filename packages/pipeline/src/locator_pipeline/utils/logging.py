"""
utils/logging.py — structlog configuration for pipeline jobs and the CLI.

Output goes to stderr so CLI commands that stream CSV to stdout
(``export-installers -``) stay clean. JSON or console rendering follows
settings.log_format.

Usage:
    from locator_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__, pipeline="installer_import")
    log.info("import_start", mode="append", rows=120)

    log = log.bind(installer_id=installer_id)
    log.info("rows_skipped", count=3)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from locator_shared.config import settings

# httpx and the supabase client log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog for a pipeline process. Safe to call more than once.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """Return a structlog logger, optionally pre-bound with context values."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
