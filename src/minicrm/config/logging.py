"""structlog configuration for minicrm.

Two output modes, both on stderr so stdout stays free for results:
- Human (default): console renderer, coloured on a TTY
- JSON (--log-json): one JSON object per line
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

QUIET_LOGGERS = ("alembic", "sqlalchemy.engine", "sqlalchemy.pool")


def _renderers(log_json: bool, stream: TextIO) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=stream.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: DEBUG-level output for ``minicrm`` loggers. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        stream: Destination; defaults to ``sys.stderr``.
    """
    stream = stream or sys.stderr
    crm_level = logging.DEBUG if verbose else logging.WARNING

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderers(log_json, stream),
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("minicrm").setLevel(crm_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
