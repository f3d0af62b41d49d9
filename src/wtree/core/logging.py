"""Structured logging configuration using structlog.

wtree modules log through the standard library (``logging.getLogger``); the
root handler renders those records with structlog's ``ProcessorFormatter``,
so ``--json-logs`` applies to every line wtree emits.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(json_output: bool = False, level: str = "WARNING") -> None:
    """Configure structlog for wtree.

    Log records go to stderr: ``jump`` and ``back`` print a bare path on
    stdout for the shell integration to ``cd`` into.

    Args:
        json_output: If True, one JSON object per line; otherwise console output.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
    ]

    tail: list[structlog.types.Processor]
    if json_output:
        tail = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        tail = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *tail],
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)
