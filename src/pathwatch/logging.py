"""Structured logging configuration using structlog."""

import logging
import sys

import structlog


def configure_logging(debug: bool = False) -> None:
    """Configure structlog for the watcher.

    Debug mode renders human-readable console lines at DEBUG level;
    otherwise JSON lines at INFO level. Output goes to stderr so that
    embedding applications keep stdout to themselves.

    Args:
        debug: Enable debug-level console logging when True.
    """
    level = logging.DEBUG if debug else logging.INFO
    renderer = (
        structlog.dev.ConsoleRenderer(colors=False)
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(name)s %(levelname)s %(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # watchdog records stay at INFO and above
    logging.getLogger("watchdog").setLevel(max(level, logging.INFO))
