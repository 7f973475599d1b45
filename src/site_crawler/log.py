from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: int = logging.INFO, *, colors: bool = False) -> None:
    """Render crawl events as console lines on stderr.

    Which events exist is decided by the crawl's own ``log`` verbosity;
    this only sets the output format and the level threshold.
    """

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%dT%H:%M:%SZ", utc=True),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
