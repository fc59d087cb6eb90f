"""
Structured logging for the request boundary and CLI.

The chart computation itself never logs; only the layers that receive
requests do.
"""

import logging
import sys

import structlog


def setup_logging(level: int = logging.INFO):
    """Configure structlog with readable console output on stderr."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
