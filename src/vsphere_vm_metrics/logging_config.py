"""
Logging Configuration for vSphere VM Metrics
Provides structlog configuration with console or JSON output and operation timing.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog


def setup_logging(log_level: str = "INFO", log_format: str = "console",
                  stream: Optional[object] = None) -> None:
    """
    Setup structured logging.

    Diagnostics go to stderr so that the metric report on stdout stays clean.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "console" for human-readable lines, "json" for JSON lines
        stream: Output stream, stderr when omitted
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def timed_operation(operation: str, **context) -> Iterator[None]:
    """Log the start and completion of an operation with its duration."""
    logger = structlog.get_logger("performance")
    start_time = time.monotonic()
    logger.debug("Operation started", operation=operation, **context)
    success = False
    try:
        yield
        success = True
    finally:
        duration = (time.monotonic() - start_time) * 1000
        logger.debug(
            "Operation completed",
            operation=operation,
            duration_ms=round(duration, 2),
            success=success,
            **context
        )
