"""
Traffic Counts - Structured Logging
Provides JSON-formatted logging for import and AADV runs.
"""

import logging
import sys
from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL, config


def setup_logger(name: str = __name__) -> logging.Logger:
    """
    Configure structured JSON logger.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("AADV computed", extra={
        ...     "recordnum": 165367,
        ...     "direction": "north",
        ...     "aadv": 11840
        ... })
    """
    logger = logging.getLogger(name)
    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.hasHandlers():
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logger('traffic_counts')


def log_import_start(recordnum: int, table: str, row_count: int):
    """Log the start of a count import for one site."""
    logger.info("Count import started", extra={
        "event_type": "import_start",
        "recordnum": recordnum,
        "table": table,
        "row_count": row_count,
        "environment": config.environment
    })


def log_import_complete(recordnum: int, table: str, created: int, updated: int, rejected: int):
    """Log successful count import."""
    logger.info("Count import completed", extra={
        "event_type": "import_complete",
        "recordnum": recordnum,
        "table": table,
        "rows_created": created,
        "rows_updated": updated,
        "rows_rejected": rejected
    })


def log_aadv_start(recordnum: int, direction, start, end, client=None):
    """Log the start of an AADV computation."""
    logger.info("AADV computation started", extra={
        "event_type": "aadv_start",
        "recordnum": recordnum,
        "direction": direction,
        "window_start": str(start),
        "window_end": str(end),
        "client": client
    })


def log_aadv_complete(recordnum: int, direction, aadv: int, days_used: int):
    """Log successful AADV computation."""
    logger.info("AADV computation completed", extra={
        "event_type": "aadv_complete",
        "recordnum": recordnum,
        "direction": direction,
        "aadv": aadv,
        "days_used": days_used
    })


def log_aadv_error(error: Exception, recordnum: int, direction=None):
    """Log a failed AADV computation with context."""
    logger.error("AADV computation failed", extra={
        "event_type": "aadv_error",
        "recordnum": recordnum,
        "direction": direction,
        "error_type": type(error).__name__,
        "error_message": str(error)
    }, exc_info=True)


def log_database_error(error: Exception, query_context: str = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)
