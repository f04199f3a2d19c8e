"""
Structured logging configuration.

JSON logs carry an entity_id field so every step of a fold or materialization
can be correlated to the entity it worked on.

Environment Variables:
    ENTITY_ENGINE_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    ENTITY_ENGINE_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from entity_engine.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, entity_id="cart-42")
    logger.info("Materializing snapshot")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class EntityIDFilter(logging.Filter):
    """
    Logging filter that adds entity_id to all log records.

    Ensures all logs have an entity_id field, even if not set via LoggerAdapter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "entity_id"):
            record.entity_id = "N/A"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Handler:
    """
    Configure root logger with structured logging.

    Arguments override the ENTITY_ENGINE_LOG_LEVEL / ENTITY_ENGINE_LOG_FORMAT
    environment variables.

    Returns:
        The installed handler
    """
    log_level = (level or os.getenv("ENTITY_ENGINE_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("ENTITY_ENGINE_LOG_FORMAT", "json")).lower()
    resolved = LEVELS.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.addFilter(EntityIDFilter())

    if fmt == "json":
        formatter: logging.Formatter = JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(entity_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [entity_id=%(entity_id)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return handler


def get_logger(name: str, entity_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger with optional entity_id for correlation.

    Example:
        logger = get_logger(__name__, entity_id="cart-42")
        logger.info("Folding events")
        # Output (JSON): {"timestamp": "...", "level": "INFO", "message": "Folding events", "entity_id": "cart-42"}
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"entity_id": entity_id or "N/A"})
