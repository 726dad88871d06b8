"""Opt-in logging setup for applications embedding cloudrest.

The library itself only creates module loggers under ``cloudrest``; nothing
is configured unless ``configure_logging`` is called.
"""

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone

DEFAULT_LOG_LEVEL = os.environ.get("CLOUDREST_LOG_LEVEL", "INFO")
DEFAULT_LOG_FORMAT = os.environ.get("CLOUDREST_LOG_FORMAT", "simple")
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_NAME = "cloudrest-console"


class StructuredFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.thread,
        }
        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(log_entry, default=str)


def configure_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    stream=None,
) -> logging.Logger:
    """Attach a console handler to the ``cloudrest`` logger.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'structured' for JSON lines, 'simple' for text
        stream: Stream to write to; stderr if None

    Returns:
        logging.Logger: The configured ``cloudrest`` logger
    """
    package_logger = logging.getLogger("cloudrest")
    package_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in list(package_logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            package_logger.removeHandler(handler)

    if log_format.lower() == "structured":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(SIMPLE_FORMAT)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)
    package_logger.addHandler(handler)

    # Retries are reported by cloudrest; urllib3's own pool chatter is noise
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return package_logger
