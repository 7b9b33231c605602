"""Structured JSON logging configuration.

Provides centralized logging setup with request ID correlation and JSON formatting.
Pipelines and search services log through module loggers and pass owner and
product context via `extra=`; the formatter lifts those fields into the JSON line.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

from config import settings
from .request_id import get_request_id

# Extra fields copied into JSON output when present on a record
CONTEXT_FIELDS = (
    "owner_id",
    "product_id",
    "user_id",
    "url",
    "space",
    "error_type",
)


class RequestIDFilter(logging.Filter):
    """Add request_id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = str(value)

        return json.dumps(log_data)


def configure_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """Configure application-wide logging.

    Args:
        level: Log level (default: LOG_LEVEL setting)
        json_format: JSON lines if True, plain text otherwise (default: LOG_JSON setting)
    """
    level = (level or settings.LOG_LEVEL).upper()
    json_format = settings.LOG_JSON if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level))

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(request_id)s - %(name)s.%(funcName)s - %(message)s'
        )

    handler.setFormatter(formatter)
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sentence_transformers").setLevel(logging.WARNING)
