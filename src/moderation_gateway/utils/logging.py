"""
Structured logging for the Moderation Gateway.

Log lines are JSON objects by default. The request ID is injected from the
request context, and anything passed through ``extra=`` becomes a top-level
key (pipeline_state, chunk_count, status_code, ...).
"""

import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from moderation_gateway.utils.request_context import get_request_id

if TYPE_CHECKING:
    from moderation_gateway.config import Settings

# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

STANDARD_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a record as JSON.

        Values that are not JSON-serializable are rendered with str().

        Args:
            record: The log record to format

        Returns:
            JSON-encoded log line
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        return json.dumps(log_data, default=str)


def setup_logging(settings: "Settings") -> None:
    """
    Configure the root logger from settings.

    Replaces any existing root handlers with a single stdout handler using
    either the JSON or the standard text format.

    Args:
        settings: Application settings (log_level, log_format)
    """
    level = logging.getLevelName(settings.log_level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(STANDARD_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    root.info(
        "Logging configured",
        extra={
            "log_level": settings.log_level,
            "log_format": settings.log_format,
            "environment": settings.environment,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (typically __name__)."""
    return logging.getLogger(name)
