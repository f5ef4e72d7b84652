"""
Excel Upload Client - Structured JSON Logging

One JSON object per line on stderr (stdout belongs to the console
output). Every line carries the batch being worked on, when there is
one, so an upload can be followed across preflight, upload and reload.
"""

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_CONTEXT_ATTRS = ("batch_no", "operation")


class JSONFormatter(logging.Formatter):
    """Formats records as JSON; `extra=` fields are kept under "extra"."""

    def __init__(self, service_name: str = "excel-upload-client"):
        super().__init__()
        self.service_name = service_name
        self.environment = os.environ.get("ENVIRONMENT", "development")

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in _CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value is not None:
                log_data[attr] = value

        if record.exc_info and record.exc_info[0]:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in _CONTEXT_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class BatchContextFilter(logging.Filter):
    """Stamps batch_no / operation onto records that do not set their own."""

    def __init__(self):
        super().__init__()
        self.batch_no: Optional[str] = None
        self.operation: Optional[str] = None

    def set_batch_context(self, batch_no: Optional[str] = None, operation: Optional[str] = None):
        self.batch_no = batch_no
        self.operation = operation

    def clear_batch_context(self):
        self.set_batch_context(None, None)

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "batch_no", None) is None:
            record.batch_no = self.batch_no
        if getattr(record, "operation", None) is None:
            record.operation = self.operation
        return True


# Shared by every handler installed through setup_logging
_batch_context = BatchContextFilter()


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "excel-upload-client"
) -> logging.Logger:
    """
    Replace the root handlers with one stderr handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, plain text otherwise
        service_name: "service" field of JSON lines

    Returns:
        The root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(batch_no)s] %(message)s"
        ))
    handler.addFilter(_batch_context)
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def set_batch_context(batch_no: Optional[str] = None, operation: Optional[str] = None):
    """Set the batch stamped onto log lines until cleared."""
    _batch_context.set_batch_context(batch_no, operation)


def clear_batch_context():
    _batch_context.clear_batch_context()
