"""
Excel Upload Client - Sentry Integration

Reports failed backend calls (upload, delete) to Sentry.

Only faults are reported: a 4xx answer is the backend rejecting the
user's input and never becomes an event. Authorization headers and
multipart bodies (the uploaded spreadsheet) are stripped before sending.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from excel_upload import __version__
from excel_upload.clients.excel_upload_client import ExcelUploadAPIError
from excel_upload.models.enums import Operation

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = ("authorization", "token", "cookie", "secret", "password")

_sentry_initialized = False


def init_sentry(dsn: str = "", environment: str = "development", sample_rate: float = 1.0) -> bool:
    """
    Start error tracking if a DSN is configured.

    Returns True if Sentry was initialized.
    """
    global _sentry_initialized

    if not dsn:
        logger.info("Sentry DSN not configured. Error tracking disabled.")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=f"excel-upload-client@{__version__}",
            sample_rate=sample_rate,
            integrations=[
                HttpxIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=None),
            ],
            send_default_pii=False,
            before_send=filter_event,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    _sentry_initialized = True
    logger.info(f"Sentry initialized for environment: {environment}")
    return True


def _redact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: "[REDACTED]" if any(s in key.lower() for s in _SENSITIVE_KEYS) else value
        for key, value in values.items()
    }


def filter_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """before_send hook: drop client errors, strip credentials and file content."""
    exc_info = hint.get("exc_info")
    if exc_info:
        error = exc_info[1]
        if isinstance(error, ExcelUploadAPIError) and error.status_code and 400 <= error.status_code < 500:
            return None

    request = event.get("request")
    if isinstance(request, dict):
        if isinstance(request.get("headers"), dict):
            request["headers"] = _redact(request["headers"])
        if "data" in request:
            request["data"] = "[FILTERED]"

    if isinstance(event.get("extra"), dict):
        event["extra"] = _redact(event["extra"])

    return event


def capture_api_error(
    error: ExcelUploadAPIError,
    operation: Operation,
    batch_no: Optional[str] = None
) -> Optional[str]:
    """
    Report a failed backend call, tagged with the operation and batch.

    No-op (returns None) when Sentry is not initialized.
    """
    if not _sentry_initialized:
        return None

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("operation", operation.value)
            scope.set_tag("network_error", error.is_network_error)
            if batch_no:
                scope.set_tag("batch_no", batch_no)
            if error.status_code is not None:
                scope.set_extra("status_code", error.status_code)
            if error.server_message:
                scope.set_extra("server_message", error.server_message)
            return sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.error(f"Failed to capture exception to Sentry: {e}")
        return None


def tag_batch(batch_no: str):
    """Tag every later event of this process with the batch number."""
    if _sentry_initialized:
        sentry_sdk.set_tag("batch_no", batch_no)
