"""
Upload Workflow Services Module
"""

from .notifications import Notification, NotificationChannel
from .form_state import UploadFormState, FieldStatus
from .preflight import PreflightChecker
from .upload_executor import UploadExecutor, UploadOutcome
from .batch_ledger import BatchLedgerView
from .upload_orchestrator import UploadOrchestrator

__all__ = [
    "Notification",
    "NotificationChannel",
    "UploadFormState",
    "FieldStatus",
    "PreflightChecker",
    "UploadExecutor",
    "UploadOutcome",
    "BatchLedgerView",
    "UploadOrchestrator",
]
