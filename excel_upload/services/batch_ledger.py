"""
Batch Ledger View

Cached list of uploaded batches plus the actions derived from it:
- load_batch_summary: full reload of GET /batches (never patched in place)
- on_branch_change:   working-day lookup that sets the form's entry date
- delete_batch:       confirmed DELETE of the batch in the form
- export_error_report: CSV of the current result's row errors
- download_template:  save the backend's upload template locally

Lookups that only feed defaults (batch list, working day) log their
failures and leave the previous state alone.
"""

import inspect
import logging
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from excel_upload.clients.excel_upload_client import ExcelUploadClient, ExcelUploadAPIError
from excel_upload.models.enums import Operation
from excel_upload.models.schemas import BatchSummaryEntry, UploadResult
from excel_upload.sentry_integration import capture_api_error
from excel_upload.services.error_report import build_error_report_csv, error_report_filename
from excel_upload.services.form_state import UploadFormState
from excel_upload.services.notifications import NotificationChannel

logger = logging.getLogger(__name__)


TEMPLATE_FILENAME = "upload_template.xlsx"

MSG_BATCH_NO_REQUIRED = "Please enter a batch number"
MSG_DELETE_FAILED = "Failed to delete batch"
MSG_NO_ERRORS = "No errors to export"
MSG_TEMPLATE_FAILED = "Failed to download template"

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]


class BatchLedgerView:
    """Batch list cache and batch-level actions."""

    def __init__(
        self,
        client: ExcelUploadClient,
        form: UploadFormState,
        notifications: NotificationChannel,
        get_result: Callable[[], Optional[UploadResult]],
        clear_result: Callable[[], None],
        export_dir: Union[str, Path] = "exports"
    ):
        self.client = client
        self.form = form
        self.notifications = notifications
        self.get_result = get_result
        self.clear_result = clear_result
        self.export_dir = Path(export_dir)

        self._batches: List[BatchSummaryEntry] = []

    @property
    def batches(self) -> List[BatchSummaryEntry]:
        return list(self._batches)

    # ==================== BATCH LIST ====================

    async def load_batch_summary(self) -> List[BatchSummaryEntry]:
        """
        Replace the cached batch list with the backend's.

        Concurrent reloads are last-writer-wins.
        """
        try:
            batches = await self.client.get_batches()
        except ExcelUploadAPIError as e:
            logger.error(f"Error loading batch summary: {e}")
            return self.batches

        self._batches = batches
        logger.debug(f"Loaded {len(batches)} batches")
        return self.batches

    # ==================== WORKING DAY ====================

    async def on_branch_change(self, branch_code: Optional[str]) -> Optional[date]:
        """Set the form's entry date to the branch's working day, if it can be fetched."""
        if not branch_code:
            return None

        try:
            working_day = await self.client.get_working_day(branch_code)
        except ExcelUploadAPIError as e:
            logger.error(f"Error loading working day for branch {branch_code}: {e}")
            return None

        self.form.patch(entry_date=working_day)
        logger.debug(f"Entry date set to {working_day} for branch {branch_code}")
        return working_day

    # ==================== DELETE ====================

    async def delete_batch(self, confirm: ConfirmCallback) -> bool:
        """
        Delete the batch named in the form after the user confirms.

        Returns True only when the backend reports the batch deleted.
        """
        batch_no = self.form.get_value("batch_no")
        if not batch_no or not str(batch_no).strip():
            self.notifications.error(MSG_BATCH_NO_REQUIRED, Operation.delete_batch)
            return False
        batch_no = str(batch_no).strip()

        answer = confirm(f"Are you sure you want to delete batch {batch_no}?")
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            logger.info(f"Delete of batch {batch_no} cancelled by user")
            return False

        try:
            response = await self.client.delete_batch(batch_no)
        except ExcelUploadAPIError as e:
            logger.error(f"Delete error for batch {batch_no}: {e}")
            capture_api_error(e, Operation.delete_batch, batch_no)
            self.notifications.error(e.server_message or MSG_DELETE_FAILED, Operation.delete_batch)
            return False

        if not response.success:
            self.notifications.error(response.message or MSG_DELETE_FAILED, Operation.delete_batch)
            return False

        logger.info(f"Batch {batch_no} deleted")
        self.notifications.success(response.message, Operation.delete_batch)
        self.clear_result()
        await self.load_batch_summary()
        return True

    # ==================== EXPORTS ====================

    def export_error_report(self) -> Optional[Path]:
        """Write the current result's row errors to batch_{batchNo}_errors.csv."""
        result = self.get_result()
        if result is None or not result.errors:
            self.notifications.error(MSG_NO_ERRORS, Operation.export_errors)
            return None

        content = build_error_report_csv(result.errors)
        path = self.export_dir / error_report_filename(result)
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write error report {path}: {e}")
            self.notifications.error(f"Failed to save error report: {e}", Operation.export_errors)
            return None

        logger.info(f"Exported {len(result.errors)} row errors to {path}")
        return path

    async def download_template(self) -> Optional[Path]:
        """Fetch the upload template and save it as upload_template.xlsx."""
        try:
            content = await self.client.download_template()
        except ExcelUploadAPIError as e:
            logger.error(f"Download error: {e}")
            self.notifications.error(MSG_TEMPLATE_FAILED, Operation.download_template)
            return None

        path = self.export_dir / TEMPLATE_FILENAME
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.error(f"Failed to save template {path}: {e}")
            self.notifications.error(MSG_TEMPLATE_FAILED, Operation.download_template)
            return None

        logger.info(f"Saved upload template to {path}")
        return path
