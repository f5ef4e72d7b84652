"""
Upload Executor

Sends the selected spreadsheet plus batch metadata to the backend and
reconciles the (possibly partial) result.

Flow for one submit attempt:
1. Gate: refuse while another upload is in flight
2. Preconditions: a file is selected and the form is valid (no I/O otherwise)
3. Preflight: batch existence check, which fails open
4. POST /upload
5. Reconcile:
   - success=true  -> success notification, batch list reload
   - success=false -> warning notification, row errors kept for export
   - transport error -> error notification, structured error body kept as result

Nothing is retried automatically; a retry is a new user submit.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from excel_upload.clients.excel_upload_client import ExcelUploadClient, ExcelUploadAPIError
from excel_upload.logging_config import set_batch_context, clear_batch_context
from excel_upload.models.enums import ErrorCategory, Operation
from excel_upload.models.schemas import SelectedFile, UploadRequest, UploadResult
from excel_upload.sentry_integration import capture_api_error
from excel_upload.services.form_state import UploadFormState
from excel_upload.services.notifications import NotificationChannel
from excel_upload.services.preflight import PreflightChecker

logger = logging.getLogger(__name__)


DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

MSG_INVALID_FILE_TYPE = "Please select a valid Excel file (.xlsx or .xls)"
MSG_PRECONDITION = "Please select a file and fill all required fields"
MSG_IN_PROGRESS = "An upload is already in progress"
MSG_UPLOAD_FAILED = "Upload failed. Please try again."
MSG_UPLOAD_FINISHED_WITH_ERRORS = "Upload finished with errors"


@dataclass
class UploadOutcome:
    """How a submit attempt ended."""
    category: Optional[ErrorCategory] = None
    result: Optional[UploadResult] = None

    @property
    def ok(self) -> bool:
        return self.category is None


class UploadExecutor:
    """
    Owns the pending file selection, the in-flight flag and the last result.

    `uploading`, `selected_file` and `upload_result` are read-only from
    outside; only this class changes them.
    """

    def __init__(
        self,
        client: ExcelUploadClient,
        form: UploadFormState,
        preflight: PreflightChecker,
        notifications: NotificationChannel,
        on_batch_created: Callable[[], Awaitable[None]],
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    ):
        self.client = client
        self.form = form
        self.preflight = preflight
        self.notifications = notifications
        self.on_batch_created = on_batch_created
        self.max_upload_bytes = max_upload_bytes

        self._selected_file: Optional[SelectedFile] = None
        self._uploading = False
        self._upload_result: Optional[UploadResult] = None

    # ==================== STATE ====================

    @property
    def selected_file(self) -> Optional[SelectedFile]:
        return self._selected_file

    @property
    def uploading(self) -> bool:
        return self._uploading

    @property
    def upload_result(self) -> Optional[UploadResult]:
        return self._upload_result

    def clear_result(self):
        self._upload_result = None

    def clear_selection(self):
        self._selected_file = None

    # ==================== FILE SELECTION ====================

    def on_file_selected(self, file: Optional[SelectedFile]) -> bool:
        """
        Accept an .xlsx/.xls payload as the pending upload.

        A rejected file clears the pending selection but leaves any
        displayed result in place. Returns True if the file was accepted.
        """
        if file is None:
            return False

        if not file.is_spreadsheet:
            logger.info(f"Rejected file {file.filename} with media type {file.content_type}")
            self._selected_file = None
            self.notifications.error(MSG_INVALID_FILE_TYPE, Operation.select_file)
            return False

        if file.size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            logger.info(f"Rejected file {file.filename}: {file.size} bytes exceeds {self.max_upload_bytes}")
            self._selected_file = None
            self.notifications.error(
                f"File size exceeds maximum allowed size ({limit_mb}MB)",
                Operation.select_file
            )
            return False

        self._selected_file = file
        self._upload_result = None
        logger.debug(f"Selected file {file.filename} ({file.size} bytes)")
        return True

    # ==================== UPLOAD ====================

    async def upload_file(self) -> UploadOutcome:
        """Run one submit attempt: preconditions, preflight, upload, reconcile."""
        if self._uploading:
            self.notifications.error(MSG_IN_PROGRESS, Operation.upload)
            return UploadOutcome(category=ErrorCategory.validation)

        file = self._selected_file
        if file is None or not self.form.is_valid:
            self.notifications.error(MSG_PRECONDITION, Operation.upload)
            return UploadOutcome(category=ErrorCategory.validation)

        request = self.form.build_request()
        set_batch_context(request.batch_no, Operation.upload.value)
        self._uploading = True
        try:
            if await self.preflight.check_batch_exists(request.batch_no):
                logger.info(f"Batch {request.batch_no} already exists, upload aborted")
                self.notifications.error(
                    f"Batch {request.batch_no} already exists in the system",
                    Operation.upload
                )
                return UploadOutcome(category=ErrorCategory.conflict)

            return await self._perform_upload(request, file)
        finally:
            self._uploading = False
            clear_batch_context()

    async def _perform_upload(self, request: UploadRequest, file: SelectedFile) -> UploadOutcome:
        self._upload_result = None

        logger.info(
            f"Uploading {file.filename} as batch {request.batch_no}",
            extra={
                "branch_code": request.branch_code,
                "source_code": request.source_code,
                "file_size": file.size,
            }
        )

        try:
            result = await self.client.upload(request, file)
        except ExcelUploadAPIError as e:
            return self._handle_transport_failure(request, e)

        self._upload_result = result
        self._uploading = False

        logger.info(
            f"Upload of batch {result.batch_no or request.batch_no} finished: "
            f"success={result.success} total={result.total_rows} "
            f"ok={result.success_count} errors={result.error_count} skipped={result.skipped_count}"
        )

        if result.success:
            self.notifications.success(result.message, Operation.upload)
            await self.on_batch_created()
            return UploadOutcome(result=result)

        self.notifications.warning(result.message or MSG_UPLOAD_FINISHED_WITH_ERRORS, Operation.upload)
        return UploadOutcome(category=ErrorCategory.domain, result=result)

    def _handle_transport_failure(self, request: UploadRequest, error: ExcelUploadAPIError) -> UploadOutcome:
        self._uploading = False

        logger.error(
            f"Upload of batch {request.batch_no} failed: {error}",
            extra={"status_code": error.status_code}
        )
        capture_api_error(error, Operation.upload, request.batch_no)

        message = error.server_message
        if not message:
            self.notifications.error(MSG_UPLOAD_FAILED, Operation.upload)
            return UploadOutcome(category=ErrorCategory.transport)

        try:
            result = UploadResult.model_validate(error.body)
        except ValidationError:
            logger.warning("Upload error body is not a valid result, keeping message only")
            result = UploadResult(success=False, message=message)
        if not result.batch_no:
            result.batch_no = request.batch_no

        self._upload_result = result
        self.notifications.error(message, Operation.upload)
        return UploadOutcome(category=ErrorCategory.transport, result=result)
