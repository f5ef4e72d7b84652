"""
Upload Orchestrator

Composes the form state, preflight check, upload executor and batch
ledger into the batch upload workflow, and owns the reference data
(branches, source codes) that populates the form.

Initialisation is staged so each step can be driven and tested alone:
1. load_reference_data()     branches, source codes and batch list, concurrently
2. apply_default_selection() first branch / first source code into the form
3. on_branch_change(first)   working-day lookup for the selected branch
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Union

from excel_upload.clients.excel_upload_client import ExcelUploadClient, ExcelUploadAPIError
from excel_upload.models.enums import Operation
from excel_upload.models.schemas import (
    BranchOption,
    SourceCodeOption,
    BatchSummaryEntry,
    SelectedFile,
    UploadResult,
)
from excel_upload.services.batch_ledger import BatchLedgerView, ConfirmCallback
from excel_upload.services.form_state import UploadFormState, FieldStatus
from excel_upload.services.notifications import NotificationChannel
from excel_upload.services.preflight import PreflightChecker
from excel_upload.services.upload_executor import (
    UploadExecutor,
    UploadOutcome,
    DEFAULT_MAX_UPLOAD_BYTES,
)

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Client-side state machine for submitting and managing upload batches.

    All network calls go through `client`; every user-visible outcome is
    emitted on `notifications`.
    """

    def __init__(
        self,
        client: ExcelUploadClient,
        notifications: Optional[NotificationChannel] = None,
        export_dir: Union[str, Path] = "exports",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        today: Callable[[], date] = date.today
    ):
        self.client = client
        self.notifications = notifications or NotificationChannel()
        self.form = UploadFormState(today=today)
        self.preflight = PreflightChecker(client)

        self.branches: List[BranchOption] = []
        self.source_codes: List[SourceCodeOption] = []

        self.executor = UploadExecutor(
            client=client,
            form=self.form,
            preflight=self.preflight,
            notifications=self.notifications,
            on_batch_created=self.load_batch_summary,
            max_upload_bytes=max_upload_bytes,
        )
        self.ledger = BatchLedgerView(
            client=client,
            form=self.form,
            notifications=self.notifications,
            get_result=lambda: self.executor.upload_result,
            clear_result=self.executor.clear_result,
            export_dir=export_dir,
        )

    @classmethod
    def from_settings(cls, settings, client: Optional[ExcelUploadClient] = None, **kwargs) -> "UploadOrchestrator":
        return cls(
            client=client or ExcelUploadClient.from_settings(settings),
            export_dir=settings.EXPORT_DIR,
            max_upload_bytes=settings.upload_max_size_bytes,
            **kwargs,
        )

    # ==================== OBSERVABLE STATE ====================

    @property
    def selected_file(self) -> Optional[SelectedFile]:
        return self.executor.selected_file

    @property
    def uploading(self) -> bool:
        return self.executor.uploading

    @property
    def upload_result(self) -> Optional[UploadResult]:
        return self.executor.upload_result

    @property
    def batches(self) -> List[BatchSummaryEntry]:
        return self.ledger.batches

    def get_form_control(self, name: str) -> FieldStatus:
        return self.form.field_status(name)

    def has_error(self, name: str, error_key: str) -> bool:
        return self.form.has_error(name, error_key)

    # ==================== INITIALISATION ====================

    async def initialize(self):
        """Load reference data, pick the defaults, then look up the working day."""
        await self.load_reference_data()
        branch_code = self.apply_default_selection()
        if branch_code:
            await self.on_branch_change(branch_code)

    async def load_reference_data(self):
        """Each load has its own error handling, so one failure never blocks the others."""
        await asyncio.gather(
            self.load_branches(),
            self.load_source_codes(),
            self.load_batch_summary(),
        )

    async def load_branches(self) -> List[BranchOption]:
        try:
            self.branches = await self.client.get_branches()
            self.form.known_branch_codes = {branch.code for branch in self.branches}
        except ExcelUploadAPIError as e:
            logger.error(f"Error loading branches: {e}")
            self.branches = []
            self.form.known_branch_codes = None
            self.notifications.error("Failed to load branches", Operation.load_branches)
        return self.branches

    async def load_source_codes(self) -> List[SourceCodeOption]:
        try:
            self.source_codes = await self.client.get_source_codes()
        except ExcelUploadAPIError as e:
            logger.error(f"Error loading source codes: {e}")
            self.source_codes = []
            self.notifications.error("Failed to load source codes", Operation.load_source_codes)
        return self.source_codes

    def apply_default_selection(self) -> Optional[str]:
        """
        Patch the first branch and first source code into the form.

        Returns the selected branch code, so the caller can run the
        dependent working-day lookup.
        """
        defaults = {}
        if self.source_codes:
            defaults["source_code"] = self.source_codes[0].code
        if self.branches:
            defaults["branch_code"] = self.branches[0].code
        if defaults:
            self.form.patch(**defaults)
        return defaults.get("branch_code")

    # ==================== BRANCH / BATCHES ====================

    async def on_branch_change(self, branch_code: Optional[str]) -> Optional[date]:
        return await self.ledger.on_branch_change(branch_code)

    async def select_branch(self, branch_code: str) -> Optional[date]:
        """A user pick from the branch selector."""
        self.form.set_value("branch_code", branch_code)
        return await self.on_branch_change(branch_code)

    async def load_batch_summary(self) -> List[BatchSummaryEntry]:
        return await self.ledger.load_batch_summary()

    async def delete_batch(self, confirm: ConfirmCallback) -> bool:
        return await self.ledger.delete_batch(confirm)

    def export_error_report(self) -> Optional[Path]:
        return self.ledger.export_error_report()

    async def download_template(self) -> Optional[Path]:
        return await self.ledger.download_template()

    # ==================== UPLOAD ====================

    def on_file_selected(self, file: Optional[SelectedFile]) -> bool:
        return self.executor.on_file_selected(file)

    async def upload_file(self) -> UploadOutcome:
        return await self.executor.upload_file()

    def clear_form(self):
        """Reset the form to its defaults and drop the selection and the result."""
        self.form.reset()
        self.executor.clear_selection()
        self.executor.clear_result()
