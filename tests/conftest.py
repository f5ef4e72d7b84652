"""
Shared fixtures for the excel upload client tests.

The backend client is an AsyncMock preloaded with a small, consistent
set of reference data; individual tests override return values or
side effects as needed.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from excel_upload.models.enums import SpreadsheetMediaType
from excel_upload.models.schemas import (
    BranchOption,
    SourceCodeOption,
    BatchSummaryEntry,
    SelectedFile,
)
from excel_upload.services.upload_orchestrator import UploadOrchestrator

TODAY = date(2025, 1, 15)
WORKING_DAY = date(2025, 1, 14)


@pytest.fixture
def mock_client():
    """Backend client double with default reference data."""
    client = AsyncMock()
    client.get_branches.return_value = [
        BranchOption(code="001", name="Main"),
        BranchOption(code="002", name="Harbour"),
    ]
    client.get_source_codes.return_value = [
        SourceCodeOption(code="MAN"),
        SourceCodeOption(code="AUTO"),
    ]
    client.get_batches.return_value = [BatchSummaryEntry(batch_no="B000", record_count=5)]
    client.get_working_day.return_value = WORKING_DAY
    client.batch_exists.return_value = False
    return client


@pytest.fixture
def orchestrator(mock_client, tmp_path):
    """Orchestrator wired to the mock client, exporting into a temp dir."""
    return UploadOrchestrator(
        client=mock_client,
        export_dir=tmp_path,
        today=lambda: TODAY,
    )


@pytest.fixture
def xlsx_file():
    """A small spreadsheet payload with the .xlsx media type."""
    return SelectedFile(
        filename="batch.xlsx",
        content=b"PK\x03\x04 fake workbook",
        content_type=SpreadsheetMediaType.xlsx.value,
    )


@pytest.fixture
def ready_orchestrator(orchestrator, xlsx_file):
    """Orchestrator with a valid form and a selected file."""
    orchestrator.form.patch(batch_no="B001", branch_code="001", source_code="MAN")
    orchestrator.on_file_selected(xlsx_file)
    return orchestrator
