"""
Unit Tests for the wire models

Covers the mapping between backend payloads and python models:
- camelCase aliases on UploadResult / RowError
- positional batch summary records
- multipart field serialization of UploadRequest

Run with: pytest tests/test_models.py -v
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from excel_upload.models.enums import SpreadsheetMediaType
from excel_upload.models.schemas import (
    BatchSummaryEntry,
    BranchOption,
    SelectedFile,
    UploadRequest,
    UploadResult,
)


class TestUploadResult:
    """Test parsing of upload result payloads."""

    def test_parse_partial_result(self):
        """Test a 206 body with row errors."""
        result = UploadResult.model_validate({
            "success": False,
            "message": "Upload completed with errors",
            "batchNo": "B001",
            "totalRows": 10,
            "successCount": 7,
            "errorCount": 2,
            "processingTimeMs": 842,
            "errors": [
                {"rowNumber": 3, "errorMessage": "Invalid account", "amount": 100, "errorCode": "INVALID_ACCOUNT"},
                {"rowNumber": 5, "errorMessage": "Missing currency", "severity": "ERROR"},
            ],
        })

        assert result.batch_no == "B001"
        assert result.error_count == 2
        assert result.errors[0].row_number == 3
        assert result.errors[0].amount == Decimal("100")
        assert result.errors[0].error_code == "INVALID_ACCOUNT"
        assert result.errors[1].severity == "ERROR"
        assert result.processing_time_ms == 842
        assert result.has_errors

    def test_skipped_rows_are_derived(self):
        """Test rows neither imported nor rejected are reported as skipped."""
        result = UploadResult(total_rows=10, success_count=7, error_count=2)
        assert result.skipped_count == 1

    def test_skipped_count_never_negative(self):
        """Test inconsistent counts do not produce a negative skip count."""
        result = UploadResult(total_rows=1, success_count=2, error_count=2)
        assert result.skipped_count == 0

    def test_error_body_with_only_message(self):
        """Test a 400 error body can still be held as a result."""
        result = UploadResult.model_validate({
            "success": False,
            "message": "File size exceeds maximum allowed size (50MB)",
            "error": "MAX_FILE_SIZE_EXCEEDED",
        })

        assert result.error_code == "MAX_FILE_SIZE_EXCEEDED"
        assert result.errors == []
        assert result.batch_no == ""

    def test_negative_counts_rejected(self):
        """Test counts must be non-negative."""
        with pytest.raises(ValidationError):
            UploadResult(total_rows=-1)


class TestBatchSummaryEntry:
    """Test mapping of positional batch records."""

    def test_from_record(self):
        """Test [batchNo, recordCount] maps into named fields."""
        entry = BatchSummaryEntry.from_record(["B001", 42])
        assert entry.batch_no == "B001"
        assert entry.record_count == 42

    def test_from_record_null_count(self):
        """Test a null count maps to zero."""
        assert BatchSummaryEntry.from_record(["B001", None]).record_count == 0

    def test_from_short_record(self):
        """Test a record with a missing element is rejected."""
        with pytest.raises(ValueError):
            BatchSummaryEntry.from_record(["B001"])

    def test_from_mapping_record(self):
        """Test a keyed record is rejected rather than indexed."""
        with pytest.raises(TypeError):
            BatchSummaryEntry.from_record({"batchNo": "B001", "count": 3})


class TestReferenceData:
    """Test reference data aliases."""

    def test_branch_from_backend_keys(self):
        """Test branch_code / branch_name map onto code / name."""
        branch = BranchOption.model_validate({"branch_code": "001", "branch_name": "Main"})
        assert branch.code == "001"
        assert branch.name == "Main"


class TestUploadRequest:
    """Test the multipart fields sent with an upload."""

    def test_form_fields(self):
        """Test exchRate is a plain decimal string and entryDate is ISO."""
        request = UploadRequest(
            batch_no="B001",
            branch_code="001",
            source_code="MAN",
            exch_rate=Decimal("24500.5"),
            entry_date=date(2025, 1, 14),
        )

        assert request.to_form_fields() == {
            "batchNo": "B001",
            "branchCode": "001",
            "sourceCode": "MAN",
            "exchRate": "24500.5",
            "entryDate": "2025-01-14",
        }

    def test_small_rate_not_in_exponent_form(self):
        """Test the minimum rate is sent without scientific notation."""
        request = UploadRequest(
            batch_no="B001",
            branch_code="001",
            source_code="MAN",
            exch_rate=Decimal("0.000001"),
            entry_date=date(2025, 1, 14),
        )
        assert request.to_form_fields()["exchRate"] == "0.000001"

    def test_batch_no_too_long(self):
        """Test batch numbers over 20 characters are rejected."""
        with pytest.raises(ValidationError):
            UploadRequest(
                batch_no="B" * 21,
                branch_code="001",
                source_code="MAN",
                exch_rate=Decimal("1"),
                entry_date=date(2025, 1, 14),
            )


class TestSelectedFile:
    """Test media type detection of the selected file."""

    @pytest.mark.parametrize("media_type", [t.value for t in SpreadsheetMediaType])
    def test_spreadsheet_types(self, media_type):
        """Test .xlsx and .xls media types are accepted."""
        assert SelectedFile("a", b"x", media_type).is_spreadsheet

    def test_other_type(self):
        """Test other media types are not spreadsheets."""
        file = SelectedFile("a.csv", b"a,b", "text/csv")
        assert not file.is_spreadsheet
        assert file.size == 3
