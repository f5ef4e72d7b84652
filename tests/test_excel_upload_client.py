"""
Unit Tests for the excel upload API client

Runs the client against httpx.MockTransport:
- response parsing and positional batch mapping
- multipart upload fields
- 206 partial results returned, not raised
- non-2xx and network failures raised as ExcelUploadAPIError

Run with: pytest tests/test_excel_upload_client.py -v
"""

import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from excel_upload.clients.excel_upload_client import ExcelUploadClient, ExcelUploadAPIError
from excel_upload.config import Settings
from excel_upload.models.enums import SpreadsheetMediaType
from excel_upload.models.schemas import SelectedFile, UploadRequest

BASE_URL = "http://backend.test/api/excel-upload"


def make_client(handler, **kwargs) -> ExcelUploadClient:
    return ExcelUploadClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


def upload_request() -> UploadRequest:
    return UploadRequest(
        batch_no="B001",
        branch_code="001",
        source_code="MAN",
        exch_rate=Decimal("1.5"),
        entry_date=date(2025, 1, 14),
    )


def xlsx() -> SelectedFile:
    return SelectedFile("batch.xlsx", b"workbook-bytes", SpreadsheetMediaType.xlsx.value)


class TestReferenceData:
    """Test reference data endpoints."""

    @pytest.mark.asyncio
    async def test_get_branches(self):
        """Test branches parse from branch_code / branch_name."""
        def handler(request):
            assert request.url.path == "/api/excel-upload/branches"
            return httpx.Response(200, json=[{"branch_code": "001", "branch_name": "Main"}])

        async with make_client(handler) as client:
            branches = await client.get_branches()

        assert branches[0].code == "001"
        assert branches[0].name == "Main"

    @pytest.mark.asyncio
    async def test_get_source_codes(self):
        """Test source codes parse."""
        def handler(request):
            return httpx.Response(200, json=[{"source_code": "MAN"}, {"source_code": "AUTO"}])

        async with make_client(handler) as client:
            codes = await client.get_source_codes()

        assert [c.code for c in codes] == ["MAN", "AUTO"]

    @pytest.mark.asyncio
    async def test_get_batches_positional(self):
        """Test positional [batchNo, recordCount] records map to named entries."""
        def handler(request):
            return httpx.Response(200, json=[["B001", 10], ["B002", 3]])

        async with make_client(handler) as client:
            batches = await client.get_batches()

        assert [(b.batch_no, b.record_count) for b in batches] == [("B001", 10), ("B002", 3)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("record", [["B001"], {"batchNo": "B001", "count": 3}, "B001"])
    async def test_get_batches_malformed_record(self, record):
        """Test short or non-positional records are reported as API errors."""
        def handler(request):
            return httpx.Response(200, json=[record])

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError):
                await client.get_batches()

    @pytest.mark.asyncio
    async def test_get_working_day(self):
        """Test the working day is parsed as a date."""
        def handler(request):
            assert request.url.path == "/api/excel-upload/working-day/001"
            return httpx.Response(200, json={"workingDay": "2025-01-14", "branchCode": "001"})

        async with make_client(handler) as client:
            working_day = await client.get_working_day("001")

        assert working_day == date(2025, 1, 14)

    @pytest.mark.asyncio
    async def test_unparseable_working_day(self):
        """Test an invalid date is reported as an API error."""
        def handler(request):
            return httpx.Response(200, json={"workingDay": "not-a-date"})

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError):
                await client.get_working_day("001")


class TestBatches:
    """Test batch existence and deletion."""

    @pytest.mark.asyncio
    async def test_batch_exists(self):
        """Test the exists flag is returned."""
        def handler(request):
            assert request.url.path == "/api/excel-upload/batch/B001/exists"
            return httpx.Response(200, json={"exists": True, "batchNo": "B001"})

        async with make_client(handler) as client:
            assert await client.batch_exists("B001") is True

    @pytest.mark.asyncio
    async def test_delete_batch(self):
        """Test DELETE returns the backend's success flag and message."""
        def handler(request):
            assert request.method == "DELETE"
            assert request.url.path == "/api/excel-upload/batch/B1"
            return httpx.Response(200, json={"success": True, "message": "Deleted"})

        async with make_client(handler) as client:
            response = await client.delete_batch("B1")

        assert response.success
        assert response.message == "Deleted"

    @pytest.mark.asyncio
    async def test_delete_missing_batch(self):
        """Test a 200 with success=false is returned, not raised."""
        def handler(request):
            return httpx.Response(200, json={"success": False, "message": "Batch B9 does not exist"})

        async with make_client(handler) as client:
            response = await client.delete_batch("B9")

        assert not response.success


class TestUpload:
    """Test the multipart upload."""

    @pytest.mark.asyncio
    async def test_upload_sends_multipart_fields(self):
        """Test the file and the five fields are sent as multipart."""
        seen = {}

        def handler(request):
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200, json={
                "success": True,
                "message": "Upload completed successfully",
                "batchNo": "B001",
                "totalRows": 2,
                "successCount": 2,
                "errorCount": 0,
                "errors": [],
            })

        async with make_client(handler) as client:
            result = await client.upload(upload_request(), xlsx())

        assert result.success
        assert result.success_count == 2
        assert seen["content_type"].startswith("multipart/form-data")
        body = seen["body"]
        assert b'name="batchNo"' in body
        assert b'name="exchRate"\r\n\r\n1.5' in body
        assert b'name="entryDate"\r\n\r\n2025-01-14' in body
        assert b'filename="batch.xlsx"' in body
        assert b"workbook-bytes" in body

    @pytest.mark.asyncio
    async def test_partial_content_returned_as_result(self):
        """Test a 206 domain failure is a result, not an exception."""
        def handler(request):
            return httpx.Response(206, json={
                "success": False,
                "message": "Upload completed with errors",
                "batchNo": "B001",
                "totalRows": 2,
                "successCount": 1,
                "errorCount": 1,
                "errors": [{"rowNumber": 3, "errorMessage": "Invalid account"}],
            })

        async with make_client(handler) as client:
            result = await client.upload(upload_request(), xlsx())

        assert not result.success
        assert result.errors[0].row_number == 3

    @pytest.mark.asyncio
    async def test_error_body_kept_on_exception(self):
        """Test a 400 raises with the structured body and its message."""
        error_body = {
            "success": False,
            "message": "File size exceeds maximum allowed size (50MB)",
            "error": "MAX_FILE_SIZE_EXCEEDED",
        }

        def handler(request):
            return httpx.Response(400, json=error_body)

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError) as exc_info:
                await client.upload(upload_request(), xlsx())

        error = exc_info.value
        assert error.status_code == 400
        assert error.body == error_body
        assert error.server_message == "File size exceeds maximum allowed size (50MB)"
        assert not error.is_network_error


class TestFailures:
    """Test failure wrapping."""

    @pytest.mark.asyncio
    async def test_server_error_without_json(self):
        """Test a 500 with an HTML body has no server message."""
        def handler(request):
            return httpx.Response(500, text="<html>Internal Server Error</html>")

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError) as exc_info:
                await client.get_branches()

        assert exc_info.value.status_code == 500
        assert exc_info.value.server_message is None

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test network failures become API errors with no status."""
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError) as exc_info:
                await client.get_branches()

        assert exc_info.value.is_network_error

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test timeouts become API errors."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError) as exc_info:
                await client.batch_exists("B001")

        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test a 200 with a non-JSON body is an API error."""
        def handler(request):
            return httpx.Response(200, text="not json")

        async with make_client(handler) as client:
            with pytest.raises(ExcelUploadAPIError):
                await client.get_source_codes()

    @pytest.mark.asyncio
    async def test_template_download(self):
        """Test the template is returned as raw bytes."""
        def handler(request):
            assert request.url.path == "/api/excel-upload/template"
            return httpx.Response(200, content=b"PK\x03\x04template")

        async with make_client(handler) as client:
            content = await client.download_template()

        assert content == b"PK\x03\x04template"


class TestConfiguration:
    """Test client construction."""

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        """Test the configured token is sent as a bearer header."""
        def handler(request):
            assert request.headers["authorization"] == "Bearer secret-token"
            return httpx.Response(200, json=[])

        async with make_client(handler, auth_token="secret-token") as client:
            assert await client.get_branches() == []

    @pytest.mark.asyncio
    async def test_from_settings(self):
        """Test base URL and token come from settings."""
        settings = Settings(
            _env_file=None,
            API_BASE_URL="http://backend.test/api/excel-upload/",
            API_AUTH_TOKEN="tok",
        )

        def handler(request):
            assert str(request.url) == "http://backend.test/api/excel-upload/source-codes"
            assert request.headers["authorization"] == "Bearer tok"
            return httpx.Response(200, content=json.dumps([]).encode())

        async with ExcelUploadClient.from_settings(settings, transport=httpx.MockTransport(handler)) as client:
            assert client.base_url == "http://backend.test/api/excel-upload"
            assert await client.get_source_codes() == []
