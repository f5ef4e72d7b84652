"""
Excel Upload API Client

Thin async client for the backend excel upload REST API (/api/excel-upload).

Contract:
- GET    /branches                  -> [{branch_code, branch_name}]
- GET    /source-codes              -> [{source_code}]
- GET    /batches                   -> [[batchNo, recordCount], ...]
- GET    /working-day/{branchCode}  -> {workingDay, branchCode}
- GET    /batch/{batchNo}/exists    -> {exists, batchNo}
- POST   /upload (multipart)        -> UploadResult
- DELETE /batch/{batchNo}           -> {success, message}
- GET    /template                  -> xlsx bytes

Every non-2xx response and every transport failure is raised as
ExcelUploadAPIError. Nothing is retried here.
"""

import logging
from datetime import date
from typing import Optional, Dict, Any, List, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from excel_upload.models.schemas import (
    BranchOption,
    SourceCodeOption,
    BatchSummaryEntry,
    WorkingDayResponse,
    BatchExistsResponse,
    DeleteBatchResponse,
    UploadRequest,
    UploadResult,
    SelectedFile,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ExcelUploadAPIError(Exception):
    """
    Raised when a call to the upload backend fails.

    status_code is None for network-level failures (timeout, refused
    connection). body holds the decoded JSON error body when the server
    sent one.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    @property
    def server_message(self) -> Optional[str]:
        """The `message` of a structured error body, if any."""
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if isinstance(message, str) and message:
                return message
        return None

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None


class ExcelUploadClient:
    """
    Client for the excel upload backend.

    One httpx.AsyncClient is shared by all calls; close it with
    aclose() or use the client as an async context manager.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        auth_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")

        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

        logger.info(f"ExcelUploadClient initialized with URL: {self.base_url}")

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ExcelUploadClient":
        return cls(
            base_url=settings.API_BASE_URL,
            timeout=settings.API_TIMEOUT_SECONDS,
            auth_token=settings.API_AUTH_TOKEN or None,
            transport=transport,
        )

    async def __aenter__(self) -> "ExcelUploadClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ==================== REFERENCE DATA ====================

    async def get_branches(self) -> List[BranchOption]:
        data = await self._get_json("/branches")
        return self._parse_list(BranchOption, data, "/branches")

    async def get_source_codes(self) -> List[SourceCodeOption]:
        data = await self._get_json("/source-codes")
        return self._parse_list(SourceCodeOption, data, "/source-codes")

    async def get_batches(self) -> List[BatchSummaryEntry]:
        """Batch summary, mapped from positional records into named entries."""
        data = await self._get_json("/batches")
        if not isinstance(data, list):
            raise ExcelUploadAPIError("Invalid response from /batches: expected a list")
        try:
            return [BatchSummaryEntry.from_record(record) for record in data]
        except (TypeError, ValueError) as e:
            raise ExcelUploadAPIError(f"Invalid batch record from /batches: {e}") from e

    async def get_working_day(self, branch_code: str) -> date:
        path = f"/working-day/{quote(branch_code, safe='')}"
        data = await self._get_json(path)
        return self._parse(WorkingDayResponse, data, path).working_day

    # ==================== BATCHES ====================

    async def batch_exists(self, batch_no: str) -> bool:
        path = f"/batch/{quote(batch_no, safe='')}/exists"
        data = await self._get_json(path)
        return self._parse(BatchExistsResponse, data, path).exists

    async def delete_batch(self, batch_no: str) -> DeleteBatchResponse:
        path = f"/batch/{quote(batch_no, safe='')}"
        response = await self._request("DELETE", path)
        return self._parse(DeleteBatchResponse, self._decode(response, path), path)

    async def upload(self, request: UploadRequest, file: SelectedFile) -> UploadResult:
        """
        POST /upload as multipart/form-data.

        A 2xx answer is returned as UploadResult even when it reports
        success=false (the backend answers 206 when rows failed).
        """
        response = await self._request(
            "POST",
            "/upload",
            data=request.to_form_fields(),
            files={"file": (file.filename, file.content, file.content_type)},
        )
        return self._parse(UploadResult, self._decode(response, "/upload"), "/upload")

    async def download_template(self) -> bytes:
        response = await self._request("GET", "/template", headers={"Accept": "*/*"})
        return response.content

    # ==================== INTERNALS ====================

    async def _get_json(self, path: str) -> Any:
        response = await self._request("GET", path)
        return self._decode(response, path)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out")
            raise ExcelUploadAPIError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} request error: {e}")
            raise ExcelUploadAPIError(f"Cannot reach upload service: {str(e)[:100]}") from e

        if not response.is_success:
            body = self._error_body(response)
            logger.warning(
                f"{method} {path} returned {response.status_code}",
                extra={"status_code": response.status_code}
            )
            raise ExcelUploadAPIError(
                f"HTTP {response.status_code}: {response.text[:100]}",
                status_code=response.status_code,
                body=body,
            )

        return response

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ExcelUploadAPIError(
                f"Invalid JSON from {path}",
                status_code=response.status_code
            ) from e

    @staticmethod
    def _error_body(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ExcelUploadAPIError(f"Invalid response from {path}: {e.error_count()} field error(s)") from e

    @staticmethod
    def _parse_list(model: Type[ModelT], data: Any, path: str) -> List[ModelT]:
        if not isinstance(data, list):
            raise ExcelUploadAPIError(f"Invalid response from {path}: expected a list")
        return [ExcelUploadClient._parse(model, item, path) for item in data]
