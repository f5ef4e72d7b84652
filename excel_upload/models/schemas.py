from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Sequence, Any, Dict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .enums import SpreadsheetMediaType


MAX_BATCH_NO_LENGTH = 20
MIN_EXCH_RATE = Decimal("0.000001")


class CamelModel(BaseModel):
    """Backend payloads are camelCase; python attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== REFERENCE DATA ====================
class BranchOption(BaseModel):
    code: str = Field(alias="branch_code")
    name: Optional[str] = Field(default=None, alias="branch_name")

    model_config = ConfigDict(populate_by_name=True)


class SourceCodeOption(BaseModel):
    code: str = Field(alias="source_code")

    model_config = ConfigDict(populate_by_name=True)


class WorkingDayResponse(CamelModel):
    working_day: date
    branch_code: Optional[str] = None


class BatchExistsResponse(CamelModel):
    exists: bool
    batch_no: Optional[str] = None


class DeleteBatchResponse(CamelModel):
    success: bool = False
    message: str = ""


# ==================== BATCH SUMMARY ====================
class BatchSummaryEntry(CamelModel):
    batch_no: str
    record_count: int = 0

    @classmethod
    def from_record(cls, record: Sequence[Any]) -> "BatchSummaryEntry":
        """Map a positional [batchNo, recordCount] record from GET /batches."""
        if not isinstance(record, (list, tuple)):
            raise TypeError(f"Batch summary record must be a list, got {type(record).__name__}")
        if len(record) < 2:
            raise ValueError(f"Batch summary record must have 2 elements, got {len(record)}")
        return cls(batch_no=str(record[0]), record_count=int(record[1] or 0))


# ==================== UPLOAD RESULT ====================
class RowError(CamelModel):
    """Row-level failure reported by the backend, echoing the original row."""
    row_number: int
    error_message: str = ""
    error_code: Optional[str] = None
    severity: Optional[str] = None

    # Echo of the submitted row, for reporting only
    rel_cust: Optional[str] = None
    account: Optional[str] = None
    account_branch: Optional[str] = None
    dr_cr: Optional[str] = None
    ccy_cd: Optional[str] = None
    amount: Optional[Decimal] = None
    lcy_equivalent: Optional[Decimal] = None
    txn_code: Optional[str] = None
    addl_text: Optional[str] = None


class UploadResult(CamelModel):
    """
    Outcome of one upload attempt.

    Every field has a default so that an error body carrying only
    {success, message} can still be held and inspected as a result.
    """
    success: bool = False
    message: str = ""
    batch_no: str = ""
    total_rows: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    errors: List[RowError] = Field(default_factory=list)
    processing_time_ms: Optional[int] = None
    upload_timestamp: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="error")

    @property
    def skipped_count(self) -> int:
        """Rows neither imported nor rejected (successCount + errorCount may be < totalRows)."""
        return max(self.total_rows - self.success_count - self.error_count, 0)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


# ==================== UPLOAD REQUEST ====================
@dataclass
class SelectedFile:
    """A spreadsheet chosen for upload (internal representation)."""
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_spreadsheet(self) -> bool:
        return self.content_type in {t.value for t in SpreadsheetMediaType}


class UploadRequest(CamelModel):
    """Fields sent with POST /upload. Built per submit attempt and then discarded."""
    batch_no: str = Field(min_length=1, max_length=MAX_BATCH_NO_LENGTH)
    branch_code: str = Field(min_length=1)
    source_code: str = Field(min_length=1)
    exch_rate: Decimal = Field(ge=MIN_EXCH_RATE)
    entry_date: date

    def to_form_fields(self) -> Dict[str, str]:
        """Multipart text fields: exchRate as a plain decimal string, entryDate as YYYY-MM-DD."""
        return {
            "batchNo": self.batch_no,
            "branchCode": self.branch_code,
            "sourceCode": self.source_code,
            "exchRate": format(self.exch_rate, "f"),
            "entryDate": self.entry_date.isoformat(),
        }
