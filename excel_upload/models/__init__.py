from .schemas import (
    BranchOption, SourceCodeOption, WorkingDayResponse, BatchExistsResponse,
    DeleteBatchResponse, BatchSummaryEntry, RowError, UploadResult,
    SelectedFile, UploadRequest, MAX_BATCH_NO_LENGTH, MIN_EXCH_RATE
)
from .enums import NotificationKind, ErrorCategory, Operation, SpreadsheetMediaType

__all__ = [
    'BranchOption', 'SourceCodeOption', 'WorkingDayResponse', 'BatchExistsResponse',
    'DeleteBatchResponse', 'BatchSummaryEntry', 'RowError', 'UploadResult',
    'SelectedFile', 'UploadRequest', 'MAX_BATCH_NO_LENGTH', 'MIN_EXCH_RATE',
    'NotificationKind', 'ErrorCategory', 'Operation', 'SpreadsheetMediaType'
]
