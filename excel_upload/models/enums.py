from enum import Enum


class NotificationKind(str, Enum):
    success = "success"
    error = "error"
    warning = "warning"


class ErrorCategory(str, Enum):
    """Where a failed attempt was stopped."""
    validation = "validation"
    conflict = "conflict"
    domain = "domain"
    transport = "transport"


class Operation(str, Enum):
    load_branches = "load_branches"
    load_source_codes = "load_source_codes"
    select_file = "select_file"
    upload = "upload"
    delete_batch = "delete_batch"
    export_errors = "export_errors"
    download_template = "download_template"


class SpreadsheetMediaType(str, Enum):
    xlsx = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    xls = "application/vnd.ms-excel"
