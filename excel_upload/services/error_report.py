"""
Row Error Report

Builds the CSV error report for an upload result. Offline and
side-effect free: the caller decides where the text is saved.

Columns are fixed:
Row, Error, Customer, Account, Branch, Dr/Cr, Currency, Amount,
LCY Equivalent, Txn Code, Additional Text

Free-text columns (Error, Additional Text) are always double-quoted,
with embedded quotes doubled. Other absent values are empty.
"""

import re
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from excel_upload.models.schemas import RowError, UploadResult

ERROR_REPORT_HEADERS = [
    "Row",
    "Error",
    "Customer",
    "Account",
    "Branch",
    "Dr/Cr",
    "Currency",
    "Amount",
    "LCY Equivalent",
    "Txn Code",
    "Additional Text",
]

LINE_SEPARATOR = "\n"


def _plain(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        # 100 rather than 1E+2 or 100.00
        return format(value.normalize(), "f")
    return str(value)


def _quoted(value: Optional[str]) -> str:
    return '"' + str(value or "").replace('"', '""') + '"'


def error_row(error: RowError) -> List[str]:
    return [
        _plain(error.row_number),
        _quoted(error.error_message),
        _plain(error.rel_cust),
        _plain(error.account),
        _plain(error.account_branch),
        _plain(error.dr_cr),
        _plain(error.ccy_cd),
        _plain(error.amount),
        _plain(error.lcy_equivalent),
        _plain(error.txn_code),
        _quoted(error.addl_text),
    ]


def build_error_report_csv(errors: Iterable[RowError]) -> str:
    """Header line plus one line per row error, in the order given."""
    lines = [",".join(ERROR_REPORT_HEADERS)]
    lines.extend(",".join(error_row(error)) for error in errors)
    return LINE_SEPARATOR.join(lines)


def error_report_filename(result: UploadResult) -> str:
    safe_batch = re.sub(r'[^\w\-.]', '_', result.batch_no or "unknown")
    return f"batch_{safe_batch}_errors.csv"
