"""
Backend API clients.
"""

from .excel_upload_client import ExcelUploadClient, ExcelUploadAPIError

__all__ = [
    "ExcelUploadClient",
    "ExcelUploadAPIError",
]
