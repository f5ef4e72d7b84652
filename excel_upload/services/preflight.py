"""
Batch Preflight Check

Verifies a batch number is not already in use before an upload is sent.

Policy: the check FAILS OPEN. If the existence lookup itself fails
(timeout, 5xx, unreadable body) the batch is reported as not existing,
so a transient lookup failure never blocks an upload. The backend still
rejects duplicate batches during the upload itself.
"""

import logging
from typing import Optional

from excel_upload.clients.excel_upload_client import ExcelUploadClient, ExcelUploadAPIError

logger = logging.getLogger(__name__)


class PreflightChecker:
    """Existence check for batch numbers."""

    def __init__(self, client: ExcelUploadClient):
        self.client = client

    async def check_batch_exists(self, batch_no: Optional[str]) -> bool:
        """
        Return True only when the backend confirms the batch exists.

        Empty batch numbers return False without a network call.
        """
        if not batch_no:
            return False

        try:
            exists = await self.client.batch_exists(batch_no)
        except ExcelUploadAPIError as e:
            logger.warning(
                f"Batch existence check failed for {batch_no}, continuing with upload: {e}",
                extra={"batch_no": batch_no, "status_code": e.status_code}
            )
            return False

        logger.debug(f"Batch {batch_no} exists: {exists}")
        return exists
