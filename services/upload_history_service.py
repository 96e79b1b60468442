"""
Tracks import file hashes to detect files that were already imported.
"""
import structlog
from typing import Optional

from config import get_supabase_client

logger = structlog.get_logger(__name__)

PRODUCT_IMPORT_UPLOAD_TYPE = "product_import"


class UploadHistoryService:
    def __init__(self, client=None):
        self.db = client or get_supabase_client()
        self.table = "upload_history"

    def check_duplicate(self, file_hash: str, upload_type: str = PRODUCT_IMPORT_UPLOAD_TYPE) -> Optional[dict]:
        """Previous successful upload of the same file. Returns {filename, uploaded_at, row_count} or None."""
        result = (
            self.db.table(self.table)
            .select("filename, uploaded_at, row_count")
            .eq("upload_type", upload_type)
            .eq("file_hash", file_hash)
            .eq("status", "success")
            .order("uploaded_at", desc=True)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def record_upload(
        self,
        file_hash: str,
        filename: str,
        row_count: int = 0,
        upload_type: str = PRODUCT_IMPORT_UPLOAD_TYPE,
    ) -> None:
        """Record an executed import for future duplicate detection."""
        self.db.table(self.table).insert({
            "upload_type": upload_type,
            "file_hash": file_hash,
            "filename": filename,
            "row_count": row_count,
            "status": "success",
        }).execute()
        logger.info(
            "upload_recorded",
            upload_type=upload_type,
            filename=filename,
            row_count=row_count,
        )

    def record_failed_upload(
        self,
        filename: str,
        error_message: str,
        file_hash: str = "",
        upload_type: str = PRODUCT_IMPORT_UPLOAD_TYPE,
    ) -> None:
        """Record a rejected file for later diagnosis."""
        truncated_msg = error_message[:2000] if error_message else "Unknown error"
        try:
            self.db.table(self.table).insert({
                "upload_type": upload_type,
                "file_hash": file_hash or "",
                "filename": filename or "unknown",
                "row_count": 0,
                "status": "error",
                "error_message": truncated_msg,
            }).execute()
            logger.info(
                "failed_upload_recorded",
                upload_type=upload_type,
                filename=filename,
                error=truncated_msg[:200],
            )
        except Exception as log_err:
            # Recording is best effort; the parse error is what the caller reports
            logger.warning(
                "failed_to_record_upload_error",
                upload_type=upload_type,
                log_error=str(log_err),
            )


_service: Optional[UploadHistoryService] = None


def get_upload_history_service() -> UploadHistoryService:
    global _service
    if _service is None:
        _service = UploadHistoryService()
    return _service
