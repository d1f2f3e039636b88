"""
CSV Upload domain model.
Tracks one ingestion job: file metadata, status and progress.
"""
import enum
from datetime import datetime
from typing import Optional


class UploadStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    UploadStatus.COMPLETED,
    UploadStatus.COMPLETED_WITH_ERRORS,
    UploadStatus.FAILED,
})


class CsvUpload:
    """Domain model for a CSV upload and its processing state."""

    def __init__(
        self,
        upload_id: str,
        file_name: str,
        original_file_name: str,
        s3_key: str,
        file_size: int,
        mime_type: str,
        uploaded_by: str,
        created_at: datetime,
        status: UploadStatus = UploadStatus.PENDING,
        total_rows: int = 0,
        processed_rows: int = 0,
        progress: int = 0,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
        last_processed_row: int = 0,
        heartbeat_at: Optional[datetime] = None
    ):
        self.upload_id = upload_id
        self.file_name = file_name
        self.original_file_name = original_file_name
        self.s3_key = s3_key
        self.file_size = file_size
        self.mime_type = mime_type
        self.uploaded_by = uploaded_by
        self.created_at = created_at
        self.status = UploadStatus(status)
        self.total_rows = total_rows
        self.processed_rows = processed_rows
        self.progress = progress
        self.error_message = error_message
        self.completed_at = completed_at
        self.last_processed_row = last_processed_row
        self.heartbeat_at = heartbeat_at

    def is_stalled(self, now: datetime, stalled_after_seconds: int) -> bool:
        """True when a processing job has not checkpointed within the threshold."""
        if self.status != UploadStatus.PROCESSING:
            return False
        last_seen = self.heartbeat_at or self.created_at
        return (now - last_seen).total_seconds() > stalled_after_seconds

    def __repr__(self):
        return (
            f"CsvUpload(upload_id={self.upload_id}, status={self.status.value}, "
            f"file_name={self.original_file_name}, progress={self.progress})"
        )


def calculate_progress(processed_rows: int, total_rows: int) -> int:
    """Integer percentage of processed rows, floored and capped at 100."""
    if total_rows <= 0:
        return 0
    return min(100, (processed_rows * 100) // total_rows)
