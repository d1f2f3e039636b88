"""
Data Transfer Objects for the CSV upload API.
Defines response schemas for upload, status and listing endpoints.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.models.csv_upload import UploadStatus


class CsvUploadResponse(BaseModel):
    """Response schema returned when an upload is accepted."""
    upload_id: str = Field(..., description="Unique identifier for the upload")
    file_name: str = Field(..., description="Original file name")
    status: UploadStatus = Field(..., description="Processing status")
    message: str = Field(..., description="Status message")
    created_at: datetime


class UploadStatusResponse(BaseModel):
    """Response schema for upload status query."""
    upload_id: str
    file_name: str
    stored_file_name: str
    s3_key: str
    file_size: int
    mime_type: str
    uploaded_by: str
    status: UploadStatus
    total_rows: int = 0
    processed_rows: int = 0
    progress: int = Field(default=0, ge=0, le=100)
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    last_processed_row: int = 0
    heartbeat_at: Optional[datetime] = None
    stalled: bool = Field(default=False, description="Processing with no checkpoint within the stall threshold")


class UploadListResponse(BaseModel):
    """Response schema for listing uploads, newest first."""
    uploads: list[UploadStatusResponse]
    count: int
    next_token: Optional[str] = None
