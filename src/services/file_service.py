"""
File Service for incoming uploads.
Validates uploaded files and derives their stored names and keys.
"""
import os
import random
import time
from src.core import config
from src.core.exceptions import FileTooLargeException, ValidationException

CSV_MIME_TYPES = {'text/csv', 'application/csv', 'application/vnd.ms-excel'}


class FileService:
    """Service for upload file checks and naming."""

    def validate_upload(self, filename: str, mime_type: str, file_size: int) -> None:
        """
        Validate an uploaded file before it is stored.

        Args:
            filename: Original filename
            mime_type: Declared MIME type
            file_size: Size in bytes

        Raises:
            ValidationException: If the file is not a CSV, is empty or is too large
        """
        if not filename:
            raise ValidationException("No file uploaded")

        if not (filename.lower().endswith('.csv') or (mime_type or '').lower() in CSV_MIME_TYPES):
            raise ValidationException("Only CSV files are allowed")

        if file_size == 0:
            raise ValidationException("Uploaded file is empty")

        max_size_bytes = config.settings.max_file_size_mb * 1024 * 1024
        if file_size > max_size_bytes:
            raise FileTooLargeException(
                f"File size ({file_size / (1024 * 1024):.2f}MB) exceeds maximum allowed size "
                f"of {config.settings.max_file_size_mb}MB"
            )

    def generate_stored_name(self, filename: str) -> str:
        """
        Unique stored filename: millisecond timestamp, random suffix, original extension.
        """
        extension = os.path.splitext(filename)[1].lower() or '.csv'
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{extension}"

    def build_s3_key(self, upload_id: str, stored_name: str) -> str:
        """Format: uploads/{upload_id}/{stored_name}"""
        return f"uploads/{upload_id}/{stored_name}"
