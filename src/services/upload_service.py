"""
Upload Service for CSV ingestion jobs.
Creates upload records, stores files and serves status queries.
"""
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Optional
from src.core import config
from src.core.exceptions import RoyaltyIngestionException, UploadNotFoundException
from src.core.logging_config import get_logger
from src.models.csv_upload import CsvUpload, UploadStatus
from src.models.dto.upload_dto import UploadListResponse, UploadStatusResponse
from src.repositories.csv_upload_repository import CsvUploadRepository
from src.repositories.s3_repository import S3Repository
from src.repositories.transaction_repository import TransactionRepository
from src.services.file_service import FileService

logger = get_logger(__name__)


class UploadService:
    """Service for CSV upload business operations."""

    def __init__(
        self,
        s3_repository: S3Repository = None,
        upload_repository: CsvUploadRepository = None,
        transaction_repository: TransactionRepository = None,
        file_service: FileService = None
    ):
        self.s3_repository = s3_repository or S3Repository()
        self.upload_repository = upload_repository or CsvUploadRepository()
        self.transaction_repository = transaction_repository or TransactionRepository()
        self.file_service = file_service or FileService()

    def upload_csv(
        self,
        file: BinaryIO,
        filename: str,
        mime_type: str,
        file_size: int,
        uploaded_by: str
    ) -> CsvUpload:
        """
        Store a CSV file and create its pending upload record.

        Args:
            file: CSV file object
            filename: Original filename
            mime_type: Declared MIME type
            file_size: Size in bytes
            uploaded_by: Owning user id

        Returns:
            The created CsvUpload (status pending)

        Raises:
            ValidationException: If the file is rejected
            DynamoDBException: If the record cannot be created
            S3Exception: If the file cannot be stored
        """
        self.file_service.validate_upload(filename, mime_type, file_size)

        upload_id = str(uuid.uuid4())
        stored_name = self.file_service.generate_stored_name(filename)

        upload = CsvUpload(
            upload_id=upload_id,
            file_name=stored_name,
            original_file_name=filename,
            s3_key=self.file_service.build_s3_key(upload_id, stored_name),
            file_size=file_size,
            mime_type=mime_type or 'text/csv',
            uploaded_by=uploaded_by,
            created_at=datetime.now(timezone.utc),
            status=UploadStatus.PENDING
        )

        # Record first: in lambda mode the S3 write triggers processing immediately.
        self.upload_repository.create(upload)
        try:
            self.s3_repository.upload_file(file, upload.s3_key, upload.mime_type)
        except RoyaltyIngestionException:
            self.upload_repository.delete(upload_id)
            raise

        logger.info("Upload %s stored at %s by %s", upload_id, upload.s3_key, uploaded_by)
        return upload

    def get_upload(self, upload_id: str) -> UploadStatusResponse:
        """
        Get upload processing status.

        Raises:
            UploadNotFoundException: If upload_id not found
        """
        upload = self.upload_repository.get_by_id(upload_id)
        if not upload:
            raise UploadNotFoundException(f"Upload ID '{upload_id}' not found")
        return self.to_status_response(upload)

    def list_uploads(
        self,
        status: Optional[UploadStatus] = None,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> UploadListResponse:
        """List uploads newest first, optionally filtered by status."""
        uploads, next_token = self.upload_repository.list_uploads(status, limit, next_token)
        responses = [self.to_status_response(upload) for upload in uploads]
        return UploadListResponse(uploads=responses, count=len(responses), next_token=next_token)

    def delete_upload(self, upload_id: str) -> int:
        """
        Delete an upload record, its transactions and its stored file.

        The record goes first so a pipeline still running on it stops at its
        next conditional write.

        Returns:
            Number of transactions deleted

        Raises:
            UploadNotFoundException: If upload_id not found
        """
        upload = self.upload_repository.get_by_id(upload_id)
        if not upload:
            raise UploadNotFoundException(f"Upload ID '{upload_id}' not found")

        self.upload_repository.delete(upload_id)
        removed = self.transaction_repository.delete_by_upload(upload_id)
        self.s3_repository.delete_file(upload.s3_key)

        logger.info("Deleted upload %s (%s, %d transactions)", upload_id, upload.status.value, removed)
        return removed

    def to_status_response(self, upload: CsvUpload) -> UploadStatusResponse:
        return UploadStatusResponse(
            upload_id=upload.upload_id,
            file_name=upload.original_file_name,
            stored_file_name=upload.file_name,
            s3_key=upload.s3_key,
            file_size=upload.file_size,
            mime_type=upload.mime_type,
            uploaded_by=upload.uploaded_by,
            status=upload.status,
            total_rows=upload.total_rows,
            processed_rows=upload.processed_rows,
            progress=upload.progress,
            error_message=upload.error_message,
            created_at=upload.created_at,
            completed_at=upload.completed_at,
            last_processed_row=upload.last_processed_row,
            heartbeat_at=upload.heartbeat_at,
            stalled=upload.is_stalled(datetime.now(timezone.utc), config.settings.stalled_after_seconds)
        )
