"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services and repositories.
"""
from functools import lru_cache
from src.repositories.csv_upload_repository import CsvUploadRepository
from src.repositories.s3_repository import S3Repository
from src.repositories.transaction_repository import TransactionRepository
from src.services.file_service import FileService
from src.services.ingestion_pipeline import IngestionPipeline
from src.services.row_loader import RowLoader
from src.services.transaction_service import TransactionService
from src.services.upload_service import UploadService
from src.core import config


@lru_cache()
def get_s3_repository() -> S3Repository:
    """Get S3Repository singleton instance."""
    return S3Repository()


@lru_cache()
def get_csv_upload_repository() -> CsvUploadRepository:
    """Get CsvUploadRepository singleton instance."""
    return CsvUploadRepository()


@lru_cache()
def get_transaction_repository() -> TransactionRepository:
    """Get TransactionRepository singleton instance."""
    return TransactionRepository()


@lru_cache()
def get_file_service() -> FileService:
    """Get FileService singleton instance."""
    return FileService()


@lru_cache()
def get_upload_service() -> UploadService:
    """Get UploadService singleton instance with injected dependencies."""
    return UploadService(
        s3_repository=get_s3_repository(),
        upload_repository=get_csv_upload_repository(),
        transaction_repository=get_transaction_repository(),
        file_service=get_file_service()
    )


@lru_cache()
def get_transaction_service() -> TransactionService:
    """Get TransactionService singleton instance with injected dependencies."""
    return TransactionService(
        transaction_repository=get_transaction_repository(),
        upload_repository=get_csv_upload_repository()
    )


@lru_cache()
def get_ingestion_pipeline() -> IngestionPipeline:
    """Get IngestionPipeline singleton instance with injected dependencies."""
    return IngestionPipeline(
        upload_repository=get_csv_upload_repository(),
        transaction_repository=get_transaction_repository(),
        row_loader=RowLoader(get_s3_repository(), max_rows=config.settings.max_csv_rows)
    )


def clear_dependency_cache() -> None:
    """Drop cached singletons so the next request rebuilds them from current settings."""
    for provider in (
        get_s3_repository,
        get_csv_upload_repository,
        get_transaction_repository,
        get_file_service,
        get_upload_service,
        get_transaction_service,
        get_ingestion_pipeline,
    ):
        provider.cache_clear()
