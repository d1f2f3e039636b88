"""
CSV upload API routes.
Accepts royalty report uploads and exposes their processing status.
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status
from src.core import config
from src.core.auth_dependencies import get_current_user_id
from src.core.dependencies import get_ingestion_pipeline, get_upload_service
from src.models.csv_upload import UploadStatus
from src.models.dto.upload_dto import CsvUploadResponse, UploadListResponse, UploadStatusResponse
from src.services.ingestion_pipeline import IngestionPipeline
from src.services.upload_service import UploadService

router = APIRouter(prefix="/v1/api/uploads", tags=["Uploads"])


@router.post("", response_model=CsvUploadResponse, status_code=status.HTTP_202_ACCEPTED)
async def upload_csv(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="CSV royalty report"),
    upload_service: UploadService = Depends(get_upload_service),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
    user_id: str = Depends(get_current_user_id)
):
    """
    Upload a CSV royalty report.

    The file is stored and processed asynchronously; poll
    `GET /v1/api/uploads/{upload_id}` for progress.
    """
    content = await file.read()
    await file.seek(0)

    upload = upload_service.upload_csv(
        file.file,
        file.filename,
        file.content_type,
        len(content),
        user_id
    )

    if config.settings.processing_mode == "background":
        background_tasks.add_task(pipeline.run, upload.upload_id, upload.s3_key)

    return CsvUploadResponse(
        upload_id=upload.upload_id,
        file_name=upload.original_file_name,
        status=upload.status,
        message="CSV uploaded successfully. Processing in progress.",
        created_at=upload.created_at
    )


@router.get("", response_model=UploadListResponse)
async def list_uploads(
    upload_status: Optional[UploadStatus] = Query(default=None, alias="status", description="Only uploads in this status"),
    limit: int = Query(default=10, ge=1, le=100, description="Maximum number of items to return"),
    next_token: Optional[str] = Query(default=None, description="Pagination token from previous response"),
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    List uploads newest first.

    - **status**: pending, processing, completed, completed_with_errors or failed
    - **limit**: Number of items per page (default 10, max 100)
    - **next_token**: Token from previous response to get next page
    """
    return upload_service.list_uploads(upload_status, limit, next_token)


@router.get("/{upload_id}", response_model=UploadStatusResponse)
async def get_upload_status(
    upload_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Get the processing status of an uploaded CSV file.
    """
    return upload_service.get_upload(upload_id)


@router.delete("/{upload_id}", status_code=status.HTTP_200_OK)
async def delete_upload(
    upload_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Delete an upload, its stored file and its transactions.
    """
    removed = upload_service.delete_upload(upload_id)
    return {
        "message": "CSV upload deleted successfully",
        "upload_id": upload_id,
        "transactions_deleted": removed
    }
