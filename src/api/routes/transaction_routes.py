"""
Transaction API routes.
Read access to normalized transactions for downstream reporting.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from src.core.auth_dependencies import get_current_user_id
from src.core.dependencies import get_transaction_service
from src.models.dto.transaction_dto import TransactionFilter, TransactionListResponse, TransactionResponse
from src.services.transaction_service import TransactionService

router = APIRouter(prefix="/v1/api", tags=["Transactions"])


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    artist: Optional[str] = Query(default=None, description="Case-insensitive artist substring"),
    title: Optional[str] = Query(default=None, description="Case-insensitive title substring"),
    service_type: Optional[str] = Query(default=None, description="Exact service/platform"),
    territory: Optional[str] = Query(default=None, description="Exact territory"),
    start_date: Optional[datetime] = Query(default=None, description="Inclusive lower date bound"),
    end_date: Optional[str] = Query(
        default=None, description="Inclusive upper date bound; a bare date (YYYY-MM-DD) covers that whole day"
    ),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of items to return"),
    next_token: Optional[str] = Query(default=None, description="Pagination token from previous response"),
    transaction_service: TransactionService = Depends(get_transaction_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Query transactions across uploads.
    """
    try:
        filters = TransactionFilter(
            artist=artist,
            title=title,
            service_type=service_type,
            territory=territory,
            start_date=start_date,
            end_date=end_date
        )
    except ValidationError as e:
        raise RequestValidationError(
            [dict(error, loc=("query",) + tuple(error["loc"])) for error in e.errors(include_url=False)]
        ) from e
    return transaction_service.list_transactions(filters, limit, next_token)


@router.get("/transactions/{transaction_key}", response_model=TransactionResponse)
async def get_transaction(
    transaction_key: str,
    transaction_service: TransactionService = Depends(get_transaction_service),
    user_id: str = Depends(get_current_user_id)
):
    """Retrieve one transaction by its id."""
    return transaction_service.get_transaction(transaction_key)


@router.delete("/transactions/{transaction_key}")
async def delete_transaction(
    transaction_key: str,
    transaction_service: TransactionService = Depends(get_transaction_service),
    user_id: str = Depends(get_current_user_id)
):
    """Delete one transaction."""
    transaction_service.delete_transaction(transaction_key)
    return {"message": "Transaction deleted successfully", "id": transaction_key}


@router.get("/uploads/{upload_id}/transactions", response_model=TransactionListResponse)
async def list_upload_transactions(
    upload_id: str,
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of items to return"),
    next_token: Optional[str] = Query(default=None, description="Pagination token from previous response"),
    transaction_service: TransactionService = Depends(get_transaction_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Transactions created from one upload, in file row order.
    """
    return transaction_service.list_upload_transactions(upload_id, limit, next_token)
