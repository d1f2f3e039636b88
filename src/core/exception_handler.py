"""
Global exception handler for the Royalty Ingestion API.
Provides centralized error handling for all API exceptions.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from src.core.logging_config import get_logger
from .exceptions import (
    CSVProcessingException,
    DynamoDBException,
    FileTooLargeException,
    S3Exception,
    TransactionNotFoundException,
    UploadNotFoundException,
    UploadStateConflictException,
    ValidationException,
)

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(UploadNotFoundException)
    @app.exception_handler(TransactionNotFoundException)
    async def handle_not_found(request: Request, exc):
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": exc.message}
        )

    @app.exception_handler(FileTooLargeException)
    async def handle_file_too_large(request: Request, exc: FileTooLargeException):
        return JSONResponse(
            status_code=413,
            content={"error": "File Too Large", "message": exc.message}
        )

    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "message": exc.message}
        )

    @app.exception_handler(CSVProcessingException)
    async def handle_csv_error(request: Request, exc: CSVProcessingException):
        return JSONResponse(
            status_code=400,
            content={"error": "CSV Processing Failed", "message": exc.message}
        )

    @app.exception_handler(UploadStateConflictException)
    async def handle_state_conflict(request: Request, exc: UploadStateConflictException):
        return JSONResponse(
            status_code=409,
            content={"error": "Conflict", "message": exc.message}
        )

    @app.exception_handler(S3Exception)
    async def handle_s3_error(request: Request, exc: S3Exception):
        logger.error("S3 error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Storage Error", "message": exc.message}
        )

    @app.exception_handler(DynamoDBException)
    async def handle_dynamodb_error(request: Request, exc: DynamoDBException):
        logger.error("DynamoDB error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Database Error", "message": exc.message}
        )

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
        )
