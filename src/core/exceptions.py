"""
Custom exceptions for the Royalty Ingestion API.
Provides specific error types for different failure scenarios.
"""


class RoyaltyIngestionException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(RoyaltyIngestionException):
    """Raised when request or data validation fails."""
    pass


class FieldCoercionException(ValidationException):
    """Raised by the strict coercion policy when a field value is malformed."""
    pass


class UploadNotFoundException(RoyaltyIngestionException):
    """Raised when a CSV upload record does not exist."""
    pass


class TransactionNotFoundException(RoyaltyIngestionException):
    """Raised when a transaction does not exist."""
    pass


class S3Exception(RoyaltyIngestionException):
    """Raised when S3 operation fails."""
    pass


class DynamoDBException(RoyaltyIngestionException):
    """Raised when DynamoDB operation fails."""
    pass


class UploadStateConflictException(DynamoDBException):
    """Raised when a conditional upload write is rejected (record gone or in another state)."""
    pass


class CSVProcessingException(RoyaltyIngestionException):
    """Raised when CSV file reading or parsing fails."""
    pass


class FileTooLargeException(ValidationException):
    """Raised when an upload exceeds the configured size limit."""
    pass
