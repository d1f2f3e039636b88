"""
Transaction Service for reporting queries over normalized records.
"""
from typing import Optional
from src.core.exceptions import TransactionNotFoundException, UploadNotFoundException, ValidationException
from src.models.dto.transaction_dto import TransactionFilter, TransactionListResponse, TransactionResponse
from src.repositories.csv_upload_repository import CsvUploadRepository
from src.repositories.transaction_repository import TransactionRepository


class TransactionService:
    """Service for transaction queries and management."""

    def __init__(
        self,
        transaction_repository: TransactionRepository = None,
        upload_repository: CsvUploadRepository = None
    ):
        self.transaction_repository = transaction_repository or TransactionRepository()
        self.upload_repository = upload_repository or CsvUploadRepository()

    def list_transactions(
        self,
        filters: TransactionFilter,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> TransactionListResponse:
        """
        List transactions matching the filters.

        Raises:
            ValidationException: If the date range is inverted or next_token is invalid
        """
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise ValidationException("start_date must not be after end_date")

        transactions, next_token = self.transaction_repository.find(
            filters, limit=limit, next_token=next_token
        )
        return self._to_list_response(transactions, next_token)

    def list_upload_transactions(
        self,
        upload_id: str,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> TransactionListResponse:
        """
        Transactions of one upload in row order.

        Raises:
            UploadNotFoundException: If upload_id not found
        """
        if not self.upload_repository.get_by_id(upload_id):
            raise UploadNotFoundException(f"Upload ID '{upload_id}' not found")

        transactions, next_token = self.transaction_repository.find_by_upload(upload_id, limit, next_token)
        return self._to_list_response(transactions, next_token)

    def get_transaction(self, transaction_key: str) -> TransactionResponse:
        """
        Raises:
            TransactionNotFoundException: If no transaction has this id
        """
        transaction = self.transaction_repository.get_by_id(transaction_key)
        if not transaction:
            raise TransactionNotFoundException(f"Transaction '{transaction_key}' not found")
        return TransactionResponse.model_validate(transaction)

    def delete_transaction(self, transaction_key: str) -> None:
        if not self.transaction_repository.delete(transaction_key):
            raise TransactionNotFoundException(f"Transaction '{transaction_key}' not found")

    def _to_list_response(self, transactions, next_token) -> TransactionListResponse:
        responses = [TransactionResponse.model_validate(transaction) for transaction in transactions]
        return TransactionListResponse(transactions=responses, count=len(responses), next_token=next_token)
