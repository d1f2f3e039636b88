"""
DynamoDB Repository for normalized royalty transactions.
Handles writes from the ingestion pipeline and reporting queries.
"""
from decimal import Decimal
from functools import reduce
from typing import Iterable, List, Optional, Tuple
import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from src.core import config
from src.core.exceptions import DynamoDBException
from src.models.dto.transaction_dto import TransactionFilter
from src.models.transaction_model import Transaction
from src.repositories.dynamo_utils import (
    decode_token,
    encode_token,
    format_timestamp,
    parse_timestamp,
)


class TransactionRepository:
    """Repository for transaction DynamoDB operations."""

    UPLOAD_INDEX = "CsvUploadIndex"
    TABLE_KEY = ('id',)
    UPLOAD_INDEX_KEY = ('id', 'csv_upload_id', 'row_number')

    def __init__(self):
        self.dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
        self.table = self.dynamodb.Table(config.settings.transactions_table_name)

    def save(self, transaction: Transaction) -> None:
        """
        Save a single transaction.

        Raises:
            DynamoDBException: If save operation fails
        """
        try:
            self.table.put_item(
                Item=self._transaction_to_item(transaction),
                ConditionExpression=Attr('id').not_exists()
            )
        except ClientError as e:
            raise DynamoDBException(f"Failed to save transaction: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error saving transaction: {str(e)}") from e

    def get_by_id(self, transaction_key: str) -> Optional[Transaction]:
        """
        Retrieve a transaction by its unique id.

        Returns:
            Transaction or None if not found

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.table.get_item(Key={'id': transaction_key})
        except ClientError as e:
            raise DynamoDBException(f"Failed to get transaction: {str(e)}") from e

        if 'Item' not in response:
            return None
        return self._item_to_transaction(response['Item'])

    def find_by_upload(
        self,
        csv_upload_id: str,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> Tuple[List[Transaction], Optional[str]]:
        """Transactions of one upload in row order."""
        return self.find(TransactionFilter(), csv_upload_id=csv_upload_id, limit=limit, next_token=next_token)

    def find(
        self,
        filters: TransactionFilter,
        csv_upload_id: Optional[str] = None,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> Tuple[List[Transaction], Optional[str]]:
        """
        Query transactions with optional filters.

        Uses the upload index when csv_upload_id is given, otherwise scans the
        table. Filter expressions are applied after DynamoDB reads a page, so
        pages are read until `limit` matches are collected.

        Args:
            filters: Artist/title substring, service/territory and date range filters
            csv_upload_id: Restrict to one upload
            limit: Maximum number of items to return
            next_token: Base64-encoded pagination token from previous request

        Returns:
            Tuple of (list of Transaction objects, next_token or None)

        Raises:
            DynamoDBException: If the query fails
            ValidationException: If next_token is invalid
        """
        request = {'Limit': limit}
        filter_expression = self._build_filter(filters)
        if filter_expression is not None:
            request['FilterExpression'] = filter_expression

        if csv_upload_id:
            read = self.table.query
            request['IndexName'] = self.UPLOAD_INDEX
            request['KeyConditionExpression'] = Key('csv_upload_id').eq(csv_upload_id)
            key_attributes = self.UPLOAD_INDEX_KEY
        else:
            read = self.table.scan
            key_attributes = self.TABLE_KEY

        if next_token:
            request['ExclusiveStartKey'] = decode_token(next_token)

        items = []
        try:
            while True:
                response = read(**request)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if len(items) >= limit or not last_key:
                    break
                request['ExclusiveStartKey'] = last_key
        except ClientError as e:
            raise DynamoDBException(f"Failed to query transactions: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error querying transactions: {str(e)}") from e

        next_token = None
        if len(items) > limit:
            items = items[:limit]
            next_token = encode_token({attr: items[-1][attr] for attr in key_attributes})
        elif last_key:
            next_token = encode_token(last_key)

        return [self._item_to_transaction(item) for item in items], next_token

    def delete(self, transaction_key: str) -> bool:
        """
        Delete one transaction.

        Returns:
            True if a transaction was deleted, False if none existed

        Raises:
            DynamoDBException: If delete fails
        """
        try:
            response = self.table.delete_item(Key={'id': transaction_key}, ReturnValues='ALL_OLD')
            return 'Attributes' in response
        except ClientError as e:
            raise DynamoDBException(f"Failed to delete transaction: {str(e)}") from e

    def delete_by_upload(self, csv_upload_id: str) -> int:
        """
        Delete every transaction of an upload.
        batch_writer groups deletes into batches of 25. Keys are read from the
        CsvUploadIndex, which is eventually consistent: rows written just before
        the call may not be listed yet.

        Returns:
            Number of transactions deleted

        Raises:
            DynamoDBException: If query or delete fails
        """
        request = {
            'IndexName': self.UPLOAD_INDEX,
            'KeyConditionExpression': Key('csv_upload_id').eq(csv_upload_id),
            'ProjectionExpression': 'id',
        }
        deleted = 0
        try:
            with self.table.batch_writer() as batch:
                while True:
                    response = self.table.query(**request)
                    for item in response.get('Items', []):
                        batch.delete_item(Key={'id': item['id']})
                        deleted += 1
                    if 'LastEvaluatedKey' not in response:
                        break
                    request['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except ClientError as e:
            raise DynamoDBException(f"Failed to delete transactions for upload: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error deleting transactions for upload: {str(e)}") from e

        return deleted

    def delete_many(self, transaction_keys: Iterable[str]) -> int:
        """
        Delete transactions by primary key.
        Unlike delete_by_upload this does not read the CsvUploadIndex, whose
        eventually consistent view can miss rows written moments earlier.

        Returns:
            Number of keys submitted for deletion

        Raises:
            DynamoDBException: If delete fails
        """
        deleted = 0
        try:
            with self.table.batch_writer() as batch:
                for transaction_key in transaction_keys:
                    batch.delete_item(Key={'id': transaction_key})
                    deleted += 1
        except ClientError as e:
            raise DynamoDBException(f"Failed to delete transactions: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error deleting transactions: {str(e)}") from e

        return deleted

    def _build_filter(self, filters: TransactionFilter):
        conditions = []
        if filters.artist:
            conditions.append(Attr('artist_search').contains(filters.artist.lower()))
        if filters.title:
            conditions.append(Attr('title_search').contains(filters.title.lower()))
        if filters.service_type:
            conditions.append(Attr('service_type').eq(filters.service_type))
        if filters.territory:
            conditions.append(Attr('territory').eq(filters.territory))
        if filters.start_date and filters.end_date:
            conditions.append(Attr('transaction_date').between(
                format_timestamp(filters.start_date), format_timestamp(filters.end_date)
            ))
        elif filters.start_date:
            conditions.append(Attr('transaction_date').gte(format_timestamp(filters.start_date)))
        elif filters.end_date:
            conditions.append(Attr('transaction_date').lte(format_timestamp(filters.end_date)))

        if not conditions:
            return None
        return reduce(lambda left, right: left & right, conditions)

    def _transaction_to_item(self, transaction: Transaction) -> dict:
        """Convert Transaction to a DynamoDB item."""
        return {
            'id': transaction.id,
            'transaction_id': transaction.transaction_id,
            'csv_upload_id': transaction.csv_upload_id,
            'row_number': transaction.row_number,
            'title': transaction.title,
            'title_search': transaction.title.lower(),
            'artist': transaction.artist,
            'artist_search': transaction.artist.lower(),
            'isrc': transaction.isrc,
            'upc': transaction.upc,
            'label': transaction.label,
            'service_type': transaction.service_type,
            'territory': transaction.territory,
            'transaction_type': transaction.transaction_type,
            'quantity': transaction.quantity,
            'currency': transaction.currency,
            'revenue': Decimal(str(transaction.revenue)),
            'revenue_usd': Decimal(str(transaction.revenue_usd)),
            'transaction_date': format_timestamp(transaction.transaction_date),
            'notes': transaction.notes,
            'raw_data': {column: value for column, value in transaction.raw_data.items() if column},
            'created_at': format_timestamp(transaction.created_at)
        }

    def _item_to_transaction(self, item: dict) -> Transaction:
        """Convert DynamoDB item to Transaction domain model."""
        return Transaction(
            id=item['id'],
            csv_upload_id=item['csv_upload_id'],
            row_number=int(item['row_number']),
            transaction_id=item['transaction_id'],
            title=item.get('title', ''),
            artist=item.get('artist', ''),
            isrc=item.get('isrc', ''),
            upc=item.get('upc', ''),
            label=item.get('label', ''),
            service_type=item.get('service_type', ''),
            territory=item.get('territory', ''),
            transaction_type=item.get('transaction_type', 'stream'),
            quantity=int(item.get('quantity', 0)),
            currency=item.get('currency', 'USD'),
            revenue=Decimal(str(item.get('revenue', 0))),
            revenue_usd=Decimal(str(item.get('revenue_usd', 0))),
            transaction_date=parse_timestamp(item['transaction_date']),
            notes=item.get('notes', ''),
            raw_data=dict(item.get('raw_data', {})),
            created_at=parse_timestamp(item.get('created_at'))
        )
