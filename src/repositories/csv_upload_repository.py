"""
CSV Upload Repository for DynamoDB operations.
Handles CRUD operations and guarded state transitions for upload records.
"""
import enum
from datetime import datetime
from typing import List, Optional, Tuple
import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from src.core import config
from src.core.exceptions import DynamoDBException, UploadStateConflictException
from src.models.csv_upload import CsvUpload, UploadStatus
from src.repositories.dynamo_utils import (
    decode_token,
    encode_token,
    format_timestamp,
    is_conditional_check_failure,
    parse_timestamp,
)


class CsvUploadRepository:
    """Repository for CSV upload DynamoDB operations."""

    RECORD_TYPE = "CSV_UPLOAD"
    CREATED_AT_INDEX = "CreatedAtIndex"
    STATUS_INDEX = "StatusIndex"

    def __init__(self):
        self.dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
        self.table = self.dynamodb.Table(config.settings.csv_uploads_table_name)

    def create(self, upload: CsvUpload) -> None:
        """
        Create new upload record.

        Args:
            upload: CsvUpload domain model

        Raises:
            DynamoDBException: If create operation fails or the id already exists
        """
        try:
            self.table.put_item(
                Item=self._upload_to_item(upload),
                ConditionExpression=Attr('upload_id').not_exists()
            )
        except ClientError as e:
            raise DynamoDBException(f"Failed to create upload record: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error creating upload record: {str(e)}") from e

    def get_by_id(self, upload_id: str) -> Optional[CsvUpload]:
        """
        Retrieve upload record by ID.

        Args:
            upload_id: Upload identifier

        Returns:
            CsvUpload object or None if not found

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.table.get_item(Key={'upload_id': upload_id})

            if 'Item' not in response:
                return None

            return self._item_to_upload(response['Item'])

        except ClientError as e:
            raise DynamoDBException(f"Failed to get upload record: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error getting upload record: {str(e)}") from e

    def update(self, upload_id: str, updates: dict, expected_status: UploadStatus) -> None:
        """
        Update upload fields if the record exists and is in the expected status.

        Args:
            upload_id: Upload identifier
            updates: Dictionary of fields to update
            expected_status: Status the record must currently have

        Raises:
            UploadStateConflictException: If the record is gone or in another status
            DynamoDBException: If update operation fails
        """
        update_expression = "SET "
        expression_values = {}
        expression_names = {}

        for key, value in updates.items():
            update_expression += f"#{key} = :{key}, "
            expression_values[f":{key}"] = self._to_attribute(value)
            expression_names[f"#{key}"] = key

        update_expression = update_expression.rstrip(", ")

        try:
            self.table.update_item(
                Key={'upload_id': upload_id},
                UpdateExpression=update_expression,
                ConditionExpression=Attr('upload_id').exists() & Attr('status').eq(expected_status.value),
                ExpressionAttributeNames=expression_names,
                ExpressionAttributeValues=expression_values
            )

        except ClientError as e:
            if is_conditional_check_failure(e):
                raise UploadStateConflictException(
                    f"Upload '{upload_id}' is missing or no longer {expected_status.value}"
                ) from e
            raise DynamoDBException(f"Failed to update upload record: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error updating upload record: {str(e)}") from e

    def list_uploads(
        self,
        status: Optional[UploadStatus] = None,
        limit: int = 10,
        next_token: Optional[str] = None
    ) -> Tuple[List[CsvUpload], Optional[str]]:
        """
        List uploads newest first, optionally filtered by status.

        Args:
            status: Only return uploads in this status
            limit: Maximum number of items to return
            next_token: Base64-encoded pagination token from previous request

        Returns:
            Tuple of (list of CsvUpload objects, next_token or None)

        Raises:
            DynamoDBException: If query fails
            ValidationException: If next_token is invalid
        """
        if status is not None:
            query_kwargs = {
                'IndexName': self.STATUS_INDEX,
                'KeyConditionExpression': Key('status').eq(UploadStatus(status).value),
            }
        else:
            query_kwargs = {
                'IndexName': self.CREATED_AT_INDEX,
                'KeyConditionExpression': Key('record_type').eq(self.RECORD_TYPE),
            }
        query_kwargs['Limit'] = limit
        query_kwargs['ScanIndexForward'] = False

        if next_token:
            query_kwargs['ExclusiveStartKey'] = decode_token(next_token)

        try:
            response = self.table.query(**query_kwargs)
        except ClientError as e:
            raise DynamoDBException(f"Failed to list upload records: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error listing upload records: {str(e)}") from e

        uploads = [self._item_to_upload(item) for item in response.get('Items', [])]

        next_token = None
        if 'LastEvaluatedKey' in response:
            next_token = encode_token(response['LastEvaluatedKey'])

        return uploads, next_token

    def delete(self, upload_id: str) -> bool:
        """
        Delete an upload record.

        Returns:
            True if a record was deleted, False if none existed

        Raises:
            DynamoDBException: If delete fails
        """
        try:
            response = self.table.delete_item(
                Key={'upload_id': upload_id},
                ReturnValues='ALL_OLD'
            )
            return 'Attributes' in response
        except ClientError as e:
            raise DynamoDBException(f"Failed to delete upload record: {str(e)}") from e

    def _to_attribute(self, value):
        if isinstance(value, enum.Enum):
            return value.value
        if isinstance(value, datetime):
            return format_timestamp(value)
        return value

    def _upload_to_item(self, upload: CsvUpload) -> dict:
        item = {
            'upload_id': upload.upload_id,
            'record_type': self.RECORD_TYPE,
            'file_name': upload.file_name,
            'original_file_name': upload.original_file_name,
            's3_key': upload.s3_key,
            'file_size': upload.file_size,
            'mime_type': upload.mime_type,
            'uploaded_by': upload.uploaded_by,
            'status': upload.status.value,
            'total_rows': upload.total_rows,
            'processed_rows': upload.processed_rows,
            'progress': upload.progress,
            'last_processed_row': upload.last_processed_row,
            'created_at': format_timestamp(upload.created_at)
        }

        if upload.error_message:
            item['error_message'] = upload.error_message
        if upload.completed_at:
            item['completed_at'] = format_timestamp(upload.completed_at)
        if upload.heartbeat_at:
            item['heartbeat_at'] = format_timestamp(upload.heartbeat_at)

        return item

    def _item_to_upload(self, item: dict) -> CsvUpload:
        """Convert DynamoDB item to CsvUpload domain model."""
        return CsvUpload(
            upload_id=item['upload_id'],
            file_name=item['file_name'],
            original_file_name=item.get('original_file_name', item['file_name']),
            s3_key=item['s3_key'],
            file_size=int(item.get('file_size', 0)),
            mime_type=item.get('mime_type', 'text/csv'),
            uploaded_by=item.get('uploaded_by', ''),
            created_at=parse_timestamp(item['created_at']),
            status=UploadStatus(item['status']),
            total_rows=int(item.get('total_rows', 0)),
            processed_rows=int(item.get('processed_rows', 0)),
            progress=int(item.get('progress', 0)),
            error_message=item.get('error_message'),
            completed_at=parse_timestamp(item.get('completed_at')),
            last_processed_row=int(item.get('last_processed_row', 0)),
            heartbeat_at=parse_timestamp(item.get('heartbeat_at'))
        )
