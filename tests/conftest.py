"""
Shared test fixtures and utilities.
"""
import os

os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'
os.environ['AWS_REGION'] = 'us-east-1'
os.environ['S3_BUCKET_NAME'] = 'test-bucket'
os.environ['CSV_UPLOADS_TABLE_NAME'] = 'CsvUploads-test'
os.environ['TRANSACTIONS_TABLE_NAME'] = 'Transactions-test'
os.environ['JWT_SECRET'] = 'test-secret'
os.environ['ENVIRONMENT'] = 'test'

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
import boto3
import jwt
import pytest
from moto import mock_aws
from src.core import config
from src.core.dependencies import clear_dependency_cache
from src.models.csv_upload import CsvUpload, UploadStatus


def create_uploads_table(dynamodb):
    """CSV uploads table with the created_at and status indexes."""
    return dynamodb.create_table(
        TableName='CsvUploads-test',
        KeySchema=[{'AttributeName': 'upload_id', 'KeyType': 'HASH'}],
        AttributeDefinitions=[
            {'AttributeName': 'upload_id', 'AttributeType': 'S'},
            {'AttributeName': 'record_type', 'AttributeType': 'S'},
            {'AttributeName': 'status', 'AttributeType': 'S'},
            {'AttributeName': 'created_at', 'AttributeType': 'S'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': 'CreatedAtIndex',
                'KeySchema': [
                    {'AttributeName': 'record_type', 'KeyType': 'HASH'},
                    {'AttributeName': 'created_at', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            },
            {
                'IndexName': 'StatusIndex',
                'KeySchema': [
                    {'AttributeName': 'status', 'KeyType': 'HASH'},
                    {'AttributeName': 'created_at', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            }
        ],
        BillingMode='PAY_PER_REQUEST'
    )


def create_transactions_table(dynamodb):
    """Transactions table with the per-upload row index."""
    return dynamodb.create_table(
        TableName='Transactions-test',
        KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
        AttributeDefinitions=[
            {'AttributeName': 'id', 'AttributeType': 'S'},
            {'AttributeName': 'csv_upload_id', 'AttributeType': 'S'},
            {'AttributeName': 'row_number', 'AttributeType': 'N'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': 'CsvUploadIndex',
                'KeySchema': [
                    {'AttributeName': 'csv_upload_id', 'KeyType': 'HASH'},
                    {'AttributeName': 'row_number', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            }
        ],
        BillingMode='PAY_PER_REQUEST'
    )


def make_upload(upload_id="upload-1", status=UploadStatus.PENDING, created_at=None, **kwargs) -> CsvUpload:
    """CsvUpload with sensible test defaults."""
    return CsvUpload(
        upload_id=upload_id,
        file_name=kwargs.pop('file_name', '1700000000000-42.csv'),
        original_file_name=kwargs.pop('original_file_name', 'report.csv'),
        s3_key=kwargs.pop('s3_key', f"uploads/{upload_id}/1700000000000-42.csv"),
        file_size=kwargs.pop('file_size', 128),
        mime_type=kwargs.pop('mime_type', 'text/csv'),
        uploaded_by=kwargs.pop('uploaded_by', 'test_user'),
        created_at=created_at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        status=status,
        **kwargs
    )


@pytest.fixture
def aws():
    """Mocked S3 bucket and DynamoDB tables with settings rebuilt inside the mock."""
    with mock_aws():
        config.settings = config.Settings()
        clear_dependency_cache()

        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket='test-bucket')

        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        uploads_table = create_uploads_table(dynamodb)
        transactions_table = create_transactions_table(dynamodb)

        yield SimpleNamespace(
            s3=s3,
            dynamodb=dynamodb,
            uploads_table=uploads_table,
            transactions_table=transactions_table
        )

        clear_dependency_cache()
    config.settings = config.Settings()


@pytest.fixture
def auth_headers():
    """Generate valid JWT token and return authorization headers."""
    expiration = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": "test_user",
        "exp": expiration,
        "iat": datetime.now(timezone.utc)
    }

    token = jwt.encode(payload, 'test-secret', algorithm='HS256')

    return {"Authorization": f"Bearer {token}"}
