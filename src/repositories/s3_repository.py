"""
S3 Repository for uploaded file storage.
Stores raw CSV uploads and serves them back as streams for the pipeline.
"""
from typing import BinaryIO
import boto3
from botocore.exceptions import ClientError
from src.core import config
from src.core.exceptions import S3Exception


class S3Repository:
    """Repository for S3 file operations."""

    def __init__(self):
        self.s3_client = boto3.client('s3', region_name=config.settings.aws_region)
        self.bucket_name = config.settings.s3_bucket_name

    def upload_file(self, file: BinaryIO, s3_key: str, content_type: str = 'text/csv') -> str:
        """
        Upload a file object under the given key.

        Args:
            file: File object to upload
            s3_key: Destination object key
            content_type: MIME type stored with the object

        Returns:
            str: s3:// location of the stored object

        Raises:
            S3Exception: If upload fails
        """
        try:
            self.s3_client.upload_fileobj(
                file,
                self.bucket_name,
                s3_key,
                ExtraArgs={'ContentType': content_type}
            )
            return f"s3://{self.bucket_name}/{s3_key}"

        except ClientError as e:
            raise S3Exception(f"Failed to upload file to S3: {str(e)}") from e
        except Exception as e:
            raise S3Exception(f"Unexpected error during S3 upload: {str(e)}") from e

    def open_stream(self, s3_key: str):
        """
        Open a streaming body for an object.
        Each call starts a fresh read from the first byte.

        Raises:
            S3Exception: If the object cannot be opened
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=s3_key)
            return response['Body']
        except ClientError as e:
            raise S3Exception(f"Failed to retrieve file from S3: {str(e)}") from e

    def delete_file(self, s3_key: str) -> None:
        """
        Delete an object. Deleting a missing key is not an error.

        Raises:
            S3Exception: If delete fails
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        except ClientError as e:
            raise S3Exception(f"Failed to delete file from S3: {str(e)}") from e
