"""
Unit tests for S3Repository.
Uses moto to mock AWS S3 service.
"""
import io
import pytest
from src.repositories.s3_repository import S3Repository
from src.core.exceptions import S3Exception


class TestS3Repository:
    """Test suite for S3Repository."""

    @pytest.fixture
    def repo(self, aws):
        return S3Repository()

    def test_upload_file_success(self, aws, repo):
        file_content = b"Title,Artist\nSong,Band"

        result = repo.upload_file(io.BytesIO(file_content), "uploads/abc/1-2.csv")

        assert result == "s3://test-bucket/uploads/abc/1-2.csv"
        stored = aws.s3.get_object(Bucket='test-bucket', Key="uploads/abc/1-2.csv")
        assert stored['Body'].read() == file_content
        assert stored['ContentType'] == 'text/csv'

    def test_upload_file_missing_bucket(self, aws, repo):
        repo.bucket_name = 'no-such-bucket'

        with pytest.raises(S3Exception):
            repo.upload_file(io.BytesIO(b"data"), "uploads/abc/1-2.csv")

    def test_open_stream_reads_from_start_each_time(self, aws, repo):
        aws.s3.put_object(Bucket='test-bucket', Key='uploads/abc/a.csv', Body=b"Title\nSong\n")

        first = repo.open_stream('uploads/abc/a.csv')
        first.read()
        second = repo.open_stream('uploads/abc/a.csv')

        assert second.read() == b"Title\nSong\n"

    def test_open_stream_missing_object(self, aws, repo):
        with pytest.raises(S3Exception) as exc_info:
            repo.open_stream('uploads/abc/missing.csv')

        assert "Failed to retrieve file from S3" in exc_info.value.message

    def test_delete_file(self, aws, repo):
        aws.s3.put_object(Bucket='test-bucket', Key='uploads/abc/a.csv', Body=b"x")

        repo.delete_file('uploads/abc/a.csv')

        listing = aws.s3.list_objects_v2(Bucket='test-bucket')
        assert listing.get('KeyCount', 0) == 0

    def test_delete_missing_file_is_not_an_error(self, aws, repo):
        repo.delete_file('uploads/abc/missing.csv')
