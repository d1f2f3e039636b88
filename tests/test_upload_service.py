import io
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock
from src.core.exceptions import S3Exception, UploadNotFoundException, ValidationException
from src.models.csv_upload import UploadStatus
from src.services.file_service import FileService
from src.services.upload_service import UploadService
from tests.conftest import make_upload


class TestUploadService:
    @pytest.fixture
    def mock_repositories(self):
        s3_repo = Mock()
        upload_repo = Mock()
        transaction_repo = Mock()
        return s3_repo, upload_repo, transaction_repo

    @pytest.fixture
    def upload_service(self, mock_repositories):
        s3_repo, upload_repo, transaction_repo = mock_repositories
        return UploadService(
            s3_repository=s3_repo,
            upload_repository=upload_repo,
            transaction_repository=transaction_repo,
            file_service=FileService()
        )

    def test_upload_csv_creates_pending_record_then_stores_file(self, upload_service, mock_repositories):
        s3_repo, upload_repo, _ = mock_repositories
        calls = []
        upload_repo.create.side_effect = lambda upload: calls.append('create')
        s3_repo.upload_file.side_effect = lambda *args: calls.append('upload')
        file = io.BytesIO(b"Title\nSong\n")

        upload = upload_service.upload_csv(file, "Q1 report.csv", "text/csv", 11, "user-1")

        assert calls == ['create', 'upload']
        assert upload.status == UploadStatus.PENDING
        assert upload.original_file_name == "Q1 report.csv"
        assert upload.file_name.endswith(".csv")
        assert upload.s3_key == f"uploads/{upload.upload_id}/{upload.file_name}"
        assert upload.uploaded_by == "user-1"
        assert upload.file_size == 11
        assert upload.total_rows == 0
        assert upload.processed_rows == 0

        created = upload_repo.create.call_args[0][0]
        assert created.upload_id == upload.upload_id
        s3_repo.upload_file.assert_called_once_with(file, upload.s3_key, "text/csv")

    def test_upload_csv_rejected_file_writes_nothing(self, upload_service, mock_repositories):
        s3_repo, upload_repo, _ = mock_repositories

        with pytest.raises(ValidationException):
            upload_service.upload_csv(io.BytesIO(b"x"), "report.pdf", "application/pdf", 1, "user-1")

        upload_repo.create.assert_not_called()
        s3_repo.upload_file.assert_not_called()

    def test_upload_csv_storage_failure_removes_record(self, upload_service, mock_repositories):
        s3_repo, upload_repo, _ = mock_repositories
        s3_repo.upload_file.side_effect = S3Exception("Failed to upload file to S3: boom")

        with pytest.raises(S3Exception):
            upload_service.upload_csv(io.BytesIO(b"Title\n"), "report.csv", "text/csv", 6, "user-1")

        created = upload_repo.create.call_args[0][0]
        upload_repo.delete.assert_called_once_with(created.upload_id)

    def test_get_upload_success(self, upload_service, mock_repositories):
        _, upload_repo, _ = mock_repositories
        upload_repo.get_by_id.return_value = make_upload(
            "upload-1",
            status=UploadStatus.COMPLETED,
            total_rows=10,
            processed_rows=10,
            progress=100,
            completed_at=datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)
        )

        response = upload_service.get_upload("upload-1")

        assert response.upload_id == "upload-1"
        assert response.file_name == "report.csv"
        assert response.stored_file_name == "1700000000000-42.csv"
        assert response.status == UploadStatus.COMPLETED
        assert response.progress == 100
        assert response.stalled is False

    def test_get_upload_not_found(self, upload_service, mock_repositories):
        _, upload_repo, _ = mock_repositories
        upload_repo.get_by_id.return_value = None

        with pytest.raises(UploadNotFoundException) as exc_info:
            upload_service.get_upload("missing")

        assert exc_info.value.message == "Upload ID 'missing' not found"

    def test_processing_upload_without_recent_heartbeat_is_stalled(self, upload_service, mock_repositories):
        _, upload_repo, _ = mock_repositories
        long_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        upload_repo.get_by_id.return_value = make_upload(
            "upload-1", status=UploadStatus.PROCESSING, created_at=long_ago, heartbeat_at=long_ago
        )

        assert upload_service.get_upload("upload-1").stalled is True

    def test_processing_upload_with_recent_heartbeat_is_not_stalled(self, upload_service, mock_repositories):
        _, upload_repo, _ = mock_repositories
        upload_repo.get_by_id.return_value = make_upload(
            "upload-1",
            status=UploadStatus.PROCESSING,
            created_at=datetime.now(timezone.utc) - timedelta(hours=2),
            heartbeat_at=datetime.now(timezone.utc)
        )

        assert upload_service.get_upload("upload-1").stalled is False

    def test_list_uploads(self, upload_service, mock_repositories):
        _, upload_repo, _ = mock_repositories
        upload_repo.list_uploads.return_value = ([make_upload("a"), make_upload("b")], "token-1")

        response = upload_service.list_uploads(UploadStatus.PENDING, 2, None)

        upload_repo.list_uploads.assert_called_once_with(UploadStatus.PENDING, 2, None)
        assert [u.upload_id for u in response.uploads] == ["a", "b"]
        assert response.count == 2
        assert response.next_token == "token-1"

    def test_delete_upload_removes_record_transactions_and_file(self, upload_service, mock_repositories):
        s3_repo, upload_repo, transaction_repo = mock_repositories
        upload = make_upload("upload-1")
        upload_repo.get_by_id.return_value = upload
        transaction_repo.delete_by_upload.return_value = 7

        removed = upload_service.delete_upload("upload-1")

        assert removed == 7
        upload_repo.delete.assert_called_once_with("upload-1")
        transaction_repo.delete_by_upload.assert_called_once_with("upload-1")
        s3_repo.delete_file.assert_called_once_with(upload.s3_key)

    def test_delete_upload_not_found(self, upload_service, mock_repositories):
        s3_repo, upload_repo, transaction_repo = mock_repositories
        upload_repo.get_by_id.return_value = None

        with pytest.raises(UploadNotFoundException):
            upload_service.delete_upload("missing")

        transaction_repo.delete_by_upload.assert_not_called()
        s3_repo.delete_file.assert_not_called()
