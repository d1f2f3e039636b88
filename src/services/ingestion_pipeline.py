"""
Ingestion pipeline for uploaded royalty CSV files.

Drives one upload from `pending` to a terminal status:

    claim (pending -> processing)
    count pass  -> total_rows
    load pass   -> rows in memory
    per row     -> map, persist, checkpoint every N successes
    terminal    -> completed | completed_with_errors | failed

The pipeline is the only writer of an upload's status and progress while it
runs. Every write after the claim is conditional on the record still being
`processing`, so nothing is written after a terminal state and a record
deleted mid-run is not recreated.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
from src.core import config
from src.core.exceptions import (
    CSVProcessingException,
    DynamoDBException,
    RoyaltyIngestionException,
    UploadStateConflictException,
)
from src.core.logging_config import get_logger
from src.models.csv_upload import UploadStatus, calculate_progress
from src.repositories.csv_upload_repository import CsvUploadRepository
from src.repositories.transaction_repository import TransactionRepository
from src.services.field_mapper import CoercionPolicy, map_row
from src.services.row_loader import RowLoader

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    """Outcome of one pipeline run."""
    upload_id: str
    status: Optional[UploadStatus]
    total_rows: int = 0
    processed_rows: int = 0
    error_count: int = 0
    error_message: Optional[str] = None
    abandoned: bool = False


def summarize_errors(errors: List[str], limit: int = 10) -> Optional[str]:
    """Join the first `limit` row errors, noting how many were left out."""
    if not errors:
        return None
    summary = "\n".join(errors[:limit])
    if len(errors) > limit:
        summary += f"\n...and {len(errors) - limit} more errors"
    return summary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionPipeline:
    """Processes one stored CSV upload into transactions."""

    def __init__(
        self,
        upload_repository: CsvUploadRepository = None,
        transaction_repository: TransactionRepository = None,
        row_loader: RowLoader = None,
        checkpoint_interval: Optional[int] = None,
        max_reported_errors: Optional[int] = None,
        timeout_seconds: Optional[int] = None,
        coercion_policy: Optional[CoercionPolicy] = None,
        now: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic
    ):
        settings = config.settings
        self.upload_repository = upload_repository or CsvUploadRepository()
        self.transaction_repository = transaction_repository or TransactionRepository()
        self.row_loader = row_loader or RowLoader(max_rows=settings.max_csv_rows)
        self.checkpoint_interval = max(1, checkpoint_interval or settings.progress_checkpoint_interval)
        self.max_reported_errors = max_reported_errors or settings.max_reported_errors
        self.timeout_seconds = settings.processing_timeout_seconds if timeout_seconds is None else timeout_seconds
        self.coercion_policy = CoercionPolicy(coercion_policy or settings.coercion_policy.lower())
        self.now = now
        self.monotonic = monotonic

    def run(self, upload_id: str, s3_key: str) -> IngestionResult:
        """
        Process an upload end to end.

        Args:
            upload_id: Upload record to claim; must be `pending`
            s3_key: Stored CSV file

        Returns:
            IngestionResult. status is None when the upload could not be
            claimed or was deleted while processing (abandoned=True).

        Raises:
            DynamoDBException: If a status write fails for a reason other than a state conflict
        """
        try:
            self.upload_repository.update(
                upload_id,
                {'status': UploadStatus.PROCESSING, 'heartbeat_at': self.now()},
                expected_status=UploadStatus.PENDING
            )
        except UploadStateConflictException as e:
            logger.warning("Skipping upload %s: %s", upload_id, e.message)
            return IngestionResult(upload_id=upload_id, status=None)

        logger.info("Processing upload %s from %s", upload_id, s3_key)
        started = self.monotonic()

        try:
            total_rows = self.row_loader.count_rows(s3_key)
            self._write_progress(upload_id, {'total_rows': total_rows})
            rows = self.row_loader.load_rows(s3_key)
            if len(rows) != total_rows:
                raise CSVProcessingException(
                    f"File changed between passes: counted {total_rows} rows, loaded {len(rows)}"
                )
        except UploadStateConflictException as e:
            return self._abandon(upload_id, e)
        except Exception as e:
            message = e.message if isinstance(e, RoyaltyIngestionException) else str(e)
            logger.error("Failed to read upload %s: %s", upload_id, message)
            return self._finish(
                upload_id,
                UploadStatus.FAILED,
                {'error_message': message},
                IngestionResult(upload_id=upload_id, status=UploadStatus.FAILED, error_message=message)
            )

        logger.info("Upload %s has %d rows", upload_id, total_rows)
        return self._process_rows(upload_id, rows, started)

    def _process_rows(self, upload_id: str, rows: List[dict], started: float) -> IngestionResult:
        total_rows = len(rows)
        ingested_at = self.now()
        processed_rows = 0
        last_processed_row = 0
        errors: List[str] = []
        written_ids: List[str] = []

        for row_number, row in enumerate(rows, start=1):
            if self._deadline_passed(started):
                return self._time_out(upload_id, row_number - 1, total_rows, written_ids)

            try:
                transaction = map_row(row, upload_id, row_number, ingested_at, self.coercion_policy)
                self.transaction_repository.save(transaction)
            except Exception as e:
                cause = e.message if isinstance(e, RoyaltyIngestionException) else str(e)
                error = f"Error processing row {row_number}: {cause}"
                errors.append(error)
                logger.error("Upload %s: %s", upload_id, error)
                continue

            written_ids.append(transaction.id)
            processed_rows += 1
            last_processed_row = row_number

            if processed_rows % self.checkpoint_interval == 0 or row_number == total_rows:
                try:
                    self._write_progress(upload_id, {
                        'processed_rows': processed_rows,
                        'progress': calculate_progress(processed_rows, total_rows),
                        'last_processed_row': last_processed_row,
                    })
                except UploadStateConflictException as e:
                    return self._abandon(upload_id, e, written_ids)
                except DynamoDBException as e:
                    logger.warning("Upload %s: checkpoint at row %d not saved: %s",
                                   upload_id, row_number, e.message)

        status = UploadStatus.COMPLETED_WITH_ERRORS if errors else UploadStatus.COMPLETED
        error_message = summarize_errors(errors, self.max_reported_errors)
        updates = {
            'processed_rows': processed_rows,
            'last_processed_row': last_processed_row,
        }
        if error_message:
            updates['error_message'] = error_message

        logger.info(
            "Upload %s finished: total=%d processed=%d errors=%d",
            upload_id, total_rows, processed_rows, len(errors)
        )
        return self._finish(upload_id, status, updates, IngestionResult(
            upload_id=upload_id,
            status=status,
            total_rows=total_rows,
            processed_rows=processed_rows,
            error_count=len(errors),
            error_message=error_message
        ), written_ids)

    def _write_progress(self, upload_id: str, updates: dict) -> None:
        updates = dict(updates, heartbeat_at=self.now())
        logger.debug("Upload %s checkpoint: %s", upload_id, updates)
        self.upload_repository.update(upload_id, updates, expected_status=UploadStatus.PROCESSING)

    def _finish(self, upload_id: str, status: UploadStatus, updates: dict,
                result: IngestionResult, written_ids: Sequence[str] = ()) -> IngestionResult:
        now = self.now()
        updates = dict(updates, status=status, progress=100, completed_at=now, heartbeat_at=now)
        try:
            self.upload_repository.update(upload_id, updates, expected_status=UploadStatus.PROCESSING)
        except UploadStateConflictException as e:
            return self._abandon(upload_id, e, written_ids)
        return result

    def _deadline_passed(self, started: float) -> bool:
        return bool(self.timeout_seconds) and self.monotonic() - started > self.timeout_seconds

    def _time_out(self, upload_id: str, rows_done: int, total_rows: int,
                  written_ids: Sequence[str]) -> IngestionResult:
        message = (
            f"Processing exceeded the {self.timeout_seconds}s deadline "
            f"after {rows_done} of {total_rows} rows"
        )
        logger.error("Upload %s: %s", upload_id, message)
        removed = self._discard(upload_id, written_ids)
        logger.info("Upload %s: removed %d partial transactions", upload_id, removed)
        return self._finish(
            upload_id,
            UploadStatus.FAILED,
            {'error_message': message},
            IngestionResult(upload_id=upload_id, status=UploadStatus.FAILED,
                            total_rows=total_rows, error_message=message)
        )

    def _abandon(self, upload_id: str, error: UploadStateConflictException,
                 written_ids: Sequence[str] = ()) -> IngestionResult:
        logger.warning("Abandoning upload %s: %s", upload_id, error.message)
        removed = self._discard(upload_id, written_ids)
        if removed:
            logger.info("Upload %s: removed %d orphaned transactions", upload_id, removed)
        return IngestionResult(upload_id=upload_id, status=None, abandoned=True)

    def _discard(self, upload_id: str, written_ids: Sequence[str]) -> int:
        """Delete the transactions this run wrote. A failed delete is logged, not raised."""
        if not written_ids:
            return 0
        try:
            return self.transaction_repository.delete_many(written_ids)
        except DynamoDBException as e:
            logger.error("Upload %s: could not remove %d transactions: %s",
                         upload_id, len(written_ids), e.message)
            return 0
