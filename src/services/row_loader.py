"""
Row Loader for stored CSV uploads.
Streams the file from S3 once to count rows and a second time to load them.
"""
import codecs
import csv
from typing import Dict, Iterator, List, Optional
from botocore.exceptions import BotoCoreError
from src.core.exceptions import CSVProcessingException, RoyaltyIngestionException
from src.repositories.s3_repository import S3Repository

EXTRA_VALUES_KEY = "__extra__"

Row = Dict[str, object]


class RowLoader:
    """Reads CSV rows (header first) from S3 as dictionaries."""

    def __init__(self, s3_repository: S3Repository = None, max_rows: Optional[int] = None):
        self.s3_repository = s3_repository or S3Repository()
        self.max_rows = max_rows

    def count_rows(self, s3_key: str) -> int:
        """
        Count data rows without retaining them.

        Raises:
            CSVProcessingException: If the file cannot be read or exceeds max_rows
        """
        total = 0
        for _ in self._stream_rows(s3_key):
            total += 1
            if self.max_rows and total > self.max_rows:
                raise CSVProcessingException(
                    f"CSV file exceeds the maximum of {self.max_rows} rows"
                )
        return total

    def load_rows(self, s3_key: str) -> List[Row]:
        """
        Materialize all data rows in file order.

        Raises:
            CSVProcessingException: If the file cannot be read
        """
        return list(self._stream_rows(s3_key))

    def _stream_rows(self, s3_key: str) -> Iterator[Row]:
        try:
            body = self.s3_repository.open_stream(s3_key)
        except RoyaltyIngestionException as e:
            raise CSVProcessingException(e.message) from e

        try:
            reader = csv.DictReader(
                codecs.getreader('utf-8-sig')(body),
                restkey=EXTRA_VALUES_KEY,
                restval=''
            )
            for row in reader:
                yield row
        except (UnicodeDecodeError, csv.Error, OSError, BotoCoreError) as e:
            raise CSVProcessingException(str(e)) from e
        finally:
            body.close()
