import pytest
from src.core.exceptions import CSVProcessingException
from src.repositories.s3_repository import S3Repository
from src.services.row_loader import EXTRA_VALUES_KEY, RowLoader


def put_csv(aws, key, body):
    aws.s3.put_object(Bucket='test-bucket', Key=key, Body=body)
    return key


class TestRowLoader:
    @pytest.fixture
    def loader(self, aws):
        return RowLoader(S3Repository())

    def test_count_rows_excludes_header(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title,Artist\nA,X\nB,Y\nC,Z\n")

        assert loader.count_rows(key) == 3

    def test_load_rows_in_file_order(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title,Artist\nA,X\nB,Y\n")

        rows = loader.load_rows(key)

        assert rows == [{"Title": "A", "Artist": "X"}, {"Title": "B", "Artist": "Y"}]

    def test_header_only_file_has_no_rows(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title,Artist\n")

        assert loader.count_rows(key) == 0
        assert loader.load_rows(key) == []

    def test_empty_file_has_no_rows(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"")

        assert loader.count_rows(key) == 0

    def test_utf8_bom_is_stripped_from_first_header(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"\xef\xbb\xbf" + "Title,Artist\nCafé,Zoë\n".encode("utf-8"))

        rows = loader.load_rows(key)

        assert rows == [{"Title": "Café", "Artist": "Zoë"}]

    def test_quoted_values_with_commas(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b'Title,Revenue\n"Hello, World","1,234.50"\n')

        rows = loader.load_rows(key)

        assert rows[0] == {"Title": "Hello, World", "Revenue": "1,234.50"}

    def test_short_rows_are_padded_and_long_rows_keep_extras(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title,Artist\nOnly\nA,B,C,D\n")

        rows = loader.load_rows(key)

        assert rows[0] == {"Title": "Only", "Artist": ""}
        assert rows[1]["Title"] == "A"
        assert rows[1][EXTRA_VALUES_KEY] == ["C", "D"]

    def test_invalid_encoding_raises(self, aws, loader):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title\n\xff\xfe\xfa\n")

        with pytest.raises(CSVProcessingException):
            loader.count_rows(key)

    def test_missing_object_raises(self, aws, loader):
        with pytest.raises(CSVProcessingException) as exc_info:
            loader.count_rows('uploads/missing/a.csv')

        assert "Failed to retrieve file from S3" in exc_info.value.message

    def test_max_rows_limit(self, aws):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title\nA\nB\nC\n")
        loader = RowLoader(S3Repository(), max_rows=2)

        with pytest.raises(CSVProcessingException) as exc_info:
            loader.count_rows(key)

        assert "maximum of 2 rows" in exc_info.value.message

    def test_max_rows_allows_exact_limit(self, aws):
        key = put_csv(aws, 'uploads/u1/a.csv', b"Title\nA\nB\n")
        loader = RowLoader(S3Repository(), max_rows=2)

        assert loader.count_rows(key) == 2
