"""
Record Decoder for CSV payloads.
Turns an in-memory upload into a stream of raw row dictionaries.
"""
import csv
import io
from typing import Dict, Iterator, List
from src.core.exceptions import CSVProcessingException

Row = Dict[str, str]


class RecordDecoder:
    """Decodes delimited text into rows of column name to raw string."""

    ENCODING = 'utf-8-sig'

    def header(self, payload: bytes) -> List[str]:
        """
        Return the column names of a CSV payload.

        Raises:
            CSVProcessingException: If the payload has no readable header
        """
        return list(self._open_reader(payload).fieldnames)

    def decode(self, payload: bytes) -> Iterator[Row]:
        """
        Lazily decode a CSV payload.

        The returned generator can be consumed once. Structural problems found
        part-way through surface when iteration reaches them.

        Args:
            payload: Raw CSV bytes

        Returns:
            Iterator of rows; values are whitespace-stripped, missing cells are ''

        Raises:
            CSVProcessingException: If the payload is not structurally valid CSV
        """
        reader = self._open_reader(payload)
        return self._iter_rows(reader)

    def decode_all(self, payload: bytes, max_rows: int) -> List[Row]:
        """
        Decode a whole payload, enforcing a row limit.

        Raises:
            CSVProcessingException: If decoding fails or the file has more than max_rows rows
        """
        rows = []
        for row in self.decode(payload):
            if len(rows) >= max_rows:
                raise CSVProcessingException(f"CSV file exceeds the maximum of {max_rows} rows")
            rows.append(row)
        return rows

    def _open_reader(self, payload: bytes) -> csv.DictReader:
        try:
            content = payload.decode(self.ENCODING)
        except UnicodeDecodeError as e:
            raise CSVProcessingException("File must be a valid UTF-8 encoded CSV") from e

        if '\x00' in content:
            raise CSVProcessingException("File contains NUL bytes and is not a text CSV")

        reader = csv.DictReader(io.StringIO(content, newline=''), strict=True)
        try:
            fieldnames = reader.fieldnames
        except csv.Error as e:
            raise CSVProcessingException(f"Failed to parse CSV header: {str(e)}") from e

        if not fieldnames or not any(name.strip() for name in fieldnames):
            raise CSVProcessingException("CSV file is empty or has no header row")

        reader.fieldnames = [name.strip() for name in fieldnames]
        return reader

    def _iter_rows(self, reader: csv.DictReader) -> Iterator[Row]:
        try:
            for raw in reader:
                yield {
                    key: (value or '').strip()
                    for key, value in raw.items()
                    if key is not None and key != ''
                }
        except csv.Error as e:
            raise CSVProcessingException(
                f"Failed to parse CSV at line {reader.line_num}: {str(e)}"
            ) from e
