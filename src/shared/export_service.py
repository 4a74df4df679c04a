"""
Export Service - append-only CSV output for seller records.

The result file is created with a header the first time and appended to on
every found seller, across runs. Rows are written in completion order.
"""

import csv
import logging
from pathlib import Path
from typing import List, Optional

from src.shared.errors import ResultSinkError
from src.shared.seller_schema import CSV_COLUMNS, SellerRecord

__all__ = [
    'CsvResultSink',
]


class CsvResultSink:
    """Append-only CSV file with a fixed header.

    Values are written as extracted. Those containing a comma, quote or
    newline are quoted with doubled internal quotes (csv.QUOTE_MINIMAL).

    Usage:
        sink = CsvResultSink('results/sellers.csv')
        sink.ensure()
        sink.append(record)
    """

    def __init__(self, path: str, fieldnames: Optional[List[str]] = None):
        self.path = Path(path)
        self.fieldnames = list(fieldnames or CSV_COLUMNS)
        self.rows_written = 0

    def ensure(self) -> bool:
        """Create the file with a header row if it doesn't exist.

        Returns:
            True if the file was created, False if it already existed

        Raises:
            ResultSinkError: If the file cannot be created
        """
        if self.path.exists():
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=self.fieldnames, lineterminator='\n')
                writer.writeheader()
        except OSError as e:
            raise ResultSinkError(f"Cannot create result file {self.path}: {e}") from e
        logging.info(f"Created result file {self.path}")
        return True

    def append(self, record: SellerRecord) -> None:
        """Append one record as a CSV row.

        Raises:
            ResultSinkError: If the row cannot be written
        """
        row = record.to_row()
        try:
            with open(self.path, 'a', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(
                    f,
                    fieldnames=self.fieldnames,
                    extrasaction='ignore',
                    lineterminator='\n',
                )
                writer.writerow(row)
        except OSError as e:
            raise ResultSinkError(f"Cannot append to result file {self.path}: {e}") from e
        self.rows_written += 1
