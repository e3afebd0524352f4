"""
Import Request domain model.
Caller-supplied parameters that stay fixed for the lifetime of a job.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

DATA_TYPES = ("property_prices", "rental_yields", "market_trends", "demographic_data")


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of record dates an import is scoped to."""
    start_date: date
    end_date: date

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date


@dataclass(frozen=True)
class ImportRequest:
    """Immutable description of one submitted import."""
    payload: bytes
    filename: str
    data_type: str
    source: str
    date_range: DateRange
    submitted_by: str
    region: Optional[str] = None
    overwrite_existing: bool = False

    def __repr__(self):
        return (
            f"ImportRequest(filename={self.filename}, data_type={self.data_type}, "
            f"source={self.source}, bytes={len(self.payload)})"
        )
