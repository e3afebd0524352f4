"""
Domain model for a market data record.
Database-agnostic representation of one validated CSV row.
"""
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple


class MarketData:
    """Validated market price record, ready for the batch writer."""

    def __init__(
        self,
        location: str,
        average_price: Decimal,
        record_date: date,
        data_type: str,
        source: str,
        property_type: Optional[str] = None,
        median_price: Optional[Decimal] = None,
        sales_volume: Optional[int] = None,
        import_job_id: Optional[str] = None,
        notes: Optional[str] = None,
        row_number: Optional[int] = None
    ):
        self.location = location
        self.average_price = average_price
        self.record_date = record_date
        self.data_type = data_type
        self.source = source
        self.property_type = property_type
        self.median_price = median_price
        self.sales_volume = sales_volume
        self.import_job_id = import_job_id
        self.notes = notes
        self.row_number = row_number

    @property
    def natural_key(self) -> Tuple[str, str, str]:
        """(location, property type, record date) identifying the same observation."""
        return (self.location, self.property_type or "", self.record_date.isoformat())

    def __repr__(self):
        return (
            f"MarketData(location={self.location}, property_type={self.property_type}, "
            f"average_price={self.average_price}, record_date={self.record_date})"
        )
