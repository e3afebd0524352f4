"""
Row Validator for decoded CSV rows.
Checks required fields, coerces types and maps a row into a MarketData draft.
"""
import json
from datetime import date, datetime
from decimal import Decimal, DecimalException
from typing import Dict, Optional, Union
from boto3.dynamodb.types import DYNAMODB_CONTEXT
from src.models.import_request import ImportRequest
from src.models.market_data import MarketData

PRICE_FIELD = 'averagePrice'
DATE_FIELD = 'recordDate'
LOCATION_FIELD = 'location'
REQUIRED_COLUMNS = (PRICE_FIELD, DATE_FIELD)

DAY_FIRST_FORMAT = '%d/%m/%Y'


class RowValidationError:
    """A rejected row. Returned, never raised, so the batch can carry on."""

    def __init__(self, row_number: int, row: Dict[str, str], field: str, detail: Optional[str] = None):
        self.row_number = row_number
        self.row = row
        self.field = field
        self.detail = detail

    @property
    def message(self) -> str:
        reason = f"Invalid {self.field} field"
        if self.detail:
            reason = f"{reason}: {self.detail}"
        return f"Row {self.row_number}: Record {json.dumps(self.row, sort_keys=True)}: {reason}"

    def __repr__(self):
        return f"RowValidationError(row_number={self.row_number}, field={self.field})"


class _FieldError(Exception):
    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        self.detail = detail
        super().__init__(field)


class RowValidator:
    """Validates and transforms one row at a time. Holds no state."""

    def validate_and_transform(
        self,
        row: Dict[str, str],
        request: ImportRequest,
        row_number: int,
        job_id: Optional[str] = None
    ) -> Union[MarketData, RowValidationError]:
        """
        Convert a decoded row into a MarketData draft.

        Args:
            row: Decoded CSV row (column name to raw string)
            request: Import-level parameters supplying defaults and provenance
            row_number: 1-based data row number for error reporting
            job_id: Import job that produced the row

        Returns:
            MarketData on success, RowValidationError otherwise
        """
        try:
            return self._transform(row, request, row_number, job_id)
        except _FieldError as e:
            return RowValidationError(row_number, row, e.field, e.detail)

    def check_fields(self, row: Dict[str, str], row_number: int) -> Optional[RowValidationError]:
        """
        Check the type-level rules of a row without import parameters.

        Used for pre-flight validation: price and date must parse, but
        location defaulting is not applied.
        """
        try:
            self._parse_price(row.get(PRICE_FIELD), PRICE_FIELD, required=True)
            if self._parse_date(row.get(DATE_FIELD)) is None:
                raise _FieldError(DATE_FIELD)
        except _FieldError as e:
            return RowValidationError(row_number, row, e.field, e.detail)
        return None

    def _transform(self, row: Dict[str, str], request: ImportRequest, row_number: int, job_id: Optional[str]) -> MarketData:
        average_price = self._parse_price(row.get(PRICE_FIELD), PRICE_FIELD, required=True)

        record_date = self._parse_date(row.get(DATE_FIELD))
        if record_date is None:
            raise _FieldError(DATE_FIELD)

        location = row.get(LOCATION_FIELD) or request.region
        if not location:
            raise _FieldError(LOCATION_FIELD)

        return MarketData(
            location=location,
            property_type=row.get('propertyType') or None,
            average_price=average_price,
            median_price=self._parse_price(row.get('medianPrice'), 'medianPrice', required=False),
            sales_volume=self._parse_count(row.get('salesVolume'), 'salesVolume'),
            record_date=record_date,
            data_type=request.data_type,
            source=request.source,
            import_job_id=job_id,
            notes=json.dumps({'originalRecord': row, 'rowNumber': row_number}, sort_keys=True),
            row_number=row_number
        )

    def _parse_price(self, value: Optional[str], field: str, required: bool) -> Optional[Decimal]:
        if not value:
            if required:
                raise _FieldError(field)
            return None
        try:
            price = Decimal(value)
        except DecimalException:
            raise _FieldError(field)
        if not price.is_finite() or price < 0:
            raise _FieldError(field)
        return self._storable(price, field)

    def _parse_count(self, value: Optional[str], field: str) -> Optional[int]:
        if not value:
            return None
        try:
            count = int(value)
        except ValueError:
            raise _FieldError(field)
        if count < 0:
            raise _FieldError(field)
        self._storable(count, field)
        return count

    def _storable(self, number, field: str) -> Decimal:
        # DynamoDB numbers: 38 significant digits, exponent within [-130, 125]
        try:
            return DYNAMODB_CONTEXT.create_decimal(number)
        except DecimalException:
            raise _FieldError(field, "value cannot be stored exactly")

    def _parse_date(self, value: Optional[str]) -> Optional[date]:
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            pass
        try:
            return datetime.strptime(value, DAY_FIRST_FORMAT).date()
        except ValueError:
            return None
