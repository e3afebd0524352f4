"""
Data Transfer Objects for the Market Data Import API.
Defines request and response schemas for API endpoints.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class ImportParameters(BaseModel):
    """Form fields accompanying an uploaded CSV file."""
    data_type: Literal["property_prices", "rental_yields", "market_trends", "demographic_data"] = Field(
        ..., description="Type of market data"
    )
    source: str = Field(..., min_length=1, max_length=100, description="Data source / provenance tag")
    start_date: date = Field(..., description="Start of the date range the data covers")
    end_date: date = Field(..., description="End of the date range the data covers")
    region: Optional[str] = Field(default=None, max_length=100, description="Default location for rows without one")
    overwrite_existing: bool = Field(default=False, description="Replace records with the same natural key")

    @field_validator('source', 'region')
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.strip() == "":
            raise ValueError("Field cannot be empty")
        return v.strip()

    @model_validator(mode='after')
    def validate_date_range(self) -> "ImportParameters":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class ImportSubmitResponse(BaseModel):
    """Response schema for an accepted import."""
    job_id: str = Field(..., description="Unique identifier for the import job")
    status: str = Field(..., description="Initial job status")
    message: str = Field(..., description="Status message")


class ImportProgressResponse(BaseModel):
    """Snapshot of a live or finished import job."""
    job_id: str
    status: str
    total_records: int = 0
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    errors: List[str] = []
    start_time: datetime
    end_time: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None
    cancellation_requested: bool = False


class CancelImportResponse(BaseModel):
    """Response schema for a cancellation request."""
    success: bool
    message: str


class ImportHistoryResponse(BaseModel):
    """One audit record of a finished import."""
    history_id: str
    job_id: str
    data_type: str
    source: str
    file_name: str
    status: str
    imported_by: str
    started_at: datetime
    imported_at: datetime
    total_records: int = 0
    records_imported: int = 0
    records_failed: int = 0
    errors: List[str] = []
    error_count: int = 0
    range_start: Optional[date] = None
    range_end: Optional[date] = None


class ImportHistoryPage(BaseModel):
    """Paginated import history, newest first."""
    data: List[ImportHistoryResponse]
    total: int
    page: int
    limit: int


class CsvValidationResponse(BaseModel):
    """Pre-flight validation result for a CSV file."""
    valid: bool
    errors: List[str] = []
    preview: List[Dict[str, Any]] = []
