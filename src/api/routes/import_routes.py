"""
Market data import API routes.
Handles CSV submission, progress polling, cancellation, history and pre-flight validation.
"""
from datetime import date
from typing import Literal, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from src.core import config
from src.core.auth_dependencies import verify_token
from src.core.dependencies import get_import_service
from src.core.exceptions import ValidationException
from src.models.dto.import_dto import (
    CancelImportResponse,
    CsvValidationResponse,
    ImportHistoryPage,
    ImportParameters,
    ImportProgressResponse,
    ImportSubmitResponse,
)
from src.models.import_request import DateRange, ImportRequest
from src.services.import_service import MarketImportService

router = APIRouter(prefix="/v1/api", tags=["Imports"])


async def _read_csv_upload(file: UploadFile) -> bytes:
    """Enforce file type and size limits, returning the raw payload."""
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed"
        )

    content = await file.read()
    file_size = len(content)
    max_size_bytes = config.settings.max_file_size_mb * 1024 * 1024

    if file_size > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({file_size / (1024 * 1024):.2f}MB) exceeds maximum allowed size of {config.settings.max_file_size_mb}MB"
        )

    return content


@router.post("/imports", response_model=ImportSubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_import(
    file: UploadFile = File(..., description="CSV file containing market data"),
    data_type: Literal["property_prices", "rental_yields", "market_trends", "demographic_data"] = Form(...),
    source: str = Form(..., description="Data source / provenance tag"),
    start_date: date = Form(...),
    end_date: date = Form(...),
    region: Optional[str] = Form(default=None),
    overwrite_existing: bool = Form(default=False),
    import_service: MarketImportService = Depends(get_import_service),
    user_id: str = Depends(verify_token)
):
    """
    Start an asynchronous market data import.

    The job id is returned at once; poll the progress endpoint for status.
    """
    try:
        params = ImportParameters(
            data_type=data_type,
            source=source,
            start_date=start_date,
            end_date=end_date,
            region=region,
            overwrite_existing=overwrite_existing
        )
    except ValidationError as e:
        raise ValidationException("; ".join(error['msg'] for error in e.errors())) from e

    payload = await _read_csv_upload(file)

    request = ImportRequest(
        payload=payload,
        filename=file.filename,
        data_type=params.data_type,
        source=params.source,
        date_range=DateRange(params.start_date, params.end_date),
        submitted_by=user_id,
        region=params.region,
        overwrite_existing=params.overwrite_existing
    )
    return import_service.submit_import(request)


@router.post("/imports/validate", response_model=CsvValidationResponse)
async def validate_csv(
    file: UploadFile = File(..., description="CSV file to validate"),
    import_service: MarketImportService = Depends(get_import_service),
    user_id: str = Depends(verify_token)
):
    """
    Validate a CSV file and preview its first rows without importing it.
    """
    payload = await _read_csv_upload(file)
    return import_service.validate_csv(payload)


@router.get("/imports/history", response_model=ImportHistoryPage)
async def get_import_history(
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: Optional[int] = Query(default=None, ge=1, description="Items per page"),
    import_service: MarketImportService = Depends(get_import_service),
    user_id: str = Depends(verify_token)
):
    """
    List finished imports, most recent first.

    - **page**: Page number (default 1)
    - **limit**: Items per page (default and maximum come from configuration)
    """
    limit = min(limit or config.settings.pagination_default_limit, config.settings.pagination_max_limit)
    return import_service.get_import_history(page, limit)


@router.get("/imports/{job_id}/progress", response_model=ImportProgressResponse)
async def get_import_progress(
    job_id: str,
    import_service: MarketImportService = Depends(get_import_service),
    user_id: str = Depends(verify_token)
):
    """
    Get the live progress of an import job.
    """
    return import_service.get_progress(job_id)


@router.delete("/imports/{job_id}", response_model=CancelImportResponse)
async def cancel_import(
    job_id: str,
    import_service: MarketImportService = Depends(get_import_service),
    user_id: str = Depends(verify_token)
):
    """
    Cancel a pending or running import. Finished imports cannot be cancelled.
    """
    return import_service.cancel_import(job_id, user_id)
