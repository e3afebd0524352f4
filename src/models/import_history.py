"""
Import History domain model.
Immutable audit summary of a finished, failed or cancelled import.
"""
from datetime import date, datetime
from typing import List, Optional

from src.models.import_job import ImportJob, ImportStatus
from src.models.import_request import ImportRequest


class ImportHistoryRecord:
    """Audit record written once per terminal import job."""

    def __init__(
        self,
        history_id: str,
        job_id: str,
        data_type: str,
        source: str,
        file_name: str,
        status: ImportStatus,
        imported_by: str,
        started_at: datetime,
        imported_at: datetime,
        total_records: int = 0,
        records_imported: int = 0,
        records_failed: int = 0,
        errors: Optional[List[str]] = None,
        error_count: int = 0,
        range_start: Optional[date] = None,
        range_end: Optional[date] = None
    ):
        self.history_id = history_id
        self.job_id = job_id
        self.data_type = data_type
        self.source = source
        self.file_name = file_name
        self.status = status
        self.imported_by = imported_by
        self.started_at = started_at
        self.imported_at = imported_at
        self.total_records = total_records
        self.records_imported = records_imported
        self.records_failed = records_failed
        self.errors = tuple(errors or ())
        self.error_count = error_count
        self.range_start = range_start
        self.range_end = range_end

    @classmethod
    def from_job(cls, history_id: str, job: ImportJob, request: ImportRequest, max_errors: int) -> "ImportHistoryRecord":
        """Summarise a terminal job; only the first max_errors messages are kept."""
        return cls(
            history_id=history_id,
            job_id=job.job_id,
            data_type=request.data_type,
            source=request.source,
            file_name=request.filename or "API Import",
            status=job.status,
            imported_by=request.submitted_by,
            started_at=job.start_time,
            imported_at=job.end_time,
            total_records=job.total_records,
            records_imported=job.successful_records,
            records_failed=job.failed_records,
            errors=job.errors[:max_errors],
            error_count=len(job.errors),
            range_start=request.date_range.start_date,
            range_end=request.date_range.end_date
        )

    def __repr__(self):
        return (
            f"ImportHistoryRecord(job_id={self.job_id}, status={self.status.value}, "
            f"imported={self.records_imported}, failed={self.records_failed})"
        )
