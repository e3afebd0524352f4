"""
Import Job domain model.
Represents the live state of one market data import.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ImportStatus(str, Enum):
    """Lifecycle states of an import job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.CANCELLED)


class ImportJob:
    """Domain model for live import progress tracking."""

    def __init__(
        self,
        job_id: str,
        start_time: datetime,
        status: ImportStatus = ImportStatus.PENDING,
        total_records: int = 0,
        processed_records: int = 0,
        successful_records: int = 0,
        failed_records: int = 0,
        errors: Optional[List[str]] = None,
        end_time: Optional[datetime] = None,
        estimated_completion: Optional[datetime] = None,
        cancellation_requested: bool = False
    ):
        self.job_id = job_id
        self.status = status
        self.total_records = total_records
        self.processed_records = processed_records
        self.successful_records = successful_records
        self.failed_records = failed_records
        self.errors = errors if errors is not None else []
        self.start_time = start_time
        self.end_time = end_time
        self.estimated_completion = estimated_completion
        self.cancellation_requested = cancellation_requested

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def record_batch(self, successful: int, failed: int, errors: List[str]) -> None:
        """Add one batch's outcome; counters move together so they stay consistent."""
        self.successful_records += successful
        self.failed_records += failed
        self.processed_records += successful + failed
        self.errors.extend(errors)

    def finish(self, status: ImportStatus, end_time: datetime) -> None:
        """Move the job into a terminal state."""
        self.status = status
        self.end_time = end_time
        self.cancellation_requested = False
        self.estimated_completion = None

    def __repr__(self):
        return (
            f"ImportJob(job_id={self.job_id}, status={self.status.value}, "
            f"processed={self.processed_records}/{self.total_records})"
        )
