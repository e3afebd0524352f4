"""
Market Import Service for business logic.
Orchestrates asynchronous CSV imports between the API, the job tracker and repositories.
"""
import logging
import uuid
from concurrent.futures import Future
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import List, Optional, Tuple
from src.core import config
from src.core.exceptions import ValidationException, CSVProcessingException
from src.core.logging_utils import log_event
from src.models.dto.import_dto import (
    CancelImportResponse,
    CsvValidationResponse,
    ImportHistoryPage,
    ImportHistoryResponse,
    ImportProgressResponse,
    ImportSubmitResponse,
)
from src.models.import_history import ImportHistoryRecord
from src.models.import_job import ImportJob, ImportStatus
from src.models.import_request import ImportRequest
from src.repositories.db_repository import DBRepository
from src.repositories.import_history_repository import ImportHistoryRepository
from src.repositories.market_data_repository import MarketDataRepository
from src.services.job_tracker import CancellationToken, JobTracker
from src.services.record_decoder import RecordDecoder, Row
from src.services.row_validator import REQUIRED_COLUMNS, RowValidationError, RowValidator
from src.services.task_executor import ImportTaskExecutor, ThreadPoolTaskExecutor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def estimate_completion(job: ImportJob, now: datetime) -> Optional[datetime]:
    """
    Project when the job will finish from its throughput so far.

    Returns:
        now + remaining / rate, or None while the rate is still zero
    """
    elapsed_ms = (now - job.start_time).total_seconds() * 1000
    if elapsed_ms <= 0:
        return None
    rate = job.processed_records / elapsed_ms
    if rate == 0:
        return None
    remaining = job.total_records - job.processed_records
    return now + timedelta(milliseconds=remaining / rate)


class MarketImportService:
    """Service for market data import operations."""

    def __init__(
        self,
        job_tracker: JobTracker = None,
        market_data_repository: DBRepository = None,
        history_repository: ImportHistoryRepository = None,
        record_decoder: RecordDecoder = None,
        row_validator: RowValidator = None,
        task_executor: ImportTaskExecutor = None
    ):
        self.job_tracker = job_tracker or JobTracker()
        self.market_data_repository = market_data_repository or MarketDataRepository()
        self.history_repository = history_repository or ImportHistoryRepository()
        self.record_decoder = record_decoder or RecordDecoder()
        self.row_validator = row_validator or RowValidator()
        self.task_executor = task_executor or ThreadPoolTaskExecutor(config.settings.import_max_workers)

    def submit_import(self, request: ImportRequest) -> ImportSubmitResponse:
        """
        Register an import job and start it in the background.

        Returns immediately; progress is read through get_progress.

        Args:
            request: Validated import parameters and raw CSV payload

        Returns:
            ImportSubmitResponse with the new job id

        Raises:
            ValidationException: If the payload is empty
        """
        if not request.payload:
            raise ValidationException("Uploaded file is empty")

        now = _utcnow()
        self.job_tracker.evict_expired(now, config.settings.job_retention_seconds)

        job_id = f"import_{uuid.uuid4().hex}"
        token = self.job_tracker.create(ImportJob(job_id=job_id, start_time=now))

        log_event(
            logger, logging.INFO, "market.data.import.started",
            job_id=job_id,
            data_type=request.data_type,
            source=request.source,
            filename=request.filename,
            user_id=request.submitted_by
        )

        try:
            future = self.task_executor.submit(self.run_import, job_id, request, token)
        except Exception as e:
            self._finish(job_id, ImportStatus.FAILED, f"Failed to schedule import job: {str(e)}")
            raise
        future.add_done_callback(partial(self._on_task_done, job_id))

        return ImportSubmitResponse(
            job_id=job_id,
            status=ImportStatus.PENDING.value,
            message="Market data import started successfully"
        )

    def run_import(self, job_id: str, request: ImportRequest, token: CancellationToken) -> ImportJob:
        """
        Execute an import job to a terminal state and record it in history.

        Row-level problems are counted on the job; anything else fails the job.

        Returns:
            Final snapshot of the job
        """
        error = None
        try:
            if token.cancelled:
                status = ImportStatus.CANCELLED
            else:
                self.job_tracker.update(job_id, self._mark_processing)
                status = self._process(job_id, request, token)
        except Exception as e:
            logger.warning("Import %s failed: %s", job_id, e, exc_info=not isinstance(e, CSVProcessingException))
            status = ImportStatus.FAILED
            error = getattr(e, 'message', None) or str(e) or e.__class__.__name__

        job = self._finish(job_id, status, error)
        self._emit_finished(job, request)
        self._record_history(job, request)
        return job

    def get_progress(self, job_id: str) -> ImportProgressResponse:
        """
        Get a snapshot of an import job.

        Raises:
            ImportNotFoundException: If job_id is not tracked
        """
        job = self.job_tracker.get(job_id)

        return ImportProgressResponse(
            job_id=job.job_id,
            status=job.status.value,
            total_records=job.total_records,
            processed_records=job.processed_records,
            successful_records=job.successful_records,
            failed_records=job.failed_records,
            errors=job.errors,
            start_time=job.start_time,
            end_time=job.end_time,
            estimated_completion=job.estimated_completion,
            cancellation_requested=job.cancellation_requested
        )

    def cancel_import(self, job_id: str, user_id: str) -> CancelImportResponse:
        """
        Ask a pending or running import to stop at its next batch boundary.

        Raises:
            ImportNotFoundException: If job_id is not tracked
            InvalidImportStateException: If the job has already finished
        """
        job = self.job_tracker.request_cancellation(job_id)

        log_event(
            logger, logging.INFO, "market.data.import.cancel_requested",
            job_id=job_id,
            status=job.status.value,
            processed_records=job.processed_records,
            user_id=user_id
        )

        return CancelImportResponse(
            success=True,
            message="Import cancellation requested. The import stops before its next batch."
        )

    def get_import_history(self, page: int, limit: int) -> ImportHistoryPage:
        """
        Page through finished imports, newest first.

        Raises:
            DynamoDBException: If the history query fails
        """
        records, total = self.history_repository.find_page(page, limit)

        return ImportHistoryPage(
            data=[
                ImportHistoryResponse(
                    history_id=record.history_id,
                    job_id=record.job_id,
                    data_type=record.data_type,
                    source=record.source,
                    file_name=record.file_name,
                    status=record.status.value,
                    imported_by=record.imported_by,
                    started_at=record.started_at,
                    imported_at=record.imported_at,
                    total_records=record.total_records,
                    records_imported=record.records_imported,
                    records_failed=record.records_failed,
                    errors=list(record.errors),
                    error_count=record.error_count,
                    range_start=record.range_start,
                    range_end=record.range_end
                )
                for record in records
            ],
            total=total,
            page=page,
            limit=limit
        )

    def validate_csv(self, payload: bytes) -> CsvValidationResponse:
        """
        Pre-flight a CSV file without writing anything.

        Decodes the header and the first rows, checks required columns and
        validates a sample of rows.
        """
        errors: List[str] = []
        preview: List[Row] = []
        preview_rows = config.settings.validation_preview_rows
        sample_rows = config.settings.validation_sample_rows

        try:
            header = self.record_decoder.header(payload)
            for column in REQUIRED_COLUMNS:
                if column not in header:
                    errors.append(f"Missing required field: {column}")

            rows = []
            for row in self.record_decoder.decode(payload):
                rows.append(row)
                if len(rows) >= max(preview_rows, sample_rows):
                    break

            if not rows:
                errors.append("CSV file is empty")

            preview = rows[:preview_rows]
            for row_number, row in enumerate(rows[:sample_rows], start=1):
                failure = self.row_validator.check_fields(row, row_number)
                if failure is not None:
                    errors.append(failure.message)

        except CSVProcessingException as e:
            errors.append(f"Failed to parse CSV: {e.message}")

        return CsvValidationResponse(valid=not errors, errors=errors, preview=preview)

    def _process(self, job_id: str, request: ImportRequest, token: CancellationToken) -> ImportStatus:
        rows = self.record_decoder.decode_all(request.payload, config.settings.max_csv_rows)
        total = len(rows)
        self.job_tracker.update(job_id, partial(self._set_total, total=total))

        batch_size = config.settings.import_batch_size
        for offset in range(0, total, batch_size):
            if token.cancelled:
                return ImportStatus.CANCELLED

            successful, errors = self._process_batch(job_id, rows[offset:offset + batch_size], offset, request)
            snapshot = self.job_tracker.update(
                job_id,
                partial(self._apply_batch, successful=successful, errors=errors)
            )
            logger.debug(
                "Import %s batch at row %d done: %d/%d processed",
                job_id, offset + 1, snapshot.processed_records, snapshot.total_records
            )

        return ImportStatus.COMPLETED

    def _process_batch(
        self,
        job_id: str,
        rows: List[Row],
        offset: int,
        request: ImportRequest
    ) -> Tuple[int, List[str]]:
        drafts = []
        errors = []
        for row_number, row in enumerate(rows, start=offset + 1):
            result = self.row_validator.validate_and_transform(row, request, row_number, job_id)
            if isinstance(result, RowValidationError):
                errors.append(result.message)
            else:
                drafts.append(result)

        batch_result = self.market_data_repository.write_batch(drafts, request.overwrite_existing)
        for entity, reason in batch_result.failures:
            errors.append(f"Row {entity.row_number}: {reason}")

        return len(drafts) - batch_result.failure_count, errors

    def _mark_processing(self, job: ImportJob) -> None:
        job.status = ImportStatus.PROCESSING

    def _set_total(self, job: ImportJob, total: int) -> None:
        job.total_records = total

    def _apply_batch(self, job: ImportJob, successful: int, errors: List[str]) -> None:
        job.record_batch(successful, len(errors), errors)
        job.estimated_completion = estimate_completion(job, _utcnow())

    def _finish(self, job_id: str, status: ImportStatus, error: Optional[str] = None) -> ImportJob:
        def mutate(job: ImportJob) -> None:
            if job.is_terminal:
                return
            if error:
                job.errors.append(error)
            job.finish(status, _utcnow())

        return self.job_tracker.update(job_id, mutate)

    def _emit_finished(self, job: ImportJob, request: ImportRequest) -> None:
        level = logging.ERROR if job.status is ImportStatus.FAILED else logging.INFO
        log_event(
            logger, level, f"market.data.import.{job.status.value}",
            job_id=job.job_id,
            total_records=job.total_records,
            processed_records=job.processed_records,
            successful_records=job.successful_records,
            failed_records=job.failed_records,
            user_id=request.submitted_by
        )

    def _record_history(self, job: ImportJob, request: ImportRequest) -> None:
        record = ImportHistoryRecord.from_job(
            history_id=str(uuid.uuid4()),
            job=job,
            request=request,
            max_errors=config.settings.history_max_errors
        )
        self.history_repository.save(record)

    def _on_task_done(self, job_id: str, future: Future) -> None:
        """Route a task that ended abnormally into the failed state."""
        if future.cancelled():
            job = self._finish(job_id, ImportStatus.CANCELLED, "Import task was cancelled before it started")
            logger.warning("Import %s never ran; final status %s", job_id, job.status.value)
            return

        exc = future.exception()
        if exc is None:
            return

        logger.error("Import task %s raised outside the pipeline", job_id, exc_info=exc)
        job = self._finish(job_id, ImportStatus.FAILED, f"Unexpected error: {str(exc)}")
        log_event(
            logger, logging.ERROR, "market.data.import.task_crashed",
            job_id=job_id,
            status=job.status.value,
            error=str(exc)
        )
