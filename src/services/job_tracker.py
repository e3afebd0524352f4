"""
In-memory Job Tracker for live import jobs.
Thread-safe map from job id to ImportJob with per-job locking.
"""
import copy
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List
from src.core.exceptions import ImportNotFoundException, InvalidImportStateException
from src.models.import_job import ImportJob

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag handed to the job that owns it."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class _TrackedJob:
    def __init__(self, job: ImportJob):
        self.job = job
        self.lock = threading.Lock()
        self.token = CancellationToken()


class JobTracker:
    """
    Owns live ImportJob objects.

    One worker mutates a given job while any number of callers read it.
    Reads return deep copies, so callers never see a half-applied update.
    """

    def __init__(self):
        self._jobs: Dict[str, _TrackedJob] = {}
        self._lock = threading.Lock()

    def create(self, job: ImportJob) -> CancellationToken:
        """
        Register a new job.

        Returns:
            The job's cancellation token

        Raises:
            ValueError: If the job id is already tracked
        """
        entry = _TrackedJob(job)
        with self._lock:
            if job.job_id in self._jobs:
                raise ValueError(f"Import job '{job.job_id}' is already tracked")
            self._jobs[job.job_id] = entry
        return entry.token

    def get(self, job_id: str) -> ImportJob:
        """
        Return a snapshot of a job.

        Raises:
            ImportNotFoundException: If the job id is unknown
        """
        entry = self._entry(job_id)
        with entry.lock:
            return copy.deepcopy(entry.job)

    def update(self, job_id: str, mutator: Callable[[ImportJob], None]) -> ImportJob:
        """
        Apply mutator to the live job atomically and return the resulting snapshot.

        Exceptions raised by mutator propagate; the mutator must leave the job
        unchanged when it raises.

        Raises:
            ImportNotFoundException: If the job id is unknown
        """
        entry = self._entry(job_id)
        with entry.lock:
            mutator(entry.job)
            return copy.deepcopy(entry.job)

    def request_cancellation(self, job_id: str) -> ImportJob:
        """
        Flag a running or pending job for cancellation.

        Raises:
            ImportNotFoundException: If the job id is unknown
            InvalidImportStateException: If the job has already finished
        """
        entry = self._entry(job_id)
        with entry.lock:
            if entry.job.is_terminal:
                raise InvalidImportStateException(
                    f"Cannot cancel import '{job_id}' with status {entry.job.status.value}"
                )
            entry.job.cancellation_requested = True
            entry.token.cancel()
            return copy.deepcopy(entry.job)

    def remove(self, job_id: str) -> None:
        """
        Stop tracking a job.

        Raises:
            ImportNotFoundException: If the job id is unknown
        """
        with self._lock:
            if self._jobs.pop(job_id, None) is None:
                raise ImportNotFoundException(f"Import with ID '{job_id}' not found")

    def evict_expired(self, now: datetime, retention_seconds: int) -> List[str]:
        """
        Drop terminal jobs that ended more than retention_seconds before now.

        Returns:
            Ids of evicted jobs
        """
        cutoff = now - timedelta(seconds=retention_seconds)
        with self._lock:
            entries = list(self._jobs.items())

        expired = []
        for job_id, entry in entries:
            with entry.lock:
                if entry.job.is_terminal and entry.job.end_time is not None and entry.job.end_time < cutoff:
                    expired.append(job_id)

        with self._lock:
            for job_id in expired:
                self._jobs.pop(job_id, None)

        if expired:
            logger.debug("Evicted %d finished import jobs", len(expired))
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _entry(self, job_id: str) -> _TrackedJob:
        with self._lock:
            entry = self._jobs.get(job_id)
        if entry is None:
            raise ImportNotFoundException(f"Import with ID '{job_id}' not found")
        return entry
