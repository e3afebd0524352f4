"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services, repositories and the job tracker.
"""
from functools import lru_cache
from src.core import config
from src.repositories.db_repository import DBRepository
from src.repositories.import_history_repository import ImportHistoryRepository
from src.repositories.market_data_repository import MarketDataRepository
from src.services.import_service import MarketImportService
from src.services.job_tracker import JobTracker
from src.services.record_decoder import RecordDecoder
from src.services.row_validator import RowValidator
from src.services.task_executor import ThreadPoolTaskExecutor


@lru_cache()
def get_job_tracker() -> JobTracker:
    """Get the process-wide JobTracker instance."""
    return JobTracker()


@lru_cache()
def get_market_data_repository() -> DBRepository:
    """Get DBRepository singleton instance."""
    return MarketDataRepository()


@lru_cache()
def get_import_history_repository() -> ImportHistoryRepository:
    """Get ImportHistoryRepository singleton instance."""
    return ImportHistoryRepository()


@lru_cache()
def get_task_executor() -> ThreadPoolTaskExecutor:
    """Get the worker pool that runs imports."""
    return ThreadPoolTaskExecutor(max_workers=config.settings.import_max_workers)


@lru_cache()
def get_import_service() -> MarketImportService:
    """Get MarketImportService singleton instance with injected dependencies."""
    return MarketImportService(
        job_tracker=get_job_tracker(),
        market_data_repository=get_market_data_repository(),
        history_repository=get_import_history_repository(),
        record_decoder=RecordDecoder(),
        row_validator=RowValidator(),
        task_executor=get_task_executor()
    )
