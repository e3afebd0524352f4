"""
Health check routes for monitoring.
"""
from fastapi import APIRouter, Depends
from src.core import config
from src.core.dependencies import get_job_tracker
from src.services.job_tracker import JobTracker

router = APIRouter(prefix="/v1/api", tags=["Health"])


@router.get("/health")
async def health_check(job_tracker: JobTracker = Depends(get_job_tracker)):
    """Report service identity and how many import jobs this process is tracking."""
    return {
        "status": "healthy",
        "service": config.settings.api_title,
        "version": config.settings.api_version,
        "environment": config.settings.environment,
        "tracked_jobs": len(job_tracker)
    }
