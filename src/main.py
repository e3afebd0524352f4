"""
Main FastAPI application entry point.
Configures and initializes the Market Data Import API.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from src.core.config import settings
from src.core.exception_handler import register_exception_handlers
from src.core.logging_utils import configure_logging
from src.api.routes import health_routes, import_routes

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Drain queued and running imports before exit
    from src.core.dependencies import get_task_executor
    if get_task_executor.cache_info().currsize:
        get_task_executor().shutdown(wait=True)


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Asynchronous bulk import of market price data",
    lifespan=lifespan
)

# Register exception handlers
register_exception_handlers(app)

# Register routes
app.include_router(health_routes.router)
app.include_router(import_routes.router)


# Middleware to log request paths
@app.middleware("http")
async def log_request(request: Request, call_next):
    logger.info("Request path: %s", request.url.path)
    response = await call_next(request)
    return response


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
