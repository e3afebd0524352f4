"""
Global exception handler for the Market Data Import API.
Maps application exceptions onto the {"error", "message"} response body.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .exceptions import (
    ImportNotFoundException,
    InvalidImportStateException,
    ValidationException,
    DynamoDBException,
    CSVProcessingException
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(ImportNotFoundException)
    async def handle_not_found(request: Request, exc: ImportNotFoundException):
        return _error_response(404, "Not Found", exc.message)

    @app.exception_handler(InvalidImportStateException)
    async def handle_invalid_state(request: Request, exc: InvalidImportStateException):
        return _error_response(400, "Invalid Import State", exc.message)

    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return _error_response(400, "Validation Error", exc.message)

    @app.exception_handler(DynamoDBException)
    async def handle_dynamodb_error(request: Request, exc: DynamoDBException):
        logger.error("Database error on %s: %s", request.url.path, exc.message)
        return _error_response(500, "Database Error", exc.message)

    @app.exception_handler(CSVProcessingException)
    async def handle_csv_error(request: Request, exc: CSVProcessingException):
        return _error_response(400, "CSV Processing Failed", exc.message)

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error_response(500, "Internal Server Error", "An unexpected error occurred")
