"""
Custom exceptions for the Market Data Import API.
Provides specific error types for different failure scenarios.
"""


class MarketImportException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(MarketImportException):
    """Raised when a request fails validation before any job is created."""
    pass


class ImportNotFoundException(MarketImportException):
    """Raised when an import job id is unknown to the tracker."""
    pass


class InvalidImportStateException(MarketImportException):
    """Raised when an operation is not allowed in the job's current state."""
    pass


class DynamoDBException(MarketImportException):
    """Raised when DynamoDB operation fails."""
    pass


class CSVProcessingException(MarketImportException):
    """Raised when a CSV payload is structurally unreadable."""
    pass


class ConfigurationException(MarketImportException):
    """Raised when a required setting cannot be resolved."""
    pass
