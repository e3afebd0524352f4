"""
Core configuration for the Market Data Import API.
Manages environment variables, import tuning and AWS service settings.
"""
import logging
import os
from pydantic_settings import BaseSettings
from src.core.exceptions import ConfigurationException

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev-secret-change-in-production"
DEV_ENVIRONMENT = "dev"


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # AWS Configuration
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")
    market_data_table_name: str = os.getenv("MARKET_DATA_TABLE_NAME", "")
    import_history_table_name: str = os.getenv("IMPORT_HISTORY_TABLE_NAME", "")

    # API Configuration
    api_title: str = os.getenv("API_TITLE", "Market Data Import API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # File Upload Limits
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    max_csv_rows: int = int(os.getenv("MAX_CSV_ROWS", "100000"))

    # Import Pipeline
    import_batch_size: int = int(os.getenv("IMPORT_BATCH_SIZE", "100"))
    import_max_workers: int = int(os.getenv("IMPORT_MAX_WORKERS", "4"))
    job_retention_seconds: int = int(os.getenv("JOB_RETENTION_SECONDS", "3600"))
    history_max_errors: int = int(os.getenv("HISTORY_MAX_ERRORS", "500"))

    # Validate-only pre-flight
    validation_preview_rows: int = int(os.getenv("VALIDATION_PREVIEW_ROWS", "5"))
    validation_sample_rows: int = int(os.getenv("VALIDATION_SAMPLE_ROWS", "10"))

    # Pagination Configuration
    pagination_default_limit: int = int(os.getenv("PAGINATION_DEFAULT_LIMIT", "20"))
    pagination_max_limit: int = int(os.getenv("PAGINATION_MAX_LIMIT", "100"))

    # Authentication
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    @property
    def jwt_secret(self) -> str:
        """
        Get JWT secret from the environment, then Parameter Store.

        Only the dev environment may fall back to the built-in secret.

        Raises:
            ConfigurationException: If no secret can be resolved outside dev
        """
        explicit = os.getenv("JWT_SECRET")
        if explicit:
            return explicit
        try:
            from src.core.parameter_store import get_parameter, parameter_name
            return get_parameter(parameter_name(self.environment, "jwt-secret"), self.aws_region)
        except Exception as e:
            if self.environment != DEV_ENVIRONMENT:
                raise ConfigurationException(
                    f"JWT secret is not configured for environment '{self.environment}'"
                ) from e
            logger.warning("Using fallback JWT secret: %s", e)
            return DEV_JWT_SECRET

    # Environment
    environment: str = os.getenv("ENVIRONMENT", "dev")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
