"""
Core configuration for the Royalty Ingestion API.
Manages environment variables, AWS service settings and pipeline tuning.
"""
import os
from functools import lru_cache
import boto3
from pydantic_settings import BaseSettings

@lru_cache(maxsize=10)
def _get_secure_parameter(parameter_name: str, region: str) -> str:
    """Fetch and cache a decrypted SSM Parameter Store value."""
    ssm = boto3.client('ssm', region_name=region)
    response = ssm.get_parameter(Name=parameter_name, WithDecryption=True)
    return response['Parameter']['Value']

class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # AWS Configuration
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "")
    csv_uploads_table_name: str = os.getenv("CSV_UPLOADS_TABLE_NAME", "")
    transactions_table_name: str = os.getenv("TRANSACTIONS_TABLE_NAME", "")

    # API Configuration
    api_title: str = os.getenv("API_TITLE", "Royalty Ingestion API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")

    # File Upload Limits
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    max_csv_rows: int = int(os.getenv("MAX_CSV_ROWS", "100000"))

    # Pipeline
    processing_mode: str = os.getenv("PROCESSING_MODE", "background")
    coercion_policy: str = os.getenv("COERCION_POLICY", "permissive")
    progress_checkpoint_interval: int = int(os.getenv("PROGRESS_CHECKPOINT_INTERVAL", "5"))
    max_reported_errors: int = int(os.getenv("MAX_REPORTED_ERRORS", "10"))
    processing_timeout_seconds: int = int(os.getenv("PROCESSING_TIMEOUT_SECONDS", "0"))
    stalled_after_seconds: int = int(os.getenv("STALLED_AFTER_SECONDS", "900"))

    # Authentication
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Environment
    environment: str = os.getenv("ENVIRONMENT", "dev")

    @property
    def jwt_secret(self) -> str:
        """JWT_SECRET if set, otherwise the SecureString stored in Parameter Store."""
        secret = os.getenv("JWT_SECRET")
        if secret:
            return secret
        try:
            return _get_secure_parameter(
                f"/royalty-ingestion-api/{self.environment}/jwt-secret",
                self.aws_region
            )
        except Exception as e:
            from src.core.logging_config import get_logger
            get_logger(__name__).warning("Using development JWT secret: %s", e)
            return "dev-secret-change-in-production"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

# Global settings instance
settings = Settings()
