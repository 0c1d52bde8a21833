"""
Application configuration module.
Handles environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator

class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application Settings
    APP_NAME: str = "Phone Resale Reconciliation Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server Settings
    HOST: str = "localhost"
    PORT: int = 8000

    # Inventory / point-of-sale backend
    BACKEND_URL: str = "http://localhost:3001"
    BACKEND_TIMEOUT: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    ENABLE_FILE_LOGGING: bool = True

    # Environment
    ENVIRONMENT: str = "development"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'  # Ignore extra fields from .env
    )

    @field_validator("BACKEND_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

settings = Settings()
