"""
@file: config.py
@description:
This module provides centralized configuration management for the FileVault service.
It loads environment variables (and an optional .env file) and provides typed access
to the configuration settings used throughout the application.

The configuration includes settings for:
- Application general settings (environment, debug mode, bind address)
- The master API key seeded into the identity table at startup
- Catalog database and blob directory locations
- Upload size cap and identifier allocation attempts
- Background reconciliation of partially written uploads
- Logging parameters

@dependencies:
- pydantic: For settings validation
- pydantic_settings: For environment variable loading
- dotenv: For loading environment variables from .env file (via pydantic_settings)

@notes:
- MASTER_KEY has no default; startup fails if it is missing
- DATABASE_URL and BLOB_DIR are derived from DATA_DIR when not set explicitly
- get_settings() caches the settings object; tests build Settings directly
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# 500 MiB
DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provides typed access to all configuration parameters used by the server.
    """
    # Application Settings
    APP_ENV: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080, ge=1, le=65535)

    # Authentication
    MASTER_KEY: str = Field(..., min_length=1)
    MASTER_USERNAME: str = Field(default="Master")

    # Storage
    DATA_DIR: str = Field(default="db")
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)
    BLOB_DIR: Optional[str] = Field(default=None, validate_default=True)
    MAX_UPLOAD_BYTES: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)

    # Identifier allocation
    ID_ALLOCATION_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    # Reconciliation of pending rows and orphan blobs
    RECONCILE_INTERVAL_SECONDS: int = Field(default=300, ge=0)
    RECONCILE_GRACE_SECONDS: int = Field(default=3600, ge=0)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_TIMEZONE: str = Field(default="Europe/London")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @field_validator("DATABASE_URL", mode="before")
    def set_database_url(cls, v: Optional[str], values) -> str:
        """
        Default the catalog to a SQLite file inside DATA_DIR.
        """
        if v:
            return v
        data_dir = values.data.get("DATA_DIR", "db")
        return f"sqlite:///{Path(data_dir) / 'main.db'}"

    @field_validator("BLOB_DIR", mode="before")
    def set_blob_dir(cls, v: Optional[str], values) -> str:
        """
        Blobs live next to the catalog database unless configured otherwise.
        """
        if v:
            return v
        return values.data.get("DATA_DIR", "db")

    @field_validator("LOG_LEVEL")
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


class ClientSettings(BaseSettings):
    """Settings for the command-line client."""
    FILEVAULT_API_URL: str = Field(default="http://localhost:8080")
    FILEVAULT_TIMEOUT: float = Field(default=30.0, gt=0)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """
    Function to get the settings object for dependency injection.
    """
    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()
