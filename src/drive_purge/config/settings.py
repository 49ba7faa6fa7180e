"""Application settings."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..common.constants import (
    CREDENTIALS_FILE,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_RATE_LIMIT,
    MAX_FILES,
    PAGE_SIZE,
    SERVICE_READY_TIMEOUT,
    STORE_FILE,
    TOKEN_FILE,
)


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DRIVE_PURGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".drive-purge",
        description="Data directory for tokens and saved configuration",
    )

    # Drive API settings
    rate_limit: float = Field(
        default=float(DEFAULT_RATE_LIMIT),
        description="API requests per second (0 disables limiting)",
    )
    page_size: int = Field(
        default=PAGE_SIZE,
        ge=1,
        le=1000,
        description="Number of files to fetch per page",
    )
    max_files: int = Field(
        default=MAX_FILES,
        ge=1,
        description="Maximum number of files listed per audit",
    )
    service_ready_timeout: float = Field(
        default=SERVICE_READY_TIMEOUT,
        gt=0,
        description="Seconds to wait for the Drive client to initialize",
    )

    # Audit settings
    confidence_threshold: float = Field(
        default=DEFAULT_CONFIDENCE_THRESHOLD,
        description="Candidates above this confidence are pre-selected",
    )
    remediation_workers: int = Field(
        default=1,
        ge=1,
        description="Concurrent trash requests during a purge",
    )

    # Classifier
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key (falls back to the saved key)",
    )
    gemini_model: str = Field(
        default=DEFAULT_GEMINI_MODEL,
        description="Gemini model used to classify files",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional log file path",
    )

    @field_validator("confidence_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")
        return value

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def token_path(self) -> Path:
        """Path to OAuth token file."""
        return self.data_dir / TOKEN_FILE

    @property
    def credentials_path(self) -> Path:
        """Path to OAuth client credentials."""
        return self.data_dir / CREDENTIALS_FILE

    @property
    def store_path(self) -> Path:
        """Path to the saved key-value configuration."""
        return self.data_dir / STORE_FILE


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset global settings instance."""
    global _settings
    _settings = None
