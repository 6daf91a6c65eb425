"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, validator


EXTRACTION_MODES = ("text", "pdf")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="GastosUY", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Gemini
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_URL"
    )
    gemini_temperature: float = Field(default=0.1, alias="GEMINI_TEMPERATURE")

    # Processing
    extraction_mode: str = Field(default="text", alias="EXTRACTION_MODE")
    pipeline_timeout: float = Field(default=60.0, alias="PIPELINE_TIMEOUT")
    max_upload_mb: int = Field(default=10, alias="MAX_UPLOAD_MB")
    strict_categories: bool = Field(default=False, alias="STRICT_CATEGORIES")
    reconcile_tolerance: float = Field(default=0.02, alias="RECONCILE_TOLERANCE")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @validator("port")
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @validator("extraction_mode")
    def validate_extraction_mode(cls, v):
        """Validate extraction mode is a known strategy."""
        v_lower = v.lower()
        if v_lower not in EXTRACTION_MODES:
            raise ValueError(f"Extraction mode must be one of: {list(EXTRACTION_MODES)}")
        return v_lower

    @validator("pipeline_timeout")
    def validate_timeout(cls, v):
        """Validate the pipeline wall-clock budget."""
        if v <= 0:
            raise ValueError("Pipeline timeout must be positive")
        if v > 600:
            raise ValueError("Pipeline timeout should not exceed 600 seconds")
        return v

    @validator("max_upload_mb")
    def validate_upload_size(cls, v):
        """Validate upload size limit."""
        if v < 1:
            raise ValueError("Max upload size must be at least 1 MB")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def max_upload_bytes(self) -> int:
        """Upload size limit in bytes."""
        return self.max_upload_mb * 1024 * 1024


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
