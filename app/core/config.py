"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
It allows for loading configurations from environment variables and .env files,
providing type validation and default values.
"""

from typing import Annotated

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import NoDecode

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "https://localhost:3000",
    "https://localhost:8000",
    "http://0.0.0.0:8000",  # Add this for local development with 0.0.0.0 host
]

# PDF and the common image formats a browser can render inline
DEFAULT_ACCEPTED_MEDIA_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
]


def _split_csv(v: str | list[str] | None, default: list[str]) -> list[str]:
    if isinstance(v, str) and v:
        return [item.strip() for item in v.split(",") if item.strip()]
    elif isinstance(v, list):
        return v
    return list(default)


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        max_files: Maximum number of files that may sit in the staging list at once.
        max_file_size_bytes: Per-file size limit, in bytes.
        accepted_media_types: Media types (or ``type/*`` wildcards) admitted by the intake.
        strict_removal: When True, a staged file cannot be removed before its progress hits 100.
        intake_disabled: Starts the intake controller in the disabled state.
        progress_interval_seconds: Delay between two simulated progress ticks.
        progress_step_min: Smallest random progress increment per tick.
        progress_step_max: Largest random progress increment per tick.
        image_thumbnail_width: Width for generated image previews.
        image_thumbnail_height: Height for generated image previews.
        image_jpeg_quality: JPEG quality for generated image previews.
        notice_history_size: Number of notices kept on the notice board.
        cors_allowed_origins: List of allowed origins for CORS.
    """

    max_files: int = Field(default=5)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024)
    accepted_media_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ACCEPTED_MEDIA_TYPES),
    )
    strict_removal: bool = Field(default=True)
    intake_disabled: bool = Field(default=False)

    progress_interval_seconds: float = Field(default=0.3, description="Delay between progress ticks in seconds.")
    progress_step_min: int = Field(default=5)
    progress_step_max: int = Field(default=14)

    image_thumbnail_width: int = Field(default=512)
    image_thumbnail_height: int = Field(default=512)
    image_jpeg_quality: int = Field(default=70)

    notice_history_size: int = Field(default=50)

    cors_allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),  # Use a copy of the default list
    )

    model_config = {
        "env_file": ".env",
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",  # Ignore extra fields
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Assembles the list of CORS allowed origins.

        If 'v' is a string, it splits it by commas. If 'v' is already a list,
        it's used directly. Otherwise, returns the default list of origins.
        """
        return _split_csv(v, DEFAULT_CORS_ORIGINS)

    @field_validator("accepted_media_types", mode="before")  # type: ignore
    @classmethod
    def assemble_media_types(cls, v: str | list[str] | None) -> list[str]:
        """Same comma-separated parsing as the CORS origins, lower-cased."""
        return [item.lower() for item in _split_csv(v, DEFAULT_ACCEPTED_MEDIA_TYPES)]

    @property
    def max_file_size_mb(self) -> float:
        return self.max_file_size_bytes / (1024 * 1024)


settings = Settings()
