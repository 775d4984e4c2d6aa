"""
D4DHub Media Ingest Configuration Module

Configuration for the ingest pipeline is loaded with Pydantic Settings from
environment variables and an optional .env file. It covers:
- Application settings (name, environment, logging, bind address)
- The external media prober (ffprobe binary path, timeout, temp files)
- Type validation scope (which declared types get a magic-byte check)
- Allowed types and size limits per media kind
- Image transform parameters (EXIF strip quality, normalization bounds)
- Fallback durations used when a video cannot be probed

Every component receives a Settings instance explicitly, so tests can build
one with overrides instead of patching module state.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Declared types that have a built-in magic-byte signature. Kept here rather
# than in the validator so the setting below can be checked at load time.
SIGNATURE_CAPABLE_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png"})


def _split_csv(v: str | list[str]) -> list[str]:
    if isinstance(v, str):
        return [item.strip().lower() for item in v.split(",") if item.strip()]
    return [item.strip().lower() for item in v]


class Settings(BaseSettings):
    """
    Configuration settings for the media ingest service.

    Example usage:
        ```python
        from media_ingest.config import Settings

        settings = Settings(probe_timeout_seconds=5)
        print(settings.max_video_size_bytes)
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="D4DHub-Media-Ingest",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable hot-reload when run directly")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=True, description="Emit structured JSON logs instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8000, description="Port number for the API server", ge=1, le=65535)

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Media Prober (ffprobe)
    # =========================================================================

    ffprobe_path: str = Field(
        default="ffprobe", description="Path or name of the ffprobe binary"
    )

    probe_timeout_seconds: float = Field(
        default=30.0,
        description="Maximum time a single ffprobe invocation may run before it is killed",
        gt=0,
        le=600,
    )

    temp_dir: str | None = Field(
        default=None,
        description="Directory for temporary probe files (None uses the system temp dir)",
    )

    temp_file_prefix: str = Field(
        default="upload-video-", description="Prefix for temporary probe file names"
    )

    # =========================================================================
    # Type Validation
    # =========================================================================

    signature_checked_types: Annotated[list[str], NoDecode] = Field(
        default=["image/jpeg", "image/png"],
        description=(
            "Declared MIME types whose leading bytes are verified. Every other "
            "declared type is trusted as-is."
        ),
    )

    allowed_image_types: Annotated[list[str], NoDecode] = Field(
        default=["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"],
        description="Image MIME types accepted for upload",
    )

    allowed_video_types: Annotated[list[str], NoDecode] = Field(
        default=["video/mp4", "video/quicktime", "video/webm", "video/ogg"],
        description="Video MIME types accepted for upload",
    )

    max_image_size_mb: int = Field(
        default=10, description="Maximum image upload size in megabytes", ge=1, le=100
    )

    max_video_size_mb: int = Field(
        default=1000, description="Maximum video upload size in megabytes", ge=1, le=5000
    )

    # =========================================================================
    # Image Transforms
    # =========================================================================

    exif_strip_jpeg_quality: int = Field(
        default=80, description="JPEG quality used when re-encoding after EXIF strip", ge=1, le=95
    )

    normalize_images: bool = Field(
        default=False,
        description="Resize and re-encode uploaded images to JPEG instead of only stripping EXIF",
    )

    image_max_width: int = Field(default=1920, description="Normalized image max width", ge=16)

    image_max_height: int = Field(default=1080, description="Normalized image max height", ge=16)

    image_jpeg_quality: int = Field(
        default=85, description="JPEG quality for normalized images", ge=1, le=95
    )

    # =========================================================================
    # Duration Fallbacks
    # =========================================================================

    short_video_fallback_seconds: float = Field(
        default=30.0, description="Estimated duration for short videos that cannot be probed", gt=0
    )

    long_video_fallback_seconds: float = Field(
        default=300.0, description="Estimated duration for long videos that cannot be probed", gt=0
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("allowed_image_types", "allowed_video_types", mode="before")
    @classmethod
    def validate_allowed_types(cls, v: str | list[str]) -> list[str]:
        """Parse MIME type lists from comma-separated strings and lower-case them."""
        return _split_csv(v)

    @field_validator("signature_checked_types", mode="before")
    @classmethod
    def validate_signature_checked_types(cls, v: str | list[str]) -> list[str]:
        """Only types with a built-in signature may be listed."""
        types = _split_csv(v)
        unknown = sorted(set(types) - SIGNATURE_CAPABLE_TYPES)
        if unknown:
            raise ValueError(
                f"No magic-byte signature for {', '.join(unknown)}. "
                f"Checkable types: {', '.join(sorted(SIGNATURE_CAPABLE_TYPES))}"
            )
        return types

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_image_size_bytes(self) -> int:
        """Maximum image upload size in bytes."""
        return self.max_image_size_mb * 1024 * 1024

    @property
    def max_video_size_bytes(self) -> int:
        """Maximum video upload size in bytes."""
        return self.max_video_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Configuration is read once on first call; later calls return the cached
    instance. Tests should construct Settings directly instead.
    """
    return Settings()
