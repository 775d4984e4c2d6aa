"""
Pydantic result models for the media ingest pipeline.

The pipeline stages never raise past their boundary. Instead each one reports
its outcome through one of these models, so a caller can see from the return
type that a fallback may have been applied.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MediaKind(str, Enum):
    """Broad media family derived from a declared MIME type."""

    IMAGE = "image"
    VIDEO = "video"


class UploadCategory(str, Enum):
    """Post category chosen by the uploader."""

    IMAGE = "image"
    SHORT = "short"
    LONG = "long"


class ScanResult(BaseModel):
    """Outcome of the active-content scan."""

    model_config = ConfigDict(frozen=True)

    is_safe: bool
    reason: str


class ImageTransformResult(BaseModel):
    """
    Outcome of a best-effort image transform.

    When ``transformed`` is False, ``data`` is the caller's original buffer
    and ``error`` says why the transform was skipped.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    transformed: bool
    content_type: str | None = Field(
        default=None, description="MIME type of data when the transform changed the format"
    )
    error: str | None = None


class DurationResult(BaseModel):
    """Outcome of a video duration probe. None means the duration is unknown."""

    model_config = ConfigDict(frozen=True)

    duration_seconds: float | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.duration_seconds is not None


class IngestedMedia(BaseModel):
    """A fully validated and processed upload, ready to be stored."""

    original_filename: str
    safe_filename: str
    category: UploadCategory
    media_kind: MediaKind
    content_type: str
    size_bytes: int = Field(ge=0)
    data: bytes = Field(repr=False, exclude=True)
    exif_stripped: bool = False
    duration_seconds: float | None = None
    duration_estimated: bool = False
    scan: ScanResult
