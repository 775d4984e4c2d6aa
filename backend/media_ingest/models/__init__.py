"""Pydantic models shared by the ingest services and API endpoints."""

from media_ingest.models.media import (
    DurationResult,
    ImageTransformResult,
    IngestedMedia,
    MediaKind,
    ScanResult,
    UploadCategory,
)


__all__ = [
    "DurationResult",
    "ImageTransformResult",
    "IngestedMedia",
    "MediaKind",
    "ScanResult",
    "UploadCategory",
]
