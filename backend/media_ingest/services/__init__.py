"""
Services module for D4DHub Media Ingest.

- media_processing_service: EXIF stripping, image normalization and video
  duration probing (Pillow, ffprobe)
- ingest_service: Sequences validation, scanning and processing for one upload

Services take their Settings and collaborators through the constructor so the
API layer can wire them with FastAPI dependencies and tests can inject fakes.
"""

from media_ingest.services.ingest_service import (
    ContentMismatchError,
    FileTooLargeError,
    FileValidationError,
    IngestService,
    IngestServiceError,
    UnsafeContentError,
    UnsupportedMediaTypeError,
)
from media_ingest.services.media_processing_service import (
    FFprobeProber,
    MediaProber,
    MediaProcessingService,
    ProbeError,
)


__all__ = [
    "ContentMismatchError",
    "FFprobeProber",
    "FileTooLargeError",
    "FileValidationError",
    "IngestService",
    "IngestServiceError",
    "MediaProber",
    "MediaProcessingService",
    "ProbeError",
    "UnsafeContentError",
    "UnsupportedMediaTypeError",
]
