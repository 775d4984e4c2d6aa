"""
FastAPI Ingest Router for D4DHub Media Ingest

- POST /{category} - Validate and process a single multipart upload

The category is one of ``image``, ``short`` or ``long``. Pipeline rejections
are mapped to HTTP errors:

- 400: unknown category, content does not match its declared type, or
  script-injection markers found
- 413: upload exceeds the size limit for its media kind
- 415: declared type not allowed for the category
"""

import logging

from fastapi import APIRouter, Depends, File, Path, UploadFile, status
from pydantic import BaseModel, Field

from media_ingest.config import Settings, get_settings
from media_ingest.models.media import MediaKind, ScanResult, UploadCategory
from media_ingest.services.ingest_service import IngestService, IngestServiceError
from media_ingest.services.media_processing_service import MediaProcessingService
from media_ingest.utils.file_validator import raise_file_validation_error


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class IngestResponse(BaseModel):
    """Metadata of an accepted upload. The processed bytes are not echoed back."""

    original_filename: str = Field(..., description="Filename as sent by the client")
    safe_filename: str = Field(..., description="Sanitized, collision-resistant storage name")
    category: UploadCategory
    media_kind: MediaKind
    content_type: str = Field(..., description="MIME type of the processed bytes")
    size_bytes: int = Field(..., description="Size of the processed bytes")
    exif_stripped: bool = Field(..., description="Whether the image was re-encoded without metadata")
    duration_seconds: float | None = Field(None, description="Video duration, probed or estimated")
    duration_estimated: bool = Field(
        False, description="True when the duration is a per-category estimate"
    )
    scan: ScanResult


class ErrorResponse(BaseModel):
    """Error body returned for rejected uploads."""

    detail: dict[str, str]


# ============================================================================
# Dependencies
# ============================================================================


def get_media_processing_service(settings: Settings = Depends(get_settings)) -> MediaProcessingService:
    """Dependency injection for MediaProcessingService."""
    return MediaProcessingService(settings)


def get_ingest_service(
    settings: Settings = Depends(get_settings),
    media_service: MediaProcessingService = Depends(get_media_processing_service),
) -> IngestService:
    """Dependency injection for IngestService."""
    return IngestService(settings, media_service)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/{category}",
    response_model=IngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Ingest media",
    description="Validate, scan and process an image or video upload for a post category.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid category or rejected content"},
        413: {"model": ErrorResponse, "description": "File too large"},
        415: {"model": ErrorResponse, "description": "File type not allowed for the category"},
    },
)
async def ingest_media(
    category: str = Path(..., description="Post category: image, short or long"),
    file: UploadFile = File(..., description="Image or video file to ingest"),
    ingest_service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    """
    Run an upload through the ingest pipeline.

    Raises:
        HTTPException: 400, 413 or 415 when the pipeline rejects the upload.
    """
    logger.info("Ingest request: category=%s filename=%s", category, file.filename)

    content = await file.read()

    try:
        media = await ingest_service.ingest(
            filename=file.filename,
            content_type=file.content_type,
            data=content,
            category=category,
        )
    except IngestServiceError as e:
        raise_file_validation_error(str(e), error_code=e.error_code, status_code=e.status_code)

    return IngestResponse(**media.model_dump())
