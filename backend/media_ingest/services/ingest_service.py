"""
D4DHub Media Ingest Service

Sequences the pipeline stages for a single upload:

1. Category and declared-type allow-list
2. Per-kind size limit
3. Magic-byte check of the declared type
4. Active-content scan
5. Images: EXIF strip (or full normalization); videos: duration probe with a
   per-category estimate when probing fails
6. Safe storage filename

Rejections raise an IngestServiceError subclass carrying the HTTP status the
API layer should answer with. Type mismatches and scan hits are additionally
logged as security events.
"""

import asyncio
import logging

from fastapi import status

from media_ingest.config import Settings
from media_ingest.models.media import IngestedMedia, MediaKind, UploadCategory
from media_ingest.services.media_processing_service import MediaProcessingService
from media_ingest.utils.content_scanner import scan_for_malicious_content
from media_ingest.utils.file_validator import (
    get_media_kind,
    is_valid_type,
    validate_declared_type,
    validate_file_size,
)
from media_ingest.utils.filename import generate_safe_filename, replace_extension
from media_ingest.utils.logger import add_log_context


logger = logging.getLogger(__name__)


class IngestServiceError(Exception):
    """Base exception for ingest rejections."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "invalid_upload"


class FileValidationError(IngestServiceError):
    """Exception raised when the upload request itself is malformed."""

    error_code = "invalid_category"


class UnsupportedMediaTypeError(IngestServiceError):
    """Exception raised when the declared type is not allowed for the category."""

    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    error_code = "unsupported_media_type"


class FileTooLargeError(IngestServiceError):
    """Exception raised when the upload exceeds the size limit for its kind."""

    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    error_code = "file_too_large"


class ContentMismatchError(IngestServiceError):
    """Exception raised when the leading bytes contradict the declared type."""

    error_code = "content_mismatch"


class UnsafeContentError(IngestServiceError):
    """Exception raised when the content scanner flags the upload."""

    error_code = "unsafe_content"


class IngestService:
    """
    Validate and process one upload at a time.

    Attributes:
        settings: Ingest configuration
        media_service: MediaProcessingService for image transforms and probing
        logger: Logger instance for operation tracking

    Example:
        ```python
        settings = get_settings()
        service = IngestService(settings, MediaProcessingService(settings))
        media = await service.ingest("clip.mp4", "video/mp4", data, "short")
        print(media.safe_filename, media.duration_seconds)
        ```
    """

    def __init__(self, settings: Settings, media_service: MediaProcessingService) -> None:
        self.settings = settings
        self.media_service = media_service
        self.logger = logger

    async def ingest(
        self,
        filename: str | None,
        content_type: str | None,
        data: bytes,
        category: UploadCategory | str,
    ) -> IngestedMedia:
        """
        Run the full pipeline on an upload.

        Args:
            filename: Client-supplied filename, may be empty
            content_type: Client-declared MIME type
            data: Complete upload bytes
            category: Post category ("image", "short" or "long")

        Returns:
            IngestedMedia with the processed bytes and derived metadata

        Raises:
            FileValidationError: Unknown category
            UnsupportedMediaTypeError: Declared type not allowed for the category
            FileTooLargeError: Upload over the per-kind size limit
            ContentMismatchError: Leading bytes do not match the declared type
            UnsafeContentError: Script-injection markers found in the content
        """
        original_filename = filename or ""
        declared_type = (content_type or "").strip().lower()
        upload_logger = add_log_context(
            self.logger,
            original_filename=original_filename,
            content_type=declared_type,
            size_bytes=len(data),
        )

        upload_category = self._resolve_category(category)
        media_kind = self._check_declared_type(declared_type, upload_category, upload_logger)
        self._check_size(len(data), media_kind, upload_logger)

        signature_ok = await asyncio.to_thread(
            is_valid_type, data, declared_type, self.settings.signature_checked_types
        )
        if not signature_ok:
            upload_logger.warning(
                "Security event: declared type does not match file signature",
                extra={
                    "security_event": "suspicious_file_upload",
                    "severity": "high",
                    "category": upload_category.value,
                },
            )
            raise ContentMismatchError("File content does not match declared file type")

        # Decodes and regex-scans the whole upload, so it runs in a worker thread
        scan = await asyncio.to_thread(scan_for_malicious_content, data)
        if not scan.is_safe:
            upload_logger.error(
                "Security event: %s",
                scan.reason,
                extra={
                    "security_event": "malicious_content_detected",
                    "severity": "critical",
                    "category": upload_category.value,
                },
            )
            raise UnsafeContentError("File contains potentially malicious content")

        processed = data
        stored_name = original_filename
        stored_type = declared_type
        exif_stripped = False
        duration_seconds: float | None = None
        duration_estimated = False

        if media_kind is MediaKind.IMAGE:
            if self.settings.normalize_images:
                result = await self.media_service.normalize_image(data)
                if result.transformed:
                    stored_name = replace_extension(original_filename, ".jpg")
            else:
                result = await self.media_service.strip_exif(data)
            processed = result.data
            exif_stripped = result.transformed
            if result.transformed and result.content_type:
                stored_type = result.content_type
            if result.error:
                upload_logger.info("Image stored without transform: %s", result.error)
        else:
            probe = await self.media_service.extract_duration(data)
            if probe.found:
                duration_seconds = probe.duration_seconds
            else:
                duration_seconds = self._fallback_duration(upload_category)
                duration_estimated = True
                upload_logger.info(
                    "Using estimated duration %.0fs: %s",
                    duration_seconds,
                    probe.error,
                    extra={"category": upload_category.value},
                )

        media = IngestedMedia(
            original_filename=original_filename,
            safe_filename=generate_safe_filename(stored_name),
            category=upload_category,
            media_kind=media_kind,
            content_type=stored_type,
            size_bytes=len(processed),
            data=processed,
            exif_stripped=exif_stripped,
            duration_seconds=duration_seconds,
            duration_estimated=duration_estimated,
            scan=scan,
        )

        upload_logger.info(
            "Upload ingested as %s",
            media.safe_filename,
            extra={"category": upload_category.value, "media_kind": media_kind.value},
        )
        return media

    def _resolve_category(self, category: UploadCategory | str) -> UploadCategory:
        try:
            return UploadCategory(category)
        except ValueError as e:
            allowed = ", ".join(c.value for c in UploadCategory)
            raise FileValidationError(
                f"Invalid post category '{category}'. Allowed categories: {allowed}"
            ) from e

    def _check_declared_type(
        self,
        declared_type: str,
        category: UploadCategory,
        upload_logger: logging.LoggerAdapter,
    ) -> MediaKind:
        is_allowed, error_msg = validate_declared_type(
            declared_type,
            category,
            self.settings.allowed_image_types,
            self.settings.allowed_video_types,
        )
        media_kind = get_media_kind(declared_type)
        if not is_allowed or media_kind is None:
            upload_logger.warning("Declared type rejected: %s", error_msg)
            raise UnsupportedMediaTypeError(error_msg or f"Unsupported file type: {declared_type}")
        return media_kind

    def _check_size(self, size: int, media_kind: MediaKind, upload_logger: logging.LoggerAdapter) -> None:
        if media_kind is MediaKind.IMAGE:
            max_size = self.settings.max_image_size_bytes
        else:
            max_size = self.settings.max_video_size_bytes

        is_valid, error_msg = validate_file_size(size, max_size)
        if not is_valid:
            upload_logger.warning("Upload rejected: %s", error_msg)
            raise FileTooLargeError(error_msg or f"File size {size} exceeds maximum limit")

    def _fallback_duration(self, category: UploadCategory) -> float:
        if category is UploadCategory.LONG:
            return self.settings.long_video_fallback_seconds
        return self.settings.short_video_fallback_seconds


__all__ = [
    "ContentMismatchError",
    "FileTooLargeError",
    "FileValidationError",
    "IngestService",
    "IngestServiceError",
    "UnsafeContentError",
    "UnsupportedMediaTypeError",
]
