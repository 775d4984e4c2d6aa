"""
Upload Validation Utilities for D4DHub Media Ingest

This module holds the pure, stateless checks applied to an upload before any
processing happens:
- Magic-byte verification of the declared MIME type (JPEG and PNG only)
- Category allow-lists (which declared types each post category accepts)
- Per-kind size limits (images and videos)
- The HTTPException helper used by the API layer

Known limitation:
    Only ``image/jpeg`` and ``image/png`` are verified against their leading
    bytes. Every other declared type, including all video types and
    ``image/gif``/``image/webp``, is trusted as declared. The checked set is
    exposed as ``Settings.signature_checked_types`` so deployments can see
    and narrow it, but it cannot be widened without adding a signature here.
"""

from collections.abc import Collection, Iterable
from typing import NoReturn

from fastapi import HTTPException, status

from media_ingest.models.media import MediaKind, UploadCategory


# =============================================================================
# CONSTANTS - Magic-Byte Signatures
# =============================================================================

# declared type -> (required leading bytes, minimum buffer length)
FILE_SIGNATURES: dict[str, tuple[bytes, int]] = {
    "image/jpeg": (b"\xff\xd8", 2),
    "image/png": (b"\x89PNG", 8),
}

DEFAULT_SIGNATURE_CHECKED_TYPES: frozenset[str] = frozenset(FILE_SIGNATURES)

BYTES_PER_MB: int = 1024 * 1024


# =============================================================================
# TYPE SIGNATURE VALIDATION
# =============================================================================


def is_valid_type(
    buffer: bytes,
    declared_mime: str,
    checked_types: Collection[str] | None = None,
) -> bool:
    """
    Check that a buffer's leading bytes match its declared MIME type.

    Args:
        buffer: Raw upload bytes
        declared_mime: MIME type claimed by the client
        checked_types: Declared types to verify; defaults to JPEG and PNG.
            Types without a signature in FILE_SIGNATURES are ignored.

    Returns:
        False only when the declared type is checked and the buffer is too
        short or starts with the wrong bytes. True for every unchecked type.

    Example:
        >>> is_valid_type(b"\\xff\\xd8\\xff\\xe0", "image/jpeg")
        True
        >>> is_valid_type(b"\\x89PNG\\r\\n\\x1a\\n", "image/jpeg")
        False
        >>> is_valid_type(b"anything", "video/mp4")
        True
    """
    mime = (declared_mime or "").strip().lower()
    if checked_types is None:
        checked_types = DEFAULT_SIGNATURE_CHECKED_TYPES

    if mime not in checked_types or mime not in FILE_SIGNATURES:
        return True

    signature, min_length = FILE_SIGNATURES[mime]
    if buffer is None or len(buffer) < min_length:
        return False
    return bytes(buffer[: len(signature)]) == signature


# =============================================================================
# CATEGORY AND SIZE VALIDATION
# =============================================================================


def get_media_kind(declared_mime: str) -> MediaKind | None:
    """
    Map a MIME type to its media family.

    Example:
        >>> get_media_kind("video/mp4")
        <MediaKind.VIDEO: 'video'>
        >>> get_media_kind("application/pdf") is None
        True
    """
    mime = (declared_mime or "").strip().lower()
    if mime.startswith("image/"):
        return MediaKind.IMAGE
    if mime.startswith("video/"):
        return MediaKind.VIDEO
    return None


def allowed_types_for_category(
    category: UploadCategory,
    image_types: Iterable[str],
    video_types: Iterable[str],
) -> list[str]:
    """Image posts take images only; short and long posts take videos or a still image."""
    if category is UploadCategory.IMAGE:
        return list(image_types)
    return [*video_types, *image_types]


def validate_declared_type(
    declared_mime: str,
    category: UploadCategory,
    image_types: Iterable[str],
    video_types: Iterable[str],
) -> tuple[bool, str | None]:
    """
    Check a declared MIME type against the allow-list for a post category.

    Returns:
        Tuple of (is_valid, error_message)
    """
    allowed = allowed_types_for_category(category, image_types, video_types)
    mime = (declared_mime or "").strip().lower()
    if mime in allowed:
        return True, None
    return False, (
        f"Invalid file type for {category.value}. You uploaded a {mime or 'unknown'} file. "
        f"Allowed types: {', '.join(allowed)}"
    )


def validate_file_size(file_size: int, max_size: int) -> tuple[bool, str | None]:
    """
    Check an upload size against a byte limit.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file_size < 0:
        return False, "Invalid file size: cannot be negative"
    if file_size > max_size:
        return False, (
            f"File size ({file_size / BYTES_PER_MB:.2f} MB) exceeds maximum allowed "
            f"({max_size / BYTES_PER_MB:.0f}MB limit)"
        )
    return True, None


# =============================================================================
# HTTP EXCEPTION HELPERS
# =============================================================================


def raise_file_validation_error(
    error_message: str,
    error_code: str = "invalid_upload",
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> NoReturn:
    """
    Raise an HTTPException for a rejected upload.

    The detail body is ``{"error": error_code, "message": error_message}``.
    """
    raise HTTPException(
        status_code=status_code,
        detail={"error": error_code, "message": error_message},
    )
