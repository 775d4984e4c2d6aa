"""
Media Processing Service for D4DHub Media Ingest

Best-effort transforms and metadata extraction applied to uploads that have
already passed validation:

- Images: EXIF stripping with auto-orientation, optional normalization to a
  bounded progressive JPEG (Pillow)
- Videos: container duration via ffprobe, run against a temporary copy of
  the upload

None of the public methods raise. Failures are logged and reported through
ImageTransformResult / DurationResult so the upload can continue with the
original bytes or an estimated duration.
"""

import asyncio
import contextlib
import io
import json
import logging
import math
import secrets
import shutil
import tempfile
import time

from pathlib import Path
from typing import Any, Protocol

import aiofiles

from PIL import Image, ImageOps

from media_ingest.config import Settings
from media_ingest.models.media import DurationResult, ImageTransformResult


# Metadata keys dropped from Image.info before re-encoding
METADATA_INFO_KEYS: tuple[str, ...] = (
    "exif",
    "xmp",
    "XML:com.adobe.xmp",
    "comment",
    "photoshop",
    "icc_profile",
)


class ProbeError(Exception):
    """Raised by a MediaProber when container metadata cannot be read."""


class MediaProber(Protocol):
    """Reads container-level metadata from a media file on disk."""

    async def probe(self, path: str) -> dict[str, Any]:
        """Return ffprobe-style metadata with at least a ``format`` section."""
        ...


class FFprobeProber:
    """
    MediaProber backed by the ffprobe binary.

    The process is awaited, never polled, and killed once timeout_seconds
    elapse. There is no way to cancel a probe early.
    """

    def __init__(self, ffprobe_path: str = "ffprobe", timeout_seconds: float = 30.0) -> None:
        self.ffprobe_path = ffprobe_path
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "FFprobeProber":
        return cls(settings.ffprobe_path, settings.probe_timeout_seconds)

    def is_available(self) -> bool:
        """Check if the configured ffprobe binary can be found."""
        return shutil.which(self.ffprobe_path) is not None

    async def probe(self, path: str) -> dict[str, Any]:
        cmd = [
            self.ffprobe_path,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            path,
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"Cannot run {self.ffprobe_path}: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise ProbeError(f"ffprobe timed out after {self.timeout_seconds}s") from e

        if process.returncode != 0:
            raise ProbeError(f"ffprobe exited with code {process.returncode}")

        try:
            data = json.loads(stdout or b"{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"ffprobe returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ProbeError("ffprobe output is not a JSON object")
        return data


def parse_probe_duration(probe_data: dict[str, Any]) -> float:
    """
    Read ``format.duration`` (seconds) from prober output.

    Raises:
        ProbeError: If the field is missing, non-numeric ("N/A") or negative
    """
    raw = (probe_data.get("format") or {}).get("duration")
    if raw is None:
        raise ProbeError("Probe output has no format.duration")
    try:
        duration = float(raw)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"Non-numeric duration {raw!r}") from e
    if not math.isfinite(duration) or duration < 0:
        raise ProbeError(f"Invalid duration {raw!r}")
    return duration


class MediaProcessingService:
    """
    Image transforms and video duration probing for validated uploads.

    Attributes:
        settings: Ingest configuration (quality, bounds, temp dir, timeout)
        prober: MediaProber used for videos; FFprobeProber unless injected
        logger: Logger instance for tracking operations and fallbacks

    Example:
        service = MediaProcessingService(get_settings())
        image = await service.strip_exif(jpeg_bytes)
        duration = await service.extract_duration(mp4_bytes)
    """

    def __init__(self, settings: Settings, prober: MediaProber | None = None) -> None:
        self.settings = settings
        self.prober: MediaProber = prober or FFprobeProber.from_settings(settings)
        self.logger = logging.getLogger(__name__)

    # =========================================================================
    # Image path
    # =========================================================================

    async def strip_exif(self, buffer: bytes) -> ImageTransformResult:
        """
        Apply the EXIF orientation to the pixels and drop all metadata.

        The image is re-encoded in its source format. On any failure the
        original buffer is returned untouched with ``transformed=False``.
        """
        return await asyncio.to_thread(self._strip_exif_sync, buffer)

    def _strip_exif_sync(self, buffer: bytes) -> ImageTransformResult:
        try:
            with Image.open(io.BytesIO(buffer)) as img:
                image_format = img.format
                if image_format == "MPO":
                    # Phone JPEGs with an embedded preview; keep the primary frame
                    image_format = "JPEG"
                elif getattr(img, "is_animated", False):
                    return ImageTransformResult(
                        data=buffer, transformed=False, error="Animated image left unchanged"
                    )

                oriented = ImageOps.exif_transpose(img)
                for key in METADATA_INFO_KEYS:
                    oriented.info.pop(key, None)

                output = io.BytesIO()
                oriented.save(output, format=image_format, **self._encoder_options(image_format))
        except Exception as e:
            self.logger.warning("EXIF strip failed, keeping original bytes: %s", e)
            return ImageTransformResult(data=buffer, transformed=False, error=str(e) or type(e).__name__)

        return ImageTransformResult(
            data=output.getvalue(),
            transformed=True,
            content_type=Image.MIME.get(image_format),
        )

    def _encoder_options(self, image_format: str | None) -> dict[str, Any]:
        if image_format in ("JPEG", "WEBP"):
            return {"quality": self.settings.exif_strip_jpeg_quality}
        return {}

    async def normalize_image(self, buffer: bytes) -> ImageTransformResult:
        """
        Orient, bound and re-encode an image as progressive JPEG.

        The image is shrunk to fit image_max_width x image_max_height and is
        never enlarged. Falls back to the original buffer like strip_exif.
        """
        return await asyncio.to_thread(self._normalize_image_sync, buffer)

    def _normalize_image_sync(self, buffer: bytes) -> ImageTransformResult:
        try:
            with Image.open(io.BytesIO(buffer)) as img:
                oriented = ImageOps.exif_transpose(img)
                oriented.thumbnail(
                    (self.settings.image_max_width, self.settings.image_max_height),
                    Image.Resampling.LANCZOS,
                )
                if oriented.mode not in ("RGB", "L"):
                    oriented = oriented.convert("RGB")

                output = io.BytesIO()
                oriented.save(
                    output,
                    format="JPEG",
                    quality=self.settings.image_jpeg_quality,
                    progressive=True,
                    optimize=True,
                )
        except Exception as e:
            self.logger.warning("Image normalization failed, keeping original bytes: %s", e)
            return ImageTransformResult(data=buffer, transformed=False, error=str(e) or type(e).__name__)

        return ImageTransformResult(data=output.getvalue(), transformed=True, content_type="image/jpeg")

    # =========================================================================
    # Video path
    # =========================================================================

    async def extract_duration(self, buffer: bytes) -> DurationResult:
        """
        Probe a video buffer for its container duration in seconds.

        The buffer is written to a uniquely named temporary file that only
        this call owns. The file is removed on every exit path before the
        call returns; a failed removal is logged and otherwise ignored.

        Returns:
            DurationResult with duration_seconds set on success, or None and
            an error message when the duration could not be determined.
        """
        temp_path = self._build_temp_path()
        created = False
        try:
            async with aiofiles.open(temp_path, "xb") as temp_file:
                created = True
                await temp_file.write(buffer)
            probe_data = await self.prober.probe(str(temp_path))
            duration = parse_probe_duration(probe_data)
        except Exception as e:
            self.logger.warning(
                "Duration probe failed, caller should estimate: %s",
                e,
                extra={"temp_path": str(temp_path)},
            )
            return DurationResult(error=str(e) or type(e).__name__)
        finally:
            if created:
                self._remove_temp_file(temp_path)

        self.logger.debug("Probed video duration: %.3fs", duration)
        return DurationResult(duration_seconds=duration)

    def _build_temp_path(self) -> Path:
        base_dir = Path(self.settings.temp_dir) if self.settings.temp_dir else Path(tempfile.gettempdir())
        timestamp = int(time.time() * 1000)
        return base_dir / f"{self.settings.temp_file_prefix}{timestamp}-{secrets.token_hex(8)}"

    def _remove_temp_file(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning("Failed to remove temporary probe file %s: %s", path, e)


__all__ = [
    "FFprobeProber",
    "MediaProber",
    "MediaProcessingService",
    "ProbeError",
    "parse_probe_duration",
]
