"""
Pytest Configuration and Test Fixtures for D4DHub Media Ingest

This module provides:
- Settings built for tests (plain-text logs, per-test temp directory)
- Pillow-generated images in memory (JPEG, PNG, animated GIF, EXIF-rotated JPEG)
- A fake MediaProber that records the paths it was asked to probe
- Service instances wired with the fake prober
- FastAPI TestClient with the ingest service dependency overridden
"""

from collections.abc import Generator
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from media_ingest.api.v1.ingest import get_ingest_service
from media_ingest.config import Settings
from media_ingest.main import app
from media_ingest.services.ingest_service import IngestService
from media_ingest.services.media_processing_service import MediaProcessingService

from fakes import MAKE_TAG, ORIENTATION_TAG, FakeProber


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """
    Register custom markers.

    - integration: needs ffmpeg/ffprobe on PATH
    - unit: isolated, no external dependencies
    """
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


# ==============================================================================
# Configuration Fixtures
# ==============================================================================


@pytest.fixture
def probe_dir(tmp_path: Path) -> Path:
    """Empty directory used as the temp dir for probe files."""
    directory = tmp_path / "probe"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(probe_dir: Path) -> Settings:
    """
    Settings for tests.

    Values are passed explicitly so the developer's environment and .env file
    do not leak into test runs.
    """
    return Settings(
        app_env="testing",
        log_level="debug",
        json_logs=False,
        temp_dir=str(probe_dir),
        probe_timeout_seconds=5,
        max_image_size_mb=10,
        max_video_size_mb=1000,
        normalize_images=False,
        _env_file=None,
    )


# ==============================================================================
# Service Fixtures
# ==============================================================================


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def media_service(settings: Settings, fake_prober: FakeProber) -> MediaProcessingService:
    return MediaProcessingService(settings, prober=fake_prober)


@pytest.fixture
def ingest_service(settings: Settings, media_service: MediaProcessingService) -> IngestService:
    return IngestService(settings, media_service)


@pytest.fixture
def client(ingest_service: IngestService) -> Generator[TestClient, None, None]:
    """
    TestClient whose ingest endpoint uses the fake prober.

    The app lifespan is not entered, so logging configuration of the test
    session is left alone.
    """
    app.dependency_overrides[get_ingest_service] = lambda: ingest_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ==============================================================================
# Sample Test Data Fixtures - Images
# ==============================================================================


def _encode(img: Image.Image, image_format: str, **params: Any) -> bytes:
    buf = BytesIO()
    img.save(buf, format=image_format, **params)
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """100x100 green JPEG."""
    return _encode(Image.new("RGB", (100, 100), color="green"), "JPEG", quality=85)


@pytest.fixture
def png_bytes() -> bytes:
    """100x100 red PNG."""
    return _encode(Image.new("RGB", (100, 100), color="red"), "PNG")


@pytest.fixture
def large_png_bytes() -> bytes:
    """3000x2000 PNG, larger than the normalization bounds."""
    return _encode(Image.new("RGB", (3000, 2000), color="blue"), "PNG")


@pytest.fixture
def animated_gif_bytes() -> bytes:
    """Two-frame animated GIF."""
    frames = [Image.new("RGB", (20, 20), color="red"), Image.new("RGB", (20, 20), color="blue")]
    buf = BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buf.getvalue()


@pytest.fixture
def rotated_jpeg_bytes() -> bytes:
    """
    40x20 JPEG tagged with EXIF orientation 6 (rotate 90 degrees clockwise).

    The camera make is set so tests can check that all EXIF is gone, not only
    the orientation tag.
    """
    img = Image.new("RGB", (40, 20), color="white")
    exif = Image.Exif()
    exif[ORIENTATION_TAG] = 6
    exif[MAKE_TAG] = "TestCam"
    return _encode(img, "JPEG", quality=90, exif=exif)


@pytest.fixture
def mp4_bytes() -> bytes:
    """Bytes that look like the start of an MP4 container. Not decodable."""
    return b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 512
