"""Tests for Settings loading and validation."""

import pytest

from media_ingest.config import Settings, get_settings


class TestSettings:
    """Tests for the Settings model."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.ffprobe_path == "ffprobe"
        assert settings.probe_timeout_seconds == 30.0
        assert settings.max_image_size_bytes == 10 * 1024 * 1024
        assert settings.max_video_size_bytes == 1000 * 1024 * 1024
        assert settings.short_video_fallback_seconds == 30.0
        assert settings.long_video_fallback_seconds == 300.0
        assert settings.normalize_images is False

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FFPROBE_PATH", "/opt/ffmpeg/bin/ffprobe")
        monkeypatch.setenv("PROBE_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("NORMALIZE_IMAGES", "true")

        settings = Settings(_env_file=None)

        assert settings.ffprobe_path == "/opt/ffmpeg/bin/ffprobe"
        assert settings.probe_timeout_seconds == 5.0
        assert settings.normalize_images is True

    def test_log_level_normalized(self) -> None:
        assert Settings(log_level="WARNING", _env_file=None).log_level == "warning"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValueError, match="Invalid log_level"):
            Settings(log_level="chatty", _env_file=None)

    def test_invalid_app_env(self) -> None:
        with pytest.raises(ValueError, match="Invalid app_env"):
            Settings(app_env="qa", _env_file=None)

    def test_allowed_types_lower_cased(self) -> None:
        settings = Settings(allowed_video_types="Video/MP4, video/webm", _env_file=None)

        assert settings.allowed_video_types == ["video/mp4", "video/webm"]

    def test_list_settings_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALLOWED_VIDEO_TYPES", "video/mp4,Video/WebM")
        monkeypatch.setenv("ALLOWED_IMAGE_TYPES", "image/jpeg, image/png")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("SIGNATURE_CHECKED_TYPES", "image/png")

        settings = Settings(_env_file=None)

        assert settings.allowed_video_types == ["video/mp4", "video/webm"]
        assert settings.allowed_image_types == ["image/jpeg", "image/png"]
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
        assert settings.signature_checked_types == ["image/png"]

    def test_list_settings_from_env_file(self, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ALLOWED_VIDEO_TYPES=video/mp4,video/ogg\n")

        settings = Settings(_env_file=env_file)

        assert settings.allowed_video_types == ["video/mp4", "video/ogg"]

    def test_unknown_signature_type_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SIGNATURE_CHECKED_TYPES", "image/png,video/mp4")

        with pytest.raises(ValueError, match="No magic-byte signature for video/mp4"):
            Settings(_env_file=None)

    @pytest.mark.parametrize("timeout", [0, -1, 601])
    def test_probe_timeout_bounds(self, timeout: float) -> None:
        with pytest.raises(ValueError):
            Settings(probe_timeout_seconds=timeout, _env_file=None)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()
