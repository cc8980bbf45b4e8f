"""Tests for upload size ceilings and proxy detection."""

from timeline_engine.constants.catalogs import MB
from timeline_engine.services.upload_policy import (
    get_extension,
    get_format_recommendation,
    needs_proxy_generation,
    validate_file_size,
)


class TestGetExtension:
    def test_lower_cases_last_extension(self):
        assert get_extension("Trailer.Final.MOV") == "mov"

    def test_no_extension(self):
        assert get_extension("README") == ""


class TestNeedsProxy:
    def test_professional_format_always_needs_proxy(self):
        assert needs_proxy_generation("take.mxf", 10 * MB) is True

    def test_large_file_needs_proxy(self):
        assert needs_proxy_generation("clip.mp4", 300 * MB) is True

    def test_small_consumer_file(self):
        assert needs_proxy_generation("clip.mp4", 20 * MB) is False


class TestValidateFileSize:
    def test_video_over_limit(self):
        result = validate_file_size("clip.mp4", 600 * MB, "video/mp4")
        assert not result.valid
        assert result.error.startswith("Video files limited to 500MB")

    def test_video_under_limit_but_large(self):
        result = validate_file_size("clip.mp4", 300 * MB, "video/mp4")
        assert result.valid
        assert result.needs_proxy

    def test_professional_format_uses_raw_limit(self):
        """Pro formats are allowed up to 1GB even though video is capped at 500MB."""
        assert validate_file_size("take.mxf", 900 * MB, "video/mxf").valid

        result = validate_file_size("take.mxf", 1100 * MB, "video/mxf")
        assert not result.valid
        assert "Professional format MXF limited to 1GB" in result.error

    def test_image_over_limit(self):
        result = validate_file_size("still.png", 60 * MB, "image/png")
        assert not result.valid
        assert "Image files limited to 50MB" in result.error

    def test_audio_over_limit(self):
        result = validate_file_size("song.wav", 120 * MB, "audio/wav")
        assert not result.valid
        assert "Audio files limited to 100MB" in result.error

    def test_unknown_kind_has_no_ceiling(self):
        assert validate_file_size("notes.txt", 900 * MB, "text/plain").valid


class TestFormatRecommendation:
    def test_video(self):
        assert get_format_recommendation("video/quicktime") == (
            "For best timeline performance, we recommend: MP4, WEBM, MOV"
        )

    def test_audio(self):
        assert "MP3, AAC, OPUS" in get_format_recommendation("audio/wav")

    def test_other(self):
        assert get_format_recommendation("application/pdf") is None
