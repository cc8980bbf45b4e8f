"""Tests for turning uploads into assets."""

import pytest

from timeline_engine.constants.catalogs import MB
from timeline_engine.exceptions import UploadRejectedError
from timeline_engine.services.media_intake import (
    classify_upload,
    create_asset_from_upload,
    create_text_asset,
)


class TestClassify:
    def test_kinds(self):
        assert classify_upload("a.mp4", "video/mp4") == "video"
        assert classify_upload("a.png", "image/png") == "image"
        assert classify_upload("a.mp3", "audio/mpeg") == "audio"

    def test_professional_extension_is_video(self):
        assert classify_upload("take.mxf", "application/octet-stream") == "video"

    def test_unsupported(self):
        with pytest.raises(UploadRejectedError):
            classify_upload("doc.pdf", "application/pdf")


class TestCreateAssetFromUpload:
    def test_video(self):
        asset = create_asset_from_upload(
            "https://cdn.test/a.mp4", "a.mp4", 10 * MB, "video/mp4", duration=12, start_time=3
        )
        assert asset.type == "video"
        assert asset.track_type == "video"
        assert (asset.start_time, asset.duration, asset.source_duration) == (3, 12, 12)
        assert asset.lut.lut_id == "signature-grade"
        meta = asset.asset_metadata
        assert meta.source_type == "uploaded"
        assert meta.credits_used == 0
        assert meta.file_extension == "mp4"
        assert meta.needs_proxy is False

    def test_image_defaults_to_five_seconds(self):
        asset = create_asset_from_upload("https://cdn.test/a.png", "a.png", MB, "image/png")
        assert asset.duration == 5
        assert asset.display_duration == 5

    def test_audio_goes_on_audio_track(self):
        asset = create_asset_from_upload("https://cdn.test/a.mp3", "a.mp3", MB, "audio/mpeg", duration=30)
        assert asset.track_type == "audio"
        assert asset.lut is None

    def test_large_video_flags_proxy(self):
        asset = create_asset_from_upload("u", "big.mp4", 300 * MB, "video/mp4", duration=60)
        assert asset.asset_metadata.needs_proxy is True
        assert asset.asset_metadata.proxy_generated is False

    def test_oversize_rejected(self):
        with pytest.raises(UploadRejectedError, match="Video files limited to 500MB"):
            create_asset_from_upload("u", "huge.mp4", 600 * MB, "video/mp4")


class TestTextAsset:
    def test_text_asset(self):
        asset = create_text_asset("Hello world", start_time=2, font_size=64, text_color="#FF0000")
        assert asset.type == "text"
        assert asset.duration == 5
        assert asset.text_content.font_size == 64
        assert asset.text_content.text_color == "#FF0000"
