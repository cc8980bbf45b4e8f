"""Turn finished uploads (and text) into timeline assets.

Upload transport is handled elsewhere; this module receives the hosted
URL and file facts, applies the upload policy and builds an Asset with
provenance metadata ready for ``TimelineActions.add_asset``.
"""

import logging
from datetime import datetime, timezone

from timeline_engine.constants.catalogs import PROXY_REQUIRED_FORMATS, create_default_lut_metadata
from timeline_engine.exceptions import UploadRejectedError
from timeline_engine.schemas.timeline import Asset, LutReference, TextContent, UploadMetadata
from timeline_engine.services.upload_policy import get_extension, validate_file_size

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_DURATION = 5.0
DEFAULT_TEXT_DURATION = 5.0


def classify_upload(filename: str, mime_type: str) -> str:
    """Asset type for an uploaded file: "video", "image" or "audio"."""
    if get_extension(filename) in PROXY_REQUIRED_FORMATS or mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("audio/"):
        return "audio"
    raise UploadRejectedError(f"Unsupported media type: {mime_type or 'unknown'}")


def create_asset_from_upload(
    url: str,
    filename: str,
    file_size: int,
    mime_type: str,
    *,
    duration: float | None = None,
    start_time: float = 0.0,
    track: int = 0,
    thumbnail_url: str | None = None,
    upload_source: str | None = "local",
    codec: str | None = None,
    original_resolution: str | None = None,
) -> Asset:
    """Build an asset for an uploaded file.

    Args:
        url: Hosted media URL returned by the upload collaborator
        filename: Original file name
        file_size: Size in bytes
        mime_type: Reported MIME type
        duration: Media length in seconds (images default to 5 s)
        start_time: Placement on the timeline
        track: Track index within the asset's track kind

    Returns:
        Asset with ``asset_metadata`` of source type "uploaded"

    Raises:
        UploadRejectedError: File exceeds its size ceiling or is not media
    """
    check = validate_file_size(filename, file_size, mime_type)
    if not check.valid:
        logger.warning(f"Rejected upload {filename} ({file_size} bytes): {check.error}")
        raise UploadRejectedError(check.error)

    asset_type = classify_upload(filename, mime_type)
    track_type = "audio" if asset_type == "audio" else "video"

    if asset_type == "image":
        length = duration or DEFAULT_IMAGE_DURATION
        source_duration = None
    else:
        length = duration or 0.0
        source_duration = duration

    metadata = UploadMetadata(
        original_filename=filename,
        file_size=file_size,
        mime_type=mime_type,
        file_extension=get_extension(filename) or None,
        uploaded_at=datetime.now(timezone.utc),
        upload_source=upload_source,
        codec=codec,
        needs_proxy=check.needs_proxy,
        proxy_generated=False if check.needs_proxy else None,
        original_resolution=original_resolution,
        provider="upload",
    )

    lut = LutReference(**create_default_lut_metadata()) if track_type == "video" else None

    if check.needs_proxy:
        logger.info(f"Upload {filename} needs a proxy before smooth playback")

    return Asset(
        type=asset_type,
        url=url,
        thumbnail_url=thumbnail_url,
        name=filename,
        track=track,
        track_type=track_type,
        start_time=start_time,
        duration=length,
        source_duration=source_duration,
        display_duration=length if asset_type == "image" else None,
        lut=lut,
        asset_metadata=metadata,
    )


def create_text_asset(
    text: str,
    *,
    start_time: float = 0.0,
    duration: float = DEFAULT_TEXT_DURATION,
    track: int = 0,
    **style: object,
) -> Asset:
    """Build a text overlay asset. ``style`` feeds TextContent fields."""
    content = TextContent.model_validate({"text": text, **style})
    return Asset(
        type="text",
        name=text[:40],
        track=track,
        track_type="video",
        start_time=start_time,
        duration=duration,
        text_content=content,
    )
