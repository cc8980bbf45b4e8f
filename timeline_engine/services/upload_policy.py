"""Upload admission checks: per-kind size ceilings and proxy detection.

Checks return results rather than raising, so an intake UI can show the
message next to the offending file.
"""

from dataclasses import dataclass

from timeline_engine.constants.catalogs import (
    MAX_FILE_SIZES,
    PROXY_REQUIRED_FORMATS,
    PROXY_SIZE_THRESHOLD,
    RECOMMENDED_FORMATS,
)


@dataclass(frozen=True)
class UploadCheck:
    valid: bool
    error: str | None = None
    needs_proxy: bool = False


def get_extension(filename: str) -> str:
    """Lower-cased extension after the last dot ("" when there is none)."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def needs_proxy_generation(filename: str, file_size: int) -> bool:
    """Professional formats always need a proxy, as does any file over 200 MB."""
    if get_extension(filename) in PROXY_REQUIRED_FORMATS:
        return True
    return file_size > PROXY_SIZE_THRESHOLD


def validate_file_size(filename: str, file_size: int, mime_type: str) -> UploadCheck:
    """Check a file against the ceiling for its kind."""
    ext = get_extension(filename)
    needs_proxy = needs_proxy_generation(filename, file_size)

    if ext in PROXY_REQUIRED_FORMATS:
        if file_size > MAX_FILE_SIZES["raw"]:
            return UploadCheck(
                valid=False,
                error=(
                    f"Professional format {ext.upper()} limited to 1GB. "
                    "Consider converting to MP4 for timeline editing."
                ),
                needs_proxy=True,
            )
        return UploadCheck(valid=True, needs_proxy=True)

    if mime_type.startswith("video/"):
        if file_size > MAX_FILE_SIZES["video"]:
            return UploadCheck(
                valid=False,
                error="Video files limited to 500MB for smooth playback. Please compress or convert to MP4.",
                needs_proxy=needs_proxy,
            )
    elif mime_type.startswith("image/"):
        if file_size > MAX_FILE_SIZES["image"]:
            return UploadCheck(
                valid=False,
                error="Image files limited to 50MB. Please compress or resize.",
                needs_proxy=needs_proxy,
            )
    elif mime_type.startswith("audio/"):
        if file_size > MAX_FILE_SIZES["audio"]:
            return UploadCheck(
                valid=False,
                error="Audio files limited to 100MB. Please compress to MP3 or AAC.",
                needs_proxy=needs_proxy,
            )

    return UploadCheck(valid=True, needs_proxy=needs_proxy)


def get_format_recommendation(mime_type: str) -> str | None:
    if mime_type.startswith("video/"):
        formats = RECOMMENDED_FORMATS["video"]
        return f"For best timeline performance, we recommend: {', '.join(formats).upper()}"
    for kind in ("image", "audio"):
        if mime_type.startswith(f"{kind}/"):
            formats = RECOMMENDED_FORMATS[kind]
            return f"For best performance, we recommend: {', '.join(formats).upper()}"
    return None
