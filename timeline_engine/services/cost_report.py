"""Read-only reducers over a project's assets: credits and counts."""

from typing import Iterable

from timeline_engine.schemas.timeline import Asset

AUDIO_SOURCE_TYPES = frozenset({"ai-audio", "ai-music", "ai-voice"})
SUBTITLE_SOURCE_TYPES = frozenset({"subtitle", "caption"})


def _source_type(asset: Asset) -> str | None:
    return asset.asset_metadata.source_type if asset.asset_metadata else None


def get_visible_assets(assets: Iterable[Asset]) -> list[Asset]:
    """Assets not hidden by a composition."""
    return [a for a in assets if not a.hidden_by_composition]


def get_composition_source_clips(assets: Iterable[Asset], composition_id: str) -> list[Asset]:
    return [a for a in assets if a.hidden_by_composition == composition_id]


def calculate_project_cost(assets: Iterable[Asset]) -> float:
    """Total credits: generation cost of each asset plus composition cost."""
    total = 0.0
    for asset in assets:
        if asset.asset_metadata:
            total += asset.asset_metadata.credits_used
        if asset.composition_metadata:
            total += asset.composition_metadata.credits_used
    return total


def get_cost_breakdown(assets: Iterable[Asset]) -> dict[str, float]:
    """Credits per bucket. Uploads are always free and excluded from the total."""
    breakdown = {
        "videos": 0.0,
        "images": 0.0,
        "audio": 0.0,
        "subtitles": 0.0,
        "compositions": 0.0,
        "uploads": 0.0,
        "total": 0.0,
    }

    for asset in assets:
        source_type = _source_type(asset)
        cost = asset.asset_metadata.credits_used if asset.asset_metadata else 0

        if source_type == "ai-video":
            breakdown["videos"] += cost
        elif source_type == "ai-image":
            breakdown["images"] += cost
        elif source_type in AUDIO_SOURCE_TYPES:
            breakdown["audio"] += cost
        elif source_type in SUBTITLE_SOURCE_TYPES:
            breakdown["subtitles"] += cost

        if asset.composition_metadata:
            breakdown["compositions"] += asset.composition_metadata.credits_used

    breakdown["total"] = (
        breakdown["videos"]
        + breakdown["images"]
        + breakdown["audio"]
        + breakdown["subtitles"]
        + breakdown["compositions"]
    )
    return breakdown


def get_asset_count_by_type(assets: Iterable[Asset]) -> dict[str, int]:
    assets = list(assets)
    counts = {
        "ai_videos": 0,
        "ai_images": 0,
        "ai_audio": 0,
        "uploads": 0,
        "compositions": 0,
        "total": len(assets),
    }

    for asset in assets:
        source_type = _source_type(asset)
        if source_type == "ai-video":
            counts["ai_videos"] += 1
        elif source_type == "ai-image":
            counts["ai_images"] += 1
        elif source_type in AUDIO_SOURCE_TYPES:
            counts["ai_audio"] += 1
        elif source_type == "uploaded":
            counts["uploads"] += 1

        if asset.is_composition:
            counts["compositions"] += 1

    return counts
