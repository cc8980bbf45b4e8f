"""Timeline project data model.

Attributes are snake_case in Python; the persisted/wire form is camelCase
(``model_dump(by_alias=True)``) so snapshots stay compatible with the
remote timeline API. Both spellings are accepted on input.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from timeline_engine.utils.timecode import compute_total_duration


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str, index: int | None = None) -> str:
    """Build a fresh id of the form ``<prefix>_<epoch-ms>_<random>``."""
    stamp = int(time.time() * 1000)
    rand = uuid.uuid4().hex[:9]
    if index is not None:
        return f"{prefix}_{stamp}_{index}_{rand}"
    return f"{prefix}_{stamp}_{rand}"


class TimelineModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


AssetType = Literal["video", "audio", "image", "music", "text"]
TrackType = Literal["video", "audio"]
EasingName = Literal["linear", "ease-in", "ease-out", "ease-in-out"]
KeyframeEasing = Literal["linear", "ease-in", "ease-out", "ease-in-out", "bounce"]
Direction = Literal["left", "right", "top", "bottom"]


# =============================================================================
# Presentation properties
# =============================================================================


class Transition(TimelineModel):
    """Outgoing transition into the next asset on the same track."""

    type: str = "fade"
    duration: float = Field(default=1.0, ge=0)
    easing: EasingName | None = None


class LutReference(TimelineModel):
    name: str
    lut_id: str
    cube_file: str
    intensity: float = Field(default=1.0, ge=0, le=1)


class ColorGrading(TimelineModel):
    brightness: float = Field(default=0, ge=-100, le=100)
    contrast: float = Field(default=0, ge=-100, le=100)
    saturation: float = Field(default=0, ge=-100, le=100)
    temperature: float = Field(default=0, ge=-100, le=100)
    tint: float = Field(default=0, ge=-100, le=100)


class VisualEffects(TimelineModel):
    blur: float = Field(default=0, ge=0, le=100)
    sharpen: float = Field(default=0, ge=0, le=100)
    vignette: float = Field(default=0, ge=0, le=100)
    grain: float = Field(default=0, ge=0, le=100)


# =============================================================================
# Text
# =============================================================================


class FadeAnimation(TimelineModel):
    enabled: bool = True
    duration: float = Field(default=0.5, gt=0)
    easing: EasingName | None = None
    delay: float = Field(default=0, ge=0)


class SlideInAnimation(TimelineModel):
    enabled: bool = True
    from_: Direction = Field(default="left", alias="from")
    duration: float = Field(default=0.5, gt=0)
    distance: float | None = None
    easing: EasingName | None = None


class SlideOutAnimation(TimelineModel):
    enabled: bool = True
    to: Direction = "right"
    duration: float = Field(default=0.5, gt=0)
    distance: float | None = None
    easing: EasingName | None = None


class ScaleInAnimation(TimelineModel):
    enabled: bool = True
    from_: float = Field(default=0.0, ge=0, le=2, alias="from")
    duration: float = Field(default=0.5, gt=0)
    easing: KeyframeEasing | None = None


class ScaleOutAnimation(TimelineModel):
    enabled: bool = True
    to: float = Field(default=0.0, ge=0, le=2)
    duration: float = Field(default=0.5, gt=0)
    easing: EasingName | None = None


class TextAnimations(TimelineModel):
    fade_in: FadeAnimation | None = None
    fade_out: FadeAnimation | None = None
    slide_in: SlideInAnimation | None = None
    slide_out: SlideOutAnimation | None = None
    scale_in: ScaleInAnimation | None = None
    scale_out: ScaleOutAnimation | None = None


class TextContent(TimelineModel):
    text: str
    font_family: str = "Arial"
    font_size: int = Field(default=48, ge=12, le=200)
    font_weight: Literal["normal", "bold"] = "normal"
    font_style: Literal["normal", "italic"] = "normal"
    text_color: str = "#FFFFFF"
    background_color: str | None = None
    opacity: float = Field(default=1.0, ge=0, le=1)

    position_x: float | None = Field(default=None, ge=0, le=100)
    position_y: float | None = Field(default=None, ge=0, le=100)
    position_preset: (
        Literal[
            "top-left",
            "top-center",
            "top-right",
            "center-left",
            "center",
            "center-right",
            "bottom-left",
            "bottom-center",
            "bottom-right",
        ]
        | None
    ) = None
    text_align: Literal["left", "center", "right"] = "center"

    outline: bool = False
    outline_color: str = "#000000"
    outline_width: int = Field(default=2, ge=1, le=10)
    shadow: bool = False
    shadow_color: str = "#000000"
    shadow_offset_x: float = 2
    shadow_offset_y: float = 2

    animations: TextAnimations | None = None


# =============================================================================
# Keyframes
# =============================================================================


class Keyframe(TimelineModel):
    """Property values anchored at ``time`` seconds after the asset start."""

    time: float = Field(ge=0)
    x: float | None = None
    y: float | None = None
    scale: float | None = Field(default=None, ge=0.1, le=5.0)
    rotation: float | None = None
    opacity: float | None = Field(default=None, ge=0, le=1)
    blur: float | None = Field(default=None, ge=0)
    volume: float | None = Field(default=None, ge=0, le=2)
    easing: KeyframeEasing | None = None


# =============================================================================
# Provenance metadata (tagged by source_type)
# =============================================================================


class GenerationMetadataBase(TimelineModel):
    generated_at: datetime = Field(default_factory=_utcnow)
    provider: str = ""
    model: str | None = None
    credits_used: float = Field(default=0, ge=0)
    generation_time: int | None = None  # milliseconds
    job_id: str | None = None

    version: int | None = None
    parent_asset_id: str | None = None
    regeneration_prompt: str | None = None
    variation_seed: int | None = None


class VideoGenerationMetadata(GenerationMetadataBase):
    source_type: Literal["ai-video"] = "ai-video"
    prompt: str
    resolution: str
    aspect_ratio: str
    duration: str
    video_mode: Literal["text-only", "image-start", "image-interpolation", "reference-images"] = "text-only"
    enable_sound: bool | None = None
    enable_loop: bool | None = None
    camera_motion: str | None = None
    reference_images: list[str] | None = None
    start_image: str | None = None
    end_image: str | None = None
    quality_tier: str | None = None


class ImageGenerationMetadata(GenerationMetadataBase):
    source_type: Literal["ai-image"] = "ai-image"
    prompt: str
    resolution: str
    aspect_ratio: str | None = None
    style: str | None = None
    negative_prompt: str | None = None
    seed: int | None = None
    steps: int | None = None
    guidance_scale: float | None = None
    character_reference: str | None = None
    style_reference: str | None = None


class AudioGenerationMetadata(GenerationMetadataBase):
    source_type: Literal["ai-audio", "ai-music", "ai-voice"] = "ai-audio"
    prompt: str | None = None
    text: str | None = None
    voice: str | None = None
    language: str | None = None
    music_genre: str | None = None
    mood: str | None = None
    duration: str = ""
    format: str | None = None
    sample_rate: int | None = None


class UploadMetadata(GenerationMetadataBase):
    source_type: Literal["uploaded"] = "uploaded"
    original_filename: str
    file_size: int = Field(ge=0)
    uploaded_at: datetime = Field(default_factory=_utcnow)
    mime_type: str
    file_extension: str | None = None
    codec: str | None = None
    upload_source: Literal["local", "google-drive", "dropbox", "github", "url"] | None = None

    needs_proxy: bool | None = None
    proxy_url: str | None = None
    proxy_generated: bool | None = None
    original_resolution: str | None = None
    proxy_resolution: str | None = None

    # Uploads are free
    credits_used: float = Field(default=0, ge=0, le=0)


class SubtitleMetadata(GenerationMetadataBase):
    source_type: Literal["subtitle", "caption"] = "subtitle"
    format: Literal["srt", "vtt", "ass", "sbv", "txt"] = "srt"
    language: str | None = None
    original_filename: str | None = None
    generated_by: Literal["ai", "user", "auto-transcribe"] | None = None
    transcription_provider: str | None = None


AssetMetadata = Annotated[
    Union[
        VideoGenerationMetadata,
        ImageGenerationMetadata,
        AudioGenerationMetadata,
        UploadMetadata,
        SubtitleMetadata,
    ],
    Field(discriminator="source_type"),
]


# =============================================================================
# Compositions
# =============================================================================


class CompositionSourceClip(TimelineModel):
    id: str
    url: str
    name: str
    start_time: float = Field(ge=0)
    duration: float = Field(ge=0)
    track_index: int = Field(ge=0)
    track_type: TrackType


class AudioMixEffects(TimelineModel):
    normalization: bool | None = None
    compression: bool | None = None
    eq: str | None = None
    reverb: float | None = Field(default=None, ge=0, le=100)
    fade_in: float | None = None
    fade_out: float | None = None


class CompositionMetadata(TimelineModel):
    composition_id: str
    source_clips: list[CompositionSourceClip] = Field(default_factory=list)
    composition_type: Literal["static-layout", "animated", "paced-sequence", "audio-mix", "music-mix"]
    layout_id: str | None = None
    animation_id: str | None = None
    pacing_id: str | None = None
    audio_mix_type: Literal["balanced", "music-heavy", "dialogue-heavy", "ambient", "podcast"] | None = None
    audio_effects: AudioMixEffects | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    credits_used: float = Field(default=0, ge=0)
    can_recompose: bool = True
    last_modified: datetime | None = None
    version: int = 1


# =============================================================================
# Asset / Clip
# =============================================================================


class Asset(TimelineModel):
    """A placed media unit on the timeline."""

    id: str = ""
    type: AssetType
    url: str = ""
    thumbnail_url: str | None = None
    name: str = ""

    track: int = Field(default=0, ge=0)
    track_type: TrackType = "video"
    start_time: float = Field(default=0, ge=0)
    duration: float = Field(default=0, ge=0)

    trim_start: float = Field(default=0, ge=0)
    trim_end: float = Field(default=0, ge=0)
    source_duration: float | None = Field(default=None, ge=0)

    volume: float = Field(default=1.0, ge=0, le=2)
    muted: bool = False
    fade_in: float | None = Field(default=None, ge=0)
    fade_out: float | None = Field(default=None, ge=0)

    transition: Transition | None = None
    lut: LutReference | None = None
    color_grading: ColorGrading | None = None
    effects: VisualEffects | None = None
    speed: float = Field(default=1.0, ge=0.25, le=4.0)
    reversed: bool = False
    text_content: TextContent | None = None
    display_duration: float | None = Field(default=None, ge=0)

    keyframes: list[Keyframe] = Field(default_factory=list)
    asset_metadata: AssetMetadata | None = None

    is_composition: bool = False
    composition_metadata: CompositionMetadata | None = None
    is_source_clip: bool = False
    hidden_by_composition: str | None = None
    parent_composition_id: str | None = None

    # Deprecated free-form metadata kept for old snapshots
    metadata: dict[str, Any] | None = None

    # Embedded binary payloads (base64); stripped on export
    video_data: str | None = Field(default=None, repr=False)
    audio_data: str | None = Field(default=None, repr=False)
    thumbnail_data: str | None = Field(default=None, repr=False)

    @field_validator("keyframes")
    @classmethod
    def sort_keyframes(cls, v: list[Keyframe]) -> list[Keyframe]:
        return sorted(v, key=lambda kf: kf.time)

    @model_validator(mode="after")
    def check_trim_within_source(self) -> "Asset":
        if self.source_duration is not None and self.trim_start + self.trim_end > self.source_duration:
            raise ValueError(
                f"trim_start + trim_end ({self.trim_start + self.trim_end}) exceeds "
                f"source duration {self.source_duration}"
            )
        return self

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class ClipTransition(TimelineModel):
    type: Literal["cut", "fade", "dissolve", "wipe"] = "cut"
    duration: float = Field(default=0, ge=0)


class Clip(TimelineModel):
    """Legacy single-kind clip kept for backward compatibility."""

    id: str = ""
    shot_id: str | None = None
    video_url: str = ""
    thumbnail_url: str | None = None
    name: str = ""
    track: int = Field(default=0, ge=0)
    start_time: float = Field(default=0, ge=0)
    duration: float = Field(default=0, ge=0)
    trim_start: float = Field(default=0, ge=0)
    trim_end: float = Field(default=0, ge=0)
    volume: float = Field(default=1.0, ge=0, le=2)
    transition: ClipTransition | None = None
    metadata: dict[str, Any] | None = None

    # Embedded binary payloads (base64); stripped on export
    video_data: str | None = Field(default=None, repr=False)
    audio_data: str | None = Field(default=None, repr=False)
    thumbnail_data: str | None = Field(default=None, repr=False)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


# =============================================================================
# Project
# =============================================================================


class TrackConfig(TimelineModel):
    video_tracks: int = Field(default=8, ge=1)
    audio_tracks: int = Field(default=8, ge=1)

    def max_track(self, track_type: TrackType) -> int:
        """Highest valid track index for a track kind."""
        count = self.video_tracks if track_type == "video" else self.audio_tracks
        return count - 1


class Project(TimelineModel):
    id: str = Field(default_factory=lambda: f"timeline_{int(time.time() * 1000)}")
    name: str = "Untitled Project"
    clips: list[Clip] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    duration: float = Field(default=60.0, ge=0)
    resolution: Literal["720p", "1080p", "4K"] = "1080p"
    aspect_ratio: Literal["16:9", "9:16", "1:1", "4:3", "21:9"] = "16:9"
    frame_rate: Literal[24, 30, 60] = 30
    track_config: TrackConfig = Field(default_factory=TrackConfig)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def effective_duration(self) -> float:
        return compute_total_duration(self.duration, self.assets, self.clips)

    def get_asset(self, asset_id: str) -> Asset | None:
        return next((a for a in self.assets if a.id == asset_id), None)

    def get_clip(self, clip_id: str) -> Clip | None:
        return next((c for c in self.clips if c.id == clip_id), None)
