from timeline_engine.schemas.persistence import (
    ExportResult,
    PersistenceState,
    SaveQueueItem,
    SaveStatus,
)
from timeline_engine.schemas.timeline import (
    Asset,
    AssetMetadata,
    AudioGenerationMetadata,
    Clip,
    ClipTransition,
    ColorGrading,
    CompositionMetadata,
    CompositionSourceClip,
    ImageGenerationMetadata,
    Keyframe,
    LutReference,
    Project,
    SubtitleMetadata,
    TextAnimations,
    TextContent,
    TrackConfig,
    Transition,
    UploadMetadata,
    VideoGenerationMetadata,
    VisualEffects,
    generate_id,
)

__all__ = [
    "Asset",
    "AssetMetadata",
    "AudioGenerationMetadata",
    "Clip",
    "ClipTransition",
    "ColorGrading",
    "CompositionMetadata",
    "CompositionSourceClip",
    "ExportResult",
    "ImageGenerationMetadata",
    "Keyframe",
    "LutReference",
    "PersistenceState",
    "Project",
    "SaveQueueItem",
    "SaveStatus",
    "SubtitleMetadata",
    "TextAnimations",
    "TextContent",
    "TrackConfig",
    "Transition",
    "UploadMetadata",
    "VideoGenerationMetadata",
    "VisualEffects",
    "generate_id",
]
