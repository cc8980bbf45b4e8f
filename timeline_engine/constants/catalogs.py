"""Constant catalogs: transitions, color-grading presets, upload ceilings.

Every catalog is built once at import time into an immutable lookup
(tuples of frozen dataclasses and ``MappingProxyType`` indexes), so no
caller can mutate the shared tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

MB = 1024 * 1024

# ---------------------------------------------------------------------------
# Upload policy
# ---------------------------------------------------------------------------

MAX_FILE_SIZES: Mapping[str, int] = MappingProxyType(
    {
        "video": 500 * MB,
        "image": 50 * MB,
        "audio": 100 * MB,
        "raw": 1000 * MB,  # professional formats only
    }
)

# Files above this size need a proxy regardless of format
PROXY_SIZE_THRESHOLD = 200 * MB

RECOMMENDED_FORMATS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "video": ("mp4", "webm", "mov"),
        "image": ("jpeg", "png", "webp"),
        "audio": ("mp3", "aac", "opus"),
    }
)

PROXY_REQUIRED_FORMATS: frozenset[str] = frozenset(
    {"prores", "dnxhd", "dnxhr", "raw", "braw", "mxf", "avi", "mkv", "flv"}
)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransitionSpec:
    id: str
    name: str
    category: str
    duration: float


_TRANSITIONS: tuple[TransitionSpec, ...] = (
    # Fade family
    TransitionSpec("fade", "Fade", "fade", 1.0),
    TransitionSpec("fadeblack", "Fade to Black", "fade", 1.0),
    TransitionSpec("fadewhite", "Fade to White", "fade", 1.0),
    TransitionSpec("fadegrays", "Fade Grays", "fade", 1.0),
    TransitionSpec("dissolve", "Cross Dissolve", "fade", 1.0),
    TransitionSpec("distance", "Distance", "fade", 1.0),
    # Wipe family
    TransitionSpec("wipeleft", "Wipe Left", "wipe", 0.5),
    TransitionSpec("wiperight", "Wipe Right", "wipe", 0.5),
    TransitionSpec("wipeup", "Wipe Up", "wipe", 0.5),
    TransitionSpec("wipedown", "Wipe Down", "wipe", 0.5),
    TransitionSpec("wipebl", "Wipe Bottom-Left", "wipe", 0.5),
    TransitionSpec("wipebr", "Wipe Bottom-Right", "wipe", 0.5),
    TransitionSpec("wipetl", "Wipe Top-Left", "wipe", 0.5),
    TransitionSpec("wipetr", "Wipe Top-Right", "wipe", 0.5),
    # Slide family
    TransitionSpec("slideleft", "Slide Left", "slide", 0.5),
    TransitionSpec("slideright", "Slide Right", "slide", 0.5),
    TransitionSpec("slideup", "Slide Up", "slide", 0.5),
    TransitionSpec("slidedown", "Slide Down", "slide", 0.5),
    TransitionSpec("smoothleft", "Smooth Left", "slide", 0.7),
    TransitionSpec("smoothright", "Smooth Right", "slide", 0.7),
    TransitionSpec("smoothup", "Smooth Up", "slide", 0.7),
    TransitionSpec("smoothdown", "Smooth Down", "slide", 0.7),
    # Zoom family
    TransitionSpec("zoomin", "Zoom In", "zoom", 0.8),
    TransitionSpec("fadefast", "Zoom Fade", "zoom", 0.6),
    TransitionSpec("fadeslow", "Slow Zoom", "zoom", 1.5),
    # Rotate family
    TransitionSpec("circleopen", "Circle Open", "rotate", 0.8),
    TransitionSpec("circleclose", "Circle Close", "rotate", 0.8),
    TransitionSpec("radial", "Radial", "rotate", 0.7),
    # 3D
    TransitionSpec("squeezev", "Squeeze Vertical", "3d", 0.8),
    TransitionSpec("squeezeh", "Squeeze Horizontal", "3d", 0.8),
    TransitionSpec("coverup", "Cover Up", "3d", 0.7),
    TransitionSpec("coverdown", "Cover Down", "3d", 0.7),
    TransitionSpec("coverleft", "Cover Left", "3d", 0.7),
    TransitionSpec("coverright", "Cover Right", "3d", 0.7),
    TransitionSpec("revealup", "Reveal Up", "3d", 0.7),
    TransitionSpec("revealdown", "Reveal Down", "3d", 0.7),
    TransitionSpec("revealleft", "Reveal Left", "3d", 0.7),
    TransitionSpec("revealright", "Reveal Right", "3d", 0.7),
    # Advanced
    TransitionSpec("diagtl", "Diagonal TL", "advanced", 0.8),
    TransitionSpec("diagtr", "Diagonal TR", "advanced", 0.8),
    TransitionSpec("diagbl", "Diagonal BL", "advanced", 0.8),
    TransitionSpec("diagbr", "Diagonal BR", "advanced", 0.8),
    TransitionSpec("pixelize", "Pixelize", "advanced", 0.5),
    TransitionSpec("hlslice", "Horizontal Slice", "advanced", 0.6),
    TransitionSpec("vuslice", "Vertical Slice", "advanced", 0.6),
    TransitionSpec("rectcrop", "Rectangle Crop", "advanced", 0.7),
    TransitionSpec("horzopen", "Horizontal Open", "advanced", 0.8),
    TransitionSpec("horzclose", "Horizontal Close", "advanced", 0.8),
    TransitionSpec("vertopen", "Vertical Open", "advanced", 0.8),
    TransitionSpec("vertclose", "Vertical Close", "advanced", 0.8),
)

TRANSITIONS: Mapping[str, TransitionSpec] = MappingProxyType({t.id: t for t in _TRANSITIONS})

# Transition types that mean "hard cut, nothing to resolve"
NO_TRANSITION_TYPES: frozenset[str] = frozenset({"cut", "none"})


def get_transition(transition_id: str) -> TransitionSpec | None:
    return TRANSITIONS.get(transition_id)


def list_transitions(category: str | None = None) -> list[TransitionSpec]:
    if category is None:
        return list(_TRANSITIONS)
    return [t for t in _TRANSITIONS if t.category == category]


# ---------------------------------------------------------------------------
# Color grading (LUT) presets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LutSpec:
    id: str
    name: str
    category: str
    subcategory: str | None = None
    is_default: bool = False

    @property
    def cube_file(self) -> str:
        return f"/luts/{self.category}/{self.id}.cube"

    @property
    def preview(self) -> str:
        return f"/luts/previews/{self.id}.jpg"


_LUTS: tuple[LutSpec, ...] = (
    # Base
    LutSpec("signature-grade", "Signature Professional Grade", "base", is_default=True),
    LutSpec("film-standard", "Film Standard", "base"),
    LutSpec("digital-clean", "Digital Clean", "base"),
    # Cinematic
    LutSpec("cinematic-teal-orange", "Cinematic Teal & Orange", "cinematic"),
    LutSpec("cinematic-dark", "Cinematic Dark", "cinematic"),
    LutSpec("cinematic-bright", "Cinematic Bright", "cinematic"),
    LutSpec("anamorphic-flare", "Anamorphic Flare", "cinematic"),
    LutSpec("bleach-bypass", "Bleach Bypass", "cinematic"),
    LutSpec("moonlight-blue", "Moonlight Blue", "cinematic"),
    LutSpec("neon-nights", "Neon Nights", "cinematic"),
    # Genre
    LutSpec("film-noir", "Film Noir", "genre", "noir"),
    LutSpec("horror-desaturated", "Horror Desaturated", "genre", "horror"),
    LutSpec("sci-fi-blue", "Sci-Fi Blue", "genre", "scifi"),
    LutSpec("romance-warm", "Romance Warm", "genre", "romance"),
    LutSpec("western-dust", "Western Dust", "genre", "western"),
    # Era
    LutSpec("vintage-70s", "1970s Film Grain", "era"),
    LutSpec("vintage-80s", "1980s VHS", "era"),
    LutSpec("sepia-vintage", "Vintage Sepia", "era"),
    # Black & white
    LutSpec("bw-classic", "Black & White Classic", "bw"),
    LutSpec("bw-high-contrast", "Black & White High Contrast", "bw"),
)

LUTS: Mapping[str, LutSpec] = MappingProxyType({lut.id: lut for lut in _LUTS})


@dataclass(frozen=True)
class ColorPreset:
    """Fixed deltas a named preset applies before user overrides.

    brightness/contrast/saturation are fractional deltas around 1.0,
    hue_rotate is in degrees, sepia/grayscale are amounts in 0..1.
    """

    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    hue_rotate: float = 0.0
    sepia: float = 0.0
    grayscale: float = 0.0


COLOR_PRESETS: Mapping[str, ColorPreset] = MappingProxyType(
    {
        "signature-grade": ColorPreset(brightness=0.05, contrast=0.15, saturation=0.2, hue_rotate=10),
        "cinematic-teal-orange": ColorPreset(contrast=0.2, saturation=0.3, hue_rotate=15),
        "cinematic-dark": ColorPreset(brightness=-0.2, contrast=0.3, saturation=-0.1),
        "cinematic-bright": ColorPreset(brightness=0.2, contrast=0.1, saturation=0.15),
        "film-noir": ColorPreset(grayscale=0.8, contrast=0.4),
        "vintage-70s": ColorPreset(sepia=0.3, contrast=0.1, hue_rotate=20),
        "vintage-80s": ColorPreset(saturation=0.4, hue_rotate=-10),
        "horror-desaturated": ColorPreset(saturation=-0.5, brightness=-0.15, contrast=0.2),
        "sci-fi-blue": ColorPreset(hue_rotate=-40, saturation=0.2, brightness=-0.1),
        "bw-classic": ColorPreset(grayscale=1.0, contrast=0.1),
        "bw-high-contrast": ColorPreset(grayscale=1.0, contrast=0.5),
    }
)


def get_default_lut() -> LutSpec:
    return next((lut for lut in _LUTS if lut.is_default), _LUTS[0])


def create_default_lut_metadata() -> dict[str, object]:
    """Build the LUT reference a new asset starts with."""
    lut = get_default_lut()
    return {
        "name": lut.name,
        "lut_id": lut.id,
        "cube_file": lut.cube_file,
        "intensity": 1.0,
    }
