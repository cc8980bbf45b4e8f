"""Effects resolver: presentation parameters for a point in time.

Pure functions. Given assets and a time they compute which assets are
on screen, how far into a transition each pair is, and the per-layer
values (opacity, translate, scale, inset, blur, brightness, filter steps,
audio gain) a renderer needs. Nothing here touches pixels.
"""

from dataclasses import dataclass, field
from typing import Iterable

from timeline_engine.constants.catalogs import COLOR_PRESETS, NO_TRANSITION_TYPES
from timeline_engine.schemas.timeline import (
    Asset,
    ColorGrading,
    LutReference,
    TextContent,
    Transition,
    VisualEffects,
)
from timeline_engine.utils.interpolation import get_easing_function, interpolate_keyframes

DEFAULT_TRANSITION_EASING = "ease-in-out"

# An incoming asset counts as adjacent if it starts this close to the outgoing end
ADJACENCY_TOLERANCE = 0.1

KEYFRAME_PROPERTIES = ("x", "y", "scale", "rotation", "opacity", "blur", "volume")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def apply_easing(progress: float, easing: str | None) -> float:
    """Apply a named easing curve; unknown names fall back to linear."""
    return get_easing_function(easing)(progress)


# =============================================================================
# Presentation value types
# =============================================================================


@dataclass
class ClipInset:
    """Clip rectangle insets in percent of the layer size."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


@dataclass
class LayerPresentation:
    opacity: float = 1.0
    translate_x: float = 0.0  # percent of width
    translate_y: float = 0.0  # percent of height
    scale_x: float = 1.0
    scale_y: float = 1.0
    clip_inset: ClipInset | None = None
    blur: float = 0.0  # px
    brightness: float = 1.0


@dataclass
class TransitionFrame:
    type: str
    progress: float  # eased
    outgoing: LayerPresentation
    incoming: LayerPresentation


@dataclass(frozen=True)
class FilterStep:
    """One ordered filter operation, e.g. ``FilterStep("hue-rotate", 15, "deg")``."""

    name: str
    value: float
    unit: str = ""


@dataclass
class TransitionPair:
    outgoing: Asset
    incoming: Asset
    progress: float  # raw, clamped to 0..1


@dataclass
class ActiveAssets:
    assets: list[Asset] = field(default_factory=list)
    transitions: list[TransitionPair] = field(default_factory=list)


@dataclass
class TextAnimationState:
    opacity: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0


# =============================================================================
# Active assets
# =============================================================================


def get_active_assets_at_time(assets: Iterable[Asset], current_time: float) -> ActiveAssets:
    """Visible assets covering ``current_time`` plus transitions in progress.

    An outgoing asset with a real transition pairs with the next visible
    asset on the same track and track kind starting within 0.1 s of its
    end, while ``current_time`` is inside the transition window.
    """
    visible = [a for a in assets if not a.hidden_by_composition]
    result = ActiveAssets(
        assets=[a for a in visible if a.start_time <= current_time <= a.end_time]
    )

    for asset in visible:
        transition = asset.transition
        if transition is None or transition.type in NO_TRANSITION_TYPES or transition.duration <= 0:
            continue

        window_end = asset.end_time
        window_start = window_end - transition.duration
        if not window_start <= current_time <= window_end:
            continue

        incoming = next(
            (
                a
                for a in visible
                if a.id != asset.id
                and a.track == asset.track
                and a.track_type == asset.track_type
                and abs(a.start_time - window_end) < ADJACENCY_TOLERANCE
            ),
            None,
        )
        if incoming is None:
            continue

        progress = _clamp((current_time - window_start) / transition.duration)
        result.transitions.append(TransitionPair(outgoing=asset, incoming=incoming, progress=progress))

    return result


# =============================================================================
# Transitions
# =============================================================================


def _crossfade(e: float) -> tuple[LayerPresentation, LayerPresentation]:
    return LayerPresentation(opacity=1 - e), LayerPresentation(opacity=e)


def _corner_wipe(corner: str, e: float) -> tuple[LayerPresentation, LayerPresentation]:
    gone = e * 100
    remaining = (1 - e) * 100
    out_inset = ClipInset()
    in_inset = ClipInset()
    vertical, horizontal = corner[0], corner[1]

    if vertical == "t":
        out_inset.top, in_inset.bottom = gone, remaining
    else:
        out_inset.bottom, in_inset.top = gone, remaining
    if horizontal == "l":
        out_inset.left, in_inset.right = gone, remaining
    else:
        out_inset.right, in_inset.left = gone, remaining

    return LayerPresentation(clip_inset=out_inset), LayerPresentation(clip_inset=in_inset)


def resolve_transition(transition: Transition, progress: float) -> TransitionFrame:
    """Per-layer parameters for a transition at ``progress`` (0..1)."""
    kind = transition.type
    e = apply_easing(_clamp(progress), transition.easing or DEFAULT_TRANSITION_EASING)

    if kind in ("fade", "dissolve"):
        outgoing, incoming = _crossfade(e)

    elif kind == "fadeblack":
        outgoing = LayerPresentation(opacity=_clamp(1 - e * 2))
        incoming = LayerPresentation(opacity=max(0.0, (e - 0.5) * 2))

    elif kind == "fadewhite":
        white = 1 - abs(e - 0.5) * 2
        outgoing, incoming = _crossfade(e)
        outgoing.brightness = incoming.brightness = 1 + white * 2

    elif kind == "wipeleft":
        outgoing = LayerPresentation(clip_inset=ClipInset(right=e * 100))
        incoming = LayerPresentation(clip_inset=ClipInset(left=(1 - e) * 100))
    elif kind == "wiperight":
        outgoing = LayerPresentation(clip_inset=ClipInset(left=e * 100))
        incoming = LayerPresentation(clip_inset=ClipInset(right=(1 - e) * 100))
    elif kind == "wipeup":
        outgoing = LayerPresentation(clip_inset=ClipInset(bottom=e * 100))
        incoming = LayerPresentation(clip_inset=ClipInset(top=(1 - e) * 100))
    elif kind == "wipedown":
        outgoing = LayerPresentation(clip_inset=ClipInset(top=e * 100))
        incoming = LayerPresentation(clip_inset=ClipInset(bottom=(1 - e) * 100))
    elif kind in ("wipetl", "wipetr", "wipebl", "wipebr"):
        outgoing, incoming = _corner_wipe(kind[-2:], e)

    elif kind in ("slideleft", "smoothleft"):
        outgoing = LayerPresentation(translate_x=e * 100)
        incoming = LayerPresentation(translate_x=(e - 1) * 100)
    elif kind in ("slideright", "smoothright"):
        outgoing = LayerPresentation(translate_x=-e * 100)
        incoming = LayerPresentation(translate_x=(1 - e) * 100)
    elif kind in ("slideup", "smoothup"):
        outgoing = LayerPresentation(translate_y=e * 100)
        incoming = LayerPresentation(translate_y=(e - 1) * 100)
    elif kind in ("slidedown", "smoothdown"):
        outgoing = LayerPresentation(translate_y=-e * 100)
        incoming = LayerPresentation(translate_y=(1 - e) * 100)

    elif kind == "zoomin":
        outgoing = LayerPresentation(opacity=1 - e, scale_x=1 + e, scale_y=1 + e)
        incoming = LayerPresentation(opacity=e, scale_x=1 - e * 0.5, scale_y=1 - e * 0.5)
    elif kind in ("fadefast", "fadeslow"):
        outgoing = LayerPresentation(opacity=1 - e, scale_x=1 + e * 0.3, scale_y=1 + e * 0.3)
        incoming = LayerPresentation(opacity=e)

    elif kind == "squeezeh":
        outgoing = LayerPresentation(scale_x=1 - e)
        incoming = LayerPresentation(scale_x=e)
    elif kind == "squeezev":
        outgoing = LayerPresentation(scale_y=1 - e)
        incoming = LayerPresentation(scale_y=e)

    elif kind == "pixelize":
        outgoing, incoming = _crossfade(e)
        pixel_size = int((1 - abs(e - 0.5) * 2) * 20)
        if pixel_size > 1:
            outgoing.blur = incoming.blur = float(pixel_size)

    else:
        outgoing, incoming = _crossfade(e)

    return TransitionFrame(type=kind, progress=e, outgoing=outgoing, incoming=incoming)


# =============================================================================
# Color grading and effects
# =============================================================================


def resolve_color_grading(
    lut: LutReference | None, grading: ColorGrading | None = None
) -> list[FilterStep]:
    """Ordered filter steps for a LUT preset plus manual grading.

    Preset deltas come first, scaled by the LUT intensity, in the order
    brightness, contrast, saturate, hue-rotate, sepia, grayscale. Manual
    grading follows. Zero-valued entries are skipped. Tint has no filter
    equivalent and is ignored.
    """
    steps: list[FilterStep] = []

    preset = COLOR_PRESETS.get(lut.lut_id) if lut else None
    if preset is not None:
        k = lut.intensity
        if preset.brightness:
            steps.append(FilterStep("brightness", 1 + preset.brightness * k))
        if preset.contrast:
            steps.append(FilterStep("contrast", 1 + preset.contrast * k))
        if preset.saturation:
            steps.append(FilterStep("saturate", 1 + preset.saturation * k))
        if preset.hue_rotate:
            steps.append(FilterStep("hue-rotate", preset.hue_rotate * k, "deg"))
        if preset.sepia:
            steps.append(FilterStep("sepia", preset.sepia * k))
        if preset.grayscale:
            steps.append(FilterStep("grayscale", preset.grayscale * k))

    if grading is not None:
        if grading.brightness:
            steps.append(FilterStep("brightness", 1 + grading.brightness / 100))
        if grading.contrast:
            steps.append(FilterStep("contrast", 1 + grading.contrast / 100))
        if grading.saturation:
            steps.append(FilterStep("saturate", 1 + grading.saturation / 100))
        if grading.temperature:
            # warm shifts toward orange, cool toward blue
            steps.append(FilterStep("hue-rotate", grading.temperature * 0.3, "deg"))

    return steps


def resolve_visual_effects(effects: VisualEffects | None) -> list[FilterStep]:
    """Filter steps for blur/sharpen plus vignette/grain amounts (0..1)."""
    if effects is None:
        return []

    steps: list[FilterStep] = []
    if effects.blur:
        steps.append(FilterStep("blur", effects.blur * 0.2, "px"))
    if effects.sharpen:
        steps.append(FilterStep("contrast", 1 + effects.sharpen / 200))
    if effects.vignette:
        steps.append(FilterStep("vignette", effects.vignette / 100))
    if effects.grain:
        steps.append(FilterStep("grain", effects.grain / 100))
    return steps


# =============================================================================
# Text, keyframes, audio
# =============================================================================


_DIRECTION_AXES = {
    "left": ("translate_x", -1),
    "right": ("translate_x", 1),
    "top": ("translate_y", -1),
    "bottom": ("translate_y", 1),
}


def resolve_text_animation(text: TextContent, local_time: float, duration: float) -> TextAnimationState:
    """Opacity/offset/scale of a text overlay ``local_time`` seconds in."""
    state = TextAnimationState(opacity=text.opacity)
    animations = text.animations
    if animations is None:
        return state

    fade_in = animations.fade_in
    if fade_in and fade_in.enabled:
        p = _clamp((local_time - fade_in.delay) / fade_in.duration)
        state.opacity *= apply_easing(p, fade_in.easing)

    fade_out = animations.fade_out
    if fade_out and fade_out.enabled:
        p = _clamp((local_time - (duration - fade_out.duration)) / fade_out.duration)
        state.opacity *= 1 - apply_easing(p, fade_out.easing)

    slide_in = animations.slide_in
    if slide_in and slide_in.enabled:
        p = apply_easing(_clamp(local_time / slide_in.duration), slide_in.easing)
        axis, sign = _DIRECTION_AXES[slide_in.from_]
        distance = slide_in.distance if slide_in.distance is not None else 100.0
        setattr(state, axis, getattr(state, axis) + sign * distance * (1 - p))

    slide_out = animations.slide_out
    if slide_out and slide_out.enabled:
        p = _clamp((local_time - (duration - slide_out.duration)) / slide_out.duration)
        p = apply_easing(p, slide_out.easing)
        axis, sign = _DIRECTION_AXES[slide_out.to]
        distance = slide_out.distance if slide_out.distance is not None else 100.0
        setattr(state, axis, getattr(state, axis) + sign * distance * p)

    scale_in = animations.scale_in
    if scale_in and scale_in.enabled:
        p = apply_easing(_clamp(local_time / scale_in.duration), scale_in.easing)
        state.scale *= scale_in.from_ + (1 - scale_in.from_) * p

    scale_out = animations.scale_out
    if scale_out and scale_out.enabled:
        p = _clamp((local_time - (duration - scale_out.duration)) / scale_out.duration)
        p = apply_easing(p, scale_out.easing)
        state.scale *= 1 + (scale_out.to - 1) * p

    state.opacity = _clamp(state.opacity)
    return state


def resolve_keyframes(asset: Asset, local_time: float) -> dict[str, float]:
    """Interpolated value of every keyed property at ``local_time``."""
    values: dict[str, float] = {}
    for prop in KEYFRAME_PROPERTIES:
        value = interpolate_keyframes(local_time, asset.keyframes, prop)
        if value is not None:
            values[prop] = value
    return values


def resolve_audio_gain(asset: Asset, local_time: float) -> float:
    """Effective gain: keyed or base volume shaped by fades; 0 when muted."""
    if asset.muted:
        return 0.0

    gain = interpolate_keyframes(local_time, asset.keyframes, "volume", default_value=asset.volume)

    if asset.fade_in and local_time < asset.fade_in:
        gain *= _clamp(local_time / asset.fade_in)
    remaining = asset.duration - local_time
    if asset.fade_out and remaining < asset.fade_out:
        gain *= _clamp(remaining / asset.fade_out)

    return _clamp(gain, 0.0, 2.0)
