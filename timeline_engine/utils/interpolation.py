"""Interpolation utilities for keyframe animation.

Provides the easing curves the timeline understands and helpers that
compute an animated property value at any point in an asset's local time.

Usage:
    from timeline_engine.utils.interpolation import interpolate, get_easing_function

    value = interpolate(0.5, [0, 1], [0, 100])
    value = interpolate(0.5, [0, 1], [0, 100], easing=get_easing_function("ease-in"))
"""

from enum import Enum
from typing import Callable, Sequence


# =============================================================================
# Easing Functions
# =============================================================================


def linear(t: float) -> float:
    """Linear easing (no easing)."""
    return t


def ease_in(t: float) -> float:
    """Ease in (quadratic)."""
    return t * t


def ease_out(t: float) -> float:
    """Ease out (quadratic)."""
    return 1 - (1 - t) * (1 - t)


def ease_in_out(t: float) -> float:
    """Ease in-out (quadratic)."""
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


def bounce(t: float) -> float:
    """Bounce at the end (ease-out bounce)."""
    n1 = 7.5625
    d1 = 2.75
    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


# Easing name -> function lookup, names as stored on transitions and keyframes
EASING_FUNCTIONS: dict[str, Callable[[float], float]] = {
    "linear": linear,
    "ease-in": ease_in,
    "ease-out": ease_out,
    "ease-in-out": ease_in_out,
    "bounce": bounce,
}


def get_easing_function(name: str | None) -> Callable[[float], float]:
    """Get an easing function by name.

    Unknown or missing names resolve to linear, so a snapshot written by a
    newer client still animates.
    """
    if name is None:
        return linear
    return EASING_FUNCTIONS.get(name, linear)


# =============================================================================
# Core Interpolation
# =============================================================================


class ExtrapolateType(Enum):
    """How to handle values outside the input range."""

    CLAMP = "clamp"
    EXTEND = "extend"


def interpolate(
    value: float,
    input_range: Sequence[float],
    output_range: Sequence[float],
    *,
    easing: Callable[[float], float] = linear,
    extrapolate: ExtrapolateType = ExtrapolateType.CLAMP,
) -> float:
    """Map ``value`` from ``input_range`` onto ``output_range``.

    Args:
        value: Current time (or any scalar) to map
        input_range: Strictly increasing breakpoints, at least two
        output_range: Output values matching input_range length
        easing: Easing applied within each segment
        extrapolate: Behaviour outside the input range

    Returns:
        Interpolated output value

    Examples:
        interpolate(0.5, [0, 1], [0, 10])  # -> 5.0
        interpolate(1.5, [0, 1, 2], [0, 1, 0])  # -> 0.5
    """
    if len(input_range) != len(output_range):
        raise ValueError("input_range and output_range must have the same length")
    if len(input_range) < 2:
        raise ValueError("input_range must have at least 2 values")

    for i in range(1, len(input_range)):
        if input_range[i] <= input_range[i - 1]:
            raise ValueError("input_range must be monotonically increasing")

    if extrapolate == ExtrapolateType.CLAMP:
        if value <= input_range[0]:
            return output_range[0]
        if value >= input_range[-1]:
            return output_range[-1]

    segment_idx = len(input_range) - 2
    for i in range(1, len(input_range)):
        if value <= input_range[i]:
            segment_idx = i - 1
            break

    seg_start = input_range[segment_idx]
    seg_end = input_range[segment_idx + 1]
    t = (value - seg_start) / (seg_end - seg_start)

    out_start = output_range[segment_idx]
    out_end = output_range[segment_idx + 1]
    return out_start + (out_end - out_start) * easing(t)


def interpolate_keyframes(
    local_time: float,
    keyframes: Sequence[object],
    property_name: str,
    *,
    default_value: float | None = None,
) -> float | None:
    """Interpolate one property from a keyframe list.

    Keyframes that do not set ``property_name`` are skipped. The easing of
    each segment is taken from the keyframe that starts it. Returns
    ``default_value`` when no keyframe sets the property.

    Args:
        local_time: Seconds since the asset start
        keyframes: Objects with ``time``, ``easing`` and property attributes
        property_name: "x", "y", "scale", "rotation", "opacity", "blur" or "volume"
        default_value: Value when the property is never keyed
    """
    points = [
        (kf.time, getattr(kf, property_name), getattr(kf, "easing", None))
        for kf in sorted(keyframes, key=lambda k: k.time)
        if getattr(kf, property_name, None) is not None
    ]
    if not points:
        return default_value
    if len(points) == 1 or local_time <= points[0][0]:
        return points[0][1]
    if local_time >= points[-1][0]:
        return points[-1][1]

    for (t0, v0, easing_name), (t1, v1, _) in zip(points, points[1:]):
        if t0 <= local_time <= t1:
            if t1 == t0:
                return v1
            return interpolate(
                local_time,
                [t0, t1],
                [v0, v1],
                easing=get_easing_function(easing_name),
            )
    return points[-1][1]
