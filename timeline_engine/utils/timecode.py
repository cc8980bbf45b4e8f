"""Frame/second conversions and timeline duration helpers."""

from typing import Iterable, Protocol

MIN_TIMELINE_DURATION = 60.0


class _Placed(Protocol):
    start_time: float
    duration: float


def snap_to_frame(time: float, frame_rate: int) -> float:
    """Round a time to the nearest frame boundary."""
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    return round(time * frame_rate) / frame_rate


def frames_to_seconds(frames: int, frame_rate: int) -> float:
    return frames / frame_rate


def seconds_to_frames(seconds: float, frame_rate: int) -> int:
    return round(seconds * frame_rate)


def asset_end(item: _Placed) -> float:
    return item.start_time + item.duration


def compute_total_duration(
    duration: float,
    assets: Iterable[_Placed] = (),
    clips: Iterable[_Placed] = (),
    *,
    floor: float = MIN_TIMELINE_DURATION,
) -> float:
    """Effective timeline length.

    The largest of the nominal duration, every asset end, every legacy
    clip end and the minimum timeline length.
    """
    ends = [asset_end(a) for a in assets]
    ends.extend(asset_end(c) for c in clips)
    return max([duration, floor, *ends])


def format_timecode(seconds: float, frame_rate: int) -> str:
    """Format seconds as HH:MM:SS:FF."""
    total_frames = seconds_to_frames(max(seconds, 0.0), frame_rate)
    frames = total_frames % frame_rate
    total_seconds = total_frames // frame_rate
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}:{frames:02d}"
