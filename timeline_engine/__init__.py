"""Multi-track media timeline engine: data model, editing actions,
playback, effect resolution and a failure-tolerant save pipeline."""

from timeline_engine.engine import TimelineEngine

__version__ = "0.1.0"

__all__ = ["TimelineEngine", "__version__"]
