from timeline_engine.models.base import Base
from timeline_engine.models.local_entry import LocalEntry

__all__ = [
    "Base",
    "LocalEntry",
]
