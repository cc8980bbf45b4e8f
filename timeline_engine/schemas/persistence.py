"""Value types for the save pipeline, retry queue and manual export."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class SaveStatus(str, Enum):
    SAVED = "saved"
    SAVING = "saving"
    FAILED = "failed"
    OFFLINE = "offline"
    # Edits newer than the last remote save, or queued work awaiting retry
    PENDING = "pending"


@dataclass
class SaveQueueItem:
    """A serialized snapshot waiting for a remote upsert.

    ``queued_at`` is the clock reading when the item was queued or last
    failed; backoff is measured from it.
    """

    project_id: str
    snapshot: dict[str, Any]
    queued_at: float
    retry_count: int = 0
    last_error: str | None = None
    revision: int | None = None  # store revision the snapshot was taken at


class PersistenceState(BaseModel):
    """Read-only view of the save pipeline for status indicators."""

    status: SaveStatus
    is_online: bool
    last_saved_at: datetime | None = None
    queue_length: int = 0
    last_error: str | None = None
    last_local_error: str | None = None


@dataclass
class ExportResult:
    success: bool
    path: str | None = None
    commit_sha: str | None = None
    error: str | None = None
    exported_at: datetime | None = None
    details: dict[str, Any] = field(default_factory=dict)
