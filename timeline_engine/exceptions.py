"""Custom exceptions for the timeline engine.

Mutation APIs never raise for expected edge cases (a trim that would
produce a non-positive duration, a split outside the clip); they return
False/None instead. These exceptions cover the persistence and export
paths, where callers subscribe to callbacks and need a machine-readable
code to decide whether to wait, retry, or ask the user.
"""

from typing import Any

from timeline_engine.constants.error_codes import get_error_spec


class TimelineError(Exception):
    """Base exception for all timeline engine errors."""

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a plain dict for status reporting."""
        spec = get_error_spec(self.code)
        return {
            "code": self.code,
            "message": self.message,
            "retryable": spec.get("retryable", False),
            "suggested_action": spec.get("suggested_action"),
            "suggested_fix": self.suggested_fix or spec.get("suggested_fix"),
        }


# =============================================================================
# Resource Not Found Errors
# =============================================================================


class ResourceNotFoundError(TimelineError):
    """Base class for resource not found errors."""


class ProjectNotFoundError(ResourceNotFoundError):
    """Project not found."""

    code = "PROJECT_NOT_FOUND"
    message = "Project not found"

    def __init__(self, project_id: str | None = None):
        message = f"Project not found: {project_id}" if project_id else self.message
        super().__init__(message)


class AssetNotFoundError(ResourceNotFoundError):
    """Asset not found."""

    code = "ASSET_NOT_FOUND"
    message = "Asset not found"

    def __init__(self, asset_id: str | None = None):
        message = f"Asset not found: {asset_id}" if asset_id else self.message
        super().__init__(message)


class UploadRejectedError(TimelineError):
    """Uploaded file breaks the size policy for its kind."""

    code = "UPLOAD_REJECTED"
    message = "Upload rejected"


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(TimelineError):
    """Base class for save/load failures."""


class RemoteSaveError(PersistenceError):
    """Remote upsert failed (HTTP error, transport error or timeout)."""

    code = "REMOTE_SAVE_FAILED"
    message = "Remote save failed"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        self.status_code = status_code
        if message is None and status_code is not None:
            message = f"Save failed: HTTP {status_code}"
        super().__init__(message)


class RemoteLoadError(PersistenceError):
    """Remote read failed."""

    code = "REMOTE_LOAD_FAILED"
    message = "Failed to load project"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class OfflineDeferralError(PersistenceError):
    """Remote save deferred because the client is offline.

    Distinct from a failure: no attempt was made.
    """

    code = "OFFLINE_DEFERRED"
    message = "Offline, save queued for retry"


class QueueExhaustedError(PersistenceError):
    """Bounded retries exceeded; the queued snapshot was dropped."""

    code = "RETRY_QUEUE_EXHAUSTED"
    message = "Max retries exceeded"

    def __init__(self, project_id: str | None = None, attempts: int | None = None):
        message = self.message
        if attempts is not None:
            message = f"Max retries exceeded ({attempts} attempts)"
        if project_id:
            message = f"{message} for project {project_id}"
        self.project_id = project_id
        self.attempts = attempts
        super().__init__(message)


class LocalStoreError(PersistenceError):
    """Local durable store could not be written or read."""

    code = "LOCAL_STORE_FAILED"
    message = "Local store operation failed"


# =============================================================================
# Export Errors
# =============================================================================


class ExportError(TimelineError):
    """Manual export failed."""

    code = "EXPORT_FAILED"
    message = "Export failed"


class ExportNotConfiguredError(ExportError):
    """Export target is not configured."""

    code = "EXPORT_NOT_CONFIGURED"
    message = "Export target not configured - connect your repository in settings"
