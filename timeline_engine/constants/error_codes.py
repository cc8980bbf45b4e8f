"""Error codes dictionary for the timeline engine.

Single source of truth for error codes, their retryability, and the
recovery action a caller is expected to take. Exceptions look up their
spec here so status callbacks can tell transient failures from terminal
ones without string matching.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_action: str
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Resource errors
    # ==========================================================================
    "PROJECT_NOT_FOUND": {
        "retryable": False,
        "suggested_action": "create_project",
        "suggested_fix": "Check the project id or create a new project",
    },
    "ASSET_NOT_FOUND": {
        "retryable": False,
        "suggested_action": "refresh_ids",
    },
    "UPLOAD_REJECTED": {
        "retryable": False,
        "suggested_action": "convert_media",
        "suggested_fix": "Compress the file or convert it to a recommended format",
    },
    # ==========================================================================
    # Persistence errors
    # ==========================================================================
    "REMOTE_SAVE_FAILED": {
        "retryable": True,
        "suggested_action": "retry_queue",
        "suggested_fix": "The save was queued and will be retried automatically",
    },
    "REMOTE_LOAD_FAILED": {
        "retryable": True,
        "suggested_action": "retry",
    },
    "OFFLINE_DEFERRED": {
        "retryable": True,
        "suggested_action": "wait_for_online",
        "suggested_fix": "Changes are kept locally until the connection returns",
    },
    "RETRY_QUEUE_EXHAUSTED": {
        "retryable": False,
        "suggested_action": "manual_save",
        "suggested_fix": "Automatic retries gave up; trigger a manual save",
    },
    "LOCAL_STORE_FAILED": {
        "retryable": False,
        "suggested_action": "check_local_storage",
        "suggested_fix": "Local backup is unavailable; remote saves continue",
    },
    # ==========================================================================
    # Export errors
    # ==========================================================================
    "EXPORT_FAILED": {
        "retryable": False,
        "suggested_action": "manual_export",
    },
    "EXPORT_NOT_CONFIGURED": {
        "retryable": False,
        "suggested_action": "configure_export",
        "suggested_fix": "Connect a repository (token, owner, repo) before exporting",
    },
    # ==========================================================================
    # Generic
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get the error spec for a code, falling back to INTERNAL_ERROR."""
    return ERROR_CODES.get(code, ERROR_CODES["INTERNAL_ERROR"])
