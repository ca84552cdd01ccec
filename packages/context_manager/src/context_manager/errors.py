"""Error taxonomy for the context manager.

Every error carries an HTTP-like ``status_code`` so an outer facade can map
it to a response without inspecting the type hierarchy.
"""

from __future__ import annotations

from typing import Any


class ContextManagerError(Exception):
    """Base class for all context manager errors."""

    status_code = 500
    code = "context_manager_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-compatible error payload."""
        return {"error": self.message, "code": self.code}


class NotFoundError(ContextManagerError):
    """A requested record does not exist."""

    status_code = 404
    code = "not_found"


class SessionNotFoundError(NotFoundError):
    """No session is stored under the given id."""

    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SnapshotNotFoundError(NotFoundError):
    """The commit hash is not part of the session's snapshot list."""

    code = "snapshot_not_found"

    def __init__(self, commit_hash: str) -> None:
        super().__init__(f"Snapshot not found: {commit_hash}")
        self.commit_hash = commit_hash


class DuplicateSessionError(ContextManagerError):
    """A session with the same id already exists."""

    status_code = 409
    code = "duplicate_session"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class NoActiveSessionError(ContextManagerError):
    """The operation needs a current session and none is set."""

    status_code = 404
    code = "no_active_session"

    def __init__(self, message: str = "No active session") -> None:
        super().__init__(message)


class SessionEndedError(ContextManagerError):
    """The session has been ended and no longer accepts operations."""

    status_code = 409
    code = "session_ended"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session has ended: {session_id}")
        self.session_id = session_id


class ValidationError(ContextManagerError):
    """Malformed input for an operation."""

    status_code = 400
    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["field"] = self.field
        return payload


class StorageError(ContextManagerError):
    """The persistence layer failed to read or write a record."""

    code = "storage_error"


class RestoreFailureError(ContextManagerError):
    """A snapshot payload is missing or cannot be decoded."""

    code = "restore_failure"

    def __init__(self, commit_hash: str, reason: str) -> None:
        super().__init__(f"Failed to restore snapshot {commit_hash}: {reason}")
        self.commit_hash = commit_hash


def describe_error(exc: Exception) -> tuple[int, dict[str, Any]]:
    """Map an exception to a status code and payload for an outer facade."""
    if isinstance(exc, ContextManagerError):
        return exc.status_code, exc.to_payload()
    return 500, {"error": "Internal error", "code": "internal_error"}
