"""Storage interface for session records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from context_manager.errors import ValidationError

if TYPE_CHECKING:
    from context_manager.models import Session


class SessionStore(Protocol):
    """Durable mapping from session id to session record.

    Implementations hold no policy; the controller decides when to persist.
    """

    async def create(self, session: Session) -> Session:
        """Insert a new record, raising ``DuplicateSessionError`` if the id exists."""
        ...

    async def get(self, session_id: str) -> Session | None:
        """Return the record for ``session_id`` or None."""
        ...

    async def save(self, session: Session) -> Session:
        """Upsert the full record and refresh ``updated_at``."""
        ...

    async def delete(self, session_id: str) -> bool:
        """Remove a record; return False if it did not exist."""
        ...

    async def list(self) -> list[Session]:
        """Return every stored record in no particular order."""
        ...

    async def exists(self, session_id: str) -> bool:
        """Return True if a record is stored under ``session_id``."""
        ...


def validate_session_id(session_id: str) -> str:
    """Reject ids that are empty or unsafe to use as file names."""
    if not session_id or not session_id.strip():
        raise ValidationError("session_id", "must not be empty")
    if "/" in session_id or "\\" in session_id or session_id.startswith("."):
        raise ValidationError("session_id", "must not contain path separators or start with '.'")
    return session_id
