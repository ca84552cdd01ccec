"""In-memory session store for tests and ephemeral hosts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from context_manager.errors import DuplicateSessionError
from context_manager.store.base import validate_session_id

if TYPE_CHECKING:
    from context_manager.models import Session


class InMemorySessionStore:
    """Dictionary-backed store that copies records in and out."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def create(self, session: Session) -> Session:
        validate_session_id(session.id)
        if session.id in self._sessions:
            raise DuplicateSessionError(session.id)
        self._sessions[session.id] = session.model_copy(deep=True)
        return session

    async def get(self, session_id: str) -> Session | None:
        stored = self._sessions.get(session_id)
        return stored.model_copy(deep=True) if stored else None

    async def save(self, session: Session) -> Session:
        validate_session_id(session.id)
        session.touch()
        self._sessions[session.id] = session.model_copy(deep=True)
        return session

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def list(self) -> list[Session]:
        return [session.model_copy(deep=True) for session in self._sessions.values()]

    async def exists(self, session_id: str) -> bool:
        return session_id in self._sessions
