"""Per-session lock registry."""

from __future__ import annotations

import asyncio


class SessionLocks:
    """Hand out one ``asyncio.Lock`` per session id.

    Operations on the same session id are serialized; different sessions do
    not block each other.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_session(self, session_id: str) -> asyncio.Lock:
        """Return the lock guarding ``session_id``."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def discard(self, session_id: str) -> None:
        """Forget the lock of a deleted session if nobody holds it."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)
