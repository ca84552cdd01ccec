"""Session persistence backends."""

from context_manager.store.base import SessionStore, validate_session_id
from context_manager.store.file_store import FileSessionStore
from context_manager.store.locks import SessionLocks
from context_manager.store.memory_store import InMemorySessionStore

__all__ = [
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionLocks",
    "SessionStore",
    "validate_session_id",
]
