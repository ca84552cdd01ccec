"""File-backed session store: one JSON document per session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from context_manager.errors import DuplicateSessionError, StorageError
from context_manager.models import Session
from context_manager.store.base import validate_session_id

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".json"


class FileSessionStore:
    """Persist sessions as ``<sessions_dir>/<session_id>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so a reader never sees a partial record.
    Blocking file I/O runs in a worker thread.
    """

    def __init__(self, sessions_dir: str | Path) -> None:
        self._dir = Path(sessions_dir)

    @property
    def sessions_dir(self) -> Path:
        """Return the directory holding session records."""
        return self._dir

    def _path_for(self, session_id: str) -> Path:
        return self._dir / f"{validate_session_id(session_id)}{SESSION_SUFFIX}"

    async def create(self, session: Session) -> Session:
        path = self._path_for(session.id)
        if await asyncio.to_thread(path.exists):
            raise DuplicateSessionError(session.id)
        await asyncio.to_thread(self._write, path, session.to_json())
        return session

    async def get(self, session_id: str) -> Session | None:
        return await asyncio.to_thread(self._read, self._path_for(session_id))

    async def save(self, session: Session) -> Session:
        path = self._path_for(session.id)
        session.touch()
        await asyncio.to_thread(self._write, path, session.to_json())
        return session

    async def delete(self, session_id: str) -> bool:
        path = self._path_for(session_id)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            msg = f"Failed to delete session {session_id}: {exc}"
            raise StorageError(msg) from exc
        return True

    async def list(self) -> list[Session]:
        return await asyncio.to_thread(self._read_all)

    async def exists(self, session_id: str) -> bool:
        return await asyncio.to_thread(self._path_for(session_id).exists)

    def _write(self, path: Path, payload: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=SESSION_SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            msg = f"Failed to write session file {path}: {exc}"
            raise StorageError(msg) from exc

    def _read(self, path: Path) -> Session | None:
        try:
            payload = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Failed to read session file {path}: {exc}"
            raise StorageError(msg) from exc
        try:
            return Session.from_json(payload)
        except PydanticValidationError as exc:
            msg = f"Corrupt session file {path}"
            raise StorageError(msg) from exc

    def _read_all(self) -> list[Session]:
        if not self._dir.exists():
            return []
        sessions: list[Session] = []
        for path in sorted(self._dir.glob(f"*{SESSION_SUFFIX}")):
            if path.name.startswith("."):
                continue
            try:
                session = self._read(path)
            except StorageError:
                logger.warning("Skipping unreadable session file %s", path, exc_info=True)
                continue
            if session is not None:
                sessions.append(session)
        return sessions
