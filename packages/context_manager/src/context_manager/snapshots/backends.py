"""Payload stores for session snapshots, keyed by commit hash."""

from __future__ import annotations

import asyncio
import contextlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

from context_manager.errors import StorageError


class SnapshotBackend(Protocol):
    """Content store that holds frozen session payloads."""

    async def put(self, commit_hash: str, payload: str) -> None:
        """Store ``payload`` under ``commit_hash``."""
        ...

    async def get(self, commit_hash: str) -> str | None:
        """Return the payload for ``commit_hash`` or None if it is unavailable."""
        ...


class InMemorySnapshotBackend:
    """Dictionary-backed snapshot payload store."""

    def __init__(self) -> None:
        self._objects: dict[str, str] = {}

    async def put(self, commit_hash: str, payload: str) -> None:
        self._objects[commit_hash] = payload

    async def get(self, commit_hash: str) -> str | None:
        return self._objects.get(commit_hash)

    def discard(self, commit_hash: str) -> None:
        """Drop a payload, simulating an unavailable object."""
        self._objects.pop(commit_hash, None)


class FileSnapshotBackend:
    """Object store laid out as ``<root>/<hash[:2]>/<hash[2:]>``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _object_path(self, commit_hash: str) -> Path:
        if len(commit_hash) < 3 or not commit_hash.isalnum():
            msg = f"Invalid commit hash: {commit_hash!r}"
            raise StorageError(msg)
        return self._root / commit_hash[:2] / commit_hash[2:]

    async def put(self, commit_hash: str, payload: str) -> None:
        await asyncio.to_thread(self._write, self._object_path(commit_hash), payload)

    async def get(self, commit_hash: str) -> str | None:
        return await asyncio.to_thread(self._read, self._object_path(commit_hash))

    def _write(self, path: Path, payload: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            msg = f"Failed to write snapshot object {path}: {exc}"
            raise StorageError(msg) from exc

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Failed to read snapshot object {path}: {exc}"
            raise StorageError(msg) from exc
