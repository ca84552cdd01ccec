"""Snapshot capture and restore for sessions."""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from context_manager.errors import RestoreFailureError, SnapshotNotFoundError
from context_manager.models import Session, SnapshotRef
from context_manager.utils import utc_now

if TYPE_CHECKING:
    from context_manager.snapshots.backends import SnapshotBackend

logger = logging.getLogger(__name__)

COMMIT_HASH_LENGTH = 40


def mint_commit_hash(session_id: str, payload: str, timestamp: str) -> str:
    """Return a SHA-256 based handle for a snapshot payload.

    A random salt keeps two captures of identical state distinct.
    """
    digest = hashlib.sha256()
    for part in (session_id, timestamp, secrets.token_hex(8), payload):
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()[:COMMIT_HASH_LENGTH]


class SnapshotManager:
    """Mint snapshot references and restore sessions from them.

    Payload storage is delegated to a :class:`SnapshotBackend`; the session
    only carries :class:`SnapshotRef` handles.
    """

    def __init__(self, backend: SnapshotBackend) -> None:
        self._backend = backend

    async def create_snapshot(self, session: Session, description: str | None = None) -> SnapshotRef:
        """Freeze ``session`` and append a reference to it."""
        timestamp = utc_now()
        payload = session.to_json()
        commit_hash = mint_commit_hash(session.id, payload, timestamp.isoformat())
        await self._backend.put(commit_hash, payload)

        ref = SnapshotRef(
            commit_hash=commit_hash,
            timestamp=timestamp,
            health_score=session.metadata.health_score,
            description=description or f"Snapshot at {timestamp.isoformat()}",
        )
        session.snapshots.append(ref)
        session.append_event(
            "snapshot",
            {"action": "create", "commitHash": commit_hash, "description": ref.description},
        )
        logger.info("Created snapshot %s for session %s", commit_hash, session.id)
        return ref

    def get_snapshots(self, session: Session) -> list[SnapshotRef]:
        return list(session.snapshots)

    def get_latest_snapshot(self, session: Session) -> SnapshotRef | None:
        if not session.snapshots:
            return None
        return max(session.snapshots, key=lambda ref: ref.timestamp)

    def get_healthiest_snapshot(self, session: Session) -> SnapshotRef | None:
        """Highest health score; ties go to the most recent snapshot."""
        if not session.snapshots:
            return None
        return max(session.snapshots, key=lambda ref: (ref.health_score, ref.timestamp))

    def find_snapshot(self, session: Session, commit_hash: str) -> SnapshotRef:
        for ref in session.snapshots:
            if ref.commit_hash == commit_hash:
                return ref
        raise SnapshotNotFoundError(commit_hash)

    async def restore_snapshot(self, session: Session, commit_hash: str) -> Session:
        """Roll ``session`` back to the captured state.

        The snapshot list is kept as is so later snapshots stay reachable.
        Token, message, error and retry counters are cumulative and keep
        their current values; only the drift score is taken from the capture.
        Nothing is modified unless the payload loads and validates.
        """
        self.find_snapshot(session, commit_hash)
        payload = await self._backend.get(commit_hash)
        if payload is None:
            raise RestoreFailureError(commit_hash, "payload unavailable")
        try:
            captured = Session.from_json(payload)
        except PydanticValidationError as exc:
            raise RestoreFailureError(commit_hash, "payload is corrupt") from exc
        if captured.id != session.id:
            raise RestoreFailureError(commit_hash, f"payload belongs to session {captured.id}")

        session.metadata = captured.metadata
        session.metrics.drift_score = captured.metrics.drift_score
        session.topic_tracking = captured.topic_tracking
        session.events = captured.events
        session.append_event("snapshot", {"action": "restore", "commitHash": commit_hash})
        logger.info("Restored session %s from snapshot %s", session.id, commit_hash)
        return session
