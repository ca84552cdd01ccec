"""Context controller: the single facade over session health tooling.

The controller owns the current-session pointer, serializes work per
session id, and decides when records are persisted. Analysis components are
pure; only the store and the snapshot backend perform I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from context_manager.compaction import CompactOptions, Compactor, CompactResult
from context_manager.config import ContextManagerSettings
from context_manager.config.thresholds import AUTO_SNAPSHOT_HEALTH
from context_manager.drift import DriftDetector, DriftResult, extract_file_paths, extract_keywords
from context_manager.errors import (
    ContextManagerError,
    DuplicateSessionError,
    NoActiveSessionError,
    SessionEndedError,
    SessionNotFoundError,
    ValidationError,
)
from context_manager.health import HealthAnalysis, HealthAnalyzer, to_display_score
from context_manager.logging_utils import set_log_session_id
from context_manager.models import PHASE_ENDED, Session, SessionMetadata, TopicTracking
from context_manager.monitor import SessionMonitor
from context_manager.scheduler import HealthCheckScheduler
from context_manager.store import SessionLocks, validate_session_id
from context_manager.trimming import OutputTrimmer, TrimOptions, TrimResult

if TYPE_CHECKING:
    from context_manager.models import SessionEvent, SnapshotRef
    from context_manager.snapshots import SnapshotManager
    from context_manager.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerStatus:
    """Recomputed health of the current session."""

    session_id: str
    health_score: float
    status: str
    drift_score: float
    needs_deep_analysis: bool
    phase: str
    message_count: int
    token_count: int
    factors: dict[str, float]
    recommendations: list[str]
    needs_attention: bool

    @property
    def display_score(self) -> int:
        return to_display_score(self.health_score)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the health score on the 0..100 display scale."""
        return {
            "sessionId": self.session_id,
            "healthScore": self.display_score,
            "status": self.status,
            "driftScore": self.drift_score,
            "phase": self.phase,
            "messageCount": self.message_count,
            "tokenCount": self.token_count,
            "factors": self.factors,
            "recommendations": self.recommendations,
            "needsAttention": self.needs_attention,
        }


@dataclass(frozen=True)
class SessionStats:
    """Aggregate figures across all stored sessions."""

    total_sessions: int
    active_sessions: int
    ended_sessions: int
    total_events: int
    total_snapshots: int
    average_health_score: float
    current_session_id: str | None


@dataclass(frozen=True)
class HealthCheckOutcome:
    """What one health check did."""

    skipped: bool
    reason: str | None = None
    session_id: str | None = None
    health_score: float | None = None
    compact_result: CompactResult | None = None
    snapshot: SnapshotRef | None = None
    errors: list[str] = field(default_factory=list)


class ContextController:
    """Orchestrate session tracking, health analysis, compaction and snapshots.

    Construct one per hosting application (see ``create_context_manager``)
    and pass it to whatever needs it.
    """

    def __init__(
        self,
        store: SessionStore,
        snapshot_manager: SnapshotManager,
        *,
        settings: ContextManagerSettings | None = None,
        monitor: SessionMonitor | None = None,
        analyzer: HealthAnalyzer | None = None,
        detector: DriftDetector | None = None,
        compactor: Compactor | None = None,
        trimmer: OutputTrimmer | None = None,
    ) -> None:
        self._settings = settings or ContextManagerSettings()
        self._store = store
        self._snapshots = snapshot_manager
        self._monitor = monitor or SessionMonitor()
        self._analyzer = analyzer or HealthAnalyzer()
        self._detector = detector or DriftDetector(threshold=self._settings.drift_threshold)
        self._compactor = compactor or Compactor()
        self._trimmer = trimmer or OutputTrimmer()
        self._locks = SessionLocks()
        self._scheduler = HealthCheckScheduler(
            self._settings.health_check_interval, self._scheduled_health_check
        )
        self._health_check_in_flight = False
        self._dirty = False

    @property
    def settings(self) -> ContextManagerSettings:
        return self._settings

    # -- session lifecycle -------------------------------------------------

    async def create_session(self, session_id: str, initial_prompt: str) -> Session:
        """Create a session, persist it and make it current."""
        validate_session_id(session_id)
        if not initial_prompt or not initial_prompt.strip():
            raise ValidationError("initial_prompt", "is required")

        current = self._monitor.get_current_session()
        if current is not None and current.id == session_id:
            raise DuplicateSessionError(session_id)

        async with self._locks.for_session(session_id):
            if await self._store.exists(session_id):
                raise DuplicateSessionError(session_id)
            session = Session(
                id=session_id,
                metadata=SessionMetadata(initial_prompt=initial_prompt),
                topic_tracking=TopicTracking(
                    keywords=extract_keywords(initial_prompt),
                    file_paths=extract_file_paths(initial_prompt),
                ),
            )
            await self._store.create(session)

        await self.flush()
        self._set_current(session)
        logger.info("Created session %s", session_id)
        return session

    async def resume_session(self, session_id: str) -> Session:
        """Make a stored, not yet ended session current."""
        current = self._monitor.get_current_session()
        if current is not None and current.id == session_id:
            return current
        session = await self._store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.is_ended:
            raise SessionEndedError(session_id)
        await self.flush()
        self._set_current(session)
        logger.info("Resumed session %s", session_id)
        return session

    async def end_session(self, session_id: str | None = None) -> Session:
        """Mark a session ended; the record is kept."""
        current = self._monitor.get_current_session()
        target_id = session_id or (current.id if current else None)
        if target_id is None:
            raise NoActiveSessionError

        async with self._locks.for_session(target_id):
            current = self._monitor.get_current_session()
            is_current = current is not None and current.id == target_id
            session = current if is_current else await self._store.get(target_id)
            if session is None:
                raise SessionNotFoundError(target_id)
            if session.is_ended:
                raise SessionEndedError(target_id)
            session.metadata.phase = PHASE_ENDED
            await self._store.save(session)
            if is_current:
                self._clear_current()
        logger.info("Ended session %s", target_id)
        return session

    async def delete_session(self, session_id: str) -> None:
        """Remove a session record and drop the pointer to it."""
        async with self._locks.for_session(session_id):
            deleted = await self._store.delete(session_id)
            current = self._monitor.get_current_session()
            was_current = current is not None and current.id == session_id
            if was_current:
                self._clear_current()
        self._locks.discard(session_id)
        if not deleted and not was_current:
            raise SessionNotFoundError(session_id)
        logger.info("Deleted session %s", session_id)

    async def get_session(self, session_id: str) -> Session | None:
        current = self._monitor.get_current_session()
        if current is not None and current.id == session_id:
            return current
        return await self._store.get(session_id)

    async def list_sessions(self) -> list[Session]:
        """Return all sessions, most recently updated first."""
        sessions = {session.id: session for session in await self._store.list()}
        current = self._monitor.get_current_session()
        if current is not None:
            sessions[current.id] = current
        return sorted(sessions.values(), key=lambda item: item.updated_at, reverse=True)

    def get_current_session(self) -> Session | None:
        return self._monitor.get_current_session()

    def _set_current(self, session: Session) -> None:
        self._monitor.set_current_session(session)
        self._dirty = False
        set_log_session_id(session.id)

    def _clear_current(self) -> None:
        self._monitor.clear_session()
        self._dirty = False
        set_log_session_id(None)

    def _require_current(self) -> Session:
        session = self._monitor.get_current_session()
        if session is None:
            raise NoActiveSessionError
        return session

    def _is_current(self, session: Session) -> bool:
        return self._monitor.get_current_session() is session

    def _ensure_current(self, session: Session) -> None:
        """Fail if ``session`` stopped being current while waiting for its lock."""
        if not self._is_current(session):
            msg = f"Session {session.id} is no longer active"
            raise NoActiveSessionError(msg)

    async def _persist(self, session: Session) -> None:
        if self._settings.save_immediately:
            await self._store.save(session)
        else:
            self._dirty = True

    async def flush(self) -> None:
        """Write the current session if it has unsaved changes."""
        session = self._monitor.get_current_session()
        if session is None or not self._dirty:
            return
        async with self._locks.for_session(session.id):
            if not self._is_current(session) or not self._dirty:
                return
            await self._store.save(session)
            self._dirty = False

    # -- event tracking ----------------------------------------------------

    async def track_message(self, role: str, content: str) -> SessionEvent:
        if not role or not content:
            raise ValidationError("role" if not role else "content", "is required")
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            event = self._monitor.record_message(role, content)
            await self._persist(session)
        return event

    async def track_tool(self, name: str, args: Any = None, result: Any = None) -> SessionEvent:
        if not name:
            raise ValidationError("name", "is required")
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            event = self._monitor.record_tool(name, args, result)
            await self._persist(session)
        return event

    async def track_error(
        self, error: str | BaseException, *, recoverable: bool = False
    ) -> SessionEvent:
        if error is None or (isinstance(error, str) and not error.strip()):
            raise ValidationError("error", "is required")
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            event = self._monitor.record_error(error, recoverable=recoverable)
            await self._persist(session)
        return event

    # -- health and drift --------------------------------------------------

    def get_health_score(self) -> float:
        """Return the last computed score of the current session."""
        return self._require_current().metadata.health_score

    def set_drift_threshold(self, threshold: float) -> None:
        self._detector.threshold = threshold

    def get_drift_threshold(self) -> float:
        return self._detector.threshold

    def _refresh_health(self, session: Session) -> tuple[HealthAnalysis, DriftResult]:
        drift = self._detector.detect(session)
        session.metrics.drift_score = drift.drift_score
        analysis = self._analyzer.analyze(session)
        session.metadata.health_score = analysis.score
        return analysis, drift

    async def get_status(self) -> ControllerStatus | None:
        """Recompute health for the current session; None when there is none."""
        session = self._monitor.get_current_session()
        if session is None:
            return None
        async with self._locks.for_session(session.id):
            if not self._is_current(session):
                return None
            analysis, drift = self._refresh_health(session)
            await self._persist(session)
        return ControllerStatus(
            session_id=session.id,
            health_score=analysis.score,
            status=analysis.status.value,
            drift_score=drift.drift_score,
            needs_deep_analysis=drift.needs_deep_analysis,
            phase=session.metadata.phase,
            message_count=session.metrics.message_count,
            token_count=session.metrics.total_tokens,
            factors=analysis.factors.to_dict(),
            recommendations=analysis.recommendations,
            needs_attention=(
                analysis.score < AUTO_SNAPSHOT_HEALTH
                or drift.drift_score > self._detector.threshold
            ),
        )

    async def analyze_drift(self) -> DriftResult | None:
        """Run drift detection on the current session and store the score."""
        session = self._monitor.get_current_session()
        if session is None:
            return None
        async with self._locks.for_session(session.id):
            if not self._is_current(session):
                return None
            result = self._detector.detect(session)
            session.metrics.drift_score = result.drift_score
            await self._persist(session)
        return result

    # -- compaction, trimming and snapshots --------------------------------

    def default_compact_options(self) -> CompactOptions:
        return CompactOptions(
            keep_recent_events=self._settings.keep_recent_events,
            compact_threshold=self._settings.compact_threshold,
        )

    def auto_compact_options(self) -> CompactOptions:
        """Options for health-check compaction, gated by ``auto_compact_threshold``."""
        return CompactOptions(
            keep_recent_events=self._settings.keep_recent_events,
            compact_threshold=self._settings.auto_compact_threshold,
        )

    async def compact(self, options: CompactOptions | None = None) -> CompactResult:
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            result = self._compactor.compact(session, options or self.default_compact_options())
            if result.compacted_events:
                await self._persist(session)
        return result

    async def trim_output(self, options: TrimOptions | None = None) -> TrimResult:
        session = self._require_current()
        options = options or TrimOptions(max_output_length=self._settings.max_output_length)
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            result = self._trimmer.trim(session, options)
            if result.trimmed_events:
                await self._persist(session)
        return result

    async def create_snapshot(self, description: str | None = None) -> SnapshotRef:
        """Snapshot the current session with a freshly computed health score."""
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            self._refresh_health(session)
            ref = await self._snapshots.create_snapshot(session, description)
            await self._store.save(session)
            self._dirty = False
        return ref

    def get_snapshots(self) -> list[SnapshotRef]:
        session = self._monitor.get_current_session()
        return self._snapshots.get_snapshots(session) if session else []

    def get_latest_snapshot(self) -> SnapshotRef | None:
        session = self._monitor.get_current_session()
        return self._snapshots.get_latest_snapshot(session) if session else None

    def get_healthiest_snapshot(self) -> SnapshotRef | None:
        session = self._monitor.get_current_session()
        return self._snapshots.get_healthiest_snapshot(session) if session else None

    async def restore_snapshot(self, commit_hash: str) -> Session:
        """Roll the current session back to a snapshot.

        The restore is applied to a copy that becomes current only after it
        has been saved, so a failed save leaves both the live session and
        the stored record untouched.
        """
        if not commit_hash:
            raise ValidationError("commit_hash", "is required")
        session = self._require_current()
        async with self._locks.for_session(session.id):
            self._ensure_current(session)
            restored = session.model_copy(deep=True)
            await self._snapshots.restore_snapshot(restored, commit_hash)
            await self._store.save(restored)
            self._set_current(restored)
        return restored

    # -- stats -------------------------------------------------------------

    async def get_stats(self) -> SessionStats:
        sessions = await self.list_sessions()
        ended = sum(1 for session in sessions if session.is_ended)
        average = (
            sum(session.metadata.health_score for session in sessions) / len(sessions)
            if sessions
            else 0.0
        )
        current = self._monitor.get_current_session()
        return SessionStats(
            total_sessions=len(sessions),
            active_sessions=len(sessions) - ended,
            ended_sessions=ended,
            total_events=sum(len(session.events) for session in sessions),
            total_snapshots=sum(len(session.snapshots) for session in sessions),
            average_health_score=average,
            current_session_id=current.id if current else None,
        )

    # -- auto-monitoring ---------------------------------------------------

    def start(self) -> None:
        """Start periodic health checks on the running event loop."""
        self._scheduler.start()

    def stop(self) -> None:
        self._scheduler.stop()

    def is_monitoring(self) -> bool:
        return self._scheduler.is_running

    async def _scheduled_health_check(self) -> None:
        if not self._scheduler.is_running:
            return
        await self.run_health_check()

    async def run_health_check(self) -> HealthCheckOutcome:
        """Compact oversized history and snapshot an unhealthy session.

        A check that starts while another is in flight is skipped. Failures of
        individual steps are logged and reported in the outcome.
        """
        if self._health_check_in_flight:
            logger.debug("Health check already in flight; skipping")
            return HealthCheckOutcome(skipped=True, reason="in_flight")
        self._health_check_in_flight = True
        try:
            return await self._health_check()
        finally:
            self._health_check_in_flight = False

    async def _health_check(self) -> HealthCheckOutcome:
        session = self._monitor.get_current_session()
        if session is None:
            return HealthCheckOutcome(skipped=True, reason="no_active_session")

        errors: list[str] = []
        compact_result: CompactResult | None = None
        snapshot: SnapshotRef | None = None

        if len(session.events) > self._settings.auto_compact_threshold:
            try:
                compact_result = await self.compact(self.auto_compact_options())
            except ContextManagerError as exc:
                logger.exception("Auto-compaction failed for session %s", session.id)
                errors.append(str(exc))

        try:
            await self.get_status()
        except ContextManagerError as exc:
            logger.exception("Health recomputation failed for session %s", session.id)
            errors.append(str(exc))

        score = session.metadata.health_score
        if self._is_current(session) and score < AUTO_SNAPSHOT_HEALTH and not session.snapshots:
            try:
                snapshot = await self.create_snapshot(
                    f"Auto-snapshot: health score {to_display_score(score)}"
                )
            except ContextManagerError as exc:
                logger.exception("Auto-snapshot failed for session %s", session.id)
                errors.append(str(exc))

        try:
            await self.flush()
        except ContextManagerError as exc:
            logger.exception("Flushing session %s failed", session.id)
            errors.append(str(exc))

        return HealthCheckOutcome(
            skipped=False,
            session_id=session.id,
            health_score=session.metadata.health_score,
            compact_result=compact_result,
            snapshot=snapshot,
            errors=errors,
        )
