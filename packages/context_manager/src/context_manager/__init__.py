from context_manager.compaction import CompactOptions, Compactor, CompactResult
from context_manager.config import ContextManagerSettings, load_settings
from context_manager.controller import (
    ContextController,
    ControllerStatus,
    HealthCheckOutcome,
    SessionStats,
)
from context_manager.drift import DriftDetector, DriftResult, DriftStrategy, KeywordDriftStrategy
from context_manager.errors import (
    ContextManagerError,
    DuplicateSessionError,
    NoActiveSessionError,
    NotFoundError,
    RestoreFailureError,
    SessionEndedError,
    SessionNotFoundError,
    SnapshotNotFoundError,
    StorageError,
    ValidationError,
)
from context_manager.factory import create_context_manager
from context_manager.health import HealthAnalysis, HealthAnalyzer, HealthStatus
from context_manager.models import (
    Session,
    SessionEvent,
    SessionMetadata,
    SessionMetrics,
    SnapshotRef,
    TopicTracking,
)
from context_manager.monitor import SessionMonitor
from context_manager.snapshots import SnapshotManager
from context_manager.store import FileSessionStore, InMemorySessionStore, SessionStore
from context_manager.trimming import OutputTrimmer, TrimOptions, TrimResult
from context_manager.utils import estimate_tokens

__all__ = [
    "CompactOptions",
    "CompactResult",
    "Compactor",
    "ContextController",
    "ContextManagerError",
    "ContextManagerSettings",
    "ControllerStatus",
    "DriftDetector",
    "DriftResult",
    "DriftStrategy",
    "DuplicateSessionError",
    "FileSessionStore",
    "HealthAnalysis",
    "HealthAnalyzer",
    "HealthCheckOutcome",
    "HealthStatus",
    "InMemorySessionStore",
    "KeywordDriftStrategy",
    "NoActiveSessionError",
    "NotFoundError",
    "OutputTrimmer",
    "RestoreFailureError",
    "Session",
    "SessionEndedError",
    "SessionEvent",
    "SessionMetadata",
    "SessionMetrics",
    "SessionMonitor",
    "SessionNotFoundError",
    "SessionStats",
    "SessionStore",
    "SnapshotManager",
    "SnapshotNotFoundError",
    "SnapshotRef",
    "StorageError",
    "TopicTracking",
    "TrimOptions",
    "TrimResult",
    "ValidationError",
    "create_context_manager",
    "estimate_tokens",
    "load_settings",
]
