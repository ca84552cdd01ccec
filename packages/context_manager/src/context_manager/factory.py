"""Composition root for the context manager.

Builds a fully wired :class:`ContextController` from settings. Each call
returns a new instance; the hosting application keeps the one it uses.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from context_manager.compaction import Compactor
from context_manager.config import ContextManagerSettings, load_settings
from context_manager.controller import ContextController
from context_manager.drift import DriftDetector
from context_manager.logging_utils import install_session_log_filter, package_loggers
from context_manager.snapshots import FileSnapshotBackend, InMemorySnapshotBackend, SnapshotManager
from context_manager.store import FileSessionStore, InMemorySessionStore

if TYPE_CHECKING:
    from context_manager.compaction import Summarizer
    from context_manager.drift import DriftStrategy
    from context_manager.snapshots import SnapshotBackend
    from context_manager.store import SessionStore

logger = logging.getLogger(__name__)


def build_store(settings: ContextManagerSettings) -> SessionStore:
    """Return the session store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        return InMemorySessionStore()
    return FileSessionStore(settings.sessions_dir)


def build_snapshot_backend(settings: ContextManagerSettings) -> SnapshotBackend:
    """Return the snapshot payload backend matching the session store."""
    if settings.storage_backend == "memory":
        return InMemorySnapshotBackend()
    return FileSnapshotBackend(settings.snapshots_dir)


def create_context_manager(
    settings: ContextManagerSettings | None = None,
    *,
    store: SessionStore | None = None,
    snapshot_backend: SnapshotBackend | None = None,
    summarizer: Summarizer | None = None,
    drift_strategy: DriftStrategy | None = None,
) -> ContextController:
    """Create a context controller wired from settings.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        store: Session store override.
        snapshot_backend: Snapshot payload backend override.
        summarizer: Optional LLM-backed summarizer for compaction.
        drift_strategy: Optional alternative drift scoring method.

    Package loggers get a :class:`SessionContextFilter` so their records carry
    ``session_id``.
    """
    settings = settings or load_settings()
    controller = ContextController(
        store or build_store(settings),
        SnapshotManager(snapshot_backend or build_snapshot_backend(settings)),
        settings=settings,
        detector=DriftDetector(threshold=settings.drift_threshold, strategy=drift_strategy),
        compactor=Compactor(summarizer=summarizer),
    )
    install_session_log_filter(package_loggers())
    logger.info(
        "Context manager created (backend=%s, sessions_dir=%s)",
        settings.storage_backend,
        settings.sessions_dir,
    )
    return controller
