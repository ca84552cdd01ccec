"""Session snapshots and their payload backends."""

from context_manager.snapshots.backends import (
    FileSnapshotBackend,
    InMemorySnapshotBackend,
    SnapshotBackend,
)
from context_manager.snapshots.manager import SnapshotManager, mint_commit_hash

__all__ = [
    "FileSnapshotBackend",
    "InMemorySnapshotBackend",
    "SnapshotBackend",
    "SnapshotManager",
    "mint_commit_hash",
]
