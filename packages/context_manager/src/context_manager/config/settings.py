"""Pydantic model for context manager settings."""

from __future__ import annotations

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from context_manager.config import thresholds

StorageBackend = Literal["file", "memory"]


class ContextManagerSettings(BaseModel, frozen=True):
    """Runtime configuration loaded from environment variables."""

    sessions_dir: str = ".claude/sessions"
    snapshots_dir: str = ".claude/snapshots"
    storage_backend: StorageBackend = "file"
    auto_compact_threshold: int = Field(default=thresholds.AUTO_COMPACT_THRESHOLD, ge=0)
    health_check_interval_ms: int = Field(default=thresholds.HEALTH_CHECK_INTERVAL_MS, gt=0)
    drift_threshold: float = Field(default=thresholds.DRIFT_THRESHOLD, ge=0.0, le=1.0)
    keep_recent_events: int = Field(default=thresholds.COMPACT_KEEP_RECENT, ge=0)
    compact_threshold: int = Field(default=thresholds.COMPACT_THRESHOLD, ge=0)
    save_immediately: bool = True
    max_output_length: int = Field(default=thresholds.TRIM_MAX_OUTPUT_LENGTH, gt=0)

    @property
    def health_check_interval(self) -> float:
        """Health check interval in seconds."""
        return self.health_check_interval_ms / 1000


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from None


def load_settings() -> ContextManagerSettings:
    """Load settings from environment variables with defaults."""
    load_dotenv()

    storage_backend = os.getenv("CONTEXT_STORAGE_BACKEND", "file").strip().lower()
    if storage_backend not in ("file", "memory"):
        msg = f"CONTEXT_STORAGE_BACKEND must be 'file' or 'memory', got {storage_backend!r}"
        raise ValueError(msg)

    drift_threshold = _env_float("CONTEXT_DRIFT_THRESHOLD", thresholds.DRIFT_THRESHOLD)
    if not 0.0 <= drift_threshold <= 1.0:
        msg = "CONTEXT_DRIFT_THRESHOLD must be between 0 and 1."
        raise ValueError(msg)

    return ContextManagerSettings(
        sessions_dir=os.getenv("CONTEXT_SESSIONS_DIR", ".claude/sessions"),
        snapshots_dir=os.getenv("CONTEXT_SNAPSHOTS_DIR", ".claude/snapshots"),
        storage_backend=storage_backend,
        auto_compact_threshold=_env_int(
            "CONTEXT_AUTO_COMPACT_THRESHOLD", thresholds.AUTO_COMPACT_THRESHOLD
        ),
        health_check_interval_ms=_env_int(
            "CONTEXT_HEALTH_CHECK_INTERVAL_MS", thresholds.HEALTH_CHECK_INTERVAL_MS
        ),
        drift_threshold=drift_threshold,
        keep_recent_events=_env_int("CONTEXT_KEEP_RECENT_EVENTS", thresholds.COMPACT_KEEP_RECENT),
        compact_threshold=_env_int("CONTEXT_COMPACT_THRESHOLD", thresholds.COMPACT_THRESHOLD),
        save_immediately=_parse_bool(os.getenv("CONTEXT_SAVE_IMMEDIATELY", "true")),
        max_output_length=_env_int("CONTEXT_MAX_OUTPUT_LENGTH", thresholds.TRIM_MAX_OUTPUT_LENGTH),
    )
