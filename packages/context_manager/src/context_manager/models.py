"""Session records persisted by the context manager."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from context_manager.utils import utc_now

EventType = Literal["message", "tool", "error", "snapshot", "compact"]
Phase = Literal["planning", "implementation", "debugging", "review", "ended"]

PHASE_ENDED: Phase = "ended"


class RecordModel(BaseModel):
    """Base record with camelCase aliases for the persisted JSON."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class SessionEvent(RecordModel):
    """Something that happened in a session."""

    timestamp: datetime = Field(default_factory=utc_now)
    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)


class SessionMetadata(RecordModel):
    """Descriptive state of a session."""

    initial_prompt: str
    phase: Phase = "planning"
    health_score: float = 1.0


class SessionMetrics(RecordModel):
    """Counters accumulated while tracking events."""

    total_tokens: int = 0
    message_count: int = 0
    error_count: int = 0
    retry_count: int = 0
    drift_score: float = 0.0


class TopicTracking(RecordModel):
    """Topic fingerprint captured at session creation."""

    keywords: set[str] = Field(default_factory=set)
    file_paths: set[str] = Field(default_factory=set)
    initial_embedding: list[float] | None = None

    @field_serializer("keywords", "file_paths")
    def _sorted(self, value: set[str]) -> list[str]:
        return sorted(value)


class SnapshotRef(RecordModel):
    """Handle to a snapshot payload held by a snapshot backend."""

    commit_hash: str
    timestamp: datetime = Field(default_factory=utc_now)
    health_score: float
    description: str


class Session(RecordModel):
    """One tracked agent conversation."""

    id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    metadata: SessionMetadata
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    topic_tracking: TopicTracking = Field(default_factory=TopicTracking)
    events: list[SessionEvent] = Field(default_factory=list)
    snapshots: list[SnapshotRef] = Field(default_factory=list)

    @property
    def is_ended(self) -> bool:
        """Return True once the session has been ended."""
        return self.metadata.phase == PHASE_ENDED

    def touch(self) -> None:
        """Refresh ``updated_at``."""
        self.updated_at = utc_now()

    def append_event(self, event_type: EventType, data: dict[str, Any]) -> SessionEvent:
        """Append an event and touch the session."""
        event = SessionEvent(type=event_type, data=data)
        self.events.append(event)
        self.touch()
        return event

    def message_events(self) -> list[SessionEvent]:
        """Return message events in chronological order."""
        return [event for event in self.events if event.type == "message"]

    def last_activity(self) -> datetime:
        """Return the time of the last event, or ``updated_at`` if there is none."""
        if self.events:
            return self.events[-1].timestamp
        return self.updated_at

    def to_json(self) -> str:
        """Serialize with camelCase field names."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, payload: str | bytes) -> Session:
        """Parse a record produced by :meth:`to_json`."""
        return cls.model_validate_json(payload)
