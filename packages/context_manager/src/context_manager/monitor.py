"""Live metric tracking for the current session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from context_manager.errors import NoActiveSessionError
from context_manager.phase import detect_phase
from context_manager.utils import estimate_tokens

if TYPE_CHECKING:
    from context_manager.models import Session, SessionEvent

logger = logging.getLogger(__name__)

PATH_ARG_KEYS = ("path", "file_path", "filePath")


class SessionMonitor:
    """Hold the current session and update its counters as events arrive.

    The monitor only mutates the in-memory record; persisting it is the
    controller's job.
    """

    def __init__(self) -> None:
        self._current: Session | None = None

    def set_current_session(self, session: Session) -> None:
        self._current = session

    def get_current_session(self) -> Session | None:
        return self._current

    def clear_session(self) -> None:
        self._current = None

    def _require_session(self) -> Session:
        if self._current is None:
            raise NoActiveSessionError
        return self._current

    def record_message(self, role: str, content: str) -> SessionEvent:
        """Count a message, add its estimated tokens and refresh the phase."""
        session = self._require_session()
        tokens = estimate_tokens(content)
        session.metrics.message_count += 1
        session.metrics.total_tokens += tokens
        event = session.append_event("message", {"role": role, "content": content, "tokens": tokens})
        session.metadata.phase = detect_phase(
            [str(item.data.get("content", "")) for item in session.message_events()],
            session.metadata.phase,
        )
        logger.debug(
            "Tracked %s message (%d tokens) in session %s", role, tokens, session.id
        )
        return event

    def record_tool(self, name: str, args: Any = None, result: Any = None) -> SessionEvent:
        """Append a tool invocation; message counters are unaffected."""
        session = self._require_session()
        if isinstance(args, dict):
            for key in PATH_ARG_KEYS:
                path = args.get(key)
                if isinstance(path, str) and path:
                    session.topic_tracking.file_paths.add(path)
        return session.append_event("tool", {"name": name, "args": args, "result": result})

    def record_error(self, error: str | BaseException, recoverable: bool = False) -> SessionEvent:
        """Count an error; recoverable errors also count as a retry."""
        session = self._require_session()
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            error_type = type(error).__name__
            recoverable = recoverable or bool(getattr(error, "recoverable", False))
        else:
            message = str(error)
            error_type = "Error"
        session.metrics.error_count += 1
        if recoverable:
            session.metrics.retry_count += 1
        logger.debug("Tracked error in session %s: %s", session.id, message)
        return session.append_event(
            "error", {"message": message, "errorType": error_type, "recoverable": recoverable}
        )
