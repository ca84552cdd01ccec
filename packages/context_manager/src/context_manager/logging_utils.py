"""Logging helpers for session correlation."""

from __future__ import annotations

import contextlib
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

PACKAGE_LOGGER = "context_manager"

_session_id: ContextVar[str | None] = ContextVar("context_manager_session_id", default=None)


def get_log_session_id() -> str | None:
    """Return the session id bound to the current context."""
    return _session_id.get()


def set_log_session_id(session_id: str | None) -> None:
    """Bind a session id to the current context (``None`` clears it)."""
    _session_id.set(session_id)


@contextlib.contextmanager
def bind_session_id(session_id: str | None) -> Iterator[None]:
    """Bind a session id for the duration of a block."""
    token = _session_id.set(session_id)
    try:
        yield
    finally:
        _session_id.reset(token)


class SessionContextFilter(logging.Filter):
    """Attach the current session id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject session_id into the log record."""
        record.session_id = get_log_session_id() or "-"
        return True


def package_loggers() -> list[logging.Logger]:
    """Return the package logger and every ``context_manager.*`` logger created so far."""
    prefix = f"{PACKAGE_LOGGER}."
    names = [
        name
        for name in list(logging.Logger.manager.loggerDict)
        if name == PACKAGE_LOGGER or name.startswith(prefix)
    ]
    return [logging.getLogger(name) for name in sorted(names)]


def install_session_log_filter(loggers: Iterable[logging.Logger] | None = None) -> None:
    """Install session context filters for structured logging.

    Args:
        loggers: Optional iterable of loggers to attach the filter to. Defaults to root logger.
            Logger filters only see records created at that logger, so pass
            ``package_loggers()`` to stamp records from this package.
    """
    targets = list(loggers) if loggers is not None else [logging.getLogger()]
    for logger in targets:
        if any(isinstance(flt, SessionContextFilter) for flt in logger.filters):
            continue
        logger.addFilter(SessionContextFilter())
