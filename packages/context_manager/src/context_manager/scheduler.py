"""Periodic cooperative health-check loop."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class HealthCheckScheduler:
    """Run an async callback every ``interval_seconds`` on the running loop.

    Ticks run one at a time inside a single task, so a slow callback delays
    the next tick instead of overlapping it. ``stop`` cancels the task and is
    safe to call repeatedly or before ``start``.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[Any]],
        *,
        name: str = "context-health-check",
    ) -> None:
        if interval_seconds <= 0:
            msg = "interval_seconds must be positive"
            raise ValueError(msg)
        self._interval = interval_seconds
        self._callback = callback
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start ticking; must be called with an event loop running."""
        if self._running:
            return
        loop = asyncio.get_running_loop()
        self._running = True
        self._task = loop.create_task(self._run(), name=self._name)
        logger.info("Health check scheduler started (interval %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop ticking immediately."""
        if not self._running and self._task is None:
            return
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info("Health check scheduler stopped")

    async def _run(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            await self.tick()

    async def tick(self) -> None:
        """Invoke the callback once, logging instead of propagating failures."""
        if not self._running:
            return
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Health check tick failed")
