"""Background task that periodically evicts expired sessions.

Not needed for correctness (``get()`` and ``complete()`` handle expired
entries on their own) but it bounds memory held by sessions nobody reads
again.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Runs ``store.sweep()`` every *interval_seconds* on the event loop."""

    def __init__(self, store: SessionStore, interval_seconds: float = 60) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._store = store
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None  # type: ignore[type-arg]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the sweep task (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("SessionSweeper started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("SessionSweeper stopped")

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Session sweep failed")

    def sweep_once(self) -> int:
        """Run a single sweep pass and return the number of evicted sessions."""
        return self._store.sweep()
