"""Background decay sweep.

Periodically persists decay for every stored score and reclaims decayed
scores past retention.  Reads stay accurate without it (decay is also
applied lazily); the sweep keeps stored values fresh and the store small.
"""

from __future__ import annotations

import asyncio
import logging

from radioactivity.core.aggregator import Aggregator

logger = logging.getLogger(__name__)


class DecaySweeper:
    """Runs Aggregator.sweep() every *interval* seconds on the event loop."""

    def __init__(self, aggregator: Aggregator, interval: float) -> None:
        self._aggregator = aggregator
        self._interval = interval
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def enabled(self) -> bool:
        return self._interval > 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.enabled:
            logger.info("Decay sweeper disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="decay-sweeper")
        logger.info("Decay sweeper started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Decay sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._aggregator.sweep()
            except Exception:
                logger.exception("Decay sweep failed")
            self.runs += 1
