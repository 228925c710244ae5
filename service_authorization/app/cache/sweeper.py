"""
Background sweep of expired decision cache entries.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from .lru_cache import LRUCache


class CacheExpirySweeper:
    """Periodically calls ``expire_items`` on a cache from the event loop."""

    def __init__(self, cache: LRUCache, interval_seconds: float):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.logger = get_logger("authorization.cache.sweeper")

        self._sweep_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        """Start sweeping. A non-positive interval leaves the sweeper idle."""
        if self.interval_seconds <= 0 or self.running:
            return
        self.running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info("Cache expiry sweeper started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop sweeping."""
        self.running = False
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            self.logger.info("Cache expiry sweeper stopped")

    def sweep(self) -> int:
        """Run one sweep now."""
        removed = self.cache.expire_items()
        if removed:
            self.logger.info("Expired decision cache entries", removed=removed, cache=self.cache.name)
        return removed

    async def _sweep_loop(self):
        while self.running:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                self.logger.error("Error sweeping decision cache", error=str(e))
