"""Background expiry sweep for a permission cache."""

import asyncio
import contextlib
from datetime import datetime, timedelta

import structlog

from chordperm.application.ports import Clock, PermissionCache, utc_now
from chordperm.domain.exceptions import CacheUnavailable

logger = structlog.get_logger(__name__)


class CacheSweeper:
    """Runs ``sweep_expired`` every ``interval``, never more often than ``min_interval``."""

    def __init__(
        self,
        cache: PermissionCache,
        *,
        interval: timedelta = timedelta(minutes=10),
        min_interval: timedelta = timedelta(minutes=1),
        clock: Clock = utc_now,
    ) -> None:
        if min_interval > interval:
            raise ValueError("min_interval must not exceed interval")
        self._cache = cache
        self._interval = interval
        self._min_interval = min_interval
        self._clock = clock
        self._last_sweep: datetime | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def last_sweep(self) -> datetime | None:
        return self._last_sweep

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_if_due(self) -> int | None:
        """Sweep unless the previous sweep was less than min_interval ago.

        Returns the number of removed entries, or None when skipped.
        """
        async with self._lock:
            now = self._clock()
            if self._last_sweep is not None and now - self._last_sweep < self._min_interval:
                return None
            self._last_sweep = now
            try:
                removed = await self._cache.sweep_expired()
            except CacheUnavailable as exc:
                logger.warning("permission_cache_sweep_failed", error=str(exc))
                return None
        logger.debug("permission_cache_sweep_done", removed=removed)
        return removed

    async def run(self) -> None:
        """Sweep periodically until cancelled."""
        while True:
            await asyncio.sleep(self._interval.total_seconds())
            try:
                await self.sweep_if_due()
            except Exception:
                logger.exception("permission_cache_sweep_crashed")

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="permission-cache-sweeper")
        logger.info(
            "permission_cache_sweeper_started",
            interval_seconds=self._interval.total_seconds(),
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("permission_cache_sweeper_stopped")
