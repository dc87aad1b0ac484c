import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, Set

from backend import RoomStore, utcnow
from constants import SWEEP_INTERVAL_SECONDS
from logging_config import get_logger

logger = get_logger(__name__)

SweepCallback = Callable[[Set[str]], Awaitable[None]]


class ExpirationSweeper:
    """Background task that periodically evicts expired or empty rooms."""

    def __init__(
        self,
        store: RoomStore,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        on_sweep: Optional[SweepCallback] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.interval_seconds = interval_seconds
        self.on_sweep = on_sweep
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Set[str]:
        removed = self.store.sweep_expired(self.clock())
        if removed and self.on_sweep is not None:
            await self.on_sweep(removed)
        return removed

    async def _loop(self):
        logger.info(f"Expiration sweeper started, interval {self.interval_seconds}s")
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception as e:
                # next pass catches up
                logger.error(f"Sweep pass failed: {e}", exc_info=True)

    def start(self):
        if not self.running:
            self._task = asyncio.create_task(self._loop())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiration sweeper stopped")
