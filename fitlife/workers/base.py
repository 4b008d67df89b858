import asyncio
import logging
import time
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """
    Long-lived asyncio task started from the app lifespan.

    All workers share one stop event: setting it wakes every sleeping worker
    immediately. Work already in progress for a user is allowed to finish.
    """
    name = "worker"

    def __init__(self, stop_event: Optional[asyncio.Event] = None):
        self.stop_event = stop_event or asyncio.Event()
        self.task: Optional[asyncio.Task] = None

    @property
    def stopping(self) -> bool:
        return self.stop_event.is_set()

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`. Returns True if a stop was requested."""
        if seconds <= 0:
            return self.stopping
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def run(self):
        raise NotImplementedError

    def start(self) -> asyncio.Task:
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.run(), name=self.name)
            logger.info("Background worker started", extra={"job": self.name})
        return self.task

    async def stop(self, grace_seconds: float = 30.0):
        """Signal stop, wait for the current unit of work, cancel after the grace period."""
        self.stop_event.set()
        if self.task is None or self.task.done():
            return
        try:
            await asyncio.wait_for(self.task, timeout=grace_seconds)
        except asyncio.TimeoutError:
            logger.warning("Background worker did not stop in time, cancelled", extra={"job": self.name})
        except asyncio.CancelledError:
            pass
        logger.info("Background worker stopped", extra={"job": self.name})


class PeriodicJob(BackgroundWorker):
    """Runs `run_cycle` every `interval_seconds`, backing off after a failed cycle."""

    def __init__(
        self,
        interval_seconds: float,
        startup_delay_seconds: float = 0,
        error_backoff_seconds: float = 0,
        stop_event: Optional[asyncio.Event] = None,
    ):
        super().__init__(stop_event)
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = startup_delay_seconds
        self.error_backoff_seconds = error_backoff_seconds

    async def run_cycle(self) -> Dict[str, int]:
        raise NotImplementedError

    async def run(self):
        logger.info(
            "Periodic job scheduled",
            extra={
                "job": self.name,
                "interval_seconds": self.interval_seconds,
                "startup_delay_seconds": self.startup_delay_seconds,
            },
        )
        if await self._wait(self.startup_delay_seconds):
            return

        while not self.stopping:
            start_time = time.time()
            try:
                stats = await self.run_cycle()
                logger.info(
                    "Periodic job cycle completed",
                    extra={
                        "job": self.name,
                        "duration_ms": round((time.time() - start_time) * 1000, 2),
                        **stats,
                    },
                )
                delay = self.interval_seconds
            except asyncio.CancelledError:
                logger.info("Periodic job cancelled", extra={"job": self.name})
                raise
            except Exception as e:
                logger.error(
                    "Periodic job cycle failed",
                    extra={"job": self.name, "error": str(e), "backoff_seconds": self.error_backoff_seconds},
                    exc_info=True,
                )
                delay = self.error_backoff_seconds

            if await self._wait(delay):
                break
