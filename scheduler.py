"""
Scheduler for periodic jobs.

Runs on the web application's event loop:
- News ingestion on a fixed wall-clock interval (hourly, on the hour)
- Daily email digests at a fixed hour

Jobs are blocking, so each tick runs in a worker thread. Failures are logged
and recorded in the job stats; nothing is raised to the loop.

Usage:
    scheduler = IngestionScheduler(pipeline, interval_minutes=60)
    scheduler.start()
    ...
    await scheduler.stop()
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

INGESTION_JOB = "news_ingestion"
DIGEST_JOB = "daily_digest"


def seconds_until_next(now: datetime, interval_minutes: int) -> float:
    """Seconds from ``now`` to the next multiple of the interval since midnight."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (now - midnight).total_seconds()
    interval = interval_minutes * 60
    return interval - (elapsed % interval)


def seconds_until_daily(now: datetime, hour: int) -> float:
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class IngestionScheduler:
    def __init__(
        self,
        pipeline,
        interval_minutes: int = 60,
        digest_service=None,
        digest_hour: int = 8,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.pipeline = pipeline
        self.interval_minutes = interval_minutes
        self.digest_service = digest_service
        self.digest_hour = digest_hour
        self.clock = clock
        self._running = False
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stats: Dict[str, Dict[str, Any]] = {}
        self._jobs: Dict[str, Callable[[], Any]] = {INGESTION_JOB: self._ingest}
        if digest_service is not None:
            self._jobs[DIGEST_JOB] = self._send_digests

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start all scheduled jobs on the running loop."""
        if self._running:
            return
        self._running = True
        logger.info("Starting scheduler...")

        self._tasks[INGESTION_JOB] = asyncio.create_task(
            self._run_periodic(INGESTION_JOB, lambda now: seconds_until_next(now, self.interval_minutes))
        )
        if self.digest_service is not None:
            self._tasks[DIGEST_JOB] = asyncio.create_task(
                self._run_periodic(DIGEST_JOB, lambda now: seconds_until_daily(now, self.digest_hour))
            )
        logger.info(f"Started {len(self._tasks)} scheduled jobs")

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def _run_periodic(self, name: str, delay_fn: Callable[[datetime], float]) -> None:
        while self._running:
            wait_time = delay_fn(self.clock())
            logger.debug(f"Job {name} sleeping {wait_time:.0f}s")
            await asyncio.sleep(wait_time)
            if not self._running:
                break
            await self.run_now(name)

    async def run_now(self, job_name: str) -> bool:
        """
        Run a job immediately.

        Returns True when the job completed, False when it failed.
        """
        job = self._jobs.get(job_name)
        if job is None:
            raise KeyError(f"Unknown job: {job_name}")

        start_time = self.clock()
        logger.info(f"Running job: {job_name}")
        try:
            result = await asyncio.to_thread(job)
        except Exception as e:
            logger.error(f"Job {job_name} failed: {e}", exc_info=True)
            self._stats[job_name] = {
                "last_run": start_time.isoformat(),
                "status": "error",
                "error": str(e),
            }
            return False

        self._stats[job_name] = {
            "last_run": start_time.isoformat(),
            "status": "success",
            "duration_seconds": (self.clock() - start_time).total_seconds(),
            "result": result,
        }
        logger.info(f"Job {job_name} completed: {result}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval_minutes": self.interval_minutes,
            "jobs": dict(self._stats),
        }

    def _ingest(self) -> Dict[str, int]:
        return self.pipeline.run().to_dict()

    def _send_digests(self) -> Dict[str, int]:
        return self.digest_service.send_daily_digests()
