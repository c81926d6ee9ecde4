"""
PORTFOLIO REFRESH SCHEDULER

Periodically rebuilds the live portfolio snapshot with APScheduler.
Scheduler is orchestration-only and contains no valuation logic.

A manual refresh supersedes an in-flight interval refresh: the interval
run is cancelled before it aggregates, so one cycle never aggregates
twice. Interval ticks are skipped while any refresh is running.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.domain.models import PortfolioSnapshot
from app.services.portfolio_service import PortfolioService
from app.utils.time import LOCAL_TZ, now_utc, to_local_iso

_logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "portfolio_refresh_job"

TRIGGER_INTERVAL = "interval"
TRIGGER_MANUAL = "manual"


class PortfolioRefreshScheduler:
    def __init__(
        self,
        service: PortfolioService,
        interval_seconds: int = 15,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.service = service
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=LOCAL_TZ)

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._task_trigger: Optional[str] = None

        self.last_snapshot: Optional[PortfolioSnapshot] = None
        self.last_refreshed_at: Optional[datetime] = None
        self.last_trigger: Optional[str] = None
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    def start(self, run_immediately: bool = True) -> None:
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(LOCAL_TZ)
        self.scheduler.add_job(
            self._on_interval,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        self.scheduler.start()
        _logger.info("✅ Refresh scheduler started | interval=%ss", self.interval_seconds)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        _logger.info("🛑 Refresh scheduler shut down")

    @property
    def running(self) -> bool:
        return bool(getattr(self.scheduler, "running", False))

    @property
    def refresh_in_progress(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------
    async def _on_interval(self) -> None:
        if self.refresh_in_progress:
            _logger.debug("Refresh already running, skipping interval tick")
            return
        await self.refresh(TRIGGER_INTERVAL)

    async def refresh(self, trigger: str = TRIGGER_MANUAL) -> Optional[PortfolioSnapshot]:
        """
        Rebuild the live snapshot for all holdings.

        Returns None when this refresh was skipped or superseded.
        """
        current = self._task
        if current is not None and not current.done():
            if trigger == TRIGGER_INTERVAL:
                return None
            if self._task_trigger == TRIGGER_MANUAL:
                return await self._await(current)
            _logger.info("Manual refresh superseding interval refresh")
            current.cancel()

        self._generation += 1
        task = asyncio.create_task(self._run(self._generation, trigger))
        self._task = task
        self._task_trigger = trigger
        return await self._await(task)

    @staticmethod
    async def _await(task: asyncio.Task) -> Optional[PortfolioSnapshot]:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def _run(self, generation: int, trigger: str) -> Optional[PortfolioSnapshot]:
        try:
            snapshot = await self.service.live_snapshot(force=True)
        except Exception as exc:
            _logger.exception("❌ Portfolio refresh failed (%s)", trigger)
            if generation == self._generation:
                self.last_error = str(exc)
            return None

        if generation != self._generation:
            return None

        self.last_snapshot = snapshot
        self.last_refreshed_at = now_utc()
        self.last_trigger = trigger
        self.last_error = None
        return snapshot

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "refresh_in_progress": self.refresh_in_progress,
            "last_refreshed_at": to_local_iso(self.last_refreshed_at) if self.last_refreshed_at else None,
            "last_trigger": self.last_trigger,
            "last_error": self.last_error,
        }
