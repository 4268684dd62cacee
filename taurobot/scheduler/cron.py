"""Scheduled refreshes for sources that declare a cron expression.

Each scheduled source gets one APScheduler cron job (Madrid time by default)
that calls ``ScraperService.run_scheduled``. The minimum interval between
successful runs is enforced there, so a weekly cron with a 15-day interval
effectively refreshes every other week.
"""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from taurobot.config.sources import SourceConfig, SourceRegistry
from taurobot.core.service import ScraperService
from taurobot.logging import get_logger

logger = get_logger(__name__)


def job_id(source_key: str) -> str:
    return f"refresh_{source_key}"


class RefreshScheduler:
    """Owns the AsyncIOScheduler and the last-run bookkeeping."""

    def __init__(
        self,
        service: ScraperService,
        sources: list[SourceConfig] | None = None,
        timezone: str | None = None,
    ) -> None:
        self.service = service
        self.timezone = ZoneInfo(timezone or service.settings.scheduler_timezone)
        self.sources = sources if sources is not None else SourceRegistry.scheduled()
        self.scheduler: AsyncIOScheduler | None = None
        self.last_runs: dict[str, dict[str, Any]] = {}

    def start(self) -> AsyncIOScheduler:
        """Register one job per scheduled source and start the scheduler."""
        if self.scheduler is not None:
            return self.scheduler

        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        for source in self.sources:
            if not source.schedule_cron or source.key not in self.service.keys():
                continue
            self.scheduler.add_job(
                self.run_source,
                CronTrigger.from_crontab(source.schedule_cron, timezone=self.timezone),
                args=[source.key],
                id=job_id(source.key),
                name=f"Scheduled refresh: {source.name}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info("scheduled_job_added", source=source.key, cron=source.schedule_cron)

        self.scheduler.start()
        logger.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))
        return self.scheduler

    async def run_source(self, source_key: str) -> bool:
        """Job body: gated scheduled refresh of one source."""
        started = datetime.now(self.timezone)
        logger.info("scheduled_job_started", source=source_key)
        ran = await self.service.run_scheduled(source_key)
        self.last_runs[source_key] = {
            "started_at": started.isoformat(),
            "completed_at": datetime.now(self.timezone).isoformat(),
            "refreshed": ran,
        }
        logger.info("scheduled_job_completed", source=source_key, refreshed=ran)
        return ran

    def next_run(self, source_key: str) -> str | None:
        if self.scheduler is None:
            return None
        job = self.scheduler.get_job(job_id(source_key))
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
        return None

    def status(self) -> dict[str, Any]:
        """Current scheduler status."""
        if self.scheduler is None:
            return {"status": "not_initialized", "jobs": [], "last_runs": self.last_runs}

        jobs = [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]
        return {
            "status": "running" if self.scheduler.running else "stopped",
            "jobs": jobs,
            "last_runs": self.last_runs,
        }

    def shutdown(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")
        self.scheduler = None
