"""Scheduler module for periodic source refreshes."""

from taurobot.scheduler.cron import RefreshScheduler, job_id

__all__ = ["RefreshScheduler", "job_id"]
