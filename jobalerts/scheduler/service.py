"""Cron scheduling of the daily, weekly and monthly batch runs."""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from jobalerts.config.models import ScheduleConfig, TierSchedule
from jobalerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")

MISFIRE_GRACE_SECONDS = 3600


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def build_cron_trigger(tier: str, tier_schedule: TierSchedule, timezone: str) -> CronTrigger:
    """Build the cron trigger for one tier.

    daily runs every day, weekly on ``day_of_week`` and monthly on ``day``,
    all at ``hour:minute`` in the configured timezone.
    """
    fields = {"hour": tier_schedule.hour, "minute": tier_schedule.minute}
    if tier == "weekly":
        fields["day_of_week"] = tier_schedule.day_of_week
    elif tier == "monthly":
        fields["day"] = tier_schedule.day
    elif tier != "daily":
        raise ValueError(f"No cron schedule for tier '{tier}'")
    return CronTrigger(timezone=timezone, **fields)


def describe_schedule(tier: str, tier_schedule: TierSchedule) -> str:
    """Cron-style description, e.g. '0 9 * * mon' for the default weekly tier."""
    day = str(tier_schedule.day) if tier == "monthly" else "*"
    day_of_week = tier_schedule.day_of_week if tier == "weekly" else "*"
    return f"{tier_schedule.minute} {tier_schedule.hour} {day} * {day_of_week}"


class AlertScheduler:
    """
    Triggers batch runs on a cron schedule using APScheduler.

    One job per enabled tier is registered on a BackgroundScheduler so runs
    happen on worker threads while the main thread handles signals.
    ``max_instances=1`` and ``coalesce=True`` keep a slow run from stacking
    up missed firings; the batch runner's own per-tier lock is what prevents
    overlapping runs of the same tier across trigger_now() and cron.
    """

    def __init__(
        self,
        run_tier: Callable[[str], Any],
        schedule_config: ScheduleConfig,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """
        Args:
            run_tier: Called with the tier name on each firing
                (e.g. BatchAlertRunner.run_batch_cycle)
            schedule_config: Per-tier cron settings and timezone
            logger_instance: Logger (module logger if None)
        """
        self.run_tier = run_tier
        self.schedule_config = schedule_config
        self.logger = logger_instance or logger
        self.state = SchedulerState.STOPPED
        self.jobs: Dict[str, Job] = {}
        self._scheduler: Optional[BackgroundScheduler] = None
        self._state_lock = threading.Lock()

    def _build_scheduler(self) -> BackgroundScheduler:
        return BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=self.schedule_config.timezone,
        )

    def start(self) -> None:
        """Register one cron job per enabled tier and start the scheduler.

        Calling start() while running logs a warning and does nothing.
        """
        with self._state_lock:
            if self.state == SchedulerState.RUNNING:
                self.logger.warning(
                    "Scheduler already running", extra={"event": "scheduler.already_running"}
                )
                return

            scheduler = self._build_scheduler()
            jobs = {}
            for tier, tier_schedule in self.schedule_config.enabled_tiers().items():
                jobs[tier] = scheduler.add_job(
                    func=self.run_tier,
                    args=[tier],
                    trigger=build_cron_trigger(tier, tier_schedule, self.schedule_config.timezone),
                    id=f"alerts-{tier}",
                    name=f"{tier.capitalize()} job alert digest",
                    replace_existing=True,
                )

            scheduler.start()
            self._scheduler = scheduler
            self.jobs = jobs
            self.state = SchedulerState.RUNNING

        self.logger.info(
            f"Scheduler started with tiers: {', '.join(jobs) or 'none'}",
            extra={
                "event": "scheduler.started",
                "timezone": self.schedule_config.timezone,
                "tiers": list(jobs),
            },
        )

    def stop(self, wait: bool = False) -> None:
        """
        Stop the scheduler.

        Args:
            wait: If True, wait for running batch runs to complete
        """
        with self._state_lock:
            if self.state == SchedulerState.STOPPED:
                return

            self.logger.info(
                "Shutting down scheduler",
                extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
            )
            if self._scheduler is not None and self._scheduler.running:
                self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            self.jobs = {}
            self.state = SchedulerState.STOPPED

        self.logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def trigger_now(self, frequency: str) -> Any:
        """Run one tier immediately in the calling thread and return its result."""
        tier = getattr(frequency, "value", frequency)
        self.logger.info(
            f"Triggering immediate {tier} run",
            extra={"event": "scheduler.trigger_now", "frequency": tier},
        )
        return self.run_tier(tier)

    def get_next_run_time(self, frequency: str) -> Optional[datetime]:
        """Next firing of a tier, or None when stopped or the tier is disabled."""
        handle = self.jobs.get(getattr(frequency, "value", frequency))
        if handle is None or self._scheduler is None:
            return None
        # The job store holds the current copy of the job
        job = self._scheduler.get_job(handle.id)
        return job.next_run_time if job else None

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the scheduler for status output."""
        tiers = {}
        for tier, tier_schedule in self.schedule_config.tiers().items():
            next_run = self.get_next_run_time(tier)
            tiers[tier] = {
                "enabled": tier_schedule.enabled,
                "cron": describe_schedule(tier, tier_schedule),
                "next_run_time": next_run.isoformat() if next_run else None,
            }
        return {
            "state": self.state.value,
            "timezone": self.schedule_config.timezone,
            "tiers": tiers,
        }
