"""Cron scheduling of the batch alert tiers."""

from .service import AlertScheduler, SchedulerState, build_cron_trigger, describe_schedule

__all__ = [
    "AlertScheduler",
    "SchedulerState",
    "build_cron_trigger",
    "describe_schedule",
]
