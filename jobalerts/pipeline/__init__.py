"""Alert runs: batch digests per tier and notifications for new jobs."""

from .batch import BatchAlertRunner, to_batch_frequency, window_start_for
from .immediate import ImmediateNotifier
from .models import AlertRunStats, CycleRunResult, JobCreatedResult

__all__ = [
    "BatchAlertRunner",
    "ImmediateNotifier",
    "CycleRunResult",
    "AlertRunStats",
    "JobCreatedResult",
    "to_batch_frequency",
    "window_start_for",
]
