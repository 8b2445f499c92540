"""Data models for alert run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class AlertRunStats:
    """
    Outcome of processing one alert within a batch run.

    Attributes:
        alert_id: Alert that was processed
        user_id: Owner of the alert
        candidate_count: Jobs considered after applying the alert's own since
        matched_count: Jobs that matched the alert
        dispatched: Whether a digest dispatch was attempted
        sent: Whether the digest was delivered
        error: Error message if processing or delivery failed
        duration_seconds: Time spent on this alert
    """

    alert_id: str
    user_id: str
    candidate_count: int = 0
    matched_count: int = 0
    dispatched: bool = False
    sent: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class CycleRunResult:
    """
    Aggregate results of one batch run for one tier.

    Attributes:
        frequency: Tier that was run (daily, weekly, monthly)
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        window_start: Earliest job creation time considered
        processed: Alerts processed
        matched: Alerts with at least one match
        sent: Digests delivered
        errors: Alerts whose processing or delivery failed
        skipped: True when another run of the same tier was in progress
        alert_stats: Per-alert statistics
        total_duration_seconds: Total time for the run
    """

    frequency: str
    run_started_at: datetime
    run_finished_at: datetime
    window_start: Optional[datetime] = None
    processed: int = 0
    matched: int = 0
    sent: int = 0
    errors: int = 0
    skipped: bool = False
    alert_stats: List[AlertRunStats] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    def __post_init__(self):
        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def had_errors(self) -> bool:
        return self.errors > 0


@dataclass
class JobCreatedResult:
    """
    Outcome of processing one job-created event.

    Attributes:
        job_id: Job that was created
        skipped: True when the job was missing, inactive or had no company
        skip_reason: Why processing was skipped
        subscriptions_checked: Active subscriptions to the job's company
        subscriptions_notified: Subscription emails delivered
        subscription_errors: Subscribers that could not be notified
        alerts_checked: Active immediate alerts evaluated
        alerts_notified: Alert emails delivered
        alert_errors: Alerts that could not be processed or notified
    """

    job_id: str
    skipped: bool = False
    skip_reason: Optional[str] = None
    subscriptions_checked: int = 0
    subscriptions_notified: int = 0
    subscription_errors: int = 0
    alerts_checked: int = 0
    alerts_notified: int = 0
    alert_errors: int = 0

    @property
    def notified(self) -> int:
        return self.subscriptions_notified + self.alerts_notified

    @property
    def errors(self) -> int:
        return self.subscription_errors + self.alert_errors
