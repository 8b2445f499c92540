"""Batch digest runs for the daily, weekly and monthly alert tiers.

One run of a tier:
1. Loads the tier's active alerts and the candidate jobs of the tier window
2. For each alert, narrows candidates to jobs created since the alert was
   last checked, and matches them
3. Sends one digest per alert with matches (if the owner wants email)
4. Advances the alert's bookkeeping

Each alert is isolated: a failure for one alert is logged and counted and
the run moves on to the next.
"""

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from jobalerts.domain.models import (
    BATCH_FREQUENCIES,
    JobAlert,
    JobCandidate,
    NotificationFrequency,
    Recipient,
)
from jobalerts.logging import get_logger
from jobalerts.logging.context import log_context
from jobalerts.matching.engine import AlertMatchEngine
from jobalerts.notifications.payloads import UNKNOWN_COMPANY
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import RecordNotFoundError
from jobalerts.persistence.repositories import (
    AlertRepository,
    CompanyRepository,
    JobRepository,
    UserRepository,
)
from jobalerts.utils.timestamps import subtract_months, utc_now

from .models import AlertRunStats, CycleRunResult

logger = get_logger(__name__, component="batch")


def to_batch_frequency(frequency) -> NotificationFrequency:
    """Coerce a tier name to a batch NotificationFrequency.

    Raises:
        ValueError: If the value is not daily, weekly or monthly
    """
    tier = NotificationFrequency(frequency)
    if tier not in BATCH_FREQUENCIES:
        raise ValueError(f"'{tier.value}' is not a batch tier")
    return tier


def window_start_for(frequency, now: datetime) -> datetime:
    """Earliest job creation time a run of the tier considers.

    Daily looks back one day, weekly seven days and monthly one calendar
    month (the day is clamped, so 31 March looks back to the end of February).
    """
    tier = to_batch_frequency(frequency)
    if tier == NotificationFrequency.DAILY:
        return now - timedelta(days=1)
    if tier == NotificationFrequency.WEEKLY:
        return now - timedelta(days=7)
    return subtract_months(now, 1)


class BatchAlertRunner:
    """
    Runs the batch digest cycle for one tier at a time.

    Runs of the same tier never overlap: a run started while another of the
    same tier is in progress returns a skipped result immediately. Different
    tiers may run concurrently.
    """

    def __init__(
        self,
        notification_service: NotificationService,
        match_engine: Optional[AlertMatchEngine] = None,
        dispatch_delay_seconds: float = 0.1,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """
        Initialize the batch runner.

        Args:
            notification_service: Service used to send digests
            match_engine: Matching engine (a default one is created if None)
            dispatch_delay_seconds: Pause after each dispatch
            clock: Source of the current UTC time
            sleep: Sleep function used for the pause between dispatches
            logger_instance: Logger (module logger if None)
        """
        self.notification_service = notification_service
        self.match_engine = match_engine or AlertMatchEngine()
        self.dispatch_delay_seconds = dispatch_delay_seconds
        self.clock = clock
        self.sleep = sleep
        self.logger = logger_instance or logger
        self._locks: Dict[str, threading.Lock] = {
            tier.value: threading.Lock() for tier in BATCH_FREQUENCIES
        }

    def run_batch_cycle(self, frequency) -> CycleRunResult:
        """
        Execute one batch run for a tier.

        Args:
            frequency: "daily", "weekly" or "monthly"

        Returns:
            CycleRunResult with per-alert statistics

        Raises:
            ValueError: If frequency is not a batch tier. Per-alert failures
                never propagate; they are counted in the result.
        """
        tier = to_batch_frequency(frequency).value
        run_started_at = self.clock()
        run_id = uuid4().hex
        lock = self._locks[tier]

        if not lock.acquire(blocking=False):
            with log_context(run_id=run_id, frequency=tier):
                self.logger.warning(
                    f"Batch run for {tier} alerts skipped: previous run still in progress",
                    extra={"event": "batch.run.skipped", "reason": "lock_held"},
                )
            return CycleRunResult(
                frequency=tier,
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id, frequency=tier):
                return self._run(tier, run_started_at)
        finally:
            lock.release()

    def _run(self, tier: str, now: datetime) -> CycleRunResult:
        window_start = window_start_for(tier, now)
        result = CycleRunResult(
            frequency=tier,
            run_started_at=now,
            run_finished_at=now,
            window_start=window_start,
        )

        self.logger.info(
            f"Batch run started for {tier} alerts",
            extra={"event": "batch.run.started", "window_start": window_start},
        )

        invalid_alert_ids: List[str] = []
        try:
            with get_session() as session:
                alerts = AlertRepository(session).list_active_alerts(
                    tier, skipped=invalid_alert_ids
                )
                # Jobs created from now on belong to the next run
                candidates = JobRepository(session).list_active_jobs(
                    window_start, created_before=now
                )
        except Exception as e:
            result.errors = 1
            result.run_finished_at = self.clock()
            result.total_duration_seconds = (result.run_finished_at - now).total_seconds()
            self.logger.error(
                f"Batch run for {tier} alerts aborted: failed to load alerts: {e}",
                exc_info=True,
                extra={"event": "batch.run.failed"},
            )
            return result

        if invalid_alert_ids:
            result.errors += len(invalid_alert_ids)
            self.logger.error(
                f"Skipped {len(invalid_alert_ids)} malformed {tier} alerts",
                extra={"event": "batch.alerts.invalid", "alert_ids": invalid_alert_ids},
            )

        self.logger.info(
            f"Processing {len(alerts)} {tier} alerts against {len(candidates)} candidate jobs",
            extra={
                "event": "batch.alerts.loaded",
                "alert_count": len(alerts),
                "candidate_count": len(candidates),
            },
        )

        company_names: Dict[str, str] = {}
        for alert in alerts:
            stats = self._process_alert(alert, candidates, window_start, now, tier, company_names)
            result.alert_stats.append(stats)
            result.processed += 1
            if stats.matched_count:
                result.matched += 1
            if stats.sent:
                result.sent += 1
            if stats.error:
                result.errors += 1

        result.run_finished_at = self.clock()
        result.total_duration_seconds = (result.run_finished_at - now).total_seconds()

        self.logger.info(
            f"Batch run for {tier} alerts completed: {result.processed} processed, "
            f"{result.matched} matched, {result.sent} sent, {result.errors} errors",
            extra={
                "event": "batch.run.completed",
                "duration_ms": int(result.total_duration_seconds * 1000),
                "processed": result.processed,
                "matched": result.matched,
                "sent": result.sent,
                "errors": result.errors,
            },
        )
        return result

    def _process_alert(
        self,
        alert: JobAlert,
        candidates: Sequence[JobCandidate],
        window_start: datetime,
        now: datetime,
        tier: str,
        company_names: Dict[str, str],
    ) -> AlertRunStats:
        started = time.monotonic()
        stats = AlertRunStats(alert_id=alert.id, user_id=alert.user_id)

        with log_context(alert_id=alert.id, user_id=alert.user_id):
            try:
                # Jobs already covered by a previous run are never re-sent
                since = window_start
                if alert.last_checked and alert.last_checked > since:
                    since = alert.last_checked

                eligible = [job for job in candidates if since <= job.created_at < now]
                matches = self.match_engine.find_matches(alert, eligible)
                stats.candidate_count = len(eligible)
                stats.matched_count = len(matches)

                notified_at = None
                if matches and alert.notification_preferences.email:
                    recipient, names = self._load_digest_context(alert, matches, company_names)
                    stats.dispatched = True
                    record = self.notification_service.send_batch_digest(
                        recipient, matches, names, alert, tier
                    )
                    if record.success:
                        stats.sent = True
                        notified_at = now
                    else:
                        stats.error = record.error or "dispatch failed"
                        self.logger.warning(
                            f"Digest for alert {alert.id} was not delivered: {stats.error}",
                            extra={"event": "batch.alert.dispatch_failed"},
                        )
                    self._pause()

                # last_checked advances even when delivery failed
                with get_session() as session:
                    AlertRepository(session).record_check(
                        alert.id,
                        checked_at=now,
                        notified_at=notified_at,
                        matched_count=len(matches) if notified_at else 0,
                    )

                self.logger.debug(
                    f"Alert {alert.id} processed: {stats.matched_count} matches",
                    extra={
                        "event": "batch.alert.processed",
                        "match_count": stats.matched_count,
                        "sent": stats.sent,
                    },
                )

            except Exception as e:
                stats.error = str(e)
                self.logger.error(
                    f"Error processing alert {alert.id}: {e}",
                    exc_info=True,
                    extra={"event": "batch.alert.failed", "error_type": type(e).__name__},
                )

        stats.duration_seconds = time.monotonic() - started
        return stats

    def _load_digest_context(
        self,
        alert: JobAlert,
        matches: Sequence[JobCandidate],
        company_names: Dict[str, str],
    ) -> Tuple[Recipient, Dict[str, str]]:
        with get_session() as session:
            recipient = UserRepository(session).get_by_id(alert.user_id)
            if recipient is None or recipient.is_deleted:
                raise RecordNotFoundError(
                    f"Owner {alert.user_id} of alert {alert.id} not found",
                    record_type="user",
                    record_id=alert.user_id,
                )

            company_repo = CompanyRepository(session)
            for job in matches:
                if job.company_id not in company_names:
                    company = company_repo.get_by_id(job.company_id)
                    company_names[job.company_id] = company.name if company else UNKNOWN_COMPANY

        return recipient, company_names

    def _pause(self) -> None:
        if self.dispatch_delay_seconds > 0:
            self.sleep(self.dispatch_delay_seconds)

    def test_alert(self, alert: JobAlert, since: datetime) -> List[JobCandidate]:
        """Preview which jobs created since a point in time an alert matches.

        Read-only: sends nothing and leaves the alert's bookkeeping untouched.
        """
        with get_session() as session:
            candidates = JobRepository(session).list_active_jobs(since)
        return self.match_engine.find_matches(alert, candidates)
