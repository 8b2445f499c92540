"""Notifications triggered by the creation of a single job.

When a job is created two independent scans run:
- company subscriptions: followers of the job's company whose job-type and
  experience-level filters accept the job get a single-job email
- immediate alerts: every active alert of the immediate tier is matched
  against the job and owners of matching alerts get a single-job email

Either scan failing does not prevent the other, and each recipient is
isolated from failures of the others.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from jobalerts.domain.models import (
    Company,
    JobCandidate,
    NotificationFrequency,
    Recipient,
)
from jobalerts.logging import get_logger
from jobalerts.logging.context import log_context
from jobalerts.matching.engine import AlertMatchEngine, subscription_matches
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import RecordNotFoundError
from jobalerts.persistence.repositories import (
    AlertRepository,
    CompanyRepository,
    JobRepository,
    SubscriptionRepository,
    UserRepository,
)
from jobalerts.utils.timestamps import utc_now

from .models import JobCreatedResult

logger = get_logger(__name__, component="immediate")


class ImmediateNotifier:
    """
    Fans a newly created job out to subscribers and immediate alerts.

    on_job_created() is fire-and-forget: the work runs on a small thread pool
    and the caller never sees its exceptions. process_job_created() is the
    synchronous body, used directly by tests and the CLI.
    """

    def __init__(
        self,
        notification_service: NotificationService,
        match_engine: Optional[AlertMatchEngine] = None,
        dispatch_delay_seconds: float = 0.1,
        max_workers: int = 2,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.notification_service = notification_service
        self.match_engine = match_engine or AlertMatchEngine()
        self.dispatch_delay_seconds = dispatch_delay_seconds
        self.clock = clock
        self.sleep = sleep
        self.logger = logger_instance or logger
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="immediate-notifier"
        )
        self._shutdown_lock = threading.Lock()
        self._is_shutdown = False

    def on_job_created(self, job_id: str) -> Future:
        """
        Schedule notifications for a newly created job and return immediately.

        Returns:
            Future resolving to a JobCreatedResult, or to None if processing
            failed unexpectedly (the failure is logged)

        Raises:
            RuntimeError: If the notifier has been shut down
        """
        with self._shutdown_lock:
            if self._is_shutdown:
                raise RuntimeError("ImmediateNotifier has been shut down")
            return self._executor.submit(self._process_safely, job_id)

    def _process_safely(self, job_id: str) -> Optional[JobCreatedResult]:
        try:
            return self.process_job_created(job_id)
        except Exception as e:
            self.logger.error(
                f"Unexpected error processing job {job_id}: {e}",
                exc_info=True,
                extra={"event": "immediate.job.failed", "job_id": job_id},
            )
            return None

    def process_job_created(self, job_id: str) -> JobCreatedResult:
        """
        Notify subscribers and immediate-alert owners about one job.

        Args:
            job_id: Id of the created job

        Returns:
            JobCreatedResult with per-scan counters

        Raises:
            PersistenceError: If the job or its company cannot be loaded
        """
        result = JobCreatedResult(job_id=job_id)

        with log_context(job_id=job_id):
            with get_session() as session:
                job = JobRepository(session).get_by_id(job_id)
                company = (
                    CompanyRepository(session).get_by_id(job.company_id) if job else None
                )

            if job is None:
                return self._skip(result, "job_not_found")
            if not job.is_candidate:
                return self._skip(result, "job_inactive")
            if company is None:
                return self._skip(result, "company_not_found")

            self.logger.info(
                f"Processing new job: {job.title} at {company.name}",
                extra={"event": "immediate.job.started", "company_id": company.id},
            )

            try:
                self._notify_subscribers(job, company, result)
            except Exception as e:
                result.subscription_errors += 1
                self.logger.error(
                    f"Subscription scan failed for job {job_id}: {e}",
                    exc_info=True,
                    extra={"event": "immediate.subscriptions.failed"},
                )

            try:
                self._check_immediate_alerts(job, company, result)
            except Exception as e:
                result.alert_errors += 1
                self.logger.error(
                    f"Immediate alert scan failed for job {job_id}: {e}",
                    exc_info=True,
                    extra={"event": "immediate.alerts.failed"},
                )

            self.logger.info(
                f"Job {job_id} processed: {result.subscriptions_notified} subscription "
                f"and {result.alerts_notified} alert notifications sent, {result.errors} errors",
                extra={
                    "event": "immediate.job.completed",
                    "subscriptions_notified": result.subscriptions_notified,
                    "alerts_notified": result.alerts_notified,
                    "errors": result.errors,
                },
            )

        return result

    def _skip(self, result: JobCreatedResult, reason: str) -> JobCreatedResult:
        result.skipped = True
        result.skip_reason = reason
        self.logger.info(
            f"Job {result.job_id} skipped: {reason}",
            extra={"event": "immediate.job.skipped", "reason": reason},
        )
        return result

    def _notify_subscribers(
        self, job: JobCandidate, company: Company, result: JobCreatedResult
    ) -> None:
        with get_session() as session:
            subscriptions = SubscriptionRepository(session).list_active_subscriptions(company.id)

        result.subscriptions_checked = len(subscriptions)

        for subscription in subscriptions:
            if not subscription_matches(subscription, job):
                continue
            if not subscription.notification_preferences.email:
                continue

            with log_context(subscription_id=subscription.id, user_id=subscription.user_id):
                try:
                    recipient = self._load_recipient(subscription.user_id)
                    record = self.notification_service.send_company_job_notification(
                        recipient, job, company, subscription
                    )
                    if record.success:
                        with get_session() as session:
                            SubscriptionRepository(session).record_notification(
                                subscription.id, self.clock()
                            )
                        result.subscriptions_notified += 1
                        self.logger.info(
                            f"Subscriber notified about job {job.id}",
                            extra={"event": "immediate.subscription.sent"},
                        )
                    else:
                        result.subscription_errors += 1
                        self.logger.warning(
                            f"Subscriber notification not delivered: {record.error}",
                            extra={"event": "immediate.subscription.dispatch_failed"},
                        )
                    self._pause()
                except Exception as e:
                    result.subscription_errors += 1
                    self.logger.error(
                        f"Error notifying subscriber {subscription.user_id}: {e}",
                        exc_info=True,
                        extra={"event": "immediate.subscription.failed"},
                    )

    def _check_immediate_alerts(
        self, job: JobCandidate, company: Company, result: JobCreatedResult
    ) -> None:
        invalid_alert_ids: List[str] = []
        with get_session() as session:
            alerts = AlertRepository(session).list_active_alerts(
                NotificationFrequency.IMMEDIATE, skipped=invalid_alert_ids
            )

        result.alerts_checked = len(alerts)
        if invalid_alert_ids:
            result.alert_errors += len(invalid_alert_ids)
            self.logger.error(
                f"Skipped {len(invalid_alert_ids)} malformed immediate alerts",
                extra={"event": "immediate.alerts.invalid", "alert_ids": invalid_alert_ids},
            )

        for alert in alerts:
            with log_context(alert_id=alert.id, user_id=alert.user_id):
                try:
                    if not self.match_engine.find_matches(alert, [job]):
                        continue
                    if not alert.notification_preferences.email:
                        continue

                    recipient = self._load_recipient(alert.user_id)
                    record = self.notification_service.send_custom_alert_notification(
                        recipient, job, company, alert
                    )
                    if record.success:
                        now = self.clock()
                        with get_session() as session:
                            AlertRepository(session).record_check(
                                alert.id, checked_at=now, notified_at=now, matched_count=1
                            )
                        result.alerts_notified += 1
                        self.logger.info(
                            f"Alert owner notified about job {job.id}",
                            extra={"event": "immediate.alert.sent"},
                        )
                    else:
                        result.alert_errors += 1
                        self.logger.warning(
                            f"Alert notification not delivered: {record.error}",
                            extra={"event": "immediate.alert.dispatch_failed"},
                        )
                    self._pause()
                except Exception as e:
                    result.alert_errors += 1
                    self.logger.error(
                        f"Error processing immediate alert {alert.id}: {e}",
                        exc_info=True,
                        extra={"event": "immediate.alert.failed"},
                    )

    def _load_recipient(self, user_id: str) -> Recipient:
        with get_session() as session:
            recipient = UserRepository(session).get_by_id(user_id)
        if recipient is None or recipient.is_deleted:
            raise RecordNotFoundError(
                f"User {user_id} not found", record_type="user", record_id=user_id
            )
        return recipient

    def _pause(self) -> None:
        if self.dispatch_delay_seconds > 0:
            self.sleep(self.dispatch_delay_seconds)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and optionally wait for queued work to finish."""
        with self._shutdown_lock:
            self._is_shutdown = True
        self._executor.shutdown(wait=wait)
        self.logger.info(
            "Immediate notifier shut down", extra={"event": "immediate.shutdown"}
        )
