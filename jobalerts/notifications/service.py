"""Notification service for job alert and subscription emails.

NotificationService turns domain events into delivered messages:
build payload, render templates, hand to the dispatcher and report the
outcome as a NotificationRecord. It never raises for delivery or rendering
problems; callers inspect ``record.success``.
"""

import logging
from typing import Mapping, Optional, Sequence

from jobalerts.domain.models import (
    Company,
    JobAlert,
    JobCandidate,
    NotificationRecord,
    Recipient,
    Subscription,
)
from jobalerts.logging import get_logger

from .dispatcher import NotificationDispatcher
from .models import NotificationTemplateError
from .payloads import (
    NotificationPayload,
    build_batch_digest_payload,
    build_company_job_payload,
    build_custom_alert_payload,
)
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")


class NotificationService:
    """Renders and dispatches the three kinds of notification emails."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        frontend_url: str,
        template_renderer: Optional[TemplateRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.dispatcher = dispatcher
        self.frontend_url = frontend_url.rstrip("/")
        self.template_renderer = template_renderer or TemplateRenderer()
        self.logger = logger_instance or logger

    def notify(self, payload: NotificationPayload) -> NotificationRecord:
        """Render a payload and dispatch it to its recipient.

        Returns:
            NotificationRecord with success flag, attempts and error
        """
        recipient_email = payload.recipient.email

        try:
            rendered = self.template_renderer.render(payload.template_id, payload.variables)
        except NotificationTemplateError as e:
            self.logger.error(
                f"Not sending {payload.template_id} to {recipient_email}: {e}",
                extra={"event": "notification.render.failed", "template_id": payload.template_id},
            )
            return NotificationRecord(
                recipient=recipient_email,
                template_id=payload.template_id,
                job_ids=payload.job_ids,
                success=False,
                error=str(e),
            )

        result = self.dispatcher.send(
            recipient_email, rendered.subject, rendered.html_body, rendered.text_body
        )

        return NotificationRecord(
            recipient=recipient_email,
            template_id=payload.template_id,
            job_ids=payload.job_ids,
            success=result.success,
            attempts=result.attempts,
            error=result.error,
        )

    def send_company_job_notification(
        self,
        recipient: Recipient,
        job: JobCandidate,
        company: Company,
        subscription: Subscription,
    ) -> NotificationRecord:
        """Tell a subscriber about a new posting from the company they follow."""
        return self.notify(
            build_company_job_payload(recipient, job, company, subscription.id, self.frontend_url)
        )

    def send_custom_alert_notification(
        self,
        recipient: Recipient,
        job: JobCandidate,
        company: Company,
        alert: JobAlert,
    ) -> NotificationRecord:
        """Tell an alert owner about one job matching an immediate alert."""
        return self.notify(
            build_custom_alert_payload(recipient, job, company, alert, self.frontend_url)
        )

    def send_batch_digest(
        self,
        recipient: Recipient,
        jobs: Sequence[JobCandidate],
        company_names: Mapping[str, str],
        alert: JobAlert,
        frequency: str,
    ) -> NotificationRecord:
        """Send one digest listing every job an alert matched in a batch run."""
        return self.notify(
            build_batch_digest_payload(
                recipient, jobs, company_names, alert, frequency, self.frontend_url
            )
        )
