"""Payload resolution for notification templates.

Builds the template context for each notification kind from domain objects.
Links in the emails are derived from the configured frontend URL.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jobalerts.domain.models import Company, JobAlert, JobCandidate, Recipient
from jobalerts.utils.text import truncate_text
from jobalerts.utils.timestamps import utc_now

from .templates import BATCH_JOB_ALERT, COMPANY_JOB_ALERT, CUSTOM_JOB_ALERT

UNKNOWN_COMPANY = "Unknown company"


@dataclass
class NotificationPayload:
    """Everything needed to render and address one notification.

    Attributes:
        recipient: User the message goes to
        template_id: Template set used to render the message
        variables: Template context
        job_ids: Jobs the message is about
    """

    recipient: Recipient
    template_id: str
    variables: Dict[str, Any]
    job_ids: List[str] = field(default_factory=list)


def job_url(frontend_url: str, job_id: str) -> str:
    return f"{frontend_url}/jobs/{job_id}"


def build_job_context(
    job: JobCandidate, company_name: str, frontend_url: str
) -> Dict[str, Any]:
    """Flatten a job into the dictionary the templates iterate over."""
    return {
        "id": job.id,
        "title": job.title,
        "company_name": company_name,
        "location": job.location.model_dump(),
        "job_type": job.job_type,
        "experience_level": job.experience_level,
        "salary": job.salary.model_dump(),
        "description": truncate_text(job.description or "", max_length=300),
        "created_at": job.created_at,
        "url": job_url(frontend_url, job.id),
    }


def build_company_job_payload(
    recipient: Recipient,
    job: JobCandidate,
    company: Company,
    subscription_id: str,
    frontend_url: str,
) -> NotificationPayload:
    """Payload for a new posting from a company the user follows."""
    return NotificationPayload(
        recipient=recipient,
        template_id=COMPANY_JOB_ALERT,
        job_ids=[job.id],
        variables={
            "username": recipient.first_name,
            "company_name": company.name,
            "job": build_job_context(job, company.name, frontend_url),
            "settings_url": f"{frontend_url}/settings/subscriptions",
            "unsubscribe_url": f"{frontend_url}/subscriptions/{subscription_id}/unsubscribe",
        },
    )


def build_custom_alert_payload(
    recipient: Recipient,
    job: JobCandidate,
    company: Company,
    alert: JobAlert,
    frontend_url: str,
) -> NotificationPayload:
    """Payload for a single job matching an immediate alert."""
    return NotificationPayload(
        recipient=recipient,
        template_id=CUSTOM_JOB_ALERT,
        job_ids=[job.id],
        variables={
            "username": recipient.first_name,
            "alert_name": alert.name,
            "company_name": company.name,
            "job": build_job_context(job, company.name, frontend_url),
            "settings_url": f"{frontend_url}/settings/job-alerts",
            "edit_alert_url": f"{frontend_url}/job-alerts/{alert.id}/edit",
        },
    )


def build_batch_digest_payload(
    recipient: Recipient,
    jobs: Sequence[JobCandidate],
    company_names: Mapping[str, str],
    alert: JobAlert,
    frequency: str,
    frontend_url: str,
    current_date: Optional[datetime] = None,
) -> NotificationPayload:
    """Payload for a digest of every job matched by an alert in one run.

    Args:
        recipient: Alert owner
        jobs: Matched jobs in match order
        company_names: Company name by company id; unknown ids render as
            "Unknown company"
        alert: The alert that matched
        frequency: Tier name used in the subject line
        frontend_url: Base URL for links
        current_date: Date shown in the digest (defaults to now)
    """
    return NotificationPayload(
        recipient=recipient,
        template_id=BATCH_JOB_ALERT,
        job_ids=[job.id for job in jobs],
        variables={
            "username": recipient.first_name,
            "frequency": frequency,
            "job_count": len(jobs),
            "jobs": [
                build_job_context(
                    job, company_names.get(job.company_id, UNKNOWN_COMPANY), frontend_url
                )
                for job in jobs
            ],
            "alert_name": alert.name,
            "current_date": current_date or utc_now(),
            "frontend_url": frontend_url,
            "settings_url": f"{frontend_url}/settings/job-alerts",
            "edit_alert_url": f"{frontend_url}/job-alerts/{alert.id}/edit",
            "view_all_url": f"{frontend_url}/job-alerts/{alert.id}",
        },
    )
