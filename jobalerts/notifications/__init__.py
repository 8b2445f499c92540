"""Notification rendering and delivery for job alerts and subscriptions.

- NotificationService: payload -> render -> dispatch -> NotificationRecord
- NotificationDispatcher / EmailDispatcher: delivery with retry and backoff
- TemplateRenderer: Jinja2 templates for the three notification kinds
- SMTPClient: SMTP wrapper with TLS/SSL support and a socket timeout
"""

from .dispatcher import EmailDispatcher, NotificationDispatcher
from .models import (
    DispatchResult,
    NotificationError,
    NotificationTemplateError,
    RenderedEmail,
    SMTPDeliveryError,
)
from .payloads import (
    NotificationPayload,
    build_batch_digest_payload,
    build_company_job_payload,
    build_custom_alert_payload,
)
from .service import NotificationService
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import (
    BATCH_JOB_ALERT,
    COMPANY_JOB_ALERT,
    CUSTOM_JOB_ALERT,
    TemplateRenderer,
)

__all__ = [
    # Main service
    "NotificationService",
    # Delivery
    "NotificationDispatcher",
    "EmailDispatcher",
    "DispatchResult",
    "SMTPClient",
    # Rendering
    "TemplateRenderer",
    "RenderedEmail",
    "NotificationPayload",
    "COMPANY_JOB_ALERT",
    "CUSTOM_JOB_ALERT",
    "BATCH_JOB_ALERT",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    # Utilities
    "build_company_job_payload",
    "build_custom_alert_payload",
    "build_batch_digest_payload",
    "build_sender_address",
    "normalize_recipient",
]
