"""Owner-facing management of job alerts and company subscriptions."""

from .alerts import AlertTestResult, JobAlertService, Page
from .schemas import (
    JobAlertCreate,
    JobAlertUpdate,
    LocationInput,
    NotificationPreferencesInput,
    SalaryRangeInput,
    SubscriptionCreate,
    SubscriptionUpdate,
)
from .subscriptions import SubscriptionService

__all__ = [
    "JobAlertService",
    "SubscriptionService",
    "Page",
    "AlertTestResult",
    "JobAlertCreate",
    "JobAlertUpdate",
    "SubscriptionCreate",
    "SubscriptionUpdate",
    "LocationInput",
    "SalaryRangeInput",
    "NotificationPreferencesInput",
]
