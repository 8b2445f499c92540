"""Domain models for the job alert service."""

from .models import (
    BATCH_FREQUENCIES,
    Company,
    ExperienceLevel,
    JobAlert,
    JobCandidate,
    JobLocation,
    JobRequirements,
    JobSalary,
    JobType,
    LocationFilter,
    LocationType,
    NotificationFrequency,
    NotificationPreferences,
    NotificationRecord,
    Recipient,
    SalaryRange,
    Subscription,
)

__all__ = [
    "JobAlert",
    "Subscription",
    "JobCandidate",
    "JobLocation",
    "JobSalary",
    "JobRequirements",
    "Recipient",
    "Company",
    "NotificationRecord",
    "NotificationPreferences",
    "LocationFilter",
    "SalaryRange",
    "LocationType",
    "JobType",
    "ExperienceLevel",
    "NotificationFrequency",
    "BATCH_FREQUENCIES",
]
