"""Core domain models for job alerts, subscriptions, and candidate jobs.

This module defines the data structures used throughout the application:
- JobAlert: user-defined rule matched against new job postings
- Subscription: standing interest in every new posting from one company
- JobCandidate: read view of a job posting used by matching
- Recipient / Company: read views of the users and companies a notification
  is about
- NotificationRecord: outcome of a single dispatch attempt (never persisted)
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from jobalerts.utils.timestamps import ensure_utc, utc_now


class LocationType(str, Enum):
    """Work arrangement of a job; ANY is only valid on alert criteria."""

    REMOTE = "remote"
    ON_SITE = "on-site"
    HYBRID = "hybrid"
    ANY = "any"


class JobType(str, Enum):
    """Employment type of a job posting."""

    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    TEMPORARY = "temporary"


class ExperienceLevel(str, Enum):
    """Seniority of a job posting."""

    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    EXECUTIVE = "executive"


class NotificationFrequency(str, Enum):
    """Delivery tier of an alert."""

    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


BATCH_FREQUENCIES = (
    NotificationFrequency.DAILY,
    NotificationFrequency.WEEKLY,
    NotificationFrequency.MONTHLY,
)


def new_id() -> str:
    """Generate a new opaque document identifier."""
    return uuid4().hex


class NotificationPreferences(BaseModel):
    """Channels a user wants to be notified on."""

    email: bool = True
    push: bool = True
    sms: bool = False


class LocationFilter(BaseModel):
    """Location criteria of an alert.

    Only ``type`` is evaluated by matching; city, state, country and radius
    are stored for display.
    """

    type: LocationType = LocationType.ANY
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    radius: float = 50

    model_config = {"use_enum_values": True, "validate_default": True}


class SalaryRange(BaseModel):
    """Salary criteria of an alert."""

    min: Optional[float] = None
    max: Optional[float] = None
    currency: str = "USD"


class JobAlert(BaseModel):
    """User-defined rule matching future job postings against saved criteria.

    The owning user edits the criteria, the active flag and preferences; the
    system only ever writes the bookkeeping fields (last_checked,
    last_notification_sent, total_matches).
    """

    id: str = Field(default_factory=new_id, description="Alert identifier")
    user_id: str = Field(..., description="Owning user")
    name: str = Field(..., min_length=1, max_length=100, description="Human-readable name")
    keywords: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    location: LocationFilter = Field(default_factory=LocationFilter)
    job_types: List[JobType] = Field(default_factory=list)
    experience_levels: List[ExperienceLevel] = Field(default_factory=list)
    salary_range: SalaryRange = Field(default_factory=SalaryRange)
    industries: List[str] = Field(default_factory=list)
    companies: List[str] = Field(default_factory=list, description="Company allow-list")
    exclude_companies: List[str] = Field(default_factory=list, description="Company deny-list")
    is_active: bool = True
    notification_frequency: NotificationFrequency = NotificationFrequency.DAILY
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    last_checked: Optional[datetime] = None
    last_notification_sent: Optional[datetime] = None
    total_matches: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("last_checked", "last_notification_sent", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    model_config = {"use_enum_values": True, "validate_default": True}


class Subscription(BaseModel):
    """A user's standing interest in all new postings from one company."""

    id: str = Field(default_factory=new_id)
    user_id: str
    company_id: str
    is_active: bool = True
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    job_types: List[JobType] = Field(default_factory=list)
    experience_levels: List[ExperienceLevel] = Field(default_factory=list)
    last_notification_sent: Optional[datetime] = None
    total_notifications_sent: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("last_notification_sent", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    model_config = {"use_enum_values": True, "validate_default": True}


class JobLocation(BaseModel):
    type: LocationType
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    model_config = {"use_enum_values": True, "validate_default": True}


class JobSalary(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: str = "USD"
    period: str = "yearly"


class JobRequirements(BaseModel):
    skills: List[str] = Field(default_factory=list)


class JobCandidate(BaseModel):
    """Read view of a job posting used by matching and notifications."""

    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    description: str = ""
    company_id: str
    location: JobLocation
    job_type: JobType
    experience_level: ExperienceLevel
    salary: JobSalary = Field(default_factory=JobSalary)
    requirements: JobRequirements = Field(default_factory=JobRequirements)
    is_active: bool = True
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def is_candidate(self) -> bool:
        """Only active, non-deleted jobs are eligible for matching."""
        return self.is_active and not self.is_deleted

    model_config = {"use_enum_values": True, "validate_default": True}


class Recipient(BaseModel):
    """The parts of a user account a notification needs."""

    id: str = Field(default_factory=new_id)
    email: str
    first_name: str = ""
    is_deleted: bool = False


class Company(BaseModel):
    """The parts of a company profile a notification needs."""

    id: str = Field(default_factory=new_id)
    name: str
    industry: Optional[str] = None
    status: str = "active"
    is_deleted: bool = False

    @property
    def accepts_subscriptions(self) -> bool:
        return self.status == "active" and not self.is_deleted


class NotificationRecord(BaseModel):
    """Outcome of one dispatch attempt; used to update counters only."""

    recipient: str
    template_id: str
    job_ids: List[str] = Field(default_factory=list)
    channel: str = "email"
    success: bool
    attempts: int = 0
    error: Optional[str] = None
