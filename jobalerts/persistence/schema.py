"""Database schema definition and ORM models.

ORM models for users, companies, jobs, job alerts and subscriptions, with
conversion methods to and from the domain models. List and nested criteria
are stored as JSON columns; timestamps as fixed-width ISO 8601 UTC strings so
that string comparison orders them chronologically.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Column, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from jobalerts.domain.models import Company, JobAlert, JobCandidate, Recipient, Subscription

logger = logging.getLogger(__name__)

Base = declarative_base()

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# Columns an owner edit may change. last_checked, last_notification_sent and
# the counters are written only by the delivery runs.
ALERT_OWNER_COLUMNS = (
    "name",
    "keywords",
    "skills",
    "location",
    "job_types",
    "experience_levels",
    "salary_range",
    "industries",
    "companies",
    "exclude_companies",
    "is_active",
    "notification_frequency",
    "notification_preferences",
    "updated_at",
)
SUBSCRIPTION_OWNER_COLUMNS = (
    "is_active",
    "notification_preferences",
    "job_types",
    "experience_levels",
    "updated_at",
)


class UserModel(Base):
    """ORM model for users table (read view used for notifications)."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=False)
    first_name = Column(String(255), nullable=False, default="")
    is_deleted = Column(Boolean, nullable=False, default=False)

    def to_domain(self) -> Recipient:
        return Recipient(
            id=self.id,
            email=self.email,
            first_name=self.first_name or "",
            is_deleted=bool(self.is_deleted),
        )

    @classmethod
    def from_domain(cls, recipient: Recipient) -> "UserModel":
        return cls(
            id=recipient.id,
            email=recipient.email,
            first_name=recipient.first_name,
            is_deleted=recipient.is_deleted,
        )


class CompanyModel(Base):
    """ORM model for companies table."""

    __tablename__ = "companies"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="active")
    is_deleted = Column(Boolean, nullable=False, default=False)

    def to_domain(self) -> Company:
        return Company(
            id=self.id,
            name=self.name,
            industry=self.industry,
            status=self.status,
            is_deleted=bool(self.is_deleted),
        )

    @classmethod
    def from_domain(cls, company: Company) -> "CompanyModel":
        return cls(
            id=company.id,
            name=company.name,
            industry=company.industry,
            status=company.status,
            is_deleted=company.is_deleted,
        )


class JobModel(Base):
    """ORM model for jobs table.

    Only the fields matching and notifications need are stored.
    """

    __tablename__ = "jobs"

    id = Column(String(64), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    company_id = Column(String(64), nullable=False)

    location_type = Column(String(16), nullable=False)
    location_city = Column(String(255), nullable=True)
    location_state = Column(String(255), nullable=True)
    location_country = Column(String(255), nullable=True)

    job_type = Column(String(32), nullable=False)
    experience_level = Column(String(32), nullable=False)

    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(8), nullable=False, default="USD")
    salary_period = Column(String(16), nullable=False, default="yearly")

    skills = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(32), nullable=False)

    __table_args__ = (
        Index("idx_jobs_created_at", "created_at"),
        Index("idx_jobs_company", "company_id"),
    )

    def to_domain(self) -> JobCandidate:
        return JobCandidate(
            id=self.id,
            title=self.title,
            description=self.description or "",
            company_id=self.company_id,
            location={
                "type": self.location_type,
                "city": self.location_city,
                "state": self.location_state,
                "country": self.location_country,
            },
            job_type=self.job_type,
            experience_level=self.experience_level,
            salary={
                "min": self.salary_min,
                "max": self.salary_max,
                "currency": self.salary_currency,
                "period": self.salary_period,
            },
            requirements={"skills": list(self.skills or [])},
            is_active=bool(self.is_active),
            is_deleted=bool(self.is_deleted),
            created_at=from_db_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, job: JobCandidate) -> "JobModel":
        return cls(
            id=job.id,
            title=job.title,
            description=job.description,
            company_id=job.company_id,
            location_type=job.location.type,
            location_city=job.location.city,
            location_state=job.location.state,
            location_country=job.location.country,
            job_type=job.job_type,
            experience_level=job.experience_level,
            salary_min=job.salary.min,
            salary_max=job.salary.max,
            salary_currency=job.salary.currency,
            salary_period=job.salary.period,
            skills=list(job.requirements.skills),
            is_active=job.is_active,
            is_deleted=job.is_deleted,
            created_at=to_db_timestamp(job.created_at),
        )


class JobAlertModel(Base):
    """ORM model for job_alerts table."""

    __tablename__ = "job_alerts"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False)
    name = Column(String(100), nullable=False)

    # Criteria
    keywords = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    location = Column(JSON, nullable=False, default=dict)
    job_types = Column(JSON, nullable=False, default=list)
    experience_levels = Column(JSON, nullable=False, default=list)
    salary_range = Column(JSON, nullable=False, default=dict)
    industries = Column(JSON, nullable=False, default=list)
    companies = Column(JSON, nullable=False, default=list)
    exclude_companies = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    notification_frequency = Column(String(16), nullable=False, default="daily")
    notification_preferences = Column(JSON, nullable=False, default=dict)

    # Bookkeeping
    last_checked = Column(String(32), nullable=True)
    last_notification_sent = Column(String(32), nullable=True)
    total_matches = Column(Integer, nullable=False, default=0)

    created_at = Column(String(32), nullable=False)
    updated_at = Column(String(32), nullable=False)

    __table_args__ = (
        Index("idx_job_alerts_user", "user_id"),
        Index("idx_job_alerts_tier", "is_active", "notification_frequency"),
    )

    def to_domain(self) -> JobAlert:
        return JobAlert(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            keywords=self.keywords or [],
            skills=self.skills or [],
            location=self.location or {},
            job_types=self.job_types or [],
            experience_levels=self.experience_levels or [],
            salary_range=self.salary_range or {},
            industries=self.industries or [],
            companies=self.companies or [],
            exclude_companies=self.exclude_companies or [],
            is_active=bool(self.is_active),
            notification_frequency=self.notification_frequency,
            notification_preferences=self.notification_preferences or {},
            last_checked=from_db_timestamp(self.last_checked),
            last_notification_sent=from_db_timestamp(self.last_notification_sent),
            total_matches=self.total_matches or 0,
            created_at=from_db_timestamp(self.created_at),
            updated_at=from_db_timestamp(self.updated_at),
        )

    @classmethod
    def from_domain(cls, alert: JobAlert) -> "JobAlertModel":
        return cls(id=alert.id, **_alert_columns(alert))

    def update_from_domain(self, alert: JobAlert) -> None:
        """Apply an owner edit. Bookkeeping and ownership columns are not touched."""
        columns = _alert_columns(alert)
        for key in ALERT_OWNER_COLUMNS:
            setattr(self, key, columns[key])


class SubscriptionModel(Base):
    """ORM model for subscriptions table.

    The unique constraint on (user_id, company_id) is what makes duplicate
    subscriptions impossible, including under concurrent subscribes.
    """

    __tablename__ = "subscriptions"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False)
    company_id = Column(String(64), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    notification_preferences = Column(JSON, nullable=False, default=dict)
    job_types = Column(JSON, nullable=False, default=list)
    experience_levels = Column(JSON, nullable=False, default=list)
    last_notification_sent = Column(String(32), nullable=True)
    total_notifications_sent = Column(Integer, nullable=False, default=0)
    created_at = Column(String(32), nullable=False)
    updated_at = Column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_subscriptions_user_company"),
        Index("idx_subscriptions_company", "company_id", "is_active"),
    )

    def to_domain(self) -> Subscription:
        return Subscription(
            id=self.id,
            user_id=self.user_id,
            company_id=self.company_id,
            is_active=bool(self.is_active),
            notification_preferences=self.notification_preferences or {},
            job_types=self.job_types or [],
            experience_levels=self.experience_levels or [],
            last_notification_sent=from_db_timestamp(self.last_notification_sent),
            total_notifications_sent=self.total_notifications_sent or 0,
            created_at=from_db_timestamp(self.created_at),
            updated_at=from_db_timestamp(self.updated_at),
        )

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionModel":
        return cls(id=subscription.id, **_subscription_columns(subscription))

    def update_from_domain(self, subscription: Subscription) -> None:
        """Apply an owner edit. Bookkeeping and ownership columns are not touched."""
        columns = _subscription_columns(subscription)
        for key in SUBSCRIPTION_OWNER_COLUMNS:
            setattr(self, key, columns[key])


def _alert_columns(alert: JobAlert) -> Dict[str, Any]:
    data = alert.model_dump(mode="json")
    return {
        "user_id": alert.user_id,
        "name": alert.name,
        "keywords": data["keywords"],
        "skills": data["skills"],
        "location": data["location"],
        "job_types": data["job_types"],
        "experience_levels": data["experience_levels"],
        "salary_range": data["salary_range"],
        "industries": data["industries"],
        "companies": data["companies"],
        "exclude_companies": data["exclude_companies"],
        "is_active": alert.is_active,
        "notification_frequency": data["notification_frequency"],
        "notification_preferences": data["notification_preferences"],
        "last_checked": to_db_timestamp(alert.last_checked),
        "last_notification_sent": to_db_timestamp(alert.last_notification_sent),
        "total_matches": alert.total_matches,
        "created_at": to_db_timestamp(alert.created_at),
        "updated_at": to_db_timestamp(alert.updated_at),
    }


def _subscription_columns(subscription: Subscription) -> Dict[str, Any]:
    data = subscription.model_dump(mode="json")
    return {
        "user_id": subscription.user_id,
        "company_id": subscription.company_id,
        "is_active": subscription.is_active,
        "notification_preferences": data["notification_preferences"],
        "job_types": data["job_types"],
        "experience_levels": data["experience_levels"],
        "last_notification_sent": to_db_timestamp(subscription.last_notification_sent),
        "total_notifications_sent": subscription.total_notifications_sent,
        "created_at": to_db_timestamp(subscription.created_at),
        "updated_at": to_db_timestamp(subscription.updated_at),
    }


def to_db_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as a fixed-width ISO 8601 UTC string for storage."""
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime(TIMESTAMP_FORMAT)


def from_db_timestamp(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not dt_str:
        return None

    dt_str = dt_str.rstrip("Z")
    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    Base.metadata.create_all(engine, checkfirst=True)
    logger.info(
        f"Database schema ready. Tables: {', '.join(sorted(Base.metadata.tables))}",
        extra={"event": "database.schema.ready"},
    )
