"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

_DAYS_OF_WEEK = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class TierSchedule(BaseModel):
    """Wall-clock time at which one batch tier runs.

    ``day_of_week`` is only used by the weekly tier and ``day`` only by the
    monthly tier.
    """

    enabled: bool = Field(True, description="Whether this tier is scheduled")
    hour: int = Field(9, ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)
    day_of_week: str = Field("mon", description="Weekly tier: mon..sun")
    day: int = Field(1, ge=1, le=28, description="Monthly tier: day of month")

    @field_validator("day_of_week")
    @classmethod
    def validate_day_of_week(cls, v: str) -> str:
        normalized = v.strip().lower()[:3]
        if normalized not in _DAYS_OF_WEEK:
            raise ValueError(
                f"Invalid day_of_week: '{v}'. Must be one of: {', '.join(_DAYS_OF_WEEK)}"
            )
        return normalized


class ScheduleConfig(BaseModel):
    """Cadence of the daily, weekly and monthly digest runs."""

    timezone: str = Field("UTC", description="IANA timezone for cron triggers")
    daily: TierSchedule = Field(default_factory=TierSchedule)
    weekly: TierSchedule = Field(default_factory=TierSchedule)
    monthly: TierSchedule = Field(default_factory=TierSchedule)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{v}'") from e
        return v

    def tiers(self) -> Dict[str, TierSchedule]:
        """Return the tier schedules keyed by frequency value."""
        return {"daily": self.daily, "weekly": self.weekly, "monthly": self.monthly}

    def enabled_tiers(self) -> Dict[str, TierSchedule]:
        return {name: tier for name, tier in self.tiers().items() if tier.enabled}


class NotificationsConfig(BaseModel):
    """Notification content and pacing settings."""

    frontend_url: str = Field(
        "http://localhost:3000", description="Base URL used for links in emails"
    )
    dispatch_delay_seconds: float = Field(
        0.1, ge=0, le=10, description="Pause after each dispatch to respect rate limits"
    )
    test_window: str = Field("30d", description="Look-back window for alert previews")
    immediate_workers: int = Field(
        2, ge=1, le=16, description="Worker threads for job-created notifications"
    )

    # Computed field
    test_window_seconds: Optional[int] = None

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("frontend_url must start with http:// or https://")
        return stripped

    @field_validator("test_window")
    @classmethod
    def validate_test_window(cls, v: str) -> str:
        try:
            seconds = parse_duration(v)
            validate_duration_range(
                seconds, min_seconds=3600, max_seconds=366 * 86400, label="Test window"
            )
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_test_window_seconds(self):
        self.test_window_seconds = parse_duration(self.test_window)
        return self


class EmailConfig(BaseModel):
    """Email notification settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        5, ge=0, le=60, description="Initial retry delay in seconds"
    )
    timeout_seconds: int = Field(
        30, ge=1, le=300, description="Socket timeout bounding a single dispatch"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the job alert service."""

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
