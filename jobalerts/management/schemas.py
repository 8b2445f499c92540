"""Validated input for creating and editing alerts and subscriptions.

Management input is validated before it reaches persistence; a bad request
raises pydantic's ValidationError listing every offending field.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobalerts.domain.models import (
    ExperienceLevel,
    JobType,
    LocationType,
    NotificationFrequency,
)

ALERT_NAME_MAX_LENGTH = 100


def _clean_terms(values: Optional[List[str]]) -> Optional[List[str]]:
    """Strip terms and drop blank ones."""
    if values is None:
        return None
    return [value.strip() for value in values if value and value.strip()]


def _check_company_ids(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    for value in values:
        if not value or not value.strip():
            raise ValueError("Company ids must be non-empty strings")
    return [value.strip() for value in values]


class LocationInput(BaseModel):
    type: LocationType = LocationType.ANY
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    radius: float = Field(50, ge=0)

    model_config = {"use_enum_values": True, "validate_default": True, "extra": "forbid"}


class SalaryRangeInput(BaseModel):
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)
    currency: str = "USD"

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def check_bounds(self) -> "SalaryRangeInput":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Minimum salary cannot exceed maximum salary")
        return self


class NotificationPreferencesInput(BaseModel):
    """Channel preferences; unset channels keep their current value on update."""

    email: Optional[bool] = None
    push: Optional[bool] = None
    sms: Optional[bool] = None

    model_config = {"extra": "forbid"}


class _AlertFields(BaseModel):
    """Validators shared by alert creation and update."""

    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Alert name is required")
        if len(v) > ALERT_NAME_MAX_LENGTH:
            raise ValueError(f"Alert name cannot exceed {ALERT_NAME_MAX_LENGTH} characters")
        return v

    @field_validator("keywords", "skills", "industries", check_fields=False)
    @classmethod
    def clean_terms(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_terms(v)

    @field_validator("companies", "exclude_companies", check_fields=False)
    @classmethod
    def validate_company_ids(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_company_ids(v)


class JobAlertCreate(_AlertFields):
    """Fields an owner supplies when creating an alert."""

    name: str
    keywords: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    location: LocationInput = Field(default_factory=LocationInput)
    job_types: List[JobType] = Field(default_factory=list)
    experience_levels: List[ExperienceLevel] = Field(default_factory=list)
    salary_range: SalaryRangeInput = Field(default_factory=SalaryRangeInput)
    industries: List[str] = Field(default_factory=list)
    companies: List[str] = Field(default_factory=list)
    exclude_companies: List[str] = Field(default_factory=list)
    notification_frequency: NotificationFrequency = NotificationFrequency.DAILY
    notification_preferences: NotificationPreferencesInput = Field(
        default_factory=NotificationPreferencesInput
    )

    model_config = {"use_enum_values": True, "validate_default": True, "extra": "forbid"}


class JobAlertUpdate(_AlertFields):
    """Partial alert edit; only fields that are set are applied."""

    name: Optional[str] = None
    keywords: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    location: Optional[LocationInput] = None
    job_types: Optional[List[JobType]] = None
    experience_levels: Optional[List[ExperienceLevel]] = None
    salary_range: Optional[SalaryRangeInput] = None
    industries: Optional[List[str]] = None
    companies: Optional[List[str]] = None
    exclude_companies: Optional[List[str]] = None
    is_active: Optional[bool] = None
    notification_frequency: Optional[NotificationFrequency] = None
    notification_preferences: Optional[NotificationPreferencesInput] = None

    model_config = {"use_enum_values": True, "extra": "forbid"}


class SubscriptionCreate(BaseModel):
    """Follow a company, optionally narrowed to job types and levels."""

    company_id: str = Field(..., min_length=1)
    job_types: List[JobType] = Field(default_factory=list)
    experience_levels: List[ExperienceLevel] = Field(default_factory=list)
    notification_preferences: NotificationPreferencesInput = Field(
        default_factory=NotificationPreferencesInput
    )

    model_config = {"use_enum_values": True, "validate_default": True, "extra": "forbid"}

    @field_validator("company_id")
    @classmethod
    def strip_company_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company id is required")
        return v


class SubscriptionUpdate(BaseModel):
    job_types: Optional[List[JobType]] = None
    experience_levels: Optional[List[ExperienceLevel]] = None
    notification_preferences: Optional[NotificationPreferencesInput] = None
    is_active: Optional[bool] = None

    model_config = {"use_enum_values": True, "extra": "forbid"}
