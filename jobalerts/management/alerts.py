"""Owner-scoped management of job alerts.

Every lookup filters by the owning user, so an alert belonging to someone
else is reported exactly like a missing one (RecordNotFoundError).
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from jobalerts.domain.models import JobAlert, JobCandidate, NotificationPreferences
from jobalerts.logging import get_logger
from jobalerts.matching.engine import AlertMatchEngine
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import RecordNotFoundError
from jobalerts.persistence.repositories import AlertRepository, JobRepository, UserRepository
from jobalerts.utils.timestamps import utc_now

from .schemas import JobAlertCreate, JobAlertUpdate, NotificationPreferencesInput

logger = get_logger(__name__, component="management")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_TEST_WINDOW_SECONDS = 30 * 24 * 3600

T = TypeVar("T")


def normalize_paging(page: int, limit: int) -> tuple:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


@dataclass
class Page(Generic[T]):
    """One page of a listing."""

    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class AlertTestResult:
    """Preview of what an alert would match among recent jobs."""

    alert_id: str
    window_start: datetime
    total_recent_jobs: int
    matching_count: int
    page: int
    limit: int
    jobs: List[JobCandidate] = field(default_factory=list)

    @property
    def pages(self) -> int:
        return math.ceil(self.matching_count / self.limit) if self.limit else 0


def merge_preferences(
    current: NotificationPreferences, changes: Optional[NotificationPreferencesInput]
) -> NotificationPreferences:
    """Apply the channels set in ``changes`` on top of ``current``."""
    if changes is None:
        return current
    merged = current.model_dump()
    merged.update(changes.model_dump(exclude_none=True))
    return NotificationPreferences(**merged)


class JobAlertService:
    """Create, list, edit, toggle, delete and preview a user's job alerts."""

    def __init__(
        self,
        match_engine: Optional[AlertMatchEngine] = None,
        test_window_seconds: int = DEFAULT_TEST_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """
        Args:
            match_engine: Engine used by test_alert (a default one if None)
            test_window_seconds: How far back test_alert looks for jobs
            clock: Source of the current UTC time
            logger_instance: Logger (module logger if None)
        """
        self.match_engine = match_engine or AlertMatchEngine()
        self.test_window_seconds = test_window_seconds
        self.clock = clock
        self.logger = logger_instance or logger

    def create_alert(self, user_id: str, data: JobAlertCreate) -> JobAlert:
        """
        Create an alert owned by ``user_id``.

        Raises:
            RecordNotFoundError: If the user does not exist
            PersistenceError: If the alert cannot be stored
        """
        now = self.clock()
        fields = data.model_dump(exclude={"notification_preferences"})
        alert = JobAlert(
            user_id=user_id,
            notification_preferences=merge_preferences(
                NotificationPreferences(), data.notification_preferences
            ),
            created_at=now,
            updated_at=now,
            **fields,
        )

        with get_session() as session:
            owner = UserRepository(session).get_by_id(user_id)
            if owner is None or owner.is_deleted:
                raise RecordNotFoundError(
                    f"User {user_id} not found", record_type="user", record_id=user_id
                )
            created = AlertRepository(session).add(alert)

        self.logger.info(
            f"Job alert '{created.name}' created",
            extra={"event": "alert.created", "alert_id": created.id, "user_id": user_id},
        )
        return created

    def list_alerts(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        is_active: Optional[bool] = None,
    ) -> Page[JobAlert]:
        """List a user's alerts, newest first."""
        page, limit = normalize_paging(page, limit)
        with get_session() as session:
            repo = AlertRepository(session)
            items = repo.list_for_user(
                user_id, offset=(page - 1) * limit, limit=limit, is_active=is_active
            )
            total = repo.count_for_user(user_id, is_active=is_active)
        return Page(items=items, total=total, page=page, limit=limit)

    def get_alert(self, user_id: str, alert_id: str) -> JobAlert:
        with get_session() as session:
            alert = AlertRepository(session).get_for_user(user_id, alert_id)
        if alert is None:
            raise _alert_not_found(alert_id)
        return alert

    def update_alert(self, user_id: str, alert_id: str, data: JobAlertUpdate) -> JobAlert:
        """
        Apply a partial edit; ownership and bookkeeping fields never change.

        Raises:
            RecordNotFoundError: If the user has no such alert
            pydantic.ValidationError: If the merged alert is invalid
        """
        changes: Dict[str, Any] = data.model_dump(
            exclude_unset=True, exclude_none=True, exclude={"notification_preferences"}
        )

        with get_session() as session:
            repo = AlertRepository(session)
            alert = repo.get_for_user(user_id, alert_id)
            if alert is None:
                raise _alert_not_found(alert_id)

            merged = alert.model_dump()
            merged.update(changes)
            merged["notification_preferences"] = merge_preferences(
                alert.notification_preferences, data.notification_preferences
            )
            merged["updated_at"] = self.clock()
            updated = repo.save(JobAlert.model_validate(merged))

        self.logger.info(
            f"Job alert {alert_id} updated",
            extra={
                "event": "alert.updated",
                "alert_id": alert_id,
                "user_id": user_id,
                "fields": sorted(data.model_fields_set),
            },
        )
        return updated

    def delete_alert(self, user_id: str, alert_id: str) -> None:
        with get_session() as session:
            deleted = AlertRepository(session).delete_for_user(user_id, alert_id)
        if not deleted:
            raise _alert_not_found(alert_id)
        self.logger.info(
            f"Job alert {alert_id} deleted",
            extra={"event": "alert.deleted", "alert_id": alert_id, "user_id": user_id},
        )

    def toggle_alert(self, user_id: str, alert_id: str) -> JobAlert:
        """Flip the alert's active flag and return the updated alert."""
        with get_session() as session:
            repo = AlertRepository(session)
            alert = repo.get_for_user(user_id, alert_id)
            if alert is None:
                raise _alert_not_found(alert_id)
            alert.is_active = not alert.is_active
            alert.updated_at = self.clock()
            updated = repo.save(alert)

        self.logger.info(
            f"Job alert {alert_id} {'activated' if updated.is_active else 'deactivated'}",
            extra={
                "event": "alert.toggled",
                "alert_id": alert_id,
                "user_id": user_id,
                "is_active": updated.is_active,
            },
        )
        return updated

    def test_alert(
        self,
        user_id: str,
        alert_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> AlertTestResult:
        """
        Match an alert against recent jobs without sending or recording anything.

        Works on inactive alerts too, so owners can try criteria before
        switching them on.

        Raises:
            RecordNotFoundError: If the user has no such alert
        """
        page, limit = normalize_paging(page, limit)
        window_start = self.clock() - timedelta(seconds=self.test_window_seconds)

        with get_session() as session:
            alert = AlertRepository(session).get_for_user(user_id, alert_id)
            if alert is None:
                raise _alert_not_found(alert_id)
            recent_jobs = JobRepository(session).list_active_jobs(window_start)

        matches = self.match_engine.find_matches(alert, recent_jobs)
        offset = (page - 1) * limit

        self.logger.debug(
            f"Tested alert {alert_id}: {len(matches)} of {len(recent_jobs)} recent jobs match",
            extra={"event": "alert.tested", "alert_id": alert_id, "user_id": user_id},
        )
        return AlertTestResult(
            alert_id=alert_id,
            window_start=window_start,
            total_recent_jobs=len(recent_jobs),
            matching_count=len(matches),
            page=page,
            limit=limit,
            jobs=matches[offset : offset + limit],
        )


def _alert_not_found(alert_id: str) -> RecordNotFoundError:
    return RecordNotFoundError(
        f"Job alert {alert_id} not found", record_type="job_alert", record_id=alert_id
    )
