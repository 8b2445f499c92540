"""Data access layer (repositories) for persistence operations.

Repositories encapsulate queries against one table each and return domain
models rather than ORM models. Every SQLAlchemy failure is re-raised as a
PersistenceError so callers never depend on the ORM's exception types.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobalerts.domain.models import Company, JobAlert, JobCandidate, Recipient, Subscription

from .exceptions import DataIntegrityError, DuplicateSubscriptionError, PersistenceError
from .schema import (
    CompanyModel,
    JobAlertModel,
    JobModel,
    SubscriptionModel,
    UserModel,
    to_db_timestamp,
)

logger = logging.getLogger(__name__)


def _convert_rows(models, kind: str, skipped: Optional[List[str]] = None) -> list:
    """Convert ORM rows to domain models, dropping rows that fail validation.

    Each dropped row is logged with its id and, when ``skipped`` is given,
    its id is appended there so callers can count it.
    """
    converted = []
    for model in models:
        try:
            converted.append(model.to_domain())
        except (ValidationError, ValueError) as e:
            logger.warning(
                f"Skipping malformed {kind} {model.id}: {e}",
                extra={"event": f"persistence.{kind}.invalid", "record_id": model.id},
            )
            if skipped is not None:
                skipped.append(model.id)
    return converted


class JobRepository:
    """Read access to job postings, plus inserts for seeding and tests."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, job_id: str) -> Optional[JobCandidate]:
        """Retrieve a job by id, including inactive and deleted ones.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            job_model = self.session.get(JobModel, job_id)
            return job_model.to_domain() if job_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

    def list_active_jobs(
        self, created_since: datetime, created_before: Optional[datetime] = None
    ) -> List[JobCandidate]:
        """Return active, non-deleted jobs created at or after a point in time.

        Rows that no longer validate as a JobCandidate are logged and left out.

        Args:
            created_since: Inclusive lower bound on created_at (UTC)
            created_before: Exclusive upper bound on created_at (UTC), if any

        Returns:
            Jobs ordered by created_at ascending

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(JobModel)
                .where(
                    JobModel.is_active.is_(True),
                    JobModel.is_deleted.is_(False),
                    JobModel.created_at >= to_db_timestamp(created_since),
                )
                .order_by(JobModel.created_at.asc(), JobModel.id.asc())
            )
            if created_before is not None:
                stmt = stmt.where(JobModel.created_at < to_db_timestamp(created_before))
            return _convert_rows(self.session.execute(stmt).scalars(), "job")
        except SQLAlchemyError as e:
            logger.error(f"Error listing jobs since {created_since}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list jobs: {e}") from e

    def add(self, job: JobCandidate) -> JobCandidate:
        """Insert a job posting.

        Raises:
            DataIntegrityError: If a job with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            job_model = JobModel.from_domain(job)
            self.session.add(job_model)
            self.session.flush()
            return job_model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to add job {job.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding job {job.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add job: {e}") from e


class AlertRepository:
    """Repository for job alerts.

    Batch and immediate runs only read alerts and write bookkeeping through
    record_check(); owner-scoped methods back the management service.
    """

    def __init__(self, session: Session):
        self.session = session

    def list_active_alerts(
        self, frequency: str, skipped: Optional[List[str]] = None
    ) -> List[JobAlert]:
        """Return active alerts of one delivery tier, oldest first.

        Args:
            frequency: Delivery tier
            skipped: Receives the ids of stored alerts that fail validation;
                those alerts are logged and left out of the result

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(JobAlertModel)
                .where(
                    JobAlertModel.is_active.is_(True),
                    JobAlertModel.notification_frequency == getattr(frequency, "value", frequency),
                )
                .order_by(JobAlertModel.created_at.asc(), JobAlertModel.id.asc())
            )
            return _convert_rows(self.session.execute(stmt).scalars(), "alert", skipped)
        except SQLAlchemyError as e:
            logger.error(f"Error listing {frequency} alerts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

    def get_by_id(self, alert_id: str) -> Optional[JobAlert]:
        try:
            model = self.session.get(JobAlertModel, alert_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def add(self, alert: JobAlert) -> JobAlert:
        """Insert a new alert.

        Raises:
            DataIntegrityError: If an alert with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            model = JobAlertModel.from_domain(alert)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to add alert {alert.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add alert: {e}") from e

    def save(self, alert: JobAlert) -> JobAlert:
        """Persist an owner edit of an alert (insert if missing).

        Only owner-editable columns are written; the bookkeeping columns
        belong to record_check() and keep whatever value is stored.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(JobAlertModel, alert.id)
            if existing is None:
                return self.add(alert)
            existing.update_from_domain(alert)
            self.session.flush()
            return existing.to_domain()
        except SQLAlchemyError as e:
            logger.error(f"Error saving alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save alert: {e}") from e

    def record_check(
        self,
        alert_id: str,
        checked_at: datetime,
        notified_at: Optional[datetime] = None,
        matched_count: int = 0,
    ) -> bool:
        """Write an alert's bookkeeping fields without touching its criteria.

        ``total_matches`` is incremented in SQL, and save() never writes these
        columns, so owner edits and bookkeeping cannot overwrite each other.

        Args:
            alert_id: Alert to update
            checked_at: New last_checked
            notified_at: New last_notification_sent (unchanged when None)
            matched_count: Amount added to total_matches

        Returns:
            False if the alert no longer exists

        Raises:
            PersistenceError: If database error occurs
        """
        values = {
            "last_checked": to_db_timestamp(checked_at),
            "total_matches": JobAlertModel.total_matches + matched_count,
        }
        if notified_at is not None:
            values["last_notification_sent"] = to_db_timestamp(notified_at)

        try:
            stmt = update(JobAlertModel).where(JobAlertModel.id == alert_id).values(**values)
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error recording check for alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record alert check: {e}") from e

    def get_for_user(self, user_id: str, alert_id: str) -> Optional[JobAlert]:
        """Return the alert only if it belongs to the user."""
        try:
            stmt = select(JobAlertModel).where(
                JobAlertModel.id == alert_id, JobAlertModel.user_id == user_id
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def list_for_user(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = 10,
        is_active: Optional[bool] = None,
    ) -> List[JobAlert]:
        """List a user's alerts, newest first."""
        try:
            stmt = select(JobAlertModel).where(JobAlertModel.user_id == user_id)
            if is_active is not None:
                stmt = stmt.where(JobAlertModel.is_active.is_(is_active))
            stmt = (
                stmt.order_by(JobAlertModel.created_at.desc(), JobAlertModel.id.desc())
                .offset(offset)
                .limit(limit)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing alerts for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

    def count_for_user(self, user_id: str, is_active: Optional[bool] = None) -> int:
        try:
            stmt = select(func.count()).select_from(JobAlertModel).where(
                JobAlertModel.user_id == user_id
            )
            if is_active is not None:
                stmt = stmt.where(JobAlertModel.is_active.is_(is_active))
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting alerts for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count alerts: {e}") from e

    def delete_for_user(self, user_id: str, alert_id: str) -> bool:
        """Hard-delete a user's alert. Returns False if nothing was deleted."""
        try:
            stmt = delete(JobAlertModel).where(
                JobAlertModel.id == alert_id, JobAlertModel.user_id == user_id
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete alert: {e}") from e


class SubscriptionRepository:
    """Repository for company subscriptions."""

    def __init__(self, session: Session):
        self.session = session

    def list_active_subscriptions(self, company_id: str) -> List[Subscription]:
        """Return the active subscriptions to one company, oldest first."""
        try:
            stmt = (
                select(SubscriptionModel)
                .where(
                    SubscriptionModel.company_id == company_id,
                    SubscriptionModel.is_active.is_(True),
                )
                .order_by(SubscriptionModel.created_at.asc(), SubscriptionModel.id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(
                f"Error listing subscriptions for company {company_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to list subscriptions: {e}") from e

    def add(self, subscription: Subscription) -> Subscription:
        """Insert a new subscription.

        Raises:
            DuplicateSubscriptionError: If the user already follows the company
            PersistenceError: If database error occurs
        """
        try:
            model = SubscriptionModel.from_domain(subscription)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.info(
                f"Duplicate subscription rejected for user {subscription.user_id}",
                extra={
                    "event": "subscription.duplicate",
                    "user_id": subscription.user_id,
                    "company_id": subscription.company_id,
                },
            )
            raise DuplicateSubscriptionError(
                subscription.user_id, subscription.company_id
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding subscription: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add subscription: {e}") from e

    def save(self, subscription: Subscription) -> Subscription:
        """Persist an owner edit of a subscription (insert if missing).

        Notification bookkeeping is left to record_notification().
        """
        try:
            existing = self.session.get(SubscriptionModel, subscription.id)
            if existing is None:
                return self.add(subscription)
            existing.update_from_domain(subscription)
            self.session.flush()
            return existing.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to save subscription {subscription.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving subscription {subscription.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save subscription: {e}") from e

    def record_notification(self, subscription_id: str, sent_at: datetime) -> bool:
        """Increment total_notifications_sent and stamp last_notification_sent.

        Returns:
            False if the subscription no longer exists
        """
        try:
            stmt = (
                update(SubscriptionModel)
                .where(SubscriptionModel.id == subscription_id)
                .values(
                    last_notification_sent=to_db_timestamp(sent_at),
                    total_notifications_sent=SubscriptionModel.total_notifications_sent + 1,
                )
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(
                f"Error recording notification for subscription {subscription_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to record notification: {e}") from e

    def get_for_user(self, user_id: str, subscription_id: str) -> Optional[Subscription]:
        try:
            stmt = select(SubscriptionModel).where(
                SubscriptionModel.id == subscription_id,
                SubscriptionModel.user_id == user_id,
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve subscription: {e}") from e

    def find_for_user_company(self, user_id: str, company_id: str) -> Optional[Subscription]:
        try:
            stmt = select(SubscriptionModel).where(
                SubscriptionModel.user_id == user_id,
                SubscriptionModel.company_id == company_id,
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error finding subscription for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find subscription: {e}") from e

    def list_for_user(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = 10,
        is_active: Optional[bool] = None,
    ) -> List[Subscription]:
        try:
            stmt = select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
            if is_active is not None:
                stmt = stmt.where(SubscriptionModel.is_active.is_(is_active))
            stmt = (
                stmt.order_by(SubscriptionModel.created_at.desc(), SubscriptionModel.id.desc())
                .offset(offset)
                .limit(limit)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing subscriptions for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list subscriptions: {e}") from e

    def count_for_user(self, user_id: str, is_active: Optional[bool] = None) -> int:
        try:
            stmt = select(func.count()).select_from(SubscriptionModel).where(
                SubscriptionModel.user_id == user_id
            )
            if is_active is not None:
                stmt = stmt.where(SubscriptionModel.is_active.is_(is_active))
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting subscriptions for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count subscriptions: {e}") from e

    def delete_for_user(self, user_id: str, subscription_id: str) -> bool:
        try:
            stmt = delete(SubscriptionModel).where(
                SubscriptionModel.id == subscription_id,
                SubscriptionModel.user_id == user_id,
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete subscription: {e}") from e


class UserRepository:
    """Read access to the recipients of notifications."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[Recipient]:
        try:
            model = self.session.get(UserModel, user_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def add(self, recipient: Recipient) -> Recipient:
        try:
            model = UserModel.from_domain(recipient)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to add user {recipient.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding user {recipient.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add user: {e}") from e


class CompanyRepository:
    """Read access to company profiles."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, company_id: str) -> Optional[Company]:
        try:
            model = self.session.get(CompanyModel, company_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving company {company_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve company: {e}") from e

    def add(self, company: Company) -> Company:
        try:
            model = CompanyModel.from_domain(company)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to add company {company.id}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding company {company.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add company: {e}") from e
