"""Owner-scoped management of company subscriptions."""

import logging
from datetime import datetime
from typing import Callable, Optional

from jobalerts.domain.models import NotificationPreferences, Subscription
from jobalerts.logging import get_logger
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import RecordNotFoundError
from jobalerts.persistence.repositories import (
    CompanyRepository,
    SubscriptionRepository,
    UserRepository,
)
from jobalerts.utils.timestamps import utc_now

from .alerts import DEFAULT_PAGE_SIZE, Page, merge_preferences, normalize_paging
from .schemas import SubscriptionCreate, SubscriptionUpdate

logger = get_logger(__name__, component="management")


class SubscriptionService:
    """Follow and unfollow companies and tune what a follow notifies about."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.clock = clock
        self.logger = logger_instance or logger

    def subscribe(self, user_id: str, data: SubscriptionCreate) -> Subscription:
        """
        Subscribe a user to a company.

        Raises:
            RecordNotFoundError: If the user or company does not exist, or the
                company is inactive or deleted
            DuplicateSubscriptionError: If the user already follows the company
        """
        now = self.clock()
        subscription = Subscription(
            user_id=user_id,
            company_id=data.company_id,
            job_types=data.job_types,
            experience_levels=data.experience_levels,
            notification_preferences=merge_preferences(
                NotificationPreferences(), data.notification_preferences
            ),
            created_at=now,
            updated_at=now,
        )

        with get_session() as session:
            owner = UserRepository(session).get_by_id(user_id)
            if owner is None or owner.is_deleted:
                raise RecordNotFoundError(
                    f"User {user_id} not found", record_type="user", record_id=user_id
                )
            company = CompanyRepository(session).get_by_id(data.company_id)
            if company is None or not company.accepts_subscriptions:
                raise RecordNotFoundError(
                    f"Company {data.company_id} not found",
                    record_type="company",
                    record_id=data.company_id,
                )
            created = SubscriptionRepository(session).add(subscription)

        self.logger.info(
            f"User {user_id} subscribed to {company.name}",
            extra={
                "event": "subscription.created",
                "subscription_id": created.id,
                "user_id": user_id,
                "company_id": data.company_id,
            },
        )
        return created

    def list_subscriptions(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        is_active: Optional[bool] = None,
    ) -> Page[Subscription]:
        page, limit = normalize_paging(page, limit)
        with get_session() as session:
            repo = SubscriptionRepository(session)
            items = repo.list_for_user(
                user_id, offset=(page - 1) * limit, limit=limit, is_active=is_active
            )
            total = repo.count_for_user(user_id, is_active=is_active)
        return Page(items=items, total=total, page=page, limit=limit)

    def get_subscription(self, user_id: str, subscription_id: str) -> Subscription:
        with get_session() as session:
            subscription = SubscriptionRepository(session).get_for_user(user_id, subscription_id)
        if subscription is None:
            raise _subscription_not_found(subscription_id)
        return subscription

    def update_subscription(
        self, user_id: str, subscription_id: str, data: SubscriptionUpdate
    ) -> Subscription:
        """Apply a partial edit; notification preferences are merged channel by channel."""
        with get_session() as session:
            repo = SubscriptionRepository(session)
            subscription = repo.get_for_user(user_id, subscription_id)
            if subscription is None:
                raise _subscription_not_found(subscription_id)

            if data.job_types is not None:
                subscription.job_types = data.job_types
            if data.experience_levels is not None:
                subscription.experience_levels = data.experience_levels
            if data.is_active is not None:
                subscription.is_active = data.is_active
            subscription.notification_preferences = merge_preferences(
                subscription.notification_preferences, data.notification_preferences
            )
            subscription.updated_at = self.clock()
            updated = repo.save(subscription)

        self.logger.info(
            f"Subscription {subscription_id} updated",
            extra={
                "event": "subscription.updated",
                "subscription_id": subscription_id,
                "user_id": user_id,
            },
        )
        return updated

    def unsubscribe(self, user_id: str, subscription_id: str) -> None:
        with get_session() as session:
            deleted = SubscriptionRepository(session).delete_for_user(user_id, subscription_id)
        if not deleted:
            raise _subscription_not_found(subscription_id)
        self.logger.info(
            f"Subscription {subscription_id} removed",
            extra={
                "event": "subscription.deleted",
                "subscription_id": subscription_id,
                "user_id": user_id,
            },
        )

    def check_subscription(self, user_id: str, company_id: str) -> Optional[Subscription]:
        """Return the user's subscription to a company, active or not, or None."""
        with get_session() as session:
            return SubscriptionRepository(session).find_for_user_company(user_id, company_id)

    def toggle_subscription(self, user_id: str, subscription_id: str) -> Subscription:
        with get_session() as session:
            repo = SubscriptionRepository(session)
            subscription = repo.get_for_user(user_id, subscription_id)
            if subscription is None:
                raise _subscription_not_found(subscription_id)
            subscription.is_active = not subscription.is_active
            subscription.updated_at = self.clock()
            updated = repo.save(subscription)

        self.logger.info(
            f"Subscription {subscription_id} "
            f"{'activated' if updated.is_active else 'deactivated'}",
            extra={
                "event": "subscription.toggled",
                "subscription_id": subscription_id,
                "user_id": user_id,
                "is_active": updated.is_active,
            },
        )
        return updated


def _subscription_not_found(subscription_id: str) -> RecordNotFoundError:
    return RecordNotFoundError(
        f"Subscription {subscription_id} not found",
        record_type="subscription",
        record_id=subscription_id,
    )
