"""Unit tests for alert and subscription management.

Covers input validation, owner scoping, pagination, partial updates with
preference merging, and the read-only alert preview.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from jobalerts.management import (
    JobAlertCreate,
    JobAlertService,
    JobAlertUpdate,
    SubscriptionCreate,
    SubscriptionService,
    SubscriptionUpdate,
)
from jobalerts.persistence import (
    AlertRepository,
    DuplicateSubscriptionError,
    RecordNotFoundError,
    close_database,
    get_session,
    init_database,
)
from tests.helpers import (
    T0,
    FakeClock,
    hours,
    load_alert,
    make_alert,
    make_company,
    make_job,
    make_recipient,
    make_subscription,
    seed,
)


@pytest.fixture(autouse=True)
def temp_database():
    init_database("sqlite:///:memory:")
    seed(
        recipients=[
            make_recipient(id="user-1"),
            make_recipient(id="user-2", email="grace@example.com", first_name="Grace"),
            make_recipient(id="gone", email="gone@example.com", is_deleted=True),
        ],
        companies=[
            make_company(id="company-1", name="Acme"),
            make_company(id="company-2", name="Globex", status="inactive"),
        ],
    )
    yield
    close_database()


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def alerts(clock):
    return JobAlertService(clock=clock)


@pytest.fixture
def subscriptions(clock):
    return SubscriptionService(clock=clock)


class TestAlertInputValidation:
    """Tests for JobAlertCreate / JobAlertUpdate."""

    def test_name_is_stripped(self):
        assert JobAlertCreate(name="  Python jobs  ").name == "Python jobs"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="Alert name is required"):
            JobAlertCreate(name="   ")

    def test_long_name_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed 100 characters"):
            JobAlertCreate(name="x" * 101)

    def test_name_of_exactly_100_characters_accepted(self):
        assert len(JobAlertCreate(name="x" * 100).name) == 100

    def test_defaults(self):
        data = JobAlertCreate(name="Anything")

        assert data.notification_frequency == "daily"
        assert data.location.type == "any"
        assert data.keywords == []

    def test_unknown_job_type_rejected(self):
        with pytest.raises(ValidationError):
            JobAlertCreate(name="Jobs", job_types=["freelance"])

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValidationError):
            JobAlertCreate(name="Jobs", notification_frequency="hourly")

    def test_salary_min_above_max_rejected(self):
        with pytest.raises(ValidationError, match="Minimum salary cannot exceed maximum salary"):
            JobAlertCreate(name="Jobs", salary_range={"min": 100, "max": 50})

    def test_negative_radius_rejected(self):
        with pytest.raises(ValidationError):
            JobAlertCreate(name="Jobs", location={"type": "on-site", "radius": -1})

    def test_blank_terms_dropped(self):
        data = JobAlertCreate(name="Jobs", keywords=[" python ", "", "  "], skills=["go"])

        assert data.keywords == ["python"]
        assert data.skills == ["go"]

    def test_blank_company_id_rejected(self):
        with pytest.raises(ValidationError, match="Company ids must be non-empty"):
            JobAlertCreate(name="Jobs", exclude_companies=["company-1", " "])

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            JobAlertCreate(name="Jobs", total_matches=5)

    def test_update_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            JobAlertUpdate(name="")

    def test_update_with_nothing_set(self):
        assert JobAlertUpdate().model_fields_set == set()


class TestSubscriptionInputValidation:
    def test_company_id_is_stripped(self):
        assert SubscriptionCreate(company_id=" company-1 ").company_id == "company-1"

    def test_blank_company_id_rejected(self):
        with pytest.raises(ValidationError):
            SubscriptionCreate(company_id="   ")

    def test_unknown_experience_level_rejected(self):
        with pytest.raises(ValidationError):
            SubscriptionUpdate(experience_levels=["guru"])


class TestJobAlertService:
    """Tests for JobAlertService CRUD."""

    def test_create_alert(self, alerts):
        created = alerts.create_alert(
            "user-1",
            JobAlertCreate(
                name="Remote Python",
                keywords=["python"],
                location={"type": "remote"},
                notification_frequency="weekly",
                notification_preferences={"push": False},
            ),
        )

        stored = load_alert(created.id)
        assert stored.user_id == "user-1"
        assert stored.notification_frequency == "weekly"
        assert stored.location.type == "remote"
        assert stored.notification_preferences.email is True
        assert stored.notification_preferences.push is False
        assert stored.total_matches == 0
        assert stored.last_checked is None
        assert stored.created_at == T0

    @pytest.mark.parametrize("user_id", ["ghost", "gone"])
    def test_create_for_missing_user_fails(self, alerts, user_id):
        with pytest.raises(RecordNotFoundError) as exc_info:
            alerts.create_alert(user_id, JobAlertCreate(name="Jobs"))

        assert exc_info.value.record_type == "user"

    def test_list_alerts_paginates(self, alerts):
        seed(
            alerts=[
                make_alert(id=f"a{i}", created_at=T0 - hours(i)) for i in range(12)
            ]
            + [make_alert(id="other", user_id="user-2")]
        )

        first = alerts.list_alerts("user-1", page=1, limit=5)
        last = alerts.list_alerts("user-1", page=3, limit=5)

        assert [a.id for a in first.items] == ["a0", "a1", "a2", "a3", "a4"]
        assert first.total == 12
        assert first.pages == 3
        assert [a.id for a in last.items] == ["a10", "a11"]

    def test_list_alerts_clamps_paging(self, alerts):
        page = alerts.list_alerts("user-1", page=0, limit=1000)

        assert page.page == 1
        assert page.limit == 100

    def test_list_alerts_filters_by_active(self, alerts):
        seed(alerts=[make_alert(id="on"), make_alert(id="off", is_active=False)])

        page = alerts.list_alerts("user-1", is_active=False)

        assert [a.id for a in page.items] == ["off"]
        assert page.total == 1

    def test_get_alert_of_another_user_is_not_found(self, alerts):
        seed(alerts=[make_alert(id="a1", user_id="user-2")])

        with pytest.raises(RecordNotFoundError) as exc_info:
            alerts.get_alert("user-1", "a1")

        assert exc_info.value.record_type == "job_alert"
        assert exc_info.value.record_id == "a1"

    def test_update_applies_only_set_fields(self, alerts, clock):
        seed(
            alerts=[
                make_alert(
                    id="a1",
                    keywords=["python"],
                    skills=["django"],
                    total_matches=7,
                    last_checked=T0 - hours(5),
                    notification_preferences={"email": True, "push": True, "sms": True},
                )
            ]
        )
        clock.advance(hours(1))

        updated = alerts.update_alert(
            "user-1",
            "a1",
            JobAlertUpdate(keywords=["rust"], notification_preferences={"sms": False}),
        )

        assert updated.keywords == ["rust"]
        assert updated.skills == ["django"]
        assert updated.notification_preferences.push is True
        assert updated.notification_preferences.sms is False
        assert updated.total_matches == 7
        assert updated.last_checked == T0 - hours(5)
        assert updated.updated_at == T0 + hours(1)
        assert load_alert("a1").keywords == ["rust"]

    def test_update_keeps_bookkeeping_recorded_during_the_edit(self, alerts, clock):
        seed(alerts=[make_alert(id="a1")])
        read_alert = AlertRepository.get_for_user

        def read_then_record_check(repo, user_id, alert_id):
            alert = read_alert(repo, user_id, alert_id)
            with get_session() as session:
                AlertRepository(session).record_check(
                    alert_id, checked_at=clock.now, notified_at=clock.now, matched_count=1
                )
            return alert

        with patch.object(
            AlertRepository, "get_for_user", autospec=True, side_effect=read_then_record_check
        ):
            alerts.update_alert("user-1", "a1", JobAlertUpdate(name="Renamed"))

        stored = load_alert("a1")
        assert stored.name == "Renamed"
        assert stored.last_checked == clock.now
        assert stored.last_notification_sent == clock.now
        assert stored.total_matches == 1

    def test_update_can_change_frequency_and_deactivate(self, alerts):
        seed(alerts=[make_alert(id="a1")])

        updated = alerts.update_alert(
            "user-1", "a1", JobAlertUpdate(notification_frequency="immediate", is_active=False)
        )

        assert updated.notification_frequency == "immediate"
        assert not updated.is_active

    def test_update_foreign_alert_fails(self, alerts):
        seed(alerts=[make_alert(id="a1", user_id="user-2")])

        with pytest.raises(RecordNotFoundError):
            alerts.update_alert("user-1", "a1", JobAlertUpdate(name="Mine now"))

        assert load_alert("a1").name == "Backend roles"

    def test_delete_alert(self, alerts):
        seed(alerts=[make_alert(id="a1")])

        alerts.delete_alert("user-1", "a1")

        assert load_alert("a1") is None
        with pytest.raises(RecordNotFoundError):
            alerts.delete_alert("user-1", "a1")

    def test_toggle_alert(self, alerts):
        seed(alerts=[make_alert(id="a1")])

        assert not alerts.toggle_alert("user-1", "a1").is_active
        assert alerts.toggle_alert("user-1", "a1").is_active


class TestAlertPreview:
    """Tests for JobAlertService.test_alert."""

    def test_matches_recent_jobs_only(self, clock):
        seed(
            alerts=[make_alert(id="a1", keywords=["backend"], is_active=False)],
            jobs=[
                make_job(id="recent-match", created_at=T0 - timedelta(days=2)),
                make_job(
                    id="recent-other",
                    title="Designer",
                    description="Figma",
                    created_at=T0 - timedelta(days=1),
                ),
                make_job(id="old-match", created_at=T0 - timedelta(days=45)),
            ],
        )
        service = JobAlertService(clock=clock)

        result = service.test_alert("user-1", "a1")

        assert result.window_start == T0 - timedelta(days=30)
        assert result.total_recent_jobs == 2
        assert result.matching_count == 1
        assert [job.id for job in result.jobs] == ["recent-match"]

    def test_preview_paginates_and_records_nothing(self, clock):
        seed(
            alerts=[make_alert(id="a1")],
            jobs=[make_job(id=f"j{i}", created_at=T0 - hours(i + 1)) for i in range(5)],
        )
        service = JobAlertService(test_window_seconds=24 * 3600, clock=clock)

        result = service.test_alert("user-1", "a1", page=2, limit=2)

        assert result.matching_count == 5
        assert result.pages == 3
        assert [job.id for job in result.jobs] == ["j2", "j1"]
        alert = load_alert("a1")
        assert alert.last_checked is None
        assert alert.total_matches == 0

    def test_preview_of_foreign_alert_fails(self, alerts):
        seed(alerts=[make_alert(id="a1", user_id="user-2")])

        with pytest.raises(RecordNotFoundError):
            alerts.test_alert("user-1", "a1")


class TestSubscriptionService:
    """Tests for SubscriptionService."""

    def test_subscribe(self, subscriptions):
        created = subscriptions.subscribe(
            "user-1",
            SubscriptionCreate(company_id="company-1", job_types=["full-time"]),
        )

        assert created.company_id == "company-1"
        assert created.job_types == ["full-time"]
        assert created.is_active
        assert created.total_notifications_sent == 0

    @pytest.mark.parametrize("company_id", ["company-2", "missing"])
    def test_subscribe_to_unavailable_company_fails(self, subscriptions, company_id):
        with pytest.raises(RecordNotFoundError) as exc_info:
            subscriptions.subscribe("user-1", SubscriptionCreate(company_id=company_id))

        assert exc_info.value.record_type == "company"

    def test_subscribe_for_missing_user_fails(self, subscriptions):
        with pytest.raises(RecordNotFoundError):
            subscriptions.subscribe("ghost", SubscriptionCreate(company_id="company-1"))

    def test_duplicate_subscription_rejected(self, subscriptions):
        subscriptions.subscribe("user-1", SubscriptionCreate(company_id="company-1"))

        with pytest.raises(DuplicateSubscriptionError):
            subscriptions.subscribe("user-1", SubscriptionCreate(company_id="company-1"))

    def test_check_subscription(self, subscriptions):
        seed(subscriptions=[make_subscription(id="s1", is_active=False)])

        assert subscriptions.check_subscription("user-1", "company-1").id == "s1"
        assert subscriptions.check_subscription("user-2", "company-1") is None

    def test_update_merges_preferences(self, subscriptions):
        seed(subscriptions=[make_subscription(id="s1", job_types=["contract"])])

        updated = subscriptions.update_subscription(
            "user-1",
            "s1",
            SubscriptionUpdate(
                experience_levels=["senior"], notification_preferences={"email": False}
            ),
        )

        assert updated.job_types == ["contract"]
        assert updated.experience_levels == ["senior"]
        assert updated.notification_preferences.email is False
        assert updated.notification_preferences.push is True

    def test_toggle_and_list(self, subscriptions):
        seed(subscriptions=[make_subscription(id="s1")])

        subscriptions.toggle_subscription("user-1", "s1")

        assert subscriptions.list_subscriptions("user-1", is_active=True).total == 0
        assert subscriptions.list_subscriptions("user-1").items[0].id == "s1"

    def test_unsubscribe_is_owner_scoped(self, subscriptions):
        seed(subscriptions=[make_subscription(id="s1")])

        with pytest.raises(RecordNotFoundError):
            subscriptions.unsubscribe("user-2", "s1")

        subscriptions.unsubscribe("user-1", "s1")

        with pytest.raises(RecordNotFoundError):
            subscriptions.get_subscription("user-1", "s1")
