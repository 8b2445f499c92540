"""Unit tests for persistence layer."""

from datetime import timedelta

import pytest
from sqlalchemy import text

from jobalerts.persistence import (
    AlertRepository,
    CompanyRepository,
    DatabaseConnectionError,
    DuplicateSubscriptionError,
    JobRepository,
    SubscriptionRepository,
    UserRepository,
    close_database,
    get_session,
    init_database,
)
from jobalerts.persistence.schema import (
    JobAlertModel,
    JobModel,
    from_db_timestamp,
    to_db_timestamp,
)
from tests.helpers import (
    T0,
    hours,
    load_alert,
    make_alert,
    make_company,
    make_job,
    make_recipient,
    make_subscription,
    overwrite_columns,
    seed,
)


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parent_directories(self, tmp_path):
        db_file = tmp_path / "nested" / "dir" / "alerts.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            with get_session() as session:
                tables = {
                    row[0]
                    for row in session.execute(
                        text("SELECT name FROM sqlite_master WHERE type='table'")
                    )
                }
            assert {"users", "companies", "jobs", "job_alerts", "subscriptions"} <= tables
        finally:
            close_database()

    def test_schema_creation_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'alerts.db'}"

        init_database(db_url)
        init_database(db_url)

        with get_session() as session:
            assert session.execute(text("SELECT COUNT(*) FROM job_alerts")).scalar() == 0
        close_database()

    @pytest.mark.parametrize("url", ["", None, "not a url"])
    def test_invalid_url_raises(self, url):
        with pytest.raises(DatabaseConnectionError):
            init_database(url)

    def test_session_before_init_raises(self):
        close_database()

        with pytest.raises(DatabaseConnectionError):
            with get_session():
                pass


class TestTimestamps:
    """Stored timestamps sort lexicographically in time order."""

    def test_round_trip(self):
        value = T0 + timedelta(microseconds=1234)

        assert from_db_timestamp(to_db_timestamp(value)) == value

    def test_fixed_width(self):
        assert len(to_db_timestamp(T0)) == len(to_db_timestamp(T0 + timedelta(days=400)))

    def test_naive_treated_as_utc(self):
        assert to_db_timestamp(T0.replace(tzinfo=None)) == to_db_timestamp(T0)


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.mark.usefixtures("database")
class TestSessionManagement:
    """Tests for session management."""

    def test_session_rolls_back_on_error(self):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                UserRepository(session).add(make_recipient())
                raise RuntimeError("abort")

        with get_session() as session:
            assert UserRepository(session).get_by_id("user-1") is None


@pytest.mark.usefixtures("database")
class TestJobRepository:
    """Tests for JobRepository."""

    def test_list_active_jobs_filters_and_orders(self):
        seed(
            jobs=[
                make_job(id="late", created_at=T0 + hours(3)),
                make_job(id="early", created_at=T0 + hours(1)),
                make_job(id="too-old", created_at=T0 - hours(1)),
                make_job(id="inactive", created_at=T0 + hours(2), is_active=False),
                make_job(id="deleted", created_at=T0 + hours(2), is_deleted=True),
            ]
        )

        with get_session() as session:
            jobs = JobRepository(session).list_active_jobs(T0)

        assert [job.id for job in jobs] == ["early", "late"]

    def test_lower_bound_is_inclusive(self):
        seed(jobs=[make_job(id="exact", created_at=T0)])

        with get_session() as session:
            jobs = JobRepository(session).list_active_jobs(T0)

        assert [job.id for job in jobs] == ["exact"]

    def test_upper_bound_is_exclusive(self):
        seed(
            jobs=[
                make_job(id="before", created_at=T0 + hours(1)),
                make_job(id="at-bound", created_at=T0 + hours(2)),
            ]
        )

        with get_session() as session:
            jobs = JobRepository(session).list_active_jobs(T0, created_before=T0 + hours(2))

        assert [job.id for job in jobs] == ["before"]

    def test_malformed_rows_are_left_out(self):
        seed(
            jobs=[
                make_job(id="good", created_at=T0 + hours(1)),
                make_job(id="bad", created_at=T0 + hours(2)),
            ]
        )
        overwrite_columns(JobModel, "bad", job_type="gig")

        with get_session() as session:
            jobs = JobRepository(session).list_active_jobs(T0)

        assert [job.id for job in jobs] == ["good"]

    def test_round_trip_keeps_nested_fields(self):
        job = make_job(
            location={"type": "on-site", "city": "Berlin", "country": "Germany"},
            salary={"min": 50000, "max": 70000, "currency": "EUR"},
            requirements={"skills": ["Go", "Kubernetes"]},
        )
        seed(jobs=[job])

        with get_session() as session:
            loaded = JobRepository(session).get_by_id(job.id)

        assert loaded.location.city == "Berlin"
        assert loaded.salary.currency == "EUR"
        assert loaded.requirements.skills == ["Go", "Kubernetes"]
        assert loaded.created_at == job.created_at

    def test_get_missing_job_returns_none(self):
        with get_session() as session:
            assert JobRepository(session).get_by_id("nope") is None


@pytest.mark.usefixtures("database")
class TestAlertRepository:
    """Tests for AlertRepository."""

    def test_criteria_round_trip(self):
        alert = make_alert(
            keywords=["python"],
            skills=["django"],
            location={"type": "remote"},
            job_types=["full-time", "contract"],
            experience_levels=["senior"],
            salary_range={"min": 100000},
            companies=["company-1"],
            exclude_companies=["company-2"],
        )
        seed(alerts=[alert])

        loaded = load_alert(alert.id)

        assert loaded.keywords == ["python"]
        assert loaded.location.type == "remote"
        assert loaded.job_types == ["full-time", "contract"]
        assert loaded.salary_range.min == 100000
        assert loaded.exclude_companies == ["company-2"]
        assert loaded.notification_preferences.email is True

    def test_list_active_alerts_by_frequency(self):
        seed(
            alerts=[
                make_alert(id="d1", created_at=T0 - hours(2)),
                make_alert(id="d2", created_at=T0 - hours(3)),
                make_alert(id="off", is_active=False),
                make_alert(id="w1", notification_frequency="weekly"),
            ]
        )

        with get_session() as session:
            alerts = AlertRepository(session).list_active_alerts("daily")

        assert [alert.id for alert in alerts] == ["d2", "d1"]

    def test_malformed_alerts_are_reported_and_left_out(self):
        seed(alerts=[make_alert(id="good"), make_alert(id="bad")])
        overwrite_columns(JobAlertModel, "bad", notification_preferences={"email": "often"})
        skipped = []

        with get_session() as session:
            alerts = AlertRepository(session).list_active_alerts("daily", skipped=skipped)

        assert [alert.id for alert in alerts] == ["good"]
        assert skipped == ["bad"]

    def test_record_check_increments_matches(self):
        seed(alerts=[make_alert(id="a1", total_matches=3)])

        with get_session() as session:
            updated = AlertRepository(session).record_check(
                "a1", checked_at=T0, notified_at=T0, matched_count=2
            )

        alert = load_alert("a1")
        assert updated
        assert alert.total_matches == 5
        assert alert.last_checked == T0
        assert alert.last_notification_sent == T0

    def test_record_check_keeps_owner_edits(self):
        seed(alerts=[make_alert(id="a1", name="Original")])
        with get_session() as session:
            repo = AlertRepository(session)
            alert = repo.get_by_id("a1")
            alert.name = "Renamed"
            repo.save(alert)

        with get_session() as session:
            AlertRepository(session).record_check("a1", checked_at=T0)

        alert = load_alert("a1")
        assert alert.name == "Renamed"
        assert alert.last_notification_sent is None

    def test_save_keeps_bookkeeping_written_after_the_read(self):
        seed(alerts=[make_alert(id="a1", name="Original", total_matches=1)])
        stale = load_alert("a1")

        with get_session() as session:
            AlertRepository(session).record_check(
                "a1", checked_at=T0, notified_at=T0, matched_count=2
            )

        stale.name = "Renamed"
        with get_session() as session:
            AlertRepository(session).save(stale)

        alert = load_alert("a1")
        assert alert.name == "Renamed"
        assert alert.last_checked == T0
        assert alert.last_notification_sent == T0
        assert alert.total_matches == 3

    def test_record_check_missing_alert(self):
        with get_session() as session:
            assert not AlertRepository(session).record_check("ghost", checked_at=T0)

    def test_owner_scoped_access(self):
        seed(
            alerts=[
                make_alert(id="mine", user_id="user-1"),
                make_alert(id="theirs", user_id="user-2"),
            ]
        )

        with get_session() as session:
            repo = AlertRepository(session)
            assert repo.get_for_user("user-1", "mine") is not None
            assert repo.get_for_user("user-1", "theirs") is None
            assert repo.count_for_user("user-1") == 1
            assert not repo.delete_for_user("user-1", "theirs")
            assert repo.delete_for_user("user-1", "mine")

        assert load_alert("theirs") is not None
        assert load_alert("mine") is None

    def test_list_for_user_paginates_newest_first(self):
        seed(
            alerts=[
                make_alert(id=f"a{i}", created_at=T0 + hours(i), is_active=i % 2 == 0)
                for i in range(5)
            ]
        )

        with get_session() as session:
            repo = AlertRepository(session)
            first_page = repo.list_for_user("user-1", offset=0, limit=2)
            second_page = repo.list_for_user("user-1", offset=2, limit=2)
            active = repo.list_for_user("user-1", is_active=True)
            active_count = repo.count_for_user("user-1", is_active=True)

        assert [a.id for a in first_page] == ["a4", "a3"]
        assert [a.id for a in second_page] == ["a2", "a1"]
        assert [a.id for a in active] == ["a4", "a2", "a0"]
        assert active_count == 3


@pytest.mark.usefixtures("database")
class TestSubscriptionRepository:
    """Tests for SubscriptionRepository."""

    def test_duplicate_subscription_rejected(self):
        seed(subscriptions=[make_subscription(id="s1")])

        with pytest.raises(DuplicateSubscriptionError) as exc_info:
            seed(subscriptions=[make_subscription(id="s2")])

        assert exc_info.value.company_id == "company-1"

    def test_same_company_different_users_allowed(self):
        seed(
            subscriptions=[
                make_subscription(id="s1", user_id="user-1"),
                make_subscription(id="s2", user_id="user-2"),
            ]
        )

        with get_session() as session:
            subscriptions = SubscriptionRepository(session).list_active_subscriptions("company-1")

        assert {s.id for s in subscriptions} == {"s1", "s2"}

    def test_list_active_subscriptions_filters(self):
        seed(
            subscriptions=[
                make_subscription(id="on", user_id="user-1"),
                make_subscription(id="off", user_id="user-2", is_active=False),
                make_subscription(id="elsewhere", user_id="user-3", company_id="company-2"),
            ]
        )

        with get_session() as session:
            subscriptions = SubscriptionRepository(session).list_active_subscriptions("company-1")

        assert [s.id for s in subscriptions] == ["on"]

    def test_record_notification_increments(self):
        seed(subscriptions=[make_subscription(id="s1", total_notifications_sent=4)])

        with get_session() as session:
            assert SubscriptionRepository(session).record_notification("s1", T0)

        with get_session() as session:
            subscription = SubscriptionRepository(session).get_for_user("user-1", "s1")

        assert subscription.total_notifications_sent == 5
        assert subscription.last_notification_sent == T0

    def test_save_keeps_notifications_recorded_after_the_read(self):
        seed(subscriptions=[make_subscription(id="s1")])
        with get_session() as session:
            stale = SubscriptionRepository(session).get_for_user("user-1", "s1")

        with get_session() as session:
            SubscriptionRepository(session).record_notification("s1", T0)

        stale.job_types = ["contract"]
        with get_session() as session:
            SubscriptionRepository(session).save(stale)

        with get_session() as session:
            subscription = SubscriptionRepository(session).get_for_user("user-1", "s1")

        assert subscription.job_types == ["contract"]
        assert subscription.total_notifications_sent == 1
        assert subscription.last_notification_sent == T0

    def test_find_for_user_company(self):
        seed(subscriptions=[make_subscription(id="s1")])

        with get_session() as session:
            repo = SubscriptionRepository(session)
            assert repo.find_for_user_company("user-1", "company-1").id == "s1"
            assert repo.find_for_user_company("user-1", "company-2") is None


@pytest.mark.usefixtures("database")
class TestUserAndCompanyRepositories:
    """Tests for the read-side repositories."""

    def test_user_round_trip(self):
        seed(recipients=[make_recipient(id="u1", email="x@example.com", first_name="X")])

        with get_session() as session:
            user = UserRepository(session).get_by_id("u1")

        assert user.email == "x@example.com"
        assert not user.is_deleted

    def test_company_accepts_subscriptions(self):
        seed(
            companies=[
                make_company(id="c1"),
                make_company(id="c2", status="inactive"),
                make_company(id="c3", is_deleted=True),
            ]
        )

        with get_session() as session:
            repo = CompanyRepository(session)
            flags = [repo.get_by_id(cid).accepts_subscriptions for cid in ("c1", "c2", "c3")]

        assert flags == [True, False, False]
