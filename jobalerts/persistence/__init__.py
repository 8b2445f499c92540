"""Persistence layer for alerts, subscriptions, jobs and their owners.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None

    # Repository classes
    - AlertRepository: job alerts (AlertStore)
    - SubscriptionRepository: company subscriptions (SubscriptionStore)
    - JobRepository: candidate jobs (JobSource)
    - UserRepository / CompanyRepository: notification recipients and companies

Example usage:
    >>> from jobalerts.persistence import init_database, get_session, AlertRepository
    >>>
    >>> init_database("sqlite:///./data/job_alerts.db")
    >>>
    >>> with get_session() as session:
    ...     alerts = AlertRepository(session).list_active_alerts("weekly")
"""

from .database import close_database, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    DuplicateSubscriptionError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AlertRepository,
    CompanyRepository,
    JobRepository,
    SubscriptionRepository,
    UserRepository,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    # Repositories
    "AlertRepository",
    "SubscriptionRepository",
    "JobRepository",
    "UserRepository",
    "CompanyRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "DuplicateSubscriptionError",
]
