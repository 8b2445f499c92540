"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can catch
every store failure with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialised or reached.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - get_session() called before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a record the caller expects to exist is missing.

    Lookups that may legitimately miss return None instead. Management
    operations raise this for unknown or foreign-owned alerts and
    subscriptions, so the two cases are indistinguishable to the caller.
    """

    def __init__(self, message: str, record_type: str = "record", record_id: str = None):
        super().__init__(message)
        self.record_type = record_type
        self.record_id = record_id


class DataIntegrityError(PersistenceError):
    """Raised when a database constraint is violated."""

    pass


class DuplicateSubscriptionError(DataIntegrityError):
    """Raised when a user subscribes to a company they already follow.

    Backed by the unique (user_id, company_id) constraint, so concurrent
    duplicate subscribes cannot both succeed.
    """

    def __init__(self, user_id: str, company_id: str):
        super().__init__(f"User {user_id} is already subscribed to company {company_id}")
        self.user_id = user_id
        self.company_id = company_id
