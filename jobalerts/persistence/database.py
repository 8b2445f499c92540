"""Database connection and session management.

Engine creation, schema bootstrap and the session lifecycle for the alert,
subscription and job stores.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jobalerts.logging import get_logger

from .exceptions import DatabaseConnectionError

# Module-level engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker | None = None

logger = get_logger(__name__, component="database")


def init_database(database_url: str) -> None:
    """Initialize the database connection and create missing tables.

    Called once during application startup (and per test). It:
    1. Creates the SQLAlchemy engine
    2. Configures SQLite pragmas (foreign keys, WAL)
    3. Validates the connection
    4. Creates the schema if tables don't exist

    An in-memory SQLite URL uses a single shared connection so that the
    worker threads of the immediate notifier see the same database.

    Args:
        database_url: SQLAlchemy URL (e.g. "sqlite:///./data/job_alerts.db")

    Raises:
        DatabaseConnectionError: If database initialization fails
    """
    global _engine, _session_factory

    if not database_url or not isinstance(database_url, str):
        raise DatabaseConnectionError("Database URL must be a non-empty string")

    try:
        url = make_url(database_url)
    except ArgumentError as e:
        raise DatabaseConnectionError(f"Invalid database URL: {e}") from e

    logger.info(
        "Initializing database",
        extra={
            "event": "database.initializing",
            "database_url": url.render_as_string(hide_password=True),
        },
    )

    is_sqlite = url.get_backend_name() == "sqlite"
    in_memory = is_sqlite and url.database in (None, "", ":memory:")

    try:
        if is_sqlite and not in_memory:
            db_file = Path(url.database)
            if not db_file.parent.exists():
                logger.info(f"Creating database directory: {db_file.parent}")
                db_file.parent.mkdir(parents=True, exist_ok=True)

        engine_kwargs = {"echo": False, "pool_pre_ping": True}
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if in_memory:
            engine_kwargs["poolclass"] = StaticPool

        engine = create_engine(database_url, **engine_kwargs)

        if is_sqlite:
            _configure_sqlite(engine)

        _validate_connection(engine)

        from .schema import create_schema

        create_schema(engine)

        _engine = engine
        _session_factory = sessionmaker(
            bind=engine,
            autoflush=True,
            expire_on_commit=False,
        )

        logger.info(
            "Database initialized successfully",
            extra={"event": "database.initialised", "in_memory": in_memory},
        )

    except DatabaseConnectionError:
        raise
    except Exception as e:
        error_msg = f"Failed to initialize database: {e}"
        logger.error(error_msg, exc_info=True, extra={"event": "database.init_failed"})
        raise DatabaseConnectionError(error_msg) from e


def _configure_sqlite(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def _validate_connection(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.debug("Database connection validated successfully")
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to validate database connection: {e}") from e


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Provide a database session with automatic transaction management.

    Commits on successful exit, rolls back on exception and always closes.

    Yields:
        Session: SQLAlchemy session for database operations

    Raises:
        DatabaseConnectionError: If the database is not initialized

    Example:
        >>> with get_session() as session:
        ...     alerts = AlertRepository(session).list_active_alerts("daily")
    """
    if _session_factory is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_session()"
        )

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(
            f"Database session rolled back due to exception: {e}",
            extra={
                "event": "database.session.rolled_back",
                "error_type": type(e).__name__,
            },
        )
        raise
    finally:
        session.close()


def close_database() -> None:
    """Dispose of the engine; called during application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connections closed", extra={"event": "database.closed"})
