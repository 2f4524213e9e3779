"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Manages database connections, sessions and transactional writes.

- Provides connection pooling
- Manages database sessions
- Handles connection lifecycle
- Runs write functions inside retried transactions

============================================================
DESIGN PRINCIPLES
============================================================
- One Database object per process, injected into services
- Reads are plain sessions, never transactional
- Every mutation goes through execute_write_func()
- query() and execute() are one-statement conveniences for
  consumers of the gateway; the alias directory reads through
  session() and repositories instead
- Lock contention is retried here, with bounded backoff;
  everything else propagates to the caller

============================================================
DATABASE REQUIREMENTS
============================================================
- Any SQLAlchemy 2.x dialect (MySQL / PostgreSQL in production,
  SQLite for local runs and tests)
- URL from CLUSTER_ALIAS_DATABASE_URL or DATABASE_URL

============================================================
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Generator, List, Optional, TypeVar

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    TransactionError,
    TransientWriteError,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DATABASE_URL = "sqlite:///cluster_alias.db"

# Driver messages identifying lock contention (MySQL, PostgreSQL, SQLite)
TRANSIENT_ERROR_MARKERS = (
    "deadlock",
    "lock wait timeout",
    "database is locked",
    "could not serialize",
    "serialization failure",
)

# MySQL error numbers and PostgreSQL SQLSTATEs for the same conditions
TRANSIENT_ERROR_CODES = {1205, 1213, "40001", "40P01"}


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass
class WriteRetryConfig:
    """
    Retry configuration for transactional writes.

    Only lock contention is retried. Bounded, exponential backoff.
    """

    max_retries: int = 3
    """Retries after the first attempt."""

    initial_delay_seconds: float = 0.05
    """Delay before the first retry."""

    max_delay_seconds: float = 1.0
    """Upper bound for the delay between retries."""

    backoff_multiplier: float = 2.0
    """Exponential backoff multiplier."""


@dataclass
class DatabaseConfig:
    """
    Connection and pool configuration.
    """

    url: str = DEFAULT_DATABASE_URL
    """SQLAlchemy database URL."""

    pool_size: int = 5
    """Connections kept in the pool (server databases only)."""

    max_overflow: int = 10
    """Connections allowed beyond pool_size."""

    pool_timeout_seconds: int = 30
    """Seconds to wait for a pooled connection."""

    pool_recycle_seconds: int = 1800
    """Recycle pooled connections after this many seconds."""

    echo: bool = False
    """Log every SQL statement."""

    write_retry: WriteRetryConfig = field(default_factory=WriteRetryConfig)
    """Retry policy for execute_write_func()."""

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build configuration from environment variables."""
        return cls(
            url=get_database_url(),
            pool_size=int(os.getenv("CLUSTER_ALIAS_DB_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("CLUSTER_ALIAS_DB_MAX_OVERFLOW", "10")),
            echo=os.getenv("CLUSTER_ALIAS_DB_ECHO", "false").lower() in ("1", "true", "yes"),
            write_retry=WriteRetryConfig(
                max_retries=int(os.getenv("CLUSTER_ALIAS_WRITE_MAX_RETRIES", "3")),
            ),
        )


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("CLUSTER_ALIAS_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")
    return url


def is_transient_write_error(error: BaseException) -> bool:
    """
    Check whether an error is write contention worth retrying.

    Args:
        error: Exception raised while writing

    Returns:
        True for deadlocks, lock wait timeouts and serialization failures
    """
    if isinstance(error, TransientWriteError):
        return True
    if not isinstance(error, DBAPIError):
        return False

    original = error.orig
    code = getattr(original, "pgcode", None) or getattr(original, "sqlstate", None)
    if code in TRANSIENT_ERROR_CODES:
        return True

    args = getattr(original, "args", ())
    if args and isinstance(args[0], (int, str)) and args[0] in TRANSIENT_ERROR_CODES:
        return True

    message = str(original if original is not None else error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


# ============================================================
# DATABASE
# ============================================================

class Database:
    """
    Shared relational store gateway.

    ============================================================
    OPERATIONS
    ============================================================
    - session(): read session context manager
    - query(): run a read statement, optionally per-row handler
    - execute(): run one mutating statement, retried
    - execute_write_func(): run a closure in a retried transaction

    ============================================================
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the gateway. The engine is created lazily.

        Args:
            config: Connection configuration (defaults to environment)
            sleep: Sleep function used between write retries
        """
        self._config = config or DatabaseConfig.from_env()
        self._sleep = sleep
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.connect()
        return self._engine

    # =========================================================
    # CONNECTION LIFECYCLE
    # =========================================================

    def connect(self) -> Engine:
        """
        Create the SQLAlchemy engine and session factory.

        Returns:
            SQLAlchemy Engine
        """
        if self._engine is not None:
            return self._engine

        url = self._config.url
        logger.info(f"Creating database engine for: {url.split('@')[-1]}")

        if url.startswith("sqlite"):
            options: dict = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
                # In-memory databases live in a single connection
                options["poolclass"] = StaticPool
        else:
            options = {
                "poolclass": QueuePool,
                "pool_size": self._config.pool_size,
                "max_overflow": self._config.max_overflow,
                "pool_timeout": self._config.pool_timeout_seconds,
                "pool_recycle": self._config.pool_recycle_seconds,
                "pool_pre_ping": True,
            }

        self._engine = create_engine(url, echo=self._config.echo, **options)

        @event.listens_for(self._engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            logger.debug("Database connection established")

        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )
        return self._engine

    def disconnect(self) -> None:
        """Dispose the engine and its pool."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None

    def create_all(self) -> None:
        """
        Create every table registered on the declarative base.

        Raises:
            ConnectionError: If the schema cannot be created
        """
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info(f"Database tables ready: {sorted(Base.metadata.tables)}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise ConnectionError(
                repository_name="Database",
                operation="create_all",
                original_error=str(e),
            ) from e

    def health_check(self) -> bool:
        """Check that a connection can run a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    # =========================================================
    # SESSIONS & QUERIES
    # =========================================================

    def _new_session(self) -> Session:
        if self._session_factory is None:
            self.connect()
        return self._session_factory()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for non-transactional reads.

        Usage:
            with database.session() as session:
                repo = ClusterAliasRepository(session)
                repo.get_alias_by_cluster_name("clusterA")
        """
        session = self._new_session()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def query(
        self,
        statement: Any,
        row_handler: Optional[Callable[[RowMapping], None]] = None,
    ) -> List[RowMapping]:
        """
        Run a read statement.

        Args:
            statement: SQLAlchemy selectable
            row_handler: Called with each row mapping (named columns)

        Returns:
            All result rows as mappings
        """
        with self.session() as session:
            rows = list(session.execute(statement).mappings())
        if row_handler is not None:
            for row in rows:
                row_handler(row)
        return rows

    def execute(self, statement: Any, operation: str = "execute") -> int:
        """
        Run a single mutating statement in its own retried transaction.

        Returns:
            Number of rows affected
        """
        return self.execute_write_func(
            lambda session: session.execute(statement).rowcount,
            operation=operation,
        )

    def execute_write_func(
        self,
        write_func: Callable[[Session], T],
        operation: str = "write",
    ) -> T:
        """
        Run a write function inside a transaction, retrying contention.

        The function receives a fresh session per attempt. The
        transaction commits when the function returns and rolls back
        on any exception. Deadlocks and lock wait timeouts are retried
        with exponential backoff; other errors propagate at once.

        Args:
            write_func: Closure performing the writes
            operation: Name used in logs and errors

        Returns:
            Whatever write_func returns

        Raises:
            TransientWriteError: Contention outlived every retry
            TransactionError: Unwrapped SQLAlchemy failure
            RepositoryException: Anything the repositories raised
        """
        retry = self._config.write_retry
        max_attempts = retry.max_retries + 1
        delay = retry.initial_delay_seconds

        for attempt in range(1, max_attempts + 1):
            session = self._new_session()
            try:
                result = write_func(session)
                session.commit()
                return result
            except Exception as e:
                session.rollback()

                if not is_transient_write_error(e):
                    if isinstance(e, SQLAlchemyError):
                        logger.error(
                            f"Write '{operation}' failed: {e}",
                            exc_info=True,
                        )
                        raise TransactionError(
                            repository_name="Database",
                            operation=operation,
                            phase="commit",
                            original_error=str(e),
                        ) from e
                    raise

                if attempt >= max_attempts:
                    logger.error(
                        f"Write '{operation}' still contended after "
                        f"{attempt} attempt(s): {e}"
                    )
                    raise TransientWriteError(
                        repository_name="Database",
                        operation=operation,
                        original_error=str(e),
                        attempts=attempt,
                    ) from e

                logger.warning(
                    f"Write '{operation}' contended "
                    f"(attempt {attempt}/{max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                self._sleep(delay)
                delay = min(
                    delay * retry.backoff_multiplier,
                    retry.max_delay_seconds,
                )
            finally:
                session.close()

        # Loop always returns or raises
        raise AssertionError("unreachable")
