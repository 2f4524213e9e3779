"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
Errors raised by the storage layer and the alias directory. No
SQLAlchemy exception escapes a repository or the write helper
unwrapped.

============================================================
TAXONOMY
============================================================
RepositoryException (base)
├── RecordNotFoundError      lookup resolved to nothing
├── ValidationError          rejected before reaching the store
├── TransientWriteError      write contention outlived every retry
└── persistent failures
    ├── ConnectionError
    ├── QueryError
    ├── IntegrityError
    ├── DuplicateRecordError
    └── TransactionError

Only TransientWriteError is retryable. The transactional write
helper retries contention itself; callers see this exception only
once the retry budget is spent.

============================================================
"""

from typing import Any, Optional


class RepositoryException(Exception):
    """
    Base exception for all storage and directory failures.

    The CLI and the sync loop catch this to report a failed command
    or cycle without stopping.
    """

    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return f"[{self.repository_name}] {self.operation}: {self.message}"


class RecordNotFoundError(RepositoryException):
    """
    Raised when a requested record does not exist.

    Alias lookups raise this when neither an alias nor a cluster
    name matches the requested value.
    """

    def __init__(
        self,
        repository_name: str,
        record_id: Any,
        id_field: str = "id"
    ) -> None:
        super().__init__(
            message=f"Record with {id_field}={record_id} not found",
            repository_name=repository_name,
            operation="get",
            details={id_field: str(record_id)}
        )
        self.record_id = record_id
        self.id_field = id_field


class DuplicateRecordError(RepositoryException):
    """
    Raised when a write collides with an existing primary key.

    Renaming a cluster onto a name that already owns a row ends up
    here.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        constraint_field: str,
        value: Any
    ) -> None:
        super().__init__(
            message=f"Duplicate record: {constraint_field}={value} already exists",
            repository_name=repository_name,
            operation=operation,
            details={"field": constraint_field, "value": str(value)}
        )
        self.constraint_field = constraint_field
        self.value = value


class IntegrityError(RepositoryException):
    """
    Raised on a constraint violation other than a key collision.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        constraint_name: str,
        message: str
    ) -> None:
        super().__init__(
            message=f"Integrity constraint violated ({constraint_name}): {message}",
            repository_name=repository_name,
            operation=operation,
            details={"constraint": constraint_name}
        )
        self.constraint_name = constraint_name


class ConnectionError(RepositoryException):
    """
    Raised when the store cannot be reached or refuses the session.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Database connection failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class QueryError(RepositoryException):
    """
    Raised when a statement fails for a reason not classified above.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        query_description: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Query failed ({query_description}): {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={
                "query_description": query_description,
                "original_error": original_error
            }
        )


class TransactionError(RepositoryException):
    """
    Raised when a write transaction fails without contention.

    The write helper reports these with phase="commit".
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        phase: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Transaction {phase} failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"phase": phase, "original_error": original_error}
        )
        self.phase = phase


class TransientWriteError(RepositoryException):
    """
    Raised when a write fails on lock contention.

    Deadlocks, lock wait timeouts and serialization failures land
    here. Raised from inside a write function it signals the
    transactional helper to retry; raised by the helper itself it
    means the retry budget is exhausted.
    """

    is_retryable = True

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str,
        attempts: int = 1
    ) -> None:
        super().__init__(
            message=f"Write contention after {attempts} attempt(s): {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error, "attempts": attempts}
        )
        self.attempts = attempts


class ValidationError(RepositoryException):
    """
    Raised when an argument is rejected before any statement runs.

    Blank cluster names and aliases end up here.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        field: str,
        reason: str
    ) -> None:
        super().__init__(
            message=f"Validation failed for {field}: {reason}",
            repository_name=repository_name,
            operation=operation,
            details={"field": field, "reason": reason}
        )
        self.field = field
        self.reason = reason
