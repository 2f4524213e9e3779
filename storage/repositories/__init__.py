"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
The Repository Layer is the ONLY gateway to persistent storage.
All database access MUST go through repository classes.

============================================================
ARCHITECTURE PRINCIPLES
============================================================
1. DAO Pattern: One repository per table (or tightly related set)
2. Session Injection: Sessions are injected, not created internally
3. Explicit Methods: No generic 'execute', clear method names
4. Exception Handling: All DB errors wrapped in repository exceptions

Domain repositories subclass storage.repositories.base.BaseRepository.
Only the exceptions are re-exported here, since storage.database
imports them while it is itself being imported.

============================================================
"""

from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RecordNotFoundError,
    RepositoryException,
    TransactionError,
    TransientWriteError,
    ValidationError,
)

__all__ = [
    "ConnectionError",
    "DuplicateRecordError",
    "IntegrityError",
    "QueryError",
    "RecordNotFoundError",
    "RepositoryException",
    "TransactionError",
    "TransientWriteError",
    "ValidationError",
]
