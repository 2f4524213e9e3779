"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Shared plumbing for the alias directory repositories:
- Statement execution against an injected session
- Native single-statement upserts per dialect
- Translation of SQLAlchemy errors into repository exceptions
- Per-repository logger

============================================================
USAGE
============================================================
Repositories never open or commit transactions. They run inside
the session handed to them by Database.session() (reads) or
Database.execute_write_func() (writes).

============================================================
"""

import logging
from abc import ABC
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Table
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from storage.database import is_transient_write_error
from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RepositoryException,
    TransientWriteError,
)


T = TypeVar("T", bound=Base)


def build_upsert(table: Table, dialect_name: str, values: dict, key_columns: List[str]) -> Any:
    """
    Build a single-statement insert-or-replace for the given dialect.

    MySQL and MariaDB use ON DUPLICATE KEY UPDATE; PostgreSQL and
    SQLite use ON CONFLICT (key) DO UPDATE. Non-key columns take the
    new values.

    Raises:
        ValueError: Dialect has no native upsert here
    """
    updates = {name: value for name, value in values.items() if name not in key_columns}

    if dialect_name in ("mysql", "mariadb"):
        return mysql_insert(table).values(**values).on_duplicate_key_update(**updates)
    if dialect_name == "postgresql":
        return postgresql_insert(table).values(**values).on_conflict_do_update(
            index_elements=key_columns, set_=updates
        )
    if dialect_name == "sqlite":
        return sqlite_insert(table).values(**values).on_conflict_do_update(
            index_elements=key_columns, set_=updates
        )
    raise ValueError(f"No upsert statement for dialect '{dialect_name}'")


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base class for all repositories.

    Subclasses bind a model and a name:

        class ClusterAliasRepository(BaseRepository[ClusterAlias]):
            def __init__(self, session: Session) -> None:
                super().__init__(session, ClusterAlias, "ClusterAliasRepository")
    """

    def __init__(
        self,
        session: Session,
        model_class: Type[T],
        repository_name: str
    ) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def repository_name(self) -> str:
        return self._repository_name

    # =========================================================
    # ERROR TRANSLATION
    # =========================================================

    def _translate_error(
        self,
        error: SQLAlchemyError,
        operation: str,
        context: Optional[dict] = None
    ) -> RepositoryException:
        """
        Map a SQLAlchemy error to the repository exception callers see.

        Lock contention becomes TransientWriteError so that the write
        helper can retry it. Unique violations become
        DuplicateRecordError, reported against context["field"] and
        context["value"] when the caller supplies them.
        """
        context = context or {}
        self._logger.error(
            f"{self._repository_name}.{operation} failed: {error}",
            extra={"context": context},
        )

        if is_transient_write_error(error):
            return TransientWriteError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error),
            )

        if isinstance(error, SQLAlchemyIntegrityError):
            text = str(error).lower()
            if "unique" in text or "duplicate" in text:
                return DuplicateRecordError(
                    repository_name=self._repository_name,
                    operation=operation,
                    constraint_field=context.get("field", "unknown"),
                    value=context.get("value", "unknown"),
                )
            return IntegrityError(
                repository_name=self._repository_name,
                operation=operation,
                constraint_name="unknown",
                message=str(error),
            )

        if isinstance(error, OperationalError):
            return ConnectionError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error),
            )

        return QueryError(
            repository_name=self._repository_name,
            operation=operation,
            query_description=operation,
            original_error=str(error),
        )

    # =========================================================
    # STATEMENT HELPERS
    # =========================================================

    def _upsert(
        self,
        values: dict,
        key_columns: List[str],
        context: Optional[dict] = None
    ) -> None:
        """
        Insert a row, or replace its non-key columns if the key exists.

        One native statement; no lookup precedes the insert.
        """
        dialect_name = self._session.get_bind().dialect.name
        try:
            stmt = build_upsert(self._model_class.__table__, dialect_name, values, key_columns)
        except ValueError as e:
            raise QueryError(
                repository_name=self._repository_name,
                operation="upsert",
                query_description="build upsert",
                original_error=str(e),
            ) from e

        try:
            self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._translate_error(e, "upsert", context) from e
        self._logger.debug(f"Upserted {self._model_class.__tablename__} {values}")

    def _get_by_id(self, record_id: Any) -> Optional[T]:
        try:
            return self._session.get(self._model_class, record_id)
        except SQLAlchemyError as e:
            raise self._translate_error(e, "get_by_id", {"id": str(record_id)}) from e

    def _execute_query(self, stmt: Any) -> List[T]:
        """Run a select over the model and return entities."""
        try:
            return list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise self._translate_error(e, "query") from e

    def _execute_rows(self, stmt: Any) -> List[Any]:
        """Run a select over named columns and return row mappings."""
        try:
            return list(self._session.execute(stmt).mappings().all())
        except SQLAlchemyError as e:
            raise self._translate_error(e, "query_rows") from e

    def _execute_scalar(self, stmt: Any) -> Optional[Any]:
        """First column of the first row, or None."""
        try:
            return self._session.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise self._translate_error(e, "query_scalar") from e

    def _execute_update(
        self,
        stmt: Any,
        operation: str,
        context: Optional[dict] = None
    ) -> int:
        """Run an update and return the number of rows it touched."""
        try:
            return self._session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise self._translate_error(e, operation, context) from e
