"""Shared SQL implementation of StoragePort.

DuckDB and PostgreSQL speak nearly the same SQL for the simple per-record
operations the console needs; the differences are the parameter placeholder,
the engine column types and how a cursor is obtained and committed. Concrete
adapters supply those through ``PLACEHOLDER``, ``COLUMN_TYPES`` and
``_cursor()``; everything else lives here.

Architecture:
    - Implements StoragePort (Hexagonal Architecture)
    - Each public operation commits on its own; there is no cross-operation
      transaction, so a failed bulk import keeps the rows written before it
    - Every public operation returns a Result and never raises for data errors
    - Table and column identifiers are validated against TABLE_SPECS
"""

import json
import logging
import uuid
from abc import abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel

from src.adapters.storage.schema import (
    CREATED_AT_COLUMN,
    ID_COLUMN,
    TABLE_SPECS,
    ColumnType,
    TableSpec,
)
from src.domain.coercion import utc_now
from src.domain.entity_kinds import AUDIT_TABLE
from src.domain.ports import RecordNotFoundError, Result, StorageError, StoragePort

logger = logging.getLogger(__name__)


class RelationalStorageAdapter(StoragePort):
    """Base class for SQL storage adapters.

    Subclasses provide:
        PLACEHOLDER: Bound-parameter marker ("?" or "%s")
        COLUMN_TYPES: Engine type per logical ColumnType
        _cursor(): Context manager yielding a cursor, committing on success
            and rolling back on error
    """

    PLACEHOLDER = "?"
    COLUMN_TYPES: dict[ColumnType, str] = {}

    def __init__(self):
        self._initialized = False

    @abstractmethod
    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """Yield a cursor for one unit of work."""
        yield None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _table_spec(table: str) -> TableSpec:
        spec = TABLE_SPECS.get(table)
        if spec is None:
            raise StorageError(f"Unknown table: {table}", operation="lookup", details={"table": table})
        return spec

    @staticmethod
    def _check_column(spec: TableSpec, column: str) -> None:
        if spec.column_type(column) is None:
            raise StorageError(
                f"Unknown column '{column}' for table {spec.name}",
                operation="lookup",
                details={"table": spec.name, "column": column},
            )

    @staticmethod
    def _encode(column_type: ColumnType, value: Any) -> Any:
        if value is None:
            return None
        if column_type == ColumnType.JSON:
            return json.dumps(value, default=str)
        return value

    @staticmethod
    def _decode(column_type: Optional[ColumnType], value: Any) -> Any:
        if column_type == ColumnType.JSON and isinstance(value, str):
            return json.loads(value)
        return value

    def _row_to_dict(self, spec: TableSpec, columns: list[str], row: tuple) -> dict:
        return {column: self._decode(spec.column_type(column), value) for column, value in zip(columns, row)}

    def _ensure_schema(self) -> None:
        if not self._initialized:
            result = self.initialize_schema()
            if not result.is_success():
                raise StorageError(result.error or "Schema initialization failed", operation="initialize_schema")

    def _failure(self, operation: str, error: Exception, **details) -> Result:
        if isinstance(error, StorageError):
            logger.warning(f"{operation} failed: {error}")
            return Result.failure_result(error, error_type=type(error).__name__, error_details={**error.details, **details})
        error_msg = f"Failed to {operation}: {str(error)}"
        logger.error(error_msg, exc_info=True)
        return Result.failure_result(
            StorageError(error_msg, operation=operation, details=details),
            error_type="StorageError",
            error_details=details,
        )

    def _exists(self, cursor, table: str, record_id: str) -> bool:
        cursor.execute(f"SELECT {ID_COLUMN} FROM {table} WHERE {ID_COLUMN} = {self.PLACEHOLDER}", [record_id])
        return cursor.fetchone() is not None

    # ------------------------------------------------------------------
    # StoragePort
    # ------------------------------------------------------------------

    def initialize_schema(self) -> Result[None]:
        """Create every registered table if it does not exist yet."""
        try:
            with self._cursor() as cursor:
                for spec in TABLE_SPECS.values():
                    column_defs = [
                        f"{ID_COLUMN} {self.COLUMN_TYPES[ColumnType.TEXT]} PRIMARY KEY",
                        f"{CREATED_AT_COLUMN} {self.COLUMN_TYPES[ColumnType.TIMESTAMP]} NOT NULL",
                    ]
                    column_defs += [
                        f"{column} {self.COLUMN_TYPES[column_type]}"
                        for column, column_type in spec.columns.items()
                    ]
                    cursor.execute(f"CREATE TABLE IF NOT EXISTS {spec.name} ({', '.join(column_defs)})")
            self._initialized = True
            logger.info(f"Initialized schema ({len(TABLE_SPECS)} tables)")
            return Result.success_result(None)
        except Exception as e:
            return self._failure("initialize_schema", e)

    def insert(self, table: str, record: Union[BaseModel, dict]) -> Result[str]:
        """Insert one record; unknown keys are ignored."""
        try:
            spec = self._table_spec(table)
            self._ensure_schema()
            data = record.model_dump() if isinstance(record, BaseModel) else dict(record)

            record_id = str(uuid.uuid4())
            columns = [ID_COLUMN, CREATED_AT_COLUMN]
            values: list[Any] = [record_id, utc_now()]
            for column, column_type in spec.columns.items():
                if column in data:
                    columns.append(column)
                    values.append(self._encode(column_type, data[column]))

            placeholders = ", ".join([self.PLACEHOLDER] * len(columns))
            with self._cursor() as cursor:
                cursor.execute(f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})", values)

            logger.debug(f"Inserted {table} record {record_id}")
            return Result.success_result(record_id)
        except Exception as e:
            return self._failure("insert", e, table=table)

    def update(self, table: str, record_id: str, fields: dict) -> Result[None]:
        """Replace the given columns of one record."""
        try:
            spec = self._table_spec(table)
            for column in fields:
                if column in (ID_COLUMN, CREATED_AT_COLUMN):
                    raise StorageError(f"Column '{column}' is not updatable", operation="update")
                self._check_column(spec, column)
            self._ensure_schema()

            with self._cursor() as cursor:
                if not self._exists(cursor, table, record_id):
                    raise RecordNotFoundError(
                        f"No {table} record with id {record_id}",
                        operation="update",
                        details={"table": table, "record_id": record_id},
                    )
                if fields:
                    assignments = ", ".join(f"{column} = {self.PLACEHOLDER}" for column in fields)
                    values = [self._encode(spec.columns[column], value) for column, value in fields.items()]
                    cursor.execute(
                        f"UPDATE {table} SET {assignments} WHERE {ID_COLUMN} = {self.PLACEHOLDER}",
                        [*values, record_id],
                    )
            return Result.success_result(None)
        except Exception as e:
            return self._failure("update", e, table=table, record_id=record_id)

    def delete(self, table: str, record_id: str) -> Result[None]:
        """Delete one record by id."""
        try:
            self._table_spec(table)
            self._ensure_schema()
            with self._cursor() as cursor:
                if not self._exists(cursor, table, record_id):
                    raise RecordNotFoundError(
                        f"No {table} record with id {record_id}",
                        operation="delete",
                        details={"table": table, "record_id": record_id},
                    )
                cursor.execute(f"DELETE FROM {table} WHERE {ID_COLUMN} = {self.PLACEHOLDER}", [record_id])
            return Result.success_result(None)
        except Exception as e:
            return self._failure("delete", e, table=table, record_id=record_id)

    def delete_all(self, table: str) -> Result[int]:
        """Delete every record of a table."""
        try:
            self._table_spec(table)
            self._ensure_schema()
            with self._cursor() as cursor:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                removed = cursor.fetchone()[0]
                cursor.execute(f"DELETE FROM {table}")
            logger.info(f"Deleted {removed} records from {table}")
            return Result.success_result(int(removed))
        except Exception as e:
            return self._failure("delete_all", e, table=table)

    def fetch_all(self, table: str) -> Result[list[dict]]:
        """Return every record in insertion order."""
        try:
            spec = self._table_spec(table)
            self._ensure_schema()
            columns = spec.all_columns
            with self._cursor() as cursor:
                cursor.execute(f"SELECT {', '.join(columns)} FROM {table} ORDER BY {CREATED_AT_COLUMN}, {ID_COLUMN}")
                rows = cursor.fetchall()
            return Result.success_result([self._row_to_dict(spec, columns, row) for row in rows])
        except Exception as e:
            return self._failure("fetch_all", e, table=table)

    def find_ids(self, table: str, field: str, value: Any) -> Result[list[str]]:
        """Return ids of records whose column equals the value exactly."""
        try:
            spec = self._table_spec(table)
            self._check_column(spec, field)
            self._ensure_schema()
            with self._cursor() as cursor:
                cursor.execute(
                    f"SELECT {ID_COLUMN} FROM {table} WHERE {field} = {self.PLACEHOLDER} "
                    f"ORDER BY {CREATED_AT_COLUMN}, {ID_COLUMN}",
                    [value],
                )
                rows = cursor.fetchall()
            return Result.success_result([row[0] for row in rows])
        except Exception as e:
            return self._failure("find_ids", e, table=table, field=field)

    def count(self, table: str) -> Result[int]:
        try:
            self._table_spec(table)
            self._ensure_schema()
            with self._cursor() as cursor:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                total = cursor.fetchone()[0]
            return Result.success_result(int(total))
        except Exception as e:
            return self._failure("count", e, table=table)

    def log_audit_event(
        self,
        event_type: str,
        table: Optional[str],
        details: Optional[dict] = None
    ) -> Result[str]:
        """Append an event to the audit_log table."""
        result = self.insert(AUDIT_TABLE, {"event_type": event_type, "table_name": table, "details": details or {}})
        if result.is_success():
            logger.debug(f"Logged audit event: {event_type} (ID: {result.value})")
        return result

    def query(self, sql: str) -> Result[list]:
        """Run a read-only statement and return all rows."""
        try:
            with self._cursor() as cursor:
                cursor.execute(sql)
                rows = cursor.fetchall()
            return Result.success_result(rows)
        except Exception as e:
            return self._failure("query", e)
