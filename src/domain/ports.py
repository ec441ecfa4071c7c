"""Domain Ports - Abstract Contracts for Storage and Language Models.

This module defines the Port interfaces (abstract contracts) that Adapters must implement,
plus the Result type and exception hierarchy shared by every layer.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Storage adapters (DuckDB, PostgreSQL) implement StoragePort
    - Language model adapters (OpenAI) implement LanguageModelPort
    - The store handle is injected into importers and services, never a module singleton
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Storage adapters return Result objects so that callers decide whether a
    failure aborts the whole operation (general CSV import) or is tolerated
    per record (diff deletions, supervisor links, medication groups).

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StorageError, RecordNotFoundError, etc.)
        error_details: Additional error context (table, record_id, etc.)

    Example:
        ```python
        result = storage.insert("meals", meal_record)
        if result.is_success():
            record_id = result.value
        else:
            logger.error(result.error, extra=result.error_details)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "StorageError", "RecordNotFoundError")
            error_details: Additional context (table, record_id, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class IngestionError(Exception):
    """Base exception for structural import errors.

    Raised when an upload cannot be imported at all (unknown table, empty
    file, header mismatch). These are "fix your input" errors and are never
    partially applied.
    """
    pass


class ValidationError(IngestionError):
    """Raised when uploaded data fails structural validation.

    Attributes:
        source: The source identifier that failed validation
        details: Additional error details or validation messages
    """

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.source = source
        self.details = details or {}


class HeaderMismatchError(ValidationError):
    """Raised when CSV headers do not match the target entity kind.

    Attributes:
        expected: Expected header list for the kind
        received: Headers found in the upload
        missing: Expected headers that were absent (original casing)
        unexpected: Uploaded headers that were not expected (original casing)
    """

    def __init__(
        self,
        message: str,
        expected: list[str],
        received: list[str],
        missing: list[str],
        unexpected: list[str],
        source: Optional[str] = None
    ):
        super().__init__(
            message,
            source=source,
            details={
                "expected": expected,
                "received": received,
                "missing": missing,
                "unexpected": unexpected,
            }
        )
        self.expected = expected
        self.received = received
        self.missing = missing
        self.unexpected = unexpected


class EmptySourceError(IngestionError):
    """Raised when an upload contains no parseable data rows."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UnknownEntityKindError(IngestionError):
    """Raised when a table/entity-kind key is not part of the fixed catalog.

    Attributes:
        key: The unrecognised key as supplied by the caller
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class StorageError(Exception):
    """Raised when a persistence operation fails.

    Attributes:
        operation: The storage operation that failed (insert, delete_all, ...)
        details: Additional context (table, record_id, etc.)
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class RecordNotFoundError(StorageError):
    """Raised when an id-addressed operation targets a record that does not exist."""
    pass


class ImportAbortedError(StorageError):
    """Raised when a general-purpose import stops at its first failed row.

    Rows inserted before the failure stay committed; there is no rollback.

    Attributes:
        imported_count: Rows committed before the failure
        row_index: Zero-based index of the row that failed
    """

    def __init__(self, message: str, imported_count: int, row_index: int, details: Optional[dict] = None):
        super().__init__(message, operation="import", details=details)
        self.imported_count = imported_count
        self.row_index = row_index


class ReconciliationError(Exception):
    """Base exception for instruction-to-diff reconciliation failures."""
    pass


class UnsupportedKindError(ReconciliationError):
    """Raised when smart update is requested for a kind that only supports raw override."""

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class LanguageModelError(ReconciliationError):
    """Raised when the language model cannot be reached or returns nothing."""
    pass


class MalformedModelResponseError(ReconciliationError):
    """Raised when the language model response is not a valid diff.

    Attributes:
        raw: The raw response text, surfaced verbatim for diagnosis
    """

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


# ============================================================================
# Storage Port
# ============================================================================

class StoragePort(ABC):
    """Abstract contract for the relational store holding reference data.

    Every entity kind lives in its own table; records are addressed by a
    generated string id. Operations are synchronous and commit individually,
    there is no cross-operation transaction.

    Key Principles:
        - Injected: importers and services receive the adapter at construction
        - Explicit failures: every call returns a Result, never raises for data errors
        - Table names are validated against a fixed registry before use
    """

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create all tables if they do not exist yet."""
        pass

    @abstractmethod
    def insert(self, table: str, record: Union[BaseModel, dict]) -> Result[str]:
        """Insert one record and return its generated id.

        Parameters:
            table: Target table name
            record: Typed record (or plain dict) whose keys match table columns

        Returns:
            Result[str]: Generated record id
        """
        pass

    @abstractmethod
    def update(self, table: str, record_id: str, fields: dict) -> Result[None]:
        """Replace the given fields of one record.

        Returns:
            Result[None]: Failure with RecordNotFoundError if the id is unknown
        """
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> Result[None]:
        """Delete one record by id.

        Returns:
            Result[None]: Failure with RecordNotFoundError if the id is unknown
        """
        pass

    @abstractmethod
    def delete_all(self, table: str) -> Result[int]:
        """Delete every record of a table and return how many were removed."""
        pass

    @abstractmethod
    def fetch_all(self, table: str) -> Result[list[dict]]:
        """Return every record of a table as dictionaries (JSON columns decoded)."""
        pass

    @abstractmethod
    def find_ids(self, table: str, field: str, value: Any) -> Result[list[str]]:
        """Return ids of records whose column equals the value exactly."""
        pass

    @abstractmethod
    def count(self, table: str) -> Result[int]:
        """Return the number of records in a table."""
        pass

    @abstractmethod
    def log_audit_event(
        self,
        event_type: str,
        table: Optional[str],
        details: Optional[dict] = None
    ) -> Result[str]:
        """Append an event to the audit trail.

        Parameters:
            event_type: Event name (csv_import, smart_update, ...)
            table: Table the event touched, if any
            details: Free-form JSON-serialisable context

        Returns:
            Result[str]: Generated audit event id
        """
        pass

    @abstractmethod
    def query(self, sql: str) -> Result[list]:
        """Run a read-only SQL statement (used for health checks)."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection and release resources."""
        pass


# ============================================================================
# Language Model Port
# ============================================================================

class LanguageModelPort(ABC):
    """Abstract contract for the external language model.

    The model is a black box: prompt in, JSON text out. It may fail or
    return malformed output; callers must treat the text as untrusted.
    """

    @abstractmethod
    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """Request a JSON-only completion.

        Parameters:
            system_prompt: Instructions, schema and data snapshot
            user_prompt: The operator's free-text instruction

        Returns:
            str: Raw response text (expected, not guaranteed, to be JSON)

        Raises:
            LanguageModelError: If the model is not configured, unreachable,
                or returns an empty response
        """
        pass
