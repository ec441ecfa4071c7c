"""DuckDB Storage Adapter.

This adapter implements the StoragePort contract on DuckDB, an in-process
database. It is the default store: a single file for a small facility
deployment, or ``:memory:`` for tests and throwaway sessions.

Architecture:
    - Implements StoragePort through RelationalStorageAdapter
    - One lazily opened connection, guarded by a lock because the API serves
      requests from a thread pool
    - Each operation runs in its own transaction (commit or rollback)
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import duckdb

from src.adapters.storage.base import RelationalStorageAdapter
from src.adapters.storage.schema import ColumnType
from src.domain.ports import StorageError
from src.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)


class DuckDBAdapter(RelationalStorageAdapter):
    """DuckDB implementation of StoragePort.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        adapter = DuckDBAdapter(db_config=get_database_config())
        # or
        adapter = DuckDBAdapter(db_path="data/concierge.duckdb")

        result = adapter.initialize_schema()
        if result.is_success():
            adapter.insert("guidelines", GuidelineRecord(title="Quiet hours"))
        ```
    """

    PLACEHOLDER = "?"
    COLUMN_TYPES = {
        ColumnType.TEXT: "VARCHAR",
        ColumnType.BOOLEAN: "BOOLEAN",
        ColumnType.INTEGER: "INTEGER",
        ColumnType.TIMESTAMP: "TIMESTAMP",
        ColumnType.JSON: "VARCHAR",
    }

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None
    ):
        """Initialize DuckDB adapter.

        Parameters:
            db_config: DatabaseConfig from configuration manager (preferred)
            db_path: Path to DuckDB database file

        Note:
            If both db_config and db_path are provided, db_config takes precedence.
            If neither is provided, defaults to in-memory database.
            The connection is opened lazily on first operation.
        """
        super().__init__()
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
        else:
            self.db_path = db_path or ":memory:"

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    @contextmanager
    def _cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._lock:
            conn = self._get_connection()
            conn.begin()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close the DuckDB connection."""
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                    logger.info("Closed DuckDB connection")
                except Exception as e:
                    logger.warning(f"Error closing DuckDB connection: {str(e)}")
                finally:
                    self._connection = None
                    self._initialized = False
