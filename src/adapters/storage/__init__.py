"""Storage adapters for the concierge operations console.

This module contains storage adapters that implement the StoragePort interface
for persisting reference records and the audit trail.
"""

from src.adapters.storage.duckdb_adapter import DuckDBAdapter
from src.adapters.storage.postgresql_adapter import PostgreSQLAdapter

__all__ = ["DuckDBAdapter", "PostgreSQLAdapter"]
