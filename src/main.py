"""Composition root and script entry point for the concierge operations console.

This module wires configuration to concrete adapters (storage, language
model) and exposes a plain ``python -m src.main`` import entry point. The
Typer CLI (``src.cli``) and the API dependencies reuse the same factories.

Architecture:
    - Follows Hexagonal Architecture principles
    - Storage adapter is selected via the configuration manager
    - Domain services receive adapters at construction
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from src.adapters.ingesters import CSVImporter, ImportOutcome
from src.adapters.llm import OpenAIChatAdapter
from src.adapters.storage import DuckDBAdapter, PostgreSQLAdapter
from src.domain.entity_kinds import EntityKind
from src.domain.ports import IngestionError, LanguageModelPort, StorageError, StoragePort
from src.infrastructure.config_manager import (
    DatabaseConfig,
    LanguageModelConfig,
    get_database_config,
    get_language_model_config,
)

logger = logging.getLogger(__name__)


def create_storage_adapter(db_config: Optional[DatabaseConfig] = None) -> StoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        db_config: Explicit configuration (defaults to the environment)

    Returns:
        StoragePort: Configured storage adapter instance

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = db_config or get_database_config()

    if db_config.db_type == "duckdb":
        logger.info(f"Initializing DuckDB adapter with path: {db_config.db_path or ':memory:'}")
        return DuckDBAdapter(db_config=db_config)
    elif db_config.db_type == "postgresql":
        logger.info(f"Initializing PostgreSQL adapter with host: {db_config.host}")
        return PostgreSQLAdapter(db_config=db_config)
    else:
        raise ValueError(f"Unsupported database type: {db_config.db_type}")


def create_language_model(llm_config: Optional[LanguageModelConfig] = None) -> LanguageModelPort:
    """Create the language model adapter (the API key is checked on first use)."""
    llm_config = llm_config or get_language_model_config()
    logger.debug(f"Language model: {llm_config.model} (configured: {llm_config.is_configured()})")
    return OpenAIChatAdapter(llm_config)


def process_import(
    source: str,
    kind: str,
    storage: StoragePort,
    clear_existing: bool = False
) -> ImportOutcome:
    """Import one CSV file into the table of an entity kind.

    Parameters:
        source: CSV file path
        kind: Entity kind wire key ("meals", "staff", ...)
        storage: Storage adapter instance
        clear_existing: Delete current records of the kind first

    Returns:
        ImportOutcome: Imported and total row counts

    Raises:
        RuntimeError: If schema initialization fails
        IngestionError: For structural input problems
        StorageError: For persistence failures
    """
    schema_result = storage.initialize_schema()
    if not schema_result.is_success():
        raise RuntimeError(f"Schema initialization failed: {schema_result.error}")

    importer = CSVImporter(storage)
    return importer.import_file(source, kind, clear_existing=clear_existing)


def main() -> int:
    """Plain import entry point: ``python -m src.main FILE --table KIND``."""
    from src.dashboard.api.logging_config import setup_logging
    from src.infrastructure.settings import settings

    parser = argparse.ArgumentParser(
        description="Import an operator CSV export into the concierge console store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Tables: " + ", ".join(kind.value for kind in EntityKind),
    )
    parser.add_argument("source", type=str, help="CSV file to import")
    parser.add_argument("--table", "-t", required=True, help="Target table key (e.g. meals, staff)")
    parser.add_argument("--clear-existing", action="store_true", help="Delete current records of the table first")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(use_json=settings.log_json, log_level="DEBUG" if args.verbose else settings.log_level)

    if not Path(args.source).exists():
        logger.error(f"Source file not found: {args.source}")
        return 1

    storage = create_storage_adapter()
    try:
        outcome = process_import(args.source, args.table, storage, clear_existing=args.clear_existing)
    except (IngestionError, StorageError, RuntimeError) as e:
        logger.error(f"Import failed: {e}")
        return 1
    finally:
        storage.close()

    logger.info(f"Imported {outcome.imported_count} of {outcome.total_row_count} rows into {args.table}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
