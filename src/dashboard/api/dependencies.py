"""Dependency injection for the operations API.

Routes receive the storage adapter, the language model and the services
built on them through FastAPI dependencies, so tests can swap any of them via
``app.dependency_overrides``.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.adapters.ingesters import CSVImporter
from src.domain.ports import LanguageModelPort, StoragePort
from src.domain.services import SmartUpdateService
from src.main import create_language_model, create_storage_adapter

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_adapter() -> StoragePort:
    """Get the configured storage adapter (cached for the process).

    Returns:
        StoragePort: DuckDB or PostgreSQL adapter, per CONCIERGE_DB_TYPE
    """
    return create_storage_adapter()


@lru_cache()
def get_language_model() -> LanguageModelPort:
    """Get the configured language model adapter (cached for the process)."""
    return create_language_model()


StorageDep = Annotated[StoragePort, Depends(get_storage_adapter)]
LanguageModelDep = Annotated[LanguageModelPort, Depends(get_language_model)]


def get_csv_importer(storage: StorageDep) -> CSVImporter:
    """Per-request CSV importer over the shared store."""
    return CSVImporter(storage)


def get_smart_update_service(storage: StorageDep, language_model: LanguageModelDep) -> SmartUpdateService:
    """Per-request smart update service."""
    return SmartUpdateService(storage, language_model)


CSVImporterDep = Annotated[CSVImporter, Depends(get_csv_importer)]
SmartUpdateDep = Annotated[SmartUpdateService, Depends(get_smart_update_service)]
