"""CSV Import Dispatch.

Orchestrates one bulk import request end to end:

    parse -> validate headers -> (clear existing) -> coerce + link -> persist

Structural problems (unknown kind, no data rows, header mismatch) are raised
before anything is written. Per-row anomalies never raise: the coercers fall
back to named defaults and unresolved references become "no link".

Row failure policy per kind:
    - General kinds insert sequentially and stop at the first failed insert
      with ImportAbortedError. Rows inserted before it stay committed.
    - Staff imports insert every member first, then link supervisors in a
      second pass; a link that cannot be resolved or written is skipped.
    - Medication imports group rows per user; a group whose user is unknown,
      ambiguous or cannot be written is skipped as a whole.

Architecture:
    - The storage adapter is injected (StoragePort), never a module global
    - Clear-existing deletes before inserting, with no rollback on failure
    - Every completed import writes a ``csv_import`` audit event
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from src.adapters.ingesters.csv_parser import ParsedTable, parse_csv
from src.adapters.ingesters.header_validator import validate_headers
from src.domain.entity_kinds import EntityKind
from src.domain.ports import (
    EmptySourceError,
    HeaderMismatchError,
    ImportAbortedError,
    StorageError,
    StoragePort,
    ValidationError,
)
from src.domain.records import MedicationEntry, MedicationScheduleRecord
from src.domain.row_coercers import (
    ROW_COERCERS,
    CsvRow,
    ReferenceResolver,
    coerce_medication_entry,
    medication_owner,
)

logger = logging.getLogger(__name__)

HEADER_MISMATCH_MESSAGE = "Column mismatch: your CSV doesn't match the target table"
NO_DATA_MESSAGE = "No data rows found in CSV"


@dataclass
class ImportOutcome:
    """Result of a completed import.

    Attributes:
        kind: Entity kind that was imported
        imported_count: Records written (medication lines for medications)
        total_row_count: Data rows parsed from the upload
        cleared_count: Records removed by clear-existing beforehand
    """

    kind: EntityKind
    imported_count: int
    total_row_count: int
    cleared_count: int = 0


class CSVImporter:
    """Bulk CSV importer for every entity kind.

    Example:
        ```python
        importer = CSVImporter(storage)
        outcome = importer.import_text("staff", csv_text, clear_existing=True)
        print(f"{outcome.imported_count}/{outcome.total_row_count}")
        ```
    """

    def __init__(self, storage: StoragePort):
        """Initialize the importer.

        Parameters:
            storage: Storage adapter records are written to
        """
        self.storage = storage

    def import_file(
        self,
        path: Union[str, Path],
        kind: Union[str, EntityKind],
        clear_existing: bool = False
    ) -> ImportOutcome:
        """Import a UTF-8 CSV file from disk (a leading BOM is ignored).

        Raises:
            ValidationError: If the file is not valid UTF-8 text
        """
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning(f"Rejected {source}: not valid UTF-8 ({e.reason} at byte {e.start})")
            raise ValidationError("File is not valid UTF-8 text", source=str(source))
        return self.import_text(kind, text, clear_existing=clear_existing, source=str(source))

    def import_text(
        self,
        kind: Union[str, EntityKind],
        text: str,
        clear_existing: bool = False,
        source: Optional[str] = None
    ) -> ImportOutcome:
        """Import CSV text into the table backing an entity kind.

        Parameters:
            kind: Entity kind or its wire key ("meals", "staff", ...)
            text: Raw CSV content
            clear_existing: Delete all current records of the kind first
            source: Optional source label used in logs and the audit trail

        Returns:
            ImportOutcome: Imported and total row counts

        Raises:
            UnknownEntityKindError: If the kind key is not in the catalog
            EmptySourceError: If no data rows were parsed
            HeaderMismatchError: If the header row fails validation
            StorageError: If clearing existing records fails
            ImportAbortedError: If a general-kind insert fails mid-import
        """
        kind = EntityKind.parse(kind)
        table = parse_csv(text)

        if table.is_empty():
            raise EmptySourceError(NO_DATA_MESSAGE, source=source)

        verdict = validate_headers(table.headers, kind)
        if not verdict.valid:
            logger.warning(
                f"Header mismatch importing {kind.value} from {source or 'upload'}: "
                f"missing={verdict.missing_columns} unexpected={verdict.unexpected_columns}"
            )
            raise HeaderMismatchError(
                HEADER_MISMATCH_MESSAGE,
                expected=verdict.expected,
                received=verdict.received,
                missing=verdict.missing_columns,
                unexpected=verdict.unexpected_columns,
                source=source,
            )

        cleared_count = self._clear_existing(kind) if clear_existing else 0

        resolver = ReferenceResolver(self.storage)
        if kind == EntityKind.STAFF_MEMBER:
            imported_count = self._import_staff(table, resolver)
        elif kind == EntityKind.MEDICATION:
            imported_count = self._import_medications(table, resolver)
        else:
            imported_count = self._import_rows(kind, table, resolver)

        outcome = ImportOutcome(
            kind=kind,
            imported_count=imported_count,
            total_row_count=len(table.rows),
            cleared_count=cleared_count,
        )
        logger.info(
            f"Imported {outcome.imported_count}/{outcome.total_row_count} {kind.value} rows"
            + (f" after clearing {cleared_count}" if clear_existing else "")
        )

        audit_result = self.storage.log_audit_event(
            "csv_import",
            kind.table_name,
            {
                "kind": kind.value,
                "source": source,
                "imported": outcome.imported_count,
                "total": outcome.total_row_count,
                "dropped_lines": table.dropped_count,
                "clear_existing": clear_existing,
                "cleared": cleared_count,
            },
        )
        if not audit_result.is_success():
            logger.warning(f"Failed to record csv_import audit event: {audit_result.error}")

        return outcome

    def _clear_existing(self, kind: EntityKind) -> int:
        result = self.storage.delete_all(kind.table_name)
        if not result.is_success():
            raise StorageError(
                f"Failed to clear existing {kind.value}: {result.error}",
                operation="delete_all",
                details={"table": kind.table_name},
            )
        logger.info(f"Cleared {result.value} existing {kind.value} records")
        return result.value

    def _insert_or_abort(self, kind: EntityKind, record, row_index: int, imported_count: int) -> str:
        result = self.storage.insert(kind.table_name, record)
        if not result.is_success():
            logger.error(
                f"Aborting {kind.value} import at row {row_index}: {result.error}",
                extra={"table": kind.table_name, "row_index": row_index, "imported": imported_count},
            )
            raise ImportAbortedError(
                f"Import failed at row {row_index + 1} after {imported_count} rows: {result.error}",
                imported_count=imported_count,
                row_index=row_index,
                details={"table": kind.table_name, "error_type": result.error_type},
            )
        return result.value

    def _import_rows(self, kind: EntityKind, table: ParsedTable, resolver: ReferenceResolver) -> int:
        coerce = ROW_COERCERS[kind]
        imported_count = 0
        for row_index, raw in enumerate(table.rows):
            record = coerce(CsvRow(raw), resolver)
            self._insert_or_abort(kind, record, row_index, imported_count)
            imported_count += 1
        return imported_count

    def _import_staff(self, table: ParsedTable, resolver: ReferenceResolver) -> int:
        """Insert every staff member, then link supervisors by exact name.

        Supervisors are matched only against members created by this import;
        the first created member carrying the name wins.
        """
        kind = EntityKind.STAFF_MEMBER
        coerce = ROW_COERCERS[kind]

        created: list[tuple[str, str]] = []
        for row_index, raw in enumerate(table.rows):
            record = coerce(CsvRow(raw), resolver)
            record_id = self._insert_or_abort(kind, record, row_index, len(created))
            created.append((record.name, record_id))

        ids_by_name: dict[str, str] = {}
        for name, record_id in created:
            ids_by_name.setdefault(name, record_id)

        for raw, (name, member_id) in zip(table.rows, created):
            supervisor_name = CsvRow(raw).get("Reports To")
            if supervisor_name is None:
                continue
            supervisor_id = ids_by_name.get(supervisor_name.strip())
            if supervisor_id is None:
                logger.info(f"Supervisor '{supervisor_name}' of '{name}' not in this import, leaving unlinked")
                continue
            if supervisor_id == member_id:
                logger.info(f"Skipping self-reference for staff member '{name}'")
                continue
            result = self.storage.update(kind.table_name, member_id, {"reports_to_id": supervisor_id})
            if not result.is_success():
                logger.warning(f"Failed to link '{name}' to supervisor '{supervisor_name}': {result.error}")

        return len(created)

    def _import_medications(self, table: ParsedTable, resolver: ReferenceResolver) -> int:
        """Group medication lines per user and upsert one schedule per user."""
        groups: dict[str, list[MedicationEntry]] = {}
        for raw in table.rows:
            row = CsvRow(raw)
            groups.setdefault(medication_owner(row), []).append(coerce_medication_entry(row))

        table_name = EntityKind.MEDICATION.table_name
        imported_count = 0
        for user_name, entries in groups.items():
            user_id = resolver.resolve_user(user_name)
            if user_id is None:
                logger.warning(f"Skipping {len(entries)} medication(s): no single user named '{user_name}'")
                continue

            schedule = MedicationScheduleRecord(user_id=user_id, medications=entries)
            existing = self.storage.find_ids(table_name, "user_id", user_id)
            if not existing.is_success():
                logger.warning(f"Skipping medications for '{user_name}': {existing.error}")
                continue

            if existing.value:
                result = self.storage.update(
                    table_name,
                    existing.value[0],
                    {"medications": [entry.model_dump() for entry in entries]},
                )
            else:
                result = self.storage.insert(table_name, schedule)

            if not result.is_success():
                logger.warning(f"Skipping medications for '{user_name}': {result.error}")
                continue
            imported_count += len(entries)

        return imported_count
