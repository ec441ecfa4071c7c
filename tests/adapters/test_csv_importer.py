"""End-to-end tests for CSV import dispatch against an in-memory DuckDB store."""

from unittest.mock import Mock

import pytest

from src.adapters.ingesters import CSVImporter
from src.domain.entity_kinds import AUDIT_TABLE, EntityKind
from src.domain.ports import (
    EmptySourceError,
    HeaderMismatchError,
    ImportAbortedError,
    Result,
    StorageError,
    StoragePort,
    UnknownEntityKindError,
    ValidationError,
)

STAFF_TABLE = EntityKind.STAFF_MEMBER.table_name
MEDICATION_TABLE = EntityKind.MEDICATION.table_name
GUIDELINES_TABLE = EntityKind.GUIDELINE.table_name

STAFF_CSV = (
    "Name,Title,Division,Email,Phone,Reports To\n"
    "Alice Ng,Director,Admin,alice@example.org,555-0100,\n"
    "Bob Ray,Case Manager,Clinical,bob@example.org,555-0101,Alice Ng\n"
    "Cara Li,Aide,Clinical,,,Bob Ray\n"
    "Dev Roy,Aide,Clinical,,,Someone Else\n"
)

MEDICATION_CSV = (
    "User,Medication,Dosage,Time,Frequency,Prescribing Doctor,Notes\n"
    "Ann Park,Aspirin,81mg,08:00,Daily,Dr. Lee,\n"
    "Ann Park,Metformin,500mg,18:00,,Dr. Lee,With food\n"
    "Ghost User,Ibuprofen,200mg,12:00,As needed,,\n"
)


class TestGeneralImport:
    """Row-per-record kinds."""

    def test_imports_guidelines(self, storage):
        outcome = CSVImporter(storage).import_text(
            "guidelines",
            "Title,Content,Category\nCurfew,Doors lock at 10pm,Night\nVisitors,9 to 5,\n",
        )
        assert outcome.imported_count == 2
        assert outcome.total_row_count == 2
        categories = sorted(str(row["category"]) for row in storage.fetch_all(GUIDELINES_TABLE).value)
        assert categories == ["Night", "None"]

    def test_activity_facilitator_linked_to_existing_staff(self, storage):
        staff_id = storage.insert(STAFF_TABLE, {"name": "Dana Cole"}).value
        CSVImporter(storage).import_text(
            "activities",
            "Date,Day of Week,Activity Name,Description,Start Time,End Time,Location,Facilitator,Notes\n"
            "2024-05-01,WED,Art,,10:00,11:00,Studio,Dana Cole,\n"
            "2024-05-02,THU,Walk,,10:00,11:00,Park,Unknown Person,\n",
        )
        activities = {row["name"]: row for row in storage.fetch_all(EntityKind.ACTIVITY.table_name).value}
        assert activities["Art"]["facilitator_id"] == staff_id
        assert activities["Walk"]["facilitator_id"] is None

    def test_clear_existing_replaces_records(self, storage):
        importer = CSVImporter(storage)
        csv_text = "Title,Content,Category\nCurfew,10pm,\n"
        importer.import_text("guidelines", csv_text)
        importer.import_text("guidelines", csv_text)
        assert storage.count(GUIDELINES_TABLE).value == 2

        outcome = importer.import_text("guidelines", csv_text, clear_existing=True)

        assert outcome.cleared_count == 2
        assert storage.count(GUIDELINES_TABLE).value == 1

    def test_dropped_lines_not_counted_in_total(self, storage):
        outcome = CSVImporter(storage).import_text(
            "guidelines", "Title,Content,Category\nCurfew,10pm,\nbroken line\n"
        )
        assert outcome.total_row_count == 1
        assert outcome.imported_count == 1

    def test_audit_event_written(self, storage):
        CSVImporter(storage).import_text("houserules", "Title,Content,Category\nNo smoking,Anywhere,\n", source="rules.csv")
        events = storage.fetch_all(AUDIT_TABLE).value
        assert events[0]["event_type"] == "csv_import"
        assert events[0]["table_name"] == EntityKind.HOUSE_RULE.table_name
        assert events[0]["details"]["source"] == "rules.csv"
        assert events[0]["details"]["imported"] == 1


class TestImportRejections:
    """Structural problems stop the import before anything is written."""

    def test_unknown_table(self, storage):
        with pytest.raises(UnknownEntityKindError):
            CSVImporter(storage).import_text("residents", "Name\nAnn\n")

    def test_header_only_file(self, storage):
        with pytest.raises(EmptySourceError) as exc_info:
            CSVImporter(storage).import_text("guidelines", "Title,Content,Category\n")
        assert str(exc_info.value) == "No data rows found in CSV"

    def test_header_mismatch_clears_nothing(self, storage):
        storage.insert(STAFF_TABLE, {"name": "Keep Me"})
        with pytest.raises(HeaderMismatchError) as exc_info:
            CSVImporter(storage).import_text("staff", "Title,Content,Category\nA,B,C\n", clear_existing=True)

        assert exc_info.value.missing
        assert exc_info.value.unexpected == ["Content", "Category"]
        assert storage.count(STAFF_TABLE).value == 1

    def test_clear_failure_raises_storage_error(self):
        store = Mock(spec=StoragePort)
        store.delete_all.return_value = Result.failure_result("locked")
        with pytest.raises(StorageError):
            CSVImporter(store).import_text("guidelines", "Title,Content,Category\nA,B,\n", clear_existing=True)
        store.insert.assert_not_called()

    def test_insert_failure_aborts_with_committed_count(self):
        store = Mock(spec=StoragePort)
        store.insert.side_effect = [
            Result.success_result("g-1"),
            Result.failure_result("constraint violated"),
        ]
        with pytest.raises(ImportAbortedError) as exc_info:
            CSVImporter(store).import_text("guidelines", "Title,Content,Category\nA,x,\nB,y,\nC,z,\n")

        assert exc_info.value.imported_count == 1
        assert exc_info.value.row_index == 1
        assert store.insert.call_count == 2


class TestStaffImport:
    """Two-pass staff import with supervisor linking."""

    def test_supervisors_linked_by_name(self, storage):
        outcome = CSVImporter(storage).import_text("staff", STAFF_CSV)

        assert outcome.imported_count == 4
        staff = {row["name"]: row for row in storage.fetch_all(STAFF_TABLE).value}
        assert staff["Alice Ng"]["reports_to_id"] is None
        assert staff["Bob Ray"]["reports_to_id"] == staff["Alice Ng"]["id"]
        assert staff["Cara Li"]["reports_to_id"] == staff["Bob Ray"]["id"]
        assert staff["Dev Roy"]["reports_to_id"] is None

    def test_third_row_reports_to_first_row(self, storage):
        csv_text = (
            "Name,Title,Division,Email,Phone,Reports To\n"
            "Maya Cole,Director,Operations,maya@example.org,555-0100,\n"
            "Owen Hart,Coordinator,Activities,owen@example.org,555-0101,\n"
            "Lena Diaz,Aide,Operations,lena@example.org,555-0102,Maya Cole\n"
        )

        outcome = CSVImporter(storage).import_text("staff", csv_text)

        assert outcome.imported_count == 3
        assert outcome.total_row_count == 3
        rows = storage.fetch_all(STAFF_TABLE).value
        assert len(rows) == 3
        staff = {row["name"]: row for row in rows}
        assert staff["Lena Diaz"]["reports_to_id"] == staff["Maya Cole"]["id"]
        assert staff["Maya Cole"]["reports_to_id"] is None
        assert staff["Owen Hart"]["reports_to_id"] is None

    def test_self_reference_skipped(self, storage):
        CSVImporter(storage).import_text(
            "staff", "Name,Title,Division,Email,Phone,Reports To\nSolo,Lead,Admin,,,Solo\n"
        )
        assert storage.fetch_all(STAFF_TABLE).value[0]["reports_to_id"] is None

    def test_supervisor_link_failure_is_tolerated(self):
        store = Mock(spec=StoragePort)
        store.insert.side_effect = [Result.success_result("s-1"), Result.success_result("s-2")]
        store.update.return_value = Result.failure_result("gone")
        store.log_audit_event.return_value = Result.success_result("a-1")

        outcome = CSVImporter(store).import_text(
            "staff", "Name,Title,Division,Email,Phone,Reports To\nA,,,,,\nB,,,,,A\n"
        )

        assert outcome.imported_count == 2
        store.update.assert_called_once_with(STAFF_TABLE, "s-2", {"reports_to_id": "s-1"})


class TestMedicationImport:
    """Medication lines grouped into one schedule per user."""

    def test_groups_by_user_and_skips_unknown_users(self, storage, add_user):
        ann_id = add_user("Ann Park")

        outcome = CSVImporter(storage).import_text("medications", MEDICATION_CSV)

        assert outcome.imported_count == 2
        assert outcome.total_row_count == 3
        schedules = storage.fetch_all(MEDICATION_TABLE).value
        assert len(schedules) == 1
        assert schedules[0]["user_id"] == ann_id
        medications = schedules[0]["medications"]
        assert [entry["medication"] for entry in medications] == ["Aspirin", "Metformin"]
        assert medications[1]["frequency"] == "Daily"
        assert medications[1]["notes"] == "With food"

    def test_reimport_updates_existing_schedule(self, storage, add_user):
        add_user("Ann Park")
        importer = CSVImporter(storage)
        importer.import_text("medications", MEDICATION_CSV)

        importer.import_text(
            "medications",
            "User,Medication,Dosage,Time,Frequency,Prescribing Doctor,Notes\nAnn Park,Vitamin D,1000IU,09:00,Daily,,\n",
        )

        schedules = storage.fetch_all(MEDICATION_TABLE).value
        assert len(schedules) == 1
        assert [entry["medication"] for entry in schedules[0]["medications"]] == ["Vitamin D"]

    def test_ambiguous_user_skipped(self, storage, add_user):
        add_user("Ann Park")
        add_user("Ann Park")
        outcome = CSVImporter(storage).import_text("medications", MEDICATION_CSV)
        assert outcome.imported_count == 0
        assert storage.count(MEDICATION_TABLE).value == 0


class TestImportFile:
    """Reading from disk."""

    def test_bom_is_ignored(self, storage, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text("Title,Content,Category\nNo pets,Service animals only,\n", encoding="utf-8-sig")

        outcome = CSVImporter(storage).import_file(path, "houserules")

        assert outcome.imported_count == 1
        assert storage.fetch_all(EntityKind.HOUSE_RULE.table_name).value[0]["title"] == "No pets"

    def test_non_utf8_file_is_a_validation_error(self, storage, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_bytes(b"Title,Content,Category\n\xff\xfeNo pets,Only\xe9,\n")

        with pytest.raises(ValidationError) as exc_info:
            CSVImporter(storage).import_file(path, "houserules")

        assert str(exc_info.value) == "File is not valid UTF-8 text"
        assert exc_info.value.source == str(path)
        assert storage.count(EntityKind.HOUSE_RULE.table_name).value == 0
