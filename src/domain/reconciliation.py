"""Reconciliation Diff and Diff Applier.

A ReconciliationDiff is a batch of create/update/delete operations proposed
by the language model against one entity kind. The model output is untrusted
control input, so every record is run through the same per-kind coercer used
for CSV rows before it touches the store.

Actions:
    - replace_all: delete every record of the kind, insert the diff records
    - add: insert the diff records
    - update: replace only the fields each record carries, addressed by id
    - delete: delete each record by id; failures are ignored per record
    - anything else: nothing is changed, summary is "No changes made"

Counts always reflect successful operations only.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.domain.entity_kinds import DIFF_FIELDS, SUMMARY_NOUNS, EntityKind, supports_smart_update
from src.domain.ports import (
    MalformedModelResponseError,
    StorageError,
    StoragePort,
    UnsupportedKindError,
)
from src.domain.row_coercers import ROW_COERCERS, DiffRow, ReferenceResolver

logger = logging.getLogger(__name__)

NO_CHANGES_SUMMARY = "No changes made"


class ReconciliationAction(str, Enum):
    """Diff actions; UNKNOWN stands for any action the model made up."""

    REPLACE_ALL = "replace_all"
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> 'ReconciliationAction':
        for member in cls:
            if member is not cls.UNKNOWN and member.value == value:
                return member
        return cls.UNKNOWN


class ReconciliationDiff(BaseModel):
    """Validated diff proposed by the language model.

    ``requested_action`` keeps the action text exactly as the model sent it.
    """

    action: ReconciliationAction
    requested_action: str = ""
    records: list[dict[str, Any]] = Field(default_factory=list)


@dataclass
class ReconciliationOutcome:
    """What a diff application did.

    Attributes:
        action: Applied action
        count: Successful inserts, updates or deletes
        summary: Human-readable sentence for the operator
        requested_action: Action text as sent by the model
    """

    action: ReconciliationAction
    count: int
    summary: str
    requested_action: Optional[str] = None

    @property
    def action_name(self) -> str:
        return self.requested_action or self.action.value

    def to_dict(self) -> dict:
        return {"action": self.action_name, "count": self.count, "summary": self.summary}


def parse_diff(text: Optional[str]) -> ReconciliationDiff:
    """Parse raw model output into a ReconciliationDiff.

    Parameters:
        text: Raw response text

    Returns:
        ReconciliationDiff: Diff with object records; unrecognised actions
            map to ReconciliationAction.UNKNOWN

    Raises:
        MalformedModelResponseError: If the text is not JSON, not an object
            or carries non-object records. The raw text is attached for
            diagnosis.
    """
    try:
        payload = json.loads(text or "")
    except json.JSONDecodeError as e:
        logger.warning(f"Model returned invalid JSON: {e}")
        raise MalformedModelResponseError("AI returned invalid JSON", raw=text)

    if not isinstance(payload, dict):
        raise MalformedModelResponseError("AI response is not a JSON object", raw=text)

    requested = payload.get("action")
    action = ReconciliationAction.parse(requested)
    if action is ReconciliationAction.UNKNOWN:
        logger.warning(f"Model returned an unsupported action: {requested}")

    try:
        return ReconciliationDiff(
            action=action,
            requested_action="" if requested is None else str(requested),
            records=payload.get("records") or [],
        )
    except PydanticValidationError as e:
        logger.warning(f"Model returned malformed records: {e}")
        raise MalformedModelResponseError("AI returned malformed records", raw=text)


def summarize(kind: EntityKind, action: ReconciliationAction, count: int) -> str:
    """Build the operator-facing summary sentence for an applied diff."""
    noun = SUMMARY_NOUNS.get(kind, kind.value)
    if action == ReconciliationAction.REPLACE_ALL:
        return f"Replaced all {noun} with {count} new entries"
    if action == ReconciliationAction.ADD:
        return f"Added {count} new {noun}"
    if action == ReconciliationAction.UPDATE:
        return f"Updated {count} {noun}"
    if action == ReconciliationAction.DELETE:
        return f"Deleted {count} {noun}"
    return NO_CHANGES_SUMMARY


class DiffApplier:
    """Applies a ReconciliationDiff to the table of one entity kind.

    Example:
        ```python
        applier = DiffApplier(storage)
        outcome = applier.apply(EntityKind.MEAL, parse_diff(model_text))
        print(outcome.summary)  # "Replaced all meals with 4 new entries"
        ```
    """

    def __init__(self, storage: StoragePort):
        self.storage = storage

    def apply(
        self,
        kind: EntityKind,
        diff: ReconciliationDiff,
        context: Optional[dict] = None
    ) -> ReconciliationOutcome:
        """Apply a diff and record a ``smart_update`` audit event.

        Parameters:
            kind: Target entity kind (must support smart update)
            diff: Parsed diff
            context: Extra details for the audit event (e.g. the instruction)

        Returns:
            ReconciliationOutcome: Action, success count and summary

        Raises:
            UnsupportedKindError: If the kind has no diff field mapping
            StorageError: If clearing or inserting fails mid-way (earlier
                changes stay committed)
        """
        if not supports_smart_update(kind):
            raise UnsupportedKindError(
                f"Smart update not supported for {kind.value}. Use raw override instead.",
                kind=kind.value,
            )

        action = diff.action
        if action == ReconciliationAction.REPLACE_ALL:
            self._clear(kind)
            count = self._insert_all(kind, diff.records)
        elif action == ReconciliationAction.ADD:
            count = self._insert_all(kind, diff.records)
        elif action == ReconciliationAction.UPDATE:
            count = self._update_each(kind, diff.records)
        elif action == ReconciliationAction.DELETE:
            count = self._delete_each(kind, diff.records)
        else:
            count = 0
        outcome = ReconciliationOutcome(
            action=action,
            count=count,
            summary=summarize(kind, action, count),
            requested_action=diff.requested_action or None,
        )

        logger.info(f"Smart update on {kind.value}: {outcome.summary}")
        audit_result = self.storage.log_audit_event(
            "smart_update",
            kind.table_name,
            {
                **(context or {}),
                "kind": kind.value,
                "action": outcome.action_name,
                "proposed": len(diff.records),
                "count": outcome.count,
            },
        )
        if not audit_result.is_success():
            logger.warning(f"Failed to record smart_update audit event: {audit_result.error}")

        return outcome

    def _clear(self, kind: EntityKind) -> None:
        result = self.storage.delete_all(kind.table_name)
        if not result.is_success():
            raise StorageError(
                f"Failed to clear {kind.value}: {result.error}",
                operation="delete_all",
                details={"table": kind.table_name},
            )

    def _insert_all(self, kind: EntityKind, records: list[dict]) -> int:
        coerce = ROW_COERCERS[kind]
        resolver = ReferenceResolver(self.storage)
        field_map = DIFF_FIELDS[kind]
        count = 0
        for record in records:
            result = self.storage.insert(kind.table_name, coerce(DiffRow(record, field_map), resolver))
            if not result.is_success():
                raise StorageError(
                    f"Failed to insert {kind.value} record after {count} inserts: {result.error}",
                    operation="insert",
                    details={"table": kind.table_name, "applied": count},
                )
            count += 1
        return count

    def _update_each(self, kind: EntityKind, records: list[dict]) -> int:
        coerce = ROW_COERCERS[kind]
        resolver = ReferenceResolver(self.storage)
        field_map = DIFF_FIELDS[kind]
        count = 0
        for record in records:
            row = DiffRow(record, field_map)
            if row.record_id is None:
                logger.debug(f"Skipping {kind.value} update without id")
                continue

            touched = [column for key, (_header, column) in field_map.items() if key in record]
            if not touched:
                logger.debug(f"Skipping {kind.value} update for {row.record_id}: no known fields")
                continue

            coerced = coerce(row, resolver).model_dump()
            fields = {column: coerced[column] for column in touched}
            result = self.storage.update(kind.table_name, row.record_id, fields)
            if result.is_success():
                count += 1
            else:
                logger.info(f"Ignoring failed {kind.value} update for {row.record_id}: {result.error}")
        return count

    def _delete_each(self, kind: EntityKind, records: list[dict]) -> int:
        count = 0
        for record in records:
            record_id = DiffRow(record, {}).record_id
            if record_id is None:
                continue
            result = self.storage.delete(kind.table_name, record_id)
            if result.is_success():
                count += 1
            else:
                logger.info(f"Ignoring failed {kind.value} delete for {record_id}: {result.error}")
        return count
