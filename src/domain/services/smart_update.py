"""Smart Update Service (instruction-to-diff bridge).

Turns an operator's free-text instruction ("swap Tuesday lunch for tacos")
into a ReconciliationDiff for one entity kind and applies it.

Protocol:
    1. Resolve the target kind (wire key or legacy console action id)
    2. Snapshot the kind's current records as camelCase JSON
    3. Prompt the language model with schema, snapshot and instructions
    4. Parse the JSON-only reply into a closed diff (untrusted input)
    5. Apply the diff through DiffApplier

Only meals, activities, guidelines and house rules are supported; every other
kind is refused with "use raw override instead" before the model is called.
"""

import json
import logging
from typing import Optional, Union

from src.domain.entity_kinds import (
    ACTION_KINDS,
    SMART_UPDATE_DESCRIPTIONS,
    SMART_UPDATE_TABLES,
    EntityKind,
    supports_smart_update,
)
from src.domain.ports import LanguageModelPort, StoragePort, UnknownEntityKindError, UnsupportedKindError
from src.domain.reconciliation import DiffApplier, ReconciliationDiff, ReconciliationOutcome, parse_diff

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a database assistant. The user wants to update {table} records.

Table schema: {description}

Current records in the database:
{snapshot}

Based on the user's instruction, return a JSON object with:
- "action": "replace_all" | "add" | "update" | "delete"
- "records": array of record objects matching the schema fields

For "replace_all", return all records that should exist after the change.
For "add", return only the new records to add.
For "update", return records with their id and updated fields.
For "delete", return records with their id.

Return ONLY valid JSON, no explanation."""


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class SmartUpdateService:
    """Instruction-to-diff workflow over an injected store and language model.

    Example:
        ```python
        service = SmartUpdateService(storage, OpenAIChatAdapter(config))
        outcome = service.run("mainmenu-meals", "Add a fruit snack at 3pm daily")
        print(outcome.summary)  # "Added 1 new meals"
        ```
    """

    def __init__(self, storage: StoragePort, language_model: LanguageModelPort):
        """Initialize the service.

        Parameters:
            storage: Store holding the reference data
            language_model: Model adapter producing JSON diffs
        """
        self.storage = storage
        self.language_model = language_model
        self.applier = DiffApplier(storage)

    def resolve_kind(self, key: Union[str, EntityKind]) -> EntityKind:
        """Resolve a kind key or legacy action id to a supported kind.

        Raises:
            UnsupportedKindError: If the key is unknown or the kind only
                supports raw override
        """
        if isinstance(key, EntityKind):
            kind: Optional[EntityKind] = key
        elif key in ACTION_KINDS:
            kind = ACTION_KINDS[key]
        else:
            try:
                kind = EntityKind.parse(key)
            except UnknownEntityKindError:
                kind = None

        if kind is None or not supports_smart_update(kind):
            raise UnsupportedKindError(
                f"Smart update not supported for {getattr(key, 'value', key)}. Use raw override instead.",
                kind=getattr(key, "value", key),
            )
        return kind

    def snapshot(self, kind: EntityKind) -> list[dict]:
        """Current records of a kind with camelCase keys.

        A failed read proceeds with an empty snapshot; the model then works
        without context.
        """
        result = self.storage.fetch_all(kind.table_name)
        if not result.is_success():
            logger.warning(f"Proceeding without {kind.value} snapshot: {result.error}")
            return []
        return [{_camel_case(column): value for column, value in row.items()} for row in result.value]

    def build_system_prompt(self, kind: EntityKind, snapshot: list[dict]) -> str:
        """Render the system prompt for a kind and its current records."""
        return SYSTEM_PROMPT_TEMPLATE.format(
            table=SMART_UPDATE_TABLES[kind],
            description=SMART_UPDATE_DESCRIPTIONS[kind],
            snapshot=json.dumps(snapshot, indent=2, default=str),
        )

    def propose(self, kind: EntityKind, instruction: str) -> ReconciliationDiff:
        """Ask the model for a diff implementing the instruction.

        Raises:
            LanguageModelError: If the model is unavailable or silent
            MalformedModelResponseError: If the reply is not a valid diff
        """
        system_prompt = self.build_system_prompt(kind, self.snapshot(kind))
        raw = self.language_model.complete_json(system_prompt, instruction)
        diff = parse_diff(raw)
        logger.info(f"Model proposed {diff.requested_action or diff.action.value} with {len(diff.records)} record(s) for {kind.value}")
        return diff

    def run(self, key: Union[str, EntityKind], instruction: str) -> ReconciliationOutcome:
        """Resolve, propose and apply in one step.

        Parameters:
            key: Kind wire key ("meals") or legacy action id ("mainmenu-meals")
            instruction: Operator's free-text instruction

        Returns:
            ReconciliationOutcome: Applied action, count and summary
        """
        kind = self.resolve_kind(key)
        diff = self.propose(kind, instruction)
        return self.applier.apply(kind, diff, context={"instruction": instruction})
