"""Shared fixtures: a real in-memory DuckDB store and a scripted language model."""

from typing import Optional

import pytest

from src.adapters.storage import DuckDBAdapter
from src.domain.entity_kinds import USERS_TABLE
from src.domain.ports import LanguageModelError, LanguageModelPort


class ScriptedLanguageModel(LanguageModelPort):
    """LanguageModelPort returning a canned reply and recording the prompts it saw."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        if not self.reply:
            raise LanguageModelError("No response from AI")
        return self.reply


@pytest.fixture
def storage():
    """Fresh in-memory DuckDB store with the schema created."""
    adapter = DuckDBAdapter(db_path=":memory:")
    result = adapter.initialize_schema()
    assert result.is_success(), result.error
    yield adapter
    adapter.close()


@pytest.fixture
def add_user(storage):
    """Insert a user into the directory and return its id."""
    def _add(name: str) -> str:
        result = storage.insert(USERS_TABLE, {"name": name})
        assert result.is_success(), result.error
        return result.value
    return _add


@pytest.fixture
def scripted_model():
    return ScriptedLanguageModel
