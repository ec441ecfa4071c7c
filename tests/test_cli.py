"""Tests for the Typer command line."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.adapters.storage import DuckDBAdapter
from src.cli import app

runner = CliRunner()


@pytest.fixture
def cli_storage():
    """Route every command to a fresh in-memory store."""
    with patch("src.cli.create_storage_adapter", side_effect=lambda: DuckDBAdapter()) as factory:
        yield factory


class TestCommands:
    """Command behaviour and exit codes."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "Concierge Ops v1.0.0" in result.output

    def test_tables_lists_catalog(self):
        result = runner.invoke(app, ["tables"])
        assert result.exit_code == 0
        assert "meal-menu.csv" in result.output
        assert "houserules" in result.output

    def test_import_csv(self, cli_storage, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text("Title,Content,Category\nNo pets,Service animals only,\n", encoding="utf-8")

        result = runner.invoke(app, ["import-csv", str(path), "--table", "houserules"])

        assert result.exit_code == 0
        assert "Import complete" in result.output

    def test_import_csv_header_mismatch(self, cli_storage, tmp_path):
        path = tmp_path / "staff.csv"
        path.write_text("Title,Content,Category\nA,B,C\n", encoding="utf-8")

        result = runner.invoke(app, ["import-csv", str(path), "-t", "staff"])

        assert result.exit_code == 2
        assert "Column mismatch" in result.output

    def test_import_csv_unknown_table(self, cli_storage, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("Name\nAnn\n", encoding="utf-8")
        result = runner.invoke(app, ["import-csv", str(path), "-t", "residents"])
        assert result.exit_code == 2

    def test_import_csv_non_utf8(self, cli_storage, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_bytes(b"Title,Content,Category\n\xff\xfe,bad,\n")

        result = runner.invoke(app, ["import-csv", str(path), "-t", "houserules"])

        assert result.exit_code == 2
        assert "not valid UTF-8" in result.output
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_smart_update_unsupported(self, cli_storage):
        with patch("src.cli.create_language_model"):
            result = runner.invoke(app, ["smart-update", "staff", "promote Dana"])
        assert result.exit_code == 1
        assert "raw override" in result.output

    def test_add_user_and_stats(self, cli_storage):
        result = runner.invoke(app, ["add-user", "Ann Park"])
        assert result.exit_code == 0
        assert "Added user Ann Park" in result.output

        stats = runner.invoke(app, ["stats"])
        assert stats.exit_code == 0
        assert "Users" in stats.output

    def test_init_db(self, cli_storage):
        result = runner.invoke(app, ["init-db"])
        assert result.exit_code == 0
        assert "Schema ready" in result.output
