"""Command Line Interface for the concierge operations console.

This module provides a Typer CLI with Rich output for the operator tasks that
do not need the web console: preparing the store, bulk CSV imports, smart
updates from a free-text instruction, and quick inspection of what is loaded.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from src.adapters.ingesters import CSVImporter
from src.dashboard.api.logging_config import setup_logging
from src.domain.entity_kinds import (
    EXPECTED_HEADERS,
    TEMPLATE_FILES,
    USERS_TABLE,
    EntityKind,
    supports_smart_update,
)
from src.domain.ports import (
    HeaderMismatchError,
    ImportAbortedError,
    IngestionError,
    MalformedModelResponseError,
    ReconciliationError,
    StorageError,
    StoragePort,
)
from src.domain.services import SmartUpdateService
from src.infrastructure.settings import APP_VERSION, settings
from src.main import create_language_model, create_storage_adapter

app = typer.Typer(
    name="concierge-ops",
    help="Concierge Ops: reference-data import and reconciliation console",
    add_completion=False
)
console = Console()


def create_storage_adapter_cli() -> StoragePort:
    """Create storage adapter based on configuration (CLI wrapper)."""
    try:
        return create_storage_adapter()
    except Exception as e:
        console.print(f"[red]✗[/red] Failed to create storage adapter: {str(e)}")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db() -> None:
    """Create all tables in the configured database."""
    storage = create_storage_adapter_cli()
    try:
        result = storage.initialize_schema()
        if not result.is_success():
            console.print(f"[red]✗[/red] Schema initialization failed: {result.error}")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Schema ready ({settings.db_config.db_type})")
    finally:
        storage.close()


@app.command("import-csv")
def import_csv(
    input_file: Path = typer.Argument(..., help="CSV file exported from the operator spreadsheet", exists=True, dir_okay=False),
    table: str = typer.Option(..., "--table", "-t", help="Target table key (meals, activities, staff, ...)"),
    clear_existing: bool = typer.Option(False, "--clear-existing", help="Delete current records of the table first"),
) -> None:
    """Import a CSV file into one reference-data table.

    Examples:
        concierge-ops import-csv meal-menu.csv --table meals
        concierge-ops import-csv team-roster.csv -t staff --clear-existing
    """
    storage = create_storage_adapter_cli()
    try:
        outcome = CSVImporter(storage).import_file(input_file, table, clear_existing=clear_existing)
    except HeaderMismatchError as e:
        console.print(f"[red]✗[/red] {e}")
        mismatch = Table(show_header=False, box=None, padding=(0, 2))
        mismatch.add_row("Expected:", ", ".join(e.expected))
        mismatch.add_row("Received:", ", ".join(e.received))
        mismatch.add_row("Missing:", ", ".join(e.missing) or "-")
        mismatch.add_row("Unexpected:", ", ".join(e.unexpected) or "-")
        console.print(mismatch)
        raise typer.Exit(code=2)
    except IngestionError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=2)
    except ImportAbortedError as e:
        console.print(f"[red]✗[/red] {e}")
        console.print(f"[yellow]⚠[/yellow] {e.imported_count} rows were committed before the failure; "
                      "re-run with --clear-existing to reach a clean state")
        raise typer.Exit(code=1)
    except StorageError as e:
        console.print(f"[red]✗[/red] Import failed: {e}")
        raise typer.Exit(code=1)
    finally:
        storage.close()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_row("Table:", outcome.kind.label)
    summary.add_row("Rows in file:", f"{outcome.total_row_count:,}")
    summary.add_row("Imported:", f"[green]{outcome.imported_count:,}[/green]")
    if clear_existing:
        summary.add_row("Cleared first:", f"{outcome.cleared_count:,}")
    console.print(summary)
    console.print("[green]✓[/green] Import complete")


@app.command("smart-update")
def smart_update(
    table: str = typer.Argument(..., help="Table key or console action id (meals, mainmenu-meals, ...)"),
    instruction: str = typer.Argument(..., help="What to change, in plain words"),
) -> None:
    """Apply a free-text instruction to meals, activities, guidelines or house rules.

    Example:
        concierge-ops smart-update meals "Add a fruit snack at 3pm every weekday"
    """
    storage = create_storage_adapter_cli()
    try:
        service = SmartUpdateService(storage, create_language_model())
        with console.status("[bold green]Asking the model..."):
            outcome = service.run(table, instruction)
    except MalformedModelResponseError as e:
        console.print(f"[red]✗[/red] {e}")
        if e.raw:
            console.print(f"[dim]{e.raw}[/dim]")
        raise typer.Exit(code=1)
    except (ReconciliationError, StorageError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        storage.close()

    console.print(f"[green]✓[/green] {outcome.summary} [dim]({outcome.action_name}, {outcome.count})[/dim]")


@app.command()
def stats() -> None:
    """Show record counts for every table."""
    storage = create_storage_adapter_cli()
    try:
        counts = Table(show_header=True, header_style="bold")
        counts.add_column("Table", style="cyan")
        counts.add_column("Records", justify="right")
        for kind in EntityKind:
            result = storage.count(kind.table_name)
            counts.add_row(kind.label, f"{result.value:,}" if result.is_success() else "[red]error[/red]")
        users = storage.count(USERS_TABLE)
        counts.add_row("Users", f"{users.value:,}" if users.is_success() else "[red]error[/red]")
        console.print(counts)
    finally:
        storage.close()


@app.command()
def tables() -> None:
    """List importable tables with their default file and expected columns."""
    catalog = Table(show_header=True, header_style="bold")
    catalog.add_column("Key", style="cyan")
    catalog.add_column("Label")
    catalog.add_column("Default file")
    catalog.add_column("Smart update", justify="center")
    catalog.add_column("Expected columns", overflow="fold")
    for kind in EntityKind:
        catalog.add_row(
            kind.value,
            kind.label,
            TEMPLATE_FILES[kind] or "-",
            "✓" if supports_smart_update(kind) else "",
            ", ".join(EXPECTED_HEADERS[kind]),
        )
    console.print(catalog)


@app.command("add-user")
def add_user(name: str = typer.Argument(..., help="Resident/user display name")) -> None:
    """Register a user so medication imports can link to them by name."""
    storage = create_storage_adapter_cli()
    try:
        result = storage.insert(USERS_TABLE, {"name": name.strip()})
        if not result.is_success():
            console.print(f"[red]✗[/red] Failed to add user: {result.error}")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Added user {name.strip()} [dim]({result.value})[/dim]")
    finally:
        storage.close()


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from CONCIERGE_API_HOST)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from CONCIERGE_API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the operations API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.dashboard.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def info() -> None:
    """Display configuration (secrets are never shown)."""
    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Database Type:", settings.db_config.db_type)
    if settings.db_config.db_type == "duckdb":
        info_table.add_row("Database Path:", settings.db_config.db_path or ":memory:")
    else:
        info_table.add_row("Database Host:", str(settings.db_config.host))
        info_table.add_row("Database Name:", str(settings.db_config.database))
    info_table.add_row("Model:", settings.llm_config.model)
    info_table.add_row("OpenAI key:", "configured" if settings.llm_config.is_configured() else "[yellow]missing[/yellow]")
    console.print(info_table)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"Concierge Ops v{APP_VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(False, "--version", help="Show version information", callback=version_callback, is_eager=True),
) -> None:
    """Concierge Ops: reference-data import and reconciliation console."""
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)
    if verbose:
        logging.getLogger().debug("Verbose logging enabled")


if __name__ == "__main__":
    app()
