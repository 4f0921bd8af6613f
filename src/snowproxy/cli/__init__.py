"""
CLI for snowproxy.

Provides command-line access to the sync, staleness check and the offline
guardrail checks, and starts the MCP server.
"""

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from snowproxy.core import ExclusionChecker, classify_ddl, extract_object_names, load_config
from snowproxy.core.config import configure_logging
from snowproxy.core.ddl_classifier import UNKNOWN_DDL
from snowproxy.core.query_classifier import classify_query
from snowproxy.infrastructure import ExecutionOptions
from snowproxy.services import SyncOptions, SyncStatus, ToolError, create_services

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="snowproxy",
    help="Metadata-only proxy and object repository sync for the snow CLI",
    add_completion=False,
)

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
)


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def sync(
    target_dir: Optional[Path] = typer.Option(
        None, "--target", "-t", help="Target directory (default from config)"
    ),
    connection: Optional[str] = typer.Option(None, "--connection", help="snow CLI connection"),
    databases: bool = typer.Option(True, "--databases/--no-databases", help="Write database DDL"),
    schemas: bool = typer.Option(True, "--schemas/--no-schemas", help="Write schema DDL"),
    tables: bool = typer.Option(True, "--tables/--no-tables", help="Sync tables"),
    views: bool = typer.Option(True, "--views/--no-views", help="Sync views"),
    functions: bool = typer.Option(False, "--functions/--no-functions", help="Sync functions"),
    procedures: bool = typer.Option(False, "--procedures/--no-procedures", help="Sync procedures"),
    stages: bool = typer.Option(False, "--stages/--no-stages", help="Sync stages"),
    tasks: bool = typer.Option(False, "--tasks/--no-tasks", help="Sync tasks"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Sync object DDL into a local directory tree."""
    try:
        services = create_services(config)
        configure_logging(services.config.logging)
        options = SyncOptions(
            include_databases=databases,
            include_schemas=schemas,
            include_tables=tables,
            include_views=views,
            include_functions=functions,
            include_procedures=procedures,
            include_stages=stages,
            include_tasks=tasks,
        )
        target = str(target_dir) if target_dir else None

        with console.status("[bold blue]Syncing objects...[/bold blue]"):
            report = asyncio.run(
                services.sync_service.sync_objects(
                    target, options, ExecutionOptions(connection=connection)
                )
            )
    except ToolError as e:
        _fail(f"{e.message} ({e.code})")
    except (OSError, ValueError) as e:
        _fail(str(e))

    index = report.index
    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Synced:", str(index.object_count))
    summary.add_row("Skipped:", str(index.skipped_count))
    if index.error_count:
        summary.add_row("Errors:", f"[red]{index.error_count}[/red]")
    summary.add_row("Index:", report.index_path)

    console.print(
        Panel(
            summary,
            title="[bold green]Sync Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )

    skipped = [r for r in index.objects if r.status is SyncStatus.SKIPPED]
    if skipped:
        console.print("\n[bold yellow]Skipped (excluded):[/bold yellow]")
        for record in skipped[:10]:
            console.print(f"  - {record.type.value} {record.name}")
        if len(skipped) > 10:
            console.print(f"  ... and {len(skipped) - 10} more")


@app.command("check-staleness")
def check_staleness(
    object_name: str = typer.Argument(..., help="Object name"),
    object_type: str = typer.Argument(..., help="Object type (table, view, schema, ...)"),
    local_path: Path = typer.Argument(..., help="Local DDL file"),
    database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema name"),
    connection: Optional[str] = typer.Option(None, "--connection", help="snow CLI connection"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Compare a local DDL file with the object's current remote DDL."""
    try:
        services = create_services(config)
        configure_logging(services.config.logging)
        check = asyncio.run(
            services.staleness_service.check_staleness(
                object_name,
                object_type,
                str(local_path),
                database=database,
                schema=schema,
                execution=ExecutionOptions(connection=connection),
            )
        )
    except ToolError as e:
        _fail(f"{e.message} ({e.code})")
    except (OSError, ValueError) as e:
        _fail(str(e))

    style = "red" if check.is_stale else "green"
    label = "STALE" if check.is_stale else "UP TO DATE"
    console.print(f"[bold {style}]{label}[/bold {style}] {check.object_name}: {check.message}")
    if check.current_hash:
        console.print(f"[dim]remote {check.current_hash}[/dim]")
    if check.local_hash:
        console.print(f"[dim]local  {check.local_hash}[/dim]")
    if check.is_stale:
        raise typer.Exit(2)


@app.command()
def classify(
    sql: str = typer.Argument(..., help="SQL statement"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Classify a statement and check its object references, without running it."""
    try:
        cfg = load_config(config)
        checker = ExclusionChecker.from_config(cfg.exclusions)
    except (OSError, ValueError) as e:
        _fail(str(e))

    classification = classify_query(sql)
    ddl_type = classify_ddl(sql)

    grid = Table.grid(padding=1)
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Query type:", classification.type.value)
    grid.add_row("Reason:", classification.reason)
    if ddl_type != UNKNOWN_DDL:
        grid.add_row("DDL type:", ddl_type)

    console.print(Syntax(sql, "sql", word_wrap=True))
    console.print(Panel(grid, title="Classification", border_style="blue", expand=False))

    names = extract_object_names(sql)
    if not names:
        return

    table = Table(title="Referenced Objects", border_style="blue")
    table.add_column("Object", style="cyan")
    table.add_column("Excluded")
    table.add_column("Pattern", style="dim")
    blocked = False
    for name in names:
        result = checker.check_reference(name)
        blocked = blocked or result.is_excluded
        table.add_row(
            name,
            "[red]yes[/red]" if result.is_excluded else "[green]no[/green]",
            result.matched_pattern or "",
        )
    console.print(table)
    if blocked:
        raise typer.Exit(2)


@app.command("check-exclusion")
def check_exclusion(
    names: list[str] = typer.Argument(..., help="Object names to check"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Check object names against the exclusion policy."""
    try:
        cfg = load_config(config)
        checker = ExclusionChecker.from_config(cfg.exclusions)
    except (OSError, ValueError) as e:
        _fail(str(e))

    table = Table(title="Exclusion Check", border_style="blue")
    table.add_column("Object", style="cyan")
    table.add_column("Excluded")
    table.add_column("Pattern", style="dim")
    any_excluded = False
    for name in names:
        result = checker.check_reference(name)
        any_excluded = any_excluded or result.is_excluded
        table.add_row(
            name,
            "[red]yes[/red]" if result.is_excluded else "[green]no[/green]",
            result.matched_pattern or "",
        )
    console.print(table)
    if any_excluded:
        raise typer.Exit(2)


@app.command("show-config")
def show_config(
    config: Optional[Path] = _CONFIG_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of YAML"),
):
    """Print the effective configuration."""
    try:
        cfg = load_config(config)
    except (OSError, ValueError) as e:
        _fail(str(e))

    if as_json:
        console.print_json(cfg.to_json())
    else:
        console.print(Syntax(cfg.to_yaml(), "yaml"))


@app.command()
def serve(
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Start the MCP server on stdio."""
    from snowproxy.mcp_server import run_server

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        pass
    except ValueError as e:
        _fail(str(e))


if __name__ == "__main__":
    app()
