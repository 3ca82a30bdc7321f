"""Catalogo CLI - catalog administration commands.

Commands:
- import: Import items from a CSV file
- validate: Dry-run validation of a CSV file (no store access)
- export: Export the whole catalog as CSV
- search: Search items by text, tag and level
- infer: Show the level the inference rules assign to a name
- tags: List the tag vocabulary
- audit: Show recent audit log entries
- attach / move / retag / delete: Relationship and item maintenance
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from catalogo.classification.containment import allowed_children
from catalogo.classification.level_inference import LevelInferenceEngine
from catalogo.canonical.normalize import split_tags
from catalogo.config import get_config
from catalogo.core.logging import configure_logging
from catalogo.exceptions import CatalogStoreError, ConfigurationError, CsvFormatError
from catalogo.models import StoreResult
from catalogo.pipeline.csv_importer import validate_csv
from catalogo.service import CatalogService, open_catalog

app = typer.Typer(
    name="catalogo",
    help="Catalogo - equipment, assembly, part and kit catalog administration",
    no_args_is_help=True,
)

console = Console()

T = TypeVar("T")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else None)


def _run(action: Callable[[CatalogService], Awaitable[T]]) -> T:
    """Run an async action against a freshly opened catalog."""

    async def _inner() -> T:
        async with open_catalog() as service:
            return await action(service)

    try:
        return asyncio.run(_inner())
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(code=1)
    except CatalogStoreError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)


def _print_result(result: StoreResult) -> None:
    if result.ok:
        console.print(f"[bold green]✓[/bold green] {result.message}")
    else:
        console.print(f"[red]✗[/red] {result.message}")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")
    if not result.ok:
        raise typer.Exit(code=1)


def _read_text(file_path: Path) -> str:
    if not file_path.exists():
        console.print(f"[red]✗[/red] File not found: {file_path}")
        raise typer.Exit(code=1)
    return file_path.read_text(encoding="utf-8-sig")


@app.command(name="import")
def import_cmd(
    file_path: Path = typer.Argument(..., help="CSV file to import"),
):
    """Import catalog items from a CSV file."""
    text = _read_text(file_path)
    console.print(f"[bold]Importing:[/bold] {file_path}")

    try:
        result = _run(lambda service: service.import_csv(text))
    except CsvFormatError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] {result.success_count} items imported")
    if result.errors:
        console.print(f"[yellow]⚠[/yellow] {len(result.errors)} errors")
        for err in result.errors:
            console.print(f"  {err.error}", style="dim")
    if result.warnings:
        console.print(f"[yellow]⚠[/yellow] {len(result.warnings)} warnings")
        for warning in result.warnings:
            console.print(f"  {warning}", style="dim")


@app.command()
def validate(
    file_path: Path = typer.Argument(..., help="CSV file to check"),
):
    """Validate a CSV file without writing anything."""
    text = _read_text(file_path)
    config = get_config()
    try:
        engine = LevelInferenceEngine(config.level_rules_path)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(code=1)

    validation = validate_csv(text, engine, config.csv_import)

    for error in validation.errors:
        console.print(f"[red]✗[/red] {error}")
    for warning in validation.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")

    if validation.preview:
        columns = list(validation.preview[0].keys())
        table = Table(title=f"Preview (first {len(validation.preview)} rows)")
        for column in columns:
            table.add_column(column)
        for row in validation.preview:
            table.add_row(*(row.get(column, "") for column in columns))
        console.print(table)

    if validation.valid:
        console.print("[bold green]✓[/bold green] CSV is valid")
    else:
        raise typer.Exit(code=1)


@app.command()
def export(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write CSV to file"),
):
    """Export the whole catalog as CSV."""
    content = _run(lambda service: service.export_csv())
    if output is None:
        typer.echo(content)
        return
    output.write_text(content + "\n", encoding="utf-8")
    console.print(f"[bold green]✓[/bold green] Catalog exported to {output}")


@app.command()
def search(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Text in name or code"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Exact tag"),
    level: Optional[str] = typer.Option(None, "--level", "-l", help="Exact level"),
):
    """Search catalog items."""
    try:
        items = _run(lambda service: service.search.search(query, tag, level))
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Catalog items ({len(items)})")
    table.add_column("Code")
    table.add_column("Name")
    table.add_column("Level")
    table.add_column("Tags")
    for item in items:
        table.add_row(item.code or "-", item.name, item.level.value, ", ".join(item.tags))
    console.print(table)


@app.command()
def infer(
    name: str = typer.Argument(..., help="Item name"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Tags separated by ';'"),
    kit: bool = typer.Option(False, "--kit", help="Item is sold as a kit"),
    level: Optional[str] = typer.Option(None, "--level", help="Explicit level"),
):
    """Show how an item would be classified."""
    try:
        engine = LevelInferenceEngine(get_config().level_rules_path)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(code=1)

    classification = engine.classify(name, split_tags(tags), level, is_kit=kit)
    console.print(f"[bold]{classification.level.value}[/bold] (rule: {classification.rule})")
    children = sorted(child.value for child in allowed_children(classification.level))
    console.print(f"  May contain: {', '.join(children) or '-'}")
    if classification.context:
        console.print(f"  Context: {classification.context}")
    for warning in classification.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")


@app.command()
def tags():
    """List the shared tag vocabulary."""
    all_tags = _run(lambda service: service.store.get_all_tags())
    table = Table(title=f"Tags ({len(all_tags)})")
    table.add_column("Name")
    table.add_column("Kind")
    for tag in all_tags:
        table.add_row(tag.name, tag.kind)
    console.print(table)


@app.command()
def audit(
    code: Optional[str] = typer.Option(None, "--code", help="Only entries for this item"),
    limit: int = typer.Option(100, "--limit", help="Maximum entries"),
    failures: bool = typer.Option(False, "--failures", help="Only failed operations"),
):
    """Show recent audit log entries."""
    if failures:
        entries = _run(lambda service: service.audit.failures(code, limit))
    else:
        entries = _run(lambda service: service.audit.recent(code, limit))

    table = Table(title=f"Audit log ({len(entries)})")
    table.add_column("When")
    table.add_column("Item")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Message")
    for entry in entries:
        status = "[green]success[/green]" if entry.status == "success" else "[red]error[/red]"
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            entry.item_code or "-",
            entry.action,
            status,
            entry.message or "",
        )
    console.print(table)


@app.command()
def attach(
    parent_code: str = typer.Argument(..., help="Parent item code"),
    child_code: str = typer.Argument(..., help="Child item code"),
    relation: str = typer.Option("contains", "--relation", help="Relation kind"),
):
    """Attach a child item to a parent."""
    _print_result(_run(lambda service: service.attach_child(parent_code, child_code, relation)))


@app.command()
def move(
    child_code: str = typer.Argument(..., help="Child item code"),
    from_parent: str = typer.Argument(..., help="Current parent code"),
    to_parent: str = typer.Argument(..., help="New parent code"),
):
    """Move a child item to another parent."""
    _print_result(_run(lambda service: service.move_item(child_code, from_parent, to_parent)))


@app.command()
def retag(
    code: str = typer.Argument(..., help="Item code"),
    new_tags: str = typer.Argument(..., help="Tags separated by ';'"),
):
    """Replace an item's tags."""
    _print_result(_run(lambda service: service.retag_item(code, split_tags(new_tags))))


@app.command()
def delete(
    code: str = typer.Argument(..., help="Item code"),
    cascade: bool = typer.Option(False, "--cascade", help="Also delete owned descendants"),
):
    """Delete an item."""
    _print_result(_run(lambda service: service.delete_item(code, cascade)))


if __name__ == "__main__":
    app()
