"""Command-line interface for the memomark Markdown note library.

Commands:
- new: Create a document
- import: Import a Markdown file as a linked document
- show: Open a document and display it
- edit: Change a document's title or content
- star: Toggle a document's star
- archive / restore: Move documents in and out of the archive
- delete: Permanently delete an archived document
- list: Browse a category in a chosen order
- export: Write a document to a Markdown file
- prefs: Show and change preferences
- info: Show system information
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.columns import Columns
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from memomark.config.loader import get_default_config_path, load_config
from memomark.config.schema import AppConfig
from memomark.core.library import DocumentLibrary, LibraryError
from memomark.core.preferences import DisplayMode
from memomark.core.projection import Category, SortOrder
from memomark.entities import Document
from memomark.observability.logging import configure_logging, configure_from_config, get_logger
from memomark.storage import StorageError

app = typer.Typer(
    name="memomark",
    help="Local Markdown note library with starring, archiving and sorted views",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

PREVIEW_LENGTH = 500


async def _open_library(config: AppConfig) -> DocumentLibrary:
    """Initialize the document store and build the library.

    Args:
        config: Application configuration

    Returns:
        Library with an initialized store
    """
    from memomark.service.stores import initialize_library

    try:
        return await initialize_library(config)
    except (StorageError, ValueError) as e:
        console.print(f"[red]Error initializing document store: {str(e)}[/red]")
        raise typer.Exit(1)


def _document_payload(document: Document, full: bool = True) -> dict:
    content = document.content if full else document.content[:PREVIEW_LENGTH]
    return {
        "id": document.id,
        "title": document.title,
        "status": document.status.name,
        "is_starred": document.is_starred,
        "source": document.source_location,
        "created_date": document.created_date,
        "modified_date": document.modified_date,
        "content": content,
        "is_truncated": not full and len(document.content) > PREVIEW_LENGTH,
    }


def _print_json(data: dict) -> None:
    # No markup, highlighting or wrapping so the output stays valid JSON
    console.print(
        json.dumps(data, indent=2, ensure_ascii=False),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _read_content(content: Optional[str], content_file: Optional[Path]) -> Optional[str]:
    if content is not None and content_file is not None:
        console.print("[red]Use either --content or --from-file, not both[/red]")
        raise typer.Exit(1)
    if content_file is None:
        return content
    try:
        return content_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Cannot read {content_file}: {e}[/red]")
        raise typer.Exit(1)


def _parse_color(value: str) -> int:
    """Parse ``#RRGGBB``, ``#AARRGGBB`` or ``0x...`` into an ARGB integer."""
    raw = value.strip().lower().removeprefix("#").removeprefix("0x")
    if len(raw) not in (6, 8):
        raise typer.BadParameter(f"Invalid color '{value}', expected #RRGGBB or #AARRGGBB")
    try:
        color = int(raw, 16)
    except ValueError:
        raise typer.BadParameter(f"Invalid color '{value}', expected hex digits")
    if len(raw) == 6:
        color |= 0xFF000000
    return color


def _fail(action: str, error: Exception) -> typer.Exit:
    logger.debug("cli_command_failed", action=action, error=str(error))
    console.print(f"[red]Error {action}: {escape(str(error))}[/red]")
    return typer.Exit(1)


@app.command()
def new(
    title: str = typer.Argument("", help="Document title"),
    content: Optional[str] = typer.Option(None, "--content", help="Markdown content"),
    content_file: Optional[Path] = typer.Option(None, "--from-file", help="Read content from a file (copied, not linked)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Create a new document."""
    asyncio.run(_new_async(title, content, content_file, config_file))


async def _new_async(
    title: str,
    content: Optional[str],
    content_file: Optional[Path],
    config_file: Optional[Path],
):
    """Async implementation of new command."""
    body = _read_content(content, content_file) or ""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.new_document(title=title, content=body)
        console.print(f"[green]✓[/green] Created document {document.id}: {escape(document.title) or '(untitled)'}")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("creating document", e)
    finally:
        await library.store.close()


@app.command("import")
def import_file(
    path: Path = typer.Argument(..., help="Markdown file to import"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Import a Markdown file; edits are written back to the file."""
    asyncio.run(_import_async(path, config_file))


async def _import_async(path: Path, config_file: Optional[Path]):
    """Async implementation of import command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.import_file(path)
        console.print(f"[green]✓[/green] Imported {escape(document.source_location)} as document {document.id}")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("importing file", e)
    finally:
        await library.store.close()


@app.command()
def show(
    document_id: int = typer.Argument(..., help="Document ID"),
    full: bool = typer.Option(False, "--full", help="Display full content"),
    raw: bool = typer.Option(False, "--raw", help="Print Markdown source instead of rendering it"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Open a document and display it."""
    asyncio.run(_show_async(document_id, full, raw, json_output, config_file))


async def _show_async(
    document_id: int,
    full: bool,
    raw: bool,
    json_output: bool,
    config_file: Optional[Path],
):
    """Async implementation of show command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.open_document(document_id)
    except (StorageError, LibraryError) as e:
        raise _fail("opening document", e)
    finally:
        await library.store.close()

    if json_output:
        _print_json(_document_payload(document, full=full))
        return

    table = Table(title=f"Document {document.id}: {escape(document.title) or '(untitled)'}")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Status", document.status.name)
    table.add_row("Starred", "yes" if document.is_starred else "no")
    table.add_row("Source", escape(document.source_location or "-"))
    table.add_row("Created", document.created_date)
    table.add_row("Modified", document.modified_date)
    table.add_row("Content Length", f"{len(document.content)} characters")
    console.print(table)

    content = document.content
    if not full and len(content) > PREVIEW_LENGTH:
        content = content[:PREVIEW_LENGTH] + "\n\n... (truncated)"
    console.print()
    if raw:
        console.print(content, markup=False, highlight=False)
    else:
        console.print(Markdown(content))


@app.command()
def edit(
    document_id: int = typer.Argument(..., help="Document ID"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", help="New Markdown content"),
    content_file: Optional[Path] = typer.Option(None, "--from-file", help="Read new content from a file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Change a document's title and/or content."""
    asyncio.run(_edit_async(document_id, title, content, content_file, config_file))


async def _edit_async(
    document_id: int,
    title: Optional[str],
    content: Optional[str],
    content_file: Optional[Path],
    config_file: Optional[Path],
):
    """Async implementation of edit command."""
    body = _read_content(content, content_file)
    if title is None and body is None:
        console.print("[yellow]Nothing to change: pass --title, --content or --from-file[/yellow]")
        raise typer.Exit(1)

    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.edit(document_id, title=title, content=body)
        console.print(f"[green]✓[/green] Saved document {document.id} (modified {document.modified_date})")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("editing document", e)
    finally:
        await library.store.close()


@app.command()
def star(
    document_id: int = typer.Argument(..., help="Document ID"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Star or unstar a document."""
    asyncio.run(_star_async(document_id, config_file))


async def _star_async(document_id: int, config_file: Optional[Path]):
    """Async implementation of star command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.toggle_star(document_id)
        state = "Starred" if document.is_starred else "Unstarred"
        console.print(f"[green]✓[/green] {state} document {document.id}")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("toggling star", e)
    finally:
        await library.store.close()


@app.command()
def archive(
    document_id: int = typer.Argument(..., help="Document ID"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Move a document to the archive."""
    asyncio.run(_archive_async(document_id, config_file))


async def _archive_async(document_id: int, config_file: Optional[Path]):
    """Async implementation of archive command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.archive(document_id)
        console.print(f"[green]✓[/green] Archived document {document.id}")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("archiving document", e)
    finally:
        await library.store.close()


@app.command()
def restore(
    document_id: int = typer.Argument(..., help="Document ID"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Restore an archived document."""
    asyncio.run(_restore_async(document_id, config_file))


async def _restore_async(document_id: int, config_file: Optional[Path]):
    """Async implementation of restore command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.restore(document_id)
        console.print(f"[green]✓[/green] Restored document {document.id} ({document.status.name})")
    except (StorageError, LibraryError, ValueError) as e:
        raise _fail("restoring document", e)
    finally:
        await library.store.close()


@app.command()
def delete(
    document_id: int = typer.Argument(..., help="Document ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Permanently delete an archived document."""
    asyncio.run(_delete_async(document_id, force, config_file))


async def _delete_async(document_id: int, force: bool, config_file: Optional[Path]):
    """Async implementation of delete command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        document = await library.require(document_id)
        if not document.is_archived:
            console.print(
                f"[red]Document {document_id} is not archived. "
                f"Run 'memomark archive {document_id}' first.[/red]"
            )
            raise typer.Exit(1)

        if not force:
            typer.confirm(
                f"Permanently delete '{document.title or document.id}'? This cannot be undone.",
                abort=True,
            )

        await library.delete_permanently(document_id)
        console.print(f"[green]✓[/green] Deleted document {document_id}")
    except typer.Abort:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        raise typer.Exit(1)
    except (StorageError, LibraryError) as e:
        raise _fail("deleting document", e)
    finally:
        await library.store.close()


@app.command("list")
def list_documents(
    category: Category = typer.Option(Category.CREATED, "--category", "-k", help="Which documents to list"),
    sort: Optional[SortOrder] = typer.Option(None, "--sort", "-s", help="Sort order (defaults to the saved preference)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Browse documents of a category."""
    asyncio.run(_list_async(category, sort, json_output, config_file))


async def _list_async(
    category: Category,
    sort: Optional[SortOrder],
    json_output: bool,
    config_file: Optional[Path],
):
    """Async implementation of list command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        documents = await library.browse(category, sort)
        preferences = library.preferences.load()
    except (StorageError, LibraryError) as e:
        raise _fail("listing documents", e)
    finally:
        await library.store.close()

    if json_output:
        result = {
            "category": category.value,
            "sort": (sort or preferences.list_order).value,
            "total_documents": len(documents),
            "documents": [_document_payload(doc, full=False) for doc in documents],
        }
        _print_json(result)
        return

    if not documents:
        console.print(f"[yellow]No {category.value} documents[/yellow]")
        return

    if preferences.display_mode == DisplayMode.GRID:
        panels = [
            Panel(
                escape(doc.content[:120]) or "[dim](empty)[/dim]",
                title=f"{'★ ' if doc.is_starred else ''}{escape(doc.title) or '(untitled)'}",
                subtitle=f"#{doc.id} · {doc.modified_date}",
                width=36,
            )
            for doc in documents
        ]
        console.print(Columns(panels))
        return

    table = Table(title=f"Documents - {category.value}")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Source", style="green")
    table.add_column("Created", style="blue")
    table.add_column("Modified", style="magenta")

    for doc in documents:
        table.add_row(
            str(doc.id),
            "★" if doc.is_starred else "",
            escape(doc.title) or "(untitled)",
            doc.status.name,
            escape(doc.source_location or "-"),
            doc.created_date,
            doc.modified_date,
        )

    console.print(table)


@app.command()
def export(
    document_id: int = typer.Argument(..., help="Document ID"),
    directory: Optional[Path] = typer.Option(None, "--dir", "-d", help="Target directory (defaults to export_dir)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Export a document to a Markdown file."""
    asyncio.run(_export_async(document_id, directory, config_file))


async def _export_async(document_id: int, directory: Optional[Path], config_file: Optional[Path]):
    """Async implementation of export command."""
    config = _load_config(config_file)
    library = await _open_library(config)

    try:
        target = await library.export(document_id, directory)
        console.print(f"[green]✓[/green] Exported document {document_id} to {target}")
    except (StorageError, LibraryError) as e:
        raise _fail("exporting document", e)
    finally:
        await library.store.close()


# ============================================================================
# Preference Management Commands
# ============================================================================

prefs_app = typer.Typer(help="Show and change preferences")
app.add_typer(prefs_app, name="prefs")


@prefs_app.command("show")
def prefs_show(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show current preferences."""
    from memomark.core.preferences import PreferenceStore

    config = _load_config(config_file)
    preferences = PreferenceStore(config.preferences_path, config.history_size).load()

    table = Table(title="Preferences")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("List Order", preferences.list_order.value)
    table.add_row("Display Mode", preferences.display_mode.value)
    table.add_row("Automatic Export", "on" if preferences.auto_export else "off")
    table.add_row("Theme Color", f"#{preferences.theme_color:08X}")
    table.add_row("Theme Color Index", str(preferences.theme_color_index))
    table.add_row("Recently Viewed", ", ".join(map(str, preferences.recent_document_ids)) or "-")
    console.print(table)


@prefs_app.command("set")
def prefs_set(
    sort: Optional[SortOrder] = typer.Option(None, "--sort", help="Default list order"),
    display: Optional[DisplayMode] = typer.Option(None, "--display", help="List layout"),
    auto_export: Optional[bool] = typer.Option(None, "--auto-export/--no-auto-export", help="Export local documents after each edit"),
    color: Optional[str] = typer.Option(None, "--color", help="Theme color as #RRGGBB or #AARRGGBB"),
    color_index: Optional[int] = typer.Option(None, "--color-index", help="Index of the chosen palette color"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Change preferences."""
    from pydantic import ValidationError

    from memomark.core.preferences import PreferenceStore

    changes = {}
    if sort is not None:
        changes["list_order"] = sort
    if display is not None:
        changes["display_mode"] = display
    if auto_export is not None:
        changes["auto_export"] = auto_export
    if color is not None:
        changes["theme_color"] = _parse_color(color)
    if color_index is not None:
        changes["theme_color_index"] = color_index

    if not changes:
        console.print("[yellow]No preference given[/yellow]")
        raise typer.Exit(1)

    config = _load_config(config_file)
    store = PreferenceStore(config.preferences_path, config.history_size)
    try:
        store.update(**changes)
    except (ValidationError, OSError) as e:
        raise _fail("saving preferences", e)

    console.print(f"[green]✓[/green] Updated {', '.join(sorted(changes))}")


@app.command()
def info(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show system information and configuration."""
    config = _load_config(config_file)

    table = Table(title="memomark System Information")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Data Directory", str(config.data_dir))
    table.add_row("Export Directory", str(config.export_dir))
    table.add_row("Preferences File", str(config.preferences_path))
    table.add_row("Log Level", config.log_level.value)
    table.add_row("Document Store", config.document_store.store_type.value)
    table.add_row("Connection", config.document_store.connection_string or "-")
    table.add_row("History Size", str(config.history_size))

    console.print(table)


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load configuration and setup logging."""
    if config_file is None:
        config_file = get_default_config_path()

    # Loading logs too; route it to stderr before the configured level is known
    configure_logging()
    config = load_config(config_file)
    if config.logging.enable_file:
        configure_from_config(config.logging, json_logs=config.json_logs)
    else:
        configure_logging(level=config.log_level.value, json_logs=config.json_logs)

    return config


if __name__ == "__main__":
    app()
