"""Command line interface for desksearch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from desksearch.config import AppConfig
from desksearch.errors import DeskSearchError
from desksearch.index.facets import decode_drilldown
from desksearch.index.handler import create_handler
from desksearch.index.storage import SQLiteIndexStore
from desksearch.web.app import app as web_app


console = Console()
app = typer.Typer(help="desksearch - faceted full-text search for your documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _parse_filters(filters: List[str]) -> dict[str, str]:
    try:
        return dict(decode_drilldown(item) for item in filters)
    except ValueError as exc:
        raise typer.BadParameter(f"{exc}. Use FIELD=VALUE") from exc


@app.command()
def index(
    inputs: List[Path] = typer.Argument(
        ..., help="Files or folders to index.", resolve_path=True
    ),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    similar: bool = typer.Option(False, "--similar", help="Store embeddings for similar documents"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index one or more paths containing documents."""
    _setup_logging(verbose)
    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        show_similar_documents=similar,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    console.print(f"Indexing into [bold]{resolved_db}[/bold]...")
    try:
        with create_handler(resolved_db, config, embed=True) as handler:
            stats = handler.index(inputs)
    except DeskSearchError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not stats.processed_files:
        console.print("[yellow]No supported documents found.[/yellow]")
        return
    console.print(
        f"Inserted: {stats.inserted}, updated: {stats.updated}, "
        f"skipped: {stats.skipped}, failed: {stats.failed}"
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    rows: int = typer.Option(AppConfig().number_of_search_results, help="Number of results to display"),
    filters: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Drilldown filter FIELD=VALUE"),
    similar: bool = typer.Option(False, "--similar", help="Show similar documents"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a full-text query and show results and facets."""
    _setup_logging(verbose)
    drilldown = _parse_filters(filters or [])
    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        number_of_search_results=rows,
        show_similar_documents=similar,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    try:
        with create_handler(resolved_db, config) as handler:
            result = handler.perform_query(query, "", "", config, drilldown)
    except DeskSearchError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not result.documents:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Highlight")
    if similar:
        table.add_column("Similar")

    for document in result.documents:
        snippet = escape(document.highlight_text).replace("<em>", "[bold]").replace("</em>", "[/bold]")
        row = ["*" * document.normalized_score, escape(document.path), snippet]
        if similar:
            row.append("\n".join(document.similar_file_names))
        table.add_row(*row)

    console.print(table)
    for dimension in result.facets:
        entries = ", ".join(f"{facet.display_name} ({facet.count})" for facet in dimension.facets)
        console.print(f"[bold]{dimension.label}:[/bold] {entries}")
    console.print(
        f"{len(result.documents)} of {result.total_index_size} documents "
        f"in {result.duration_millis} ms"
    )


@app.command()
def suggest(
    term: str = typer.Argument(..., help="Beginning of a word or phrase"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    count: int = typer.Option(AppConfig().number_of_suggestions, help="Number of suggestions"),
) -> None:
    """Suggest completions for a search term."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path, number_of_suggestions=count)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    try:
        with create_handler(resolved_db, config) as handler:
            suggestions = handler.find_suggestion_terms_for(term)
    except DeskSearchError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not suggestions:
        console.print("[yellow]No suggestions.[/yellow]")
        return
    for suggestion in suggestions:
        console.print(suggestion.value)


@app.command()
def prune(
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
) -> None:
    """Remove documents that no longer exist on disk."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to prune.[/yellow]")
        return

    store = SQLiteIndexStore(resolved_db)
    try:
        removed = store.remove_missing_files()
    finally:
        store.close()
    console.print(f"Removed {removed} orphaned documents.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite index path"),
) -> None:
    """Start the web API."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, searches might fail.[/yellow]")
    web_app.state.db_path = resolved_db

    console.print(
        f"Starting web interface on http://{host}:{port} (database: {resolved_db})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
