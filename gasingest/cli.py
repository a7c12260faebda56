"""Command-line interface for gasingest."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from gasingest import __version__
from gasingest.catalog import SQLiteCatalog
from gasingest.config import IngestSettings, LogFormat, SearchConfig, SearchSort
from gasingest.core.client import GitHubClient
from gasingest.core.exporter import save_json
from gasingest.core.orchestrator import BulkIngestor
from gasingest.core.refresher import CatalogRefresher
from gasingest.core.scraper import LibraryScraper
from gasingest.exceptions import ConfigError
from gasingest.logging import configure_logging
from gasingest.models.library import ScrapedLibraryData

app = typer.Typer(
    name="gasingest",
    help="Google Apps Script library discovery and ingestion",
    add_completion=False,
)
catalog_app = typer.Typer(help="Inspect the local catalog")
app.add_typer(catalog_app, name="catalog")
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"gasingest version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """gasingest - discover and catalog Google Apps Script libraries."""
    pass


def _settings(quiet: bool = False, **overrides) -> IngestSettings:
    settings = IngestSettings(**{k: v for k, v in overrides.items() if v is not None})
    if quiet:
        settings = settings.model_copy(update={"log_format": LogFormat.JSON, "verbose": False})
    configure_logging(settings)
    return settings


def _search_config(settings: IngestSettings, tags: Optional[list[str]]) -> SearchConfig:
    try:
        return SearchConfig.from_settings(settings, tags=tags or None)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def ingest(
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Topic tag, repeatable"),
    start_page: int = typer.Option(1, "--start-page", help="First search page"),
    end_page: int = typer.Option(1, "--end-page", help="Last search page, inclusive"),
    per_page: Optional[int] = typer.Option(None, "--per-page", "-n", help="Repositories per page"),
    sort: SearchSort = typer.Option(SearchSort.UPDATED, "--sort", help="Search sort order"),
    delay: Optional[int] = typer.Option(
        None, "--delay", "-d", help="Delay between repositories in ms"
    ),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="SQLite catalog path"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write run result JSON"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="JSON logs, no progress events"),
):
    """Search GitHub and ingest Apps Script libraries into the catalog."""
    settings = _settings(
        quiet,
        request_delay_ms=delay,
        catalog_path=str(catalog_path) if catalog_path else None,
    )
    config = _search_config(settings, tags)

    async def run():
        async with GitHubClient(settings) as client, SQLiteCatalog(settings.catalog_path) as catalog:
            ingestor = BulkIngestor(
                client,
                config,
                settings=settings,
                duplicate_checker=catalog.is_duplicate,
                save_callback=catalog.save,
            )
            return await ingestor.run(
                start_page=start_page,
                end_page=end_page,
                per_page=per_page or settings.per_page,
                sort=sort,
            )

    try:
        result = asyncio.run(run())
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for item in result.results:
        if item.success:
            data = item.data
            console.print(f"[green]✓[/green] {data.name} [dim]{data.script_type.value} {data.script_id}[/dim]")
    for error in result.errors:
        console.print(f"[red]✗[/red] {error}")

    console.print(
        f"\n[bold]Ingested {result.success_count}/{result.total}[/bold] "
        f"[dim]({result.error_count} errors, {result.duplicate_count} duplicates, "
        f"{result.stale_count} stale)[/dim]"
    )
    if output:
        path = save_json(result, output)
        console.print(f"[dim]Saved to {path}[/dim]")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def search(
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Topic tag, repeatable"),
    max_results: int = typer.Option(10, "--max", "-n", help="Maximum repositories"),
    sort: SearchSort = typer.Option(SearchSort.UPDATED, "--sort", help="Search sort order"),
):
    """List candidate repositories for the tags without scraping them."""
    settings = _settings()
    config = _search_config(settings, tags)

    async def run():
        async with GitHubClient(settings) as client:
            return await client.search_by_tags(config, max_results=max_results, sort=sort)

    result = asyncio.run(run())
    if not result.success:
        console.print(f"[red]Search failed: {result.error}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{result.processed_count} of {result.total_found} repositories")
    table.add_column("Repository")
    table.add_column("Stars", justify="right")
    table.add_column("Updated", style="dim")
    for repo in result.repositories:
        updated = repo.updated_at.date().isoformat() if repo.updated_at else "-"
        table.add_row(repo.full_name, f"{repo.stargazers_count:,}", updated)
    console.print(table)


@app.command()
def scrape(
    url: str = typer.Argument(..., help="GitHub repository URL"),
):
    """Scrape one repository and show the extracted record."""
    settings = _settings()
    config = _search_config(settings, None)

    async def run():
        async with GitHubClient(settings) as client:
            return await LibraryScraper(client, config).scrape(url)

    result = asyncio.run(run())
    if not result.success:
        console.print(f"[red]Failed to scrape {url}: {result.error}[/red]")
        raise typer.Exit(1)
    _print_library_table(result.data)


@app.command()
def refresh(
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", help="Entries per batch"),
    delay: Optional[int] = typer.Option(None, "--delay", "-d", help="Delay between batches in ms"),
    include_rejected: bool = typer.Option(
        False, "--include-rejected", help="Also refresh rejected entries"
    ),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="SQLite catalog path"),
):
    """Re-scrape catalog entries and update their metadata."""
    settings = _settings(catalog_path=str(catalog_path) if catalog_path else None)
    config = _search_config(settings, None)

    async def run():
        async with GitHubClient(settings) as client, SQLiteCatalog(settings.catalog_path) as catalog:
            refresher = CatalogRefresher(
                LibraryScraper(client, config),
                catalog,
                max_reported_errors=settings.max_reported_errors,
            )
            return await refresher.run(
                batch_size=batch_size or settings.refresh_batch_size,
                delay_ms=delay if delay is not None else settings.refresh_delay_ms,
                exclude_rejected=not include_rejected,
            )

    try:
        result = asyncio.run(run())
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for error in result.errors:
        console.print(f"[red]✗[/red] {error}")
    console.print(
        f"\n[bold]Updated {result.success_count}/{result.total}[/bold] "
        f"[dim]({result.skipped_count} unchanged, {result.error_count} errors)[/dim]"
    )


@catalog_app.command("info")
def catalog_info(
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="SQLite catalog path"),
):
    """Show catalog location and size."""
    settings = _settings(catalog_path=str(catalog_path) if catalog_path else None)
    path = Path(settings.catalog_path)
    if not path.exists():
        console.print("Catalog is empty")
        return

    async def run():
        async with SQLiteCatalog(settings.catalog_path) as catalog:
            return await catalog.count()

    count = asyncio.run(run())
    console.print(f"Catalog path: {path}")
    console.print(f"Catalog size: {path.stat().st_size / 1024:.1f} KB")
    console.print(f"Entries: {count}")


@catalog_app.command("list")
def catalog_list(
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="SQLite catalog path"),
    include_rejected: bool = typer.Option(False, "--include-rejected"),
):
    """List catalog entries."""
    settings = _settings(catalog_path=str(catalog_path) if catalog_path else None)

    async def run():
        async with SQLiteCatalog(settings.catalog_path) as catalog:
            return await catalog.list_entries(exclude_rejected=not include_rejected)

    entries = asyncio.run(run())
    table = Table(title=f"{len(entries)} entries")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Script ID", style="dim")
    table.add_column("Status")
    table.add_column("Stars", justify="right")
    for entry in entries:
        table.add_row(
            entry.name,
            entry.script_type.value,
            entry.script_id,
            entry.status.value,
            f"{entry.star_count:,}",
        )
    console.print(table)


def _print_library_table(data: ScrapedLibraryData):
    """Print a scraped record as a table."""
    table = Table(title=data.name, show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Script ID", data.script_id)
    table.add_row("Type", data.script_type.value)
    table.add_row("Repository", data.repository_url)
    table.add_row("Author", data.author_name or "-")
    table.add_row("Description", data.description or "-")
    table.add_row("License", data.license_type or "-")
    table.add_row("Stars", f"{data.star_count:,}")
    table.add_row("Last commit", data.last_commit_at.isoformat())

    console.print(table)


if __name__ == "__main__":
    app()
