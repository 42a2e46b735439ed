# rental_search/cli/runner.py

"""Headless CLI search runner built on the async orchestrator."""

import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from rental_search.browser.session import create_session
from rental_search.config.criteria import SearchCriteria, load_criteria
from rental_search.config.settings import Settings
from rental_search.errors import ConfigError
from rental_search.models.listing import Listing
from rental_search.services.search_orchestrator import (
    SearchOrchestrator,
    SearchResult,
    SessionFactory,
    build_scrapers,
)
from rental_search.storage.file_manager import FileManager

logger = logging.getLogger("rental_search.cli")

EXIT_OK = 0
EXIT_NO_RESULTS = 1
EXIT_CONFIG_ERROR = 2

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_sources(source_csv: str | None) -> list[str]:
    """Map a comma-separated list of source IDs to known ids.

    Returns all ids when *source_csv* is ``None``.

    Raises:
        ConfigError: An id is not a registered source.
    """
    available = [s["id"] for s in Settings.AVAILABLE_SOURCES]
    if source_csv is None:
        return available

    requested = [
        s.strip() for s in source_csv.split(",") if s.strip()
    ]
    unknown = [r for r in requested if r not in available]
    if unknown:
        raise ConfigError(
            f"Unknown source(s): {', '.join(unknown)}; "
            f"available: {', '.join(available)}"
        )
    return list(dict.fromkeys(requested))


def _print_table(listings: list[Listing]) -> None:
    """Render a Rich table of listings to stdout."""
    table = Table(
        title="Rentals",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", max_width=50)
    table.add_column("Distance", justify="right")
    table.add_column("Per night", justify="right", style="green")
    table.add_column("Total", justify="right", style="bold green")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, listing in enumerate(listings, 1):
        table.add_row(
            str(idx),
            listing.name[:50],
            f"{listing.distance_km:.1f} km",
            f"€ {listing.price_per_night:,.2f}",
            f"€ {listing.total_price:,.2f}",
            listing.url,
        )

    Console().print(table)


def _save_results(file_manager: FileManager, result: SearchResult) -> None:
    """Save the combined ranking plus one JSON file per source."""
    try:
        path = file_manager.save_results("combined", result.listings)
        _err.print(f"[dim]Saved combined → {path}[/dim]")
        csv_path = file_manager.export_csv("combined", result.listings)
        _err.print(f"[dim]Exported CSV → {csv_path}[/dim]")
        for outcome in result.outcomes:
            if not outcome.ok:
                continue
            ranked = sorted(
                outcome.listings, key=lambda listing: listing.total_price
            )
            sp = file_manager.save_results(outcome.source, ranked)
            _err.print(f"[dim]Saved {outcome.source} → {sp}[/dim]")
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")


async def cli_search(
    criteria_path: str | None,
    source_csv: str | None,
    output_format: str,
    output_dir: str | None,
    session_factory: SessionFactory = create_session,
) -> int:
    """Run a headless search and return the process exit code."""
    try:
        criteria: SearchCriteria = load_criteria(
            Path(criteria_path) if criteria_path else None
        )
        scrapers = build_scrapers(criteria, resolve_sources(source_csv))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        _err.print(f"[red]Configuration error: {exc}[/red]")
        return EXIT_CONFIG_ERROR

    file_manager = FileManager(Path(output_dir) if output_dir else None)
    orchestrator = SearchOrchestrator(session_factory)

    labels = ", ".join(scraper.source_name for scraper in scrapers)
    _err.print(
        f"[bold]Searching:[/bold] {criteria.destination}  "
        f"[dim]{criteria.occupancy} people, {criteria.night_count} nights, "
        f"budget €{criteria.budget}, sources={labels}[/dim]"
    )

    result = await orchestrator.run(scrapers, criteria)

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")

    if not result.listings:
        _err.print("[yellow]No rentals found.[/yellow]")
        return EXIT_NO_RESULTS

    counts = ", ".join(
        f"{source} {count}" for source, count in result.per_source.items()
    )
    detail = (
        f", {result.deduplicated_count} deduped"
        if result.deduplicated_count
        else ""
    )
    _err.print(
        f"[green]✓ {len(result.listings)} rentals ({counts}{detail})[/green]"
    )

    _save_results(file_manager, result)

    if output_format == "table":
        _print_table(result.listings)
    else:
        json.dump(
            [listing.to_dict() for listing in result.listings],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return EXIT_OK
