# rental_search/services/search_orchestrator.py

"""Runs the rental scrapers concurrently and merges their results."""

import asyncio
import importlib
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from rental_search.browser.session import BrowsingSession, create_session
from rental_search.config.criteria import SearchCriteria
from rental_search.config.settings import Settings
from rental_search.errors import SessionError
from rental_search.filters.deduplicator import ListingDeduplicator
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper

logger = logging.getLogger("rental_search.orchestrator")

SessionFactory = Callable[..., BrowsingSession]


@dataclass
class TaskOutcome:
    """What one scraper task produced: listings or the error it hit."""

    source: str
    listings: set[Listing] = field(
        default_factory=lambda: set[Listing]()
    )
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SearchResult:
    """Container for a completed search across multiple sources."""

    listings: list[Listing] = field(
        default_factory=lambda: list[Listing]()
    )
    outcomes: list[TaskOutcome] = field(
        default_factory=lambda: list[TaskOutcome]()
    )
    deduplicated_count: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    @property
    def per_source(self) -> dict[str, int]:
        return {
            outcome.source: len(outcome.listings)
            for outcome in self.outcomes
        }


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def build_scrapers(
    criteria: SearchCriteria,
    source_ids: Iterable[str] | None = None,
) -> list[BaseScraper]:
    """Instantiate the registered scrapers, optionally a subset of them.

    Raises:
        ValueError: An id is not in ``Settings.AVAILABLE_SOURCES``.
        ConfigError: A scraper cannot derive its query from criteria.
    """
    registry = {src["id"]: src for src in Settings.AVAILABLE_SOURCES}
    wanted = list(source_ids) if source_ids is not None else list(registry)
    unknown = [sid for sid in wanted if sid not in registry]
    if unknown:
        raise ValueError(
            f"Unknown source(s): {', '.join(unknown)}; "
            f"available: {', '.join(registry)}"
        )
    return [
        _load_scraper_class(registry[sid]["scraper"])(criteria)
        for sid in wanted
    ]


class SearchOrchestrator:
    """Gives each scraper its own browser and thread, then merges."""

    def __init__(
        self, session_factory: SessionFactory = create_session,
    ) -> None:
        self.session_factory = session_factory

    # ── Private helpers ──────────────────────────────────

    def _extract_with_own_session(
        self,
        scraper: BaseScraper,
        criteria: SearchCriteria,
        session_factory: SessionFactory,
    ) -> set[Listing]:
        """Body of a scraper task; runs on a worker thread."""
        thread = threading.current_thread()
        pooled_name = thread.name
        thread.name = f"scraper-{scraper.source_name}"
        session: BrowsingSession | None = None
        try:
            try:
                session = session_factory(
                    capture_network=scraper.needs_network_capture
                )
            except SessionError:
                raise
            except Exception as exc:
                raise SessionError(
                    f"[{scraper.source_name}] could not open a "
                    f"browsing session: {exc}"
                ) from exc
            return scraper.extract(session, criteria)
        finally:
            if session is not None:
                try:
                    session.close()
                except Exception as exc:
                    logger.warning(
                        "[%s] Error closing session: %s",
                        scraper.source_name,
                        exc,
                    )
            thread.name = pooled_name

    async def _run_scrapers(
        self,
        scrapers: Sequence[BaseScraper],
        criteria: SearchCriteria,
        session_factory: SessionFactory,
    ) -> list[TaskOutcome]:
        """Dispatch scrapers concurrently; one outcome per scraper."""
        tasks = [
            asyncio.to_thread(
                self._extract_with_own_session,
                scraper,
                criteria,
                session_factory,
            )
            for scraper in scrapers
        ]

        results = await asyncio.gather(
            *tasks, return_exceptions=True
        )

        outcomes: list[TaskOutcome] = []
        for scraper, result in zip(scrapers, results):
            if isinstance(result, BaseException):
                logger.error(
                    "[%s] Scraper failed: %s",
                    scraper.source_name,
                    result,
                    exc_info=result,
                )
                outcomes.append(
                    TaskOutcome(scraper.source_name, error=result)
                )
            else:
                logger.info(
                    "[%s] %d listings", scraper.source_name, len(result)
                )
                outcomes.append(
                    TaskOutcome(scraper.source_name, set(result))
                )
        return outcomes

    # ── Entry point ──────────────────────────────────────

    async def run(
        self,
        scrapers: Sequence[BaseScraper],
        criteria: SearchCriteria,
        session_factory: SessionFactory | None = None,
    ) -> SearchResult:
        """Run every scraper and return the merged, ranked listings.

        A failing scraper never affects the others; its error is
        reported in ``SearchResult.errors``.
        """
        factory = session_factory or self.session_factory
        outcomes = await self._run_scrapers(scrapers, criteria, factory)

        result = SearchResult(outcomes=outcomes)
        result.errors = [
            f"{outcome.source}: {outcome.error}"
            for outcome in outcomes
            if outcome.error is not None
        ]
        result.listings, result.deduplicated_count = (
            ListingDeduplicator.merge(
                outcome.listings for outcome in outcomes if outcome.ok
            )
        )
        logger.info(
            "Search finished: %d listings from %d/%d sources "
            "(%d duplicates removed)",
            len(result.listings),
            sum(1 for outcome in outcomes if outcome.ok),
            len(outcomes),
            result.deduplicated_count,
        )
        return result


def run(
    scrapers: Sequence[BaseScraper],
    criteria: SearchCriteria,
    session_factory: SessionFactory = create_session,
) -> list[Listing]:
    """Blocking convenience wrapper returning only the ranked listings."""
    result = asyncio.run(
        SearchOrchestrator(session_factory).run(scrapers, criteria)
    )
    return result.listings
