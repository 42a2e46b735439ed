# rental_search/extraction/pagination.py

"""Paginated sweeps over rendered search-result pages.

A sweep asks a per-source ``load_page`` callable for successive pages
and stops on the first of:

* the page wait timing out (:class:`ExtractionTimeout`), meaning there
  is no more content;
* a page whose cards were all seen before (sites that clamp an
  out-of-range page to the last one);
* a :class:`Stop` outcome (sentinel card found on the page);
* the ``max_pages`` bound.
"""

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field

from rental_search.browser.session import BrowsingSession
from rental_search.config.settings import Settings
from rental_search.errors import ExtractionTimeout
from rental_search.models.listing import Listing

logger = logging.getLogger("rental_search.extraction")


@dataclass(frozen=True)
class Continue:
    """Page extracted normally; the sweep may advance.

    ``keys`` identify the cards rendered on the page (typically their
    URLs), including the ones the filters dropped.  When omitted the
    emitted listings are used instead.
    """

    listings: frozenset[Listing] = frozenset()
    keys: frozenset[Hashable] | None = None

    @classmethod
    def of(
        cls,
        listings: Iterable[Listing],
        keys: Iterable[Hashable] | None = None,
    ) -> "Continue":
        return cls(
            frozenset(listings),
            None if keys is None else frozenset(keys),
        )

    @property
    def identities(self) -> frozenset[Hashable]:
        if self.keys is not None:
            return self.keys
        return frozenset(self.listings)


@dataclass(frozen=True)
class Stop:
    """Page ended at a sentinel; keep ``listings`` and end the sweep."""

    listings: frozenset[Listing] = field(default_factory=frozenset)


PageOutcome = Continue | Stop


def sweep_pages(
    load_page: Callable[[int], PageOutcome],
    first_page: int = 0,
    step: int = 1,
    max_pages: int = Settings.MAX_PAGES,
    source: str = "sweep",
) -> set[Listing]:
    """Collect listings from consecutive pages until exhausted.

    ``load_page`` receives the page number (``first_page``,
    ``first_page + step``, ...) and is called at most ``max_pages``
    times.
    """
    found: set[Listing] = set()
    seen: set[Hashable] = set()
    page = first_page

    for _ in range(max_pages):
        try:
            outcome = load_page(page)
        except ExtractionTimeout as exc:
            logger.info("[%s] Page %d not ready, done: %s", source, page, exc)
            break

        if isinstance(outcome, Stop):
            found.update(outcome.listings)
            logger.info(
                "[%s] Sentinel reached on page %d (%d kept from it)",
                source,
                page,
                len(outcome.listings),
            )
            break

        fresh = outcome.identities - seen
        if not fresh:
            logger.info(
                "[%s] Page %d brought nothing new, done", source, page
            )
            break
        seen |= fresh
        found.update(outcome.listings)
        logger.debug(
            "[%s] Page %d: %d cards, %d listings kept",
            source,
            page,
            len(outcome.identities),
            len(outcome.listings),
        )
        page += step
    else:
        logger.warning(
            "[%s] Stopped after the %d-page limit", source, max_pages
        )

    return found


_SCROLL_TO_BOTTOM = "window.scrollTo(0, document.body.scrollHeight);"


def scroll_until_exhausted(
    session: BrowsingSession,
    button: str,
    timeout: float,
    max_rounds: int = Settings.MAX_SCROLL_ROUNDS,
    by: str = "css",
    source: str = "scroll",
) -> int:
    """Keep pressing a "load more" button until it stops appearing.

    Returns the number of extra result batches requested.
    """
    loads = 0
    while loads < max_rounds:
        session.run_script(_SCROLL_TO_BOTTOM)
        if not session.wait_for_selector(button, timeout, by=by):
            break
        if not session.click(button, by=by):
            break
        loads += 1
    else:
        logger.warning(
            "[%s] Stopped after the %d-round limit", source, max_rounds
        )
    logger.debug("[%s] Requested %d extra result batches", source, loads)
    return loads
