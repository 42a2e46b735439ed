# rental_search/extraction/tab_batch.py

"""Geocoding of candidate listings through detail pages in extra tabs.

Some sources only reveal coordinates on each listing's own page.  Those
pages are opened in background tabs, at most ``batch_size`` at a time,
so they load in parallel while the previous ones are being read.
"""

import logging
from collections.abc import Callable, Iterable

from rental_search.browser.session import BrowsingSession
from rental_search.config.settings import Settings
from rental_search.errors import ExtractionTimeout, ParseError, SessionError

logger = logging.getLogger("rental_search.extraction")

Coordinate = tuple[float, float]
Locator = Callable[[BrowsingSession, str], Coordinate | None]


def geocode_in_batches(
    session: BrowsingSession,
    candidates: Iterable[str],
    locate: Locator,
    batch_size: int = Settings.TAB_BATCH_SIZE,
    source: str = "tabs",
) -> dict[str, Coordinate | None]:
    """Resolve a coordinate for every candidate URL.

    ``locate`` is called with the session focused on the candidate's
    tab.  It returns ``None`` (or raises :class:`ExtractionTimeout` /
    :class:`ParseError`) when the page gives no usable position; such
    candidates map to ``None`` in the result.

    Focus is back on the search tab when this returns.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    handles = session.list_open_handles()
    if not handles:
        raise SessionError("Browser has no open tab to return to")
    search_tab = handles[0]

    urls = list(dict.fromkeys(candidates))
    located: dict[str, Coordinate | None] = {}

    for start in range(0, len(urls), batch_size):
        batch = urls[start:start + batch_size]
        opened = [(url, session.open_background_tab(url)) for url in batch]

        for url, handle in opened:
            session.switch_to(handle)
            try:
                located[url] = locate(session, url)
            except (ExtractionTimeout, ParseError) as exc:
                logger.debug("[%s] No position for %s: %s", source, url, exc)
                located[url] = None
            finally:
                session.close_current_tab()

        session.switch_to(search_tab)
        logger.debug(
            "[%s] Batch %d-%d of %d located",
            source,
            start + 1,
            start + len(batch),
            len(urls),
        )

    misses = sum(1 for point in located.values() if point is None)
    if misses:
        logger.info(
            "[%s] %d of %d listings without a position",
            source,
            misses,
            len(urls),
        )
    return located
