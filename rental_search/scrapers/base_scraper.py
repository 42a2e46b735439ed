# rental_search/scrapers/base_scraper.py

"""Abstract base class for all rental-site scrapers."""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from rental_search.browser.session import BrowsingSession
from rental_search.config.criteria import SearchCriteria
from rental_search.config.settings import Settings
from rental_search.errors import ParseError, SessionError
from rental_search.filters.listing_filter import ListingFilter
from rental_search.models.listing import Listing
from rental_search.utils.geomath import haversine

_COORDINATE_PAIR = re.compile(r"-?\d+\.\d*,-?\d+\.\d*")


class BaseScraper(ABC):
    """Shared contract for the per-site scrapers.

    A scraper is built from the run's :class:`SearchCriteria` and keeps
    only a frozen per-site query derived from it.  It holds no browser
    state: the session it drives is passed to :meth:`extract` and owned
    by the caller.
    """

    # Whether extract() needs a session with network capture enabled
    needs_network_capture: bool = False

    def __init__(
        self, source_name: str, criteria: SearchCriteria,
    ) -> None:
        self.source_name = source_name
        self.criteria = criteria
        self.logger = logging.getLogger(
            f"rental_search.{source_name}"
        )
        self.selectors: dict[str, str] = self._load_selectors()

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this source from selectors.json."""
        with open(Settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(
            self.source_name, {}
        )
        return result

    def _require_session(
        self, session: BrowsingSession | None,
    ) -> BrowsingSession:
        if session is None:
            raise SessionError(
                f"[{self.source_name}] no browsing session supplied"
            )
        return session

    # ── Pure helpers ─────────────────────────────────────

    @staticmethod
    def extract_price(text: str | None, decimals: bool = True) -> float:
        """Extract a price from text such as '€ 1,299' or '85 €'.

        With ``decimals`` off every non-digit is dropped, which suits
        sites that render whole euros with locale separators.
        """
        if not text:
            return 0.0
        if not decimals:
            digits = re.sub(r"\D", "", text)
            return float(digits) if digits else 0.0
        cleaned = text.replace(",", "")
        numbers = re.findall(r"\d+\.?\d*", cleaned)
        return float(numbers[0]) if numbers else 0.0

    @staticmethod
    def parse_coordinate_pair(text: str | None) -> tuple[float, float]:
        """Find the first ``lat,lon`` pair in a link or attribute."""
        match = _COORDINATE_PAIR.search(text or "")
        if match is None:
            raise ParseError(f"No coordinates in {text!r}")
        lat, lon = match.group(0).split(",")
        return float(lat), float(lon)

    def distance_to(self, latitude: float, longitude: float) -> float:
        """Kilometres from the search origin."""
        return haversine(
            self.criteria.latitude,
            self.criteria.longitude,
            latitude,
            longitude,
        )

    def within_budget(self, total_price: float) -> bool:
        return ListingFilter.within_budget(total_price, self.criteria)

    def accept(self, listing: Listing) -> bool:
        """Apply the price and distance filters every source shares."""
        if ListingFilter.accepts(listing, self.criteria):
            return True
        if not self.within_budget(listing.total_price):
            self.logger.debug(
                "[%s] Over budget: %s (%.2f)",
                self.source_name,
                listing.name,
                listing.total_price,
            )
        else:
            self.logger.debug(
                "[%s] Too far: %s (%.1f km)",
                self.source_name,
                listing.name,
                listing.distance_km,
            )
        return False

    def extract(
        self,
        session: BrowsingSession | None,
        criteria: SearchCriteria | None = None,
    ) -> set[Listing]:
        """Return every listing on this site matching the criteria.

        ``criteria`` defaults to the one the scraper was built with; a
        different one gets a freshly derived query.

        Raises:
            SessionError: ``session`` is None.
        """
        active = self._require_session(session)
        if criteria is not None and criteria != self.criteria:
            rebound = type(self)(criteria)  # type: ignore[call-arg]
            return rebound.extract(active)

        self.logger.info("[%s] Extraction started", self.source_name)
        listings = self._extract(active)
        self.logger.info(
            "[%s] Extraction finished: %d listings",
            self.source_name,
            len(listings),
        )
        return listings

    @abstractmethod
    def _extract(self, session: BrowsingSession) -> set[Listing]:
        """Site-specific extraction with the scraper's own criteria."""
        ...
