# rental_search/scrapers/booking_scraper.py

"""Scraper for booking.com holiday homes and apartments."""

from dataclasses import dataclass
from datetime import date
from urllib.parse import quote, urlencode

from bs4 import BeautifulSoup, Tag

from rental_search.browser.session import BrowsingSession
from rental_search.config.criteria import SearchCriteria
from rental_search.errors import (
    ExtractionTimeout,
    ParseError,
    ValidationError,
)
from rental_search.extraction.pagination import scroll_until_exhausted
from rental_search.extraction.tab_batch import Coordinate, geocode_in_batches
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper

# Booking property-type ids: 220 holiday homes, 201 apartments
PROPERTY_TYPES = (220, 201)
POOL_FACILITY = 433


@dataclass(frozen=True)
class BookingQuery:
    """Search parameters in Booking's URL vocabulary."""

    destination: str
    adults: int
    nights: int
    budget: int
    flexible_months: tuple[str, ...] = ()
    checkin: date | None = None
    checkout: date | None = None
    pool: bool = False

    @classmethod
    def from_criteria(cls, criteria: SearchCriteria) -> "BookingQuery":
        if criteria.flexible:
            months = tuple(
                f"{month.month}-{month.year}" for month in criteria.months()
            )
            return cls(
                destination=criteria.destination,
                adults=criteria.occupancy,
                nights=criteria.night_count,
                budget=criteria.budget,
                flexible_months=months,
                pool=criteria.pool,
            )
        return cls(
            destination=criteria.destination,
            adults=criteria.occupancy,
            nights=criteria.night_count,
            budget=criteria.budget,
            checkin=criteria.start_date,
            checkout=criteria.end_date,
            pool=criteria.pool,
        )

    @property
    def nightly_cap(self) -> int:
        """Whole-party price per night, rounded down to whole euros."""
        return self.budget // self.nights

    def filters(self) -> str:
        parts = [f"ht_id={code};" for code in PROPERTY_TYPES]
        if self.pool:
            parts.append(f"hotelfacility={POOL_FACILITY};")
        parts.append(f"price=EUR-min-{self.nightly_cap}-1")
        return "".join(parts)

    def search_url(self) -> str:
        params: list[tuple[str, str | int]] = [
            ("ss", self.destination),
            ("group_adults", self.adults),
        ]
        if self.flexible_months:
            months = "_".join(self.flexible_months)
            params.append(("ltfd", f"1:{self.nights}:{months}:1:"))
        else:
            params.append(("checkin", str(self.checkin)))
            params.append(("checkout", str(self.checkout)))
        params.append(("nflt", self.filters()))
        return (
            f"{BookingScraper.BASE_URL}/searchresults.en-gb.html?"
            f"{urlencode(params, quote_via=quote)}"
        )


@dataclass(frozen=True)
class _Card:
    name: str
    url: str
    total_price: float


class BookingScraper(BaseScraper):
    """Scraper for Booking.

    The whole result list is revealed by pressing "Load more" until it
    disappears.  Cards only carry the stay's total price; coordinates
    are read from each property page, opened in background tabs.
    """

    BASE_URL = "https://www.booking.com"

    def __init__(self, criteria: SearchCriteria) -> None:
        super().__init__("booking", criteria)
        self.query = BookingQuery.from_criteria(criteria)

    def _parse_card(self, card: Tag) -> _Card:
        anchor = card.select_one(self.selectors["url"])
        url = str(anchor.get("href", "")) if anchor else ""
        title = card.select_one(self.selectors["title"])
        name = title.get_text(strip=True) if title else ""
        if not url or not name:
            raise ParseError("Card without title link")

        price_tag = card.select_one(self.selectors["price"])
        total = self.extract_price(
            price_tag.get_text(strip=True) if price_tag else None,
            decimals=False,
        )
        if total <= 0:
            raise ParseError(f"Card {url} has no price")
        return _Card(name, url, total)

    def parse_cards(self, document: BeautifulSoup) -> list[_Card]:
        """Readable, under-budget cards from the results page."""
        cards: list[_Card] = []
        for tag in document.select(self.selectors["card"]):
            try:
                card = self._parse_card(tag)
            except ParseError as exc:
                self.logger.debug("[booking] Card skipped: %s", exc)
                continue
            if self.within_budget(card.total_price):
                cards.append(card)
        return cards

    def locate(self, session: BrowsingSession, url: str) -> Coordinate:
        """Coordinates from the property page's map header."""
        selector = self.selectors["location"]
        timeout = self.criteria.wait_timeout
        if not session.wait_for_selector(selector, timeout):
            raise ExtractionTimeout(selector, timeout)
        header = session.current_document().select_one(selector)
        latlng = str(header.get("data-atlas-latlng", "")) if header else ""
        return self.parse_coordinate_pair(latlng)

    def _extract(self, session: BrowsingSession) -> set[Listing]:
        session.navigate(self.query.search_url())
        scroll_until_exhausted(
            session,
            self.selectors["load_more"],
            self.criteria.wait_timeout,
            by="xpath",
            source=self.source_name,
        )

        cards = self.parse_cards(session.current_document())
        self.logger.info(
            "[booking] %d cards within budget, locating them", len(cards)
        )
        positions = geocode_in_batches(
            session,
            [card.url for card in cards],
            self.locate,
            source=self.source_name,
        )

        listings: set[Listing] = set()
        for card in cards:
            position = positions.get(card.url)
            if position is None:
                self.logger.info(
                    "[booking] Map not found, distance unknown: %s",
                    card.url,
                )
                distance = 0.0
            else:
                distance = self.distance_to(*position)
            try:
                listing = Listing(
                    name=card.name,
                    url=card.url,
                    distance_km=distance,
                    price_per_night=card.total_price / self.query.nights,
                    total_price=card.total_price,
                )
            except ValidationError as exc:
                self.logger.debug("[booking] Card skipped: %s", exc)
                continue
            if self.accept(listing):
                listings.add(listing)
        return listings
