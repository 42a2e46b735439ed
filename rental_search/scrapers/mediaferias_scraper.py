# rental_search/scrapers/mediaferias_scraper.py

"""Scraper for mediaferias.com holiday rentals."""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from urllib.parse import quote, urlencode

from bs4 import BeautifulSoup, Tag

from rental_search.browser.session import BrowsingSession
from rental_search.config.criteria import SearchCriteria
from rental_search.errors import (
    ExtractionTimeout,
    ParseError,
    ValidationError,
)
from rental_search.extraction.pagination import (
    Continue,
    PageOutcome,
    Stop,
    sweep_pages,
)
from rental_search.extraction.tab_batch import Coordinate, geocode_in_batches
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper

_LAT_RE = re.compile(r"annonce_lat\s*=\s*['\"]?(-?\d+\.\d*)")
_LNG_RE = re.compile(r"annonce_lng\s*=\s*['\"]?(-?\d+\.\d*)")

POOL_CODE = 8


def people_code(people: int) -> str:
    """One-character occupancy code: 0-9 as digits, 10-35 as a-z."""
    if 0 <= people <= 9:
        return str(people)
    if 10 <= people <= 35:
        return chr(ord("a") + people - 10)
    return "0"


def location_code(code: int) -> str:
    """Two-digit region code; negative means "anywhere"."""
    if code < 0:
        return "00"
    return f"{code:02d}"


@dataclass(frozen=True)
class MediaFeriasQuery:
    """Search parameters in MediaFerias' URL vocabulary.

    The site has no flexible-date search, so a flexible trip is
    searched as a stay of the requested length from the start date.
    """

    destination: str
    people: str
    region: str
    pool: int
    arrival: date
    departure: date
    nights: int

    @classmethod
    def from_criteria(
        cls, criteria: SearchCriteria,
    ) -> "MediaFeriasQuery":
        if criteria.flexible:
            departure = criteria.start_date + timedelta(
                days=criteria.night_count
            )
        else:
            departure = criteria.end_date
        return cls(
            destination=criteria.destination.lower(),
            people=people_code(criteria.occupancy),
            region=location_code(criteria.location_code("mediaferias")),
            pool=POOL_CODE if criteria.pool else 0,
            arrival=criteria.start_date,
            departure=departure,
            nights=criteria.night_count,
        )

    @property
    def filter_code(self) -> str:
        return f"{self.people}00{self.region}{self.pool}00"

    def page_url(self, page: int) -> str:
        params = urlencode(
            [
                ("date1", str(self.arrival)),
                ("date2", str(self.departure)),
                ("cur_page", page),
            ]
        )
        return (
            f"{MediaFeriasScraper.BASE_URL}/aluguer-ferias-"
            f"{quote(self.destination)}/{self.filter_code}/?{params}"
        )


@dataclass(frozen=True)
class _Card:
    name: str
    url: str
    total_price: float


class MediaFeriasScraper(BaseScraper):
    """Scraper for MediaFerias.

    Results are sorted with priced offers first; the first card whose
    price cannot be read marks the end of useful results on the whole
    search, not just the page.  Coordinates come from a script on each
    property page.
    """

    BASE_URL = "https://www.mediaferias.com"

    def __init__(self, criteria: SearchCriteria) -> None:
        super().__init__("mediaferias", criteria)
        self.query = MediaFeriasQuery.from_criteria(criteria)

    def card_price(self, card: Tag) -> float:
        """Total stay price of a card; 0 when it shows none."""
        primary = card.select_one(self.selectors["price_primary"])
        text = primary.get_text(strip=True) if primary else ""
        if text:
            price = self.extract_price(text, decimals=False)
            if card.select_one(self.selectors["nightly_marker"]):
                price *= self.query.nights
            return price

        fallback = card.select_one(self.selectors["price_fallback"])
        text = fallback.get_text(strip=True) if fallback else ""
        return self.extract_price(text, decimals=False)

    def _parse_card(self, card: Tag, total: float) -> _Card:
        anchor = card.select_one(self.selectors["url"])
        url = str(anchor.get("href", "")) if anchor else ""
        name = anchor.get_text(strip=True) if anchor else ""
        if not url or not name:
            raise ParseError("Card without title link")
        return _Card(name, url, total)

    def scan_page(
        self, document: BeautifulSoup,
    ) -> tuple[list[_Card], list[str], bool]:
        """Split a page into under-budget cards and seen card URLs.

        The flag is True when a sentinel card was met; no card from
        the sentinel on is returned.
        """
        candidates: list[_Card] = []
        keys: list[str] = []
        for tag in document.select(self.selectors["card"]):
            total = self.card_price(tag)
            if total <= 0:
                return candidates, keys, True
            try:
                card = self._parse_card(tag, total)
            except ParseError as exc:
                self.logger.debug("[mediaferias] Card skipped: %s", exc)
                continue
            keys.append(card.url)
            if self.within_budget(card.total_price):
                candidates.append(card)
        return candidates, keys, False

    def locate(
        self, session: BrowsingSession, url: str,
    ) -> Coordinate | None:
        """Coordinates from the map script on a property page."""
        selector = self.selectors["location"]
        timeout = self.criteria.wait_timeout
        if not session.wait_for_selector(selector, timeout):
            raise ExtractionTimeout(selector, timeout)
        for script in session.current_document().select(selector):
            source = script.string or script.get_text()
            lat = _LAT_RE.search(source)
            lng = _LNG_RE.search(source)
            if lat and lng:
                return float(lat.group(1)), float(lng.group(1))
        return None

    def _build_listings(
        self,
        cards: list[_Card],
        positions: dict[str, Coordinate | None],
    ) -> list[Listing]:
        listings: list[Listing] = []
        for card in cards:
            position = positions.get(card.url)
            if position is None:
                self.logger.info(
                    "[mediaferias] Map not found, distance unknown: %s",
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
                self.logger.debug("[mediaferias] Card skipped: %s", exc)
                continue
            if self.accept(listing):
                listings.append(listing)
        return listings

    def _load_page(
        self,
        session: BrowsingSession,
        page: int,
        positions: dict[str, Coordinate | None],
    ) -> PageOutcome:
        session.navigate(self.query.page_url(page))
        selector = self.selectors["card"]
        timeout = self.criteria.wait_timeout
        if not session.wait_for_selector(selector, timeout):
            raise ExtractionTimeout(selector, timeout)

        candidates, keys, sentinel = self.scan_page(
            session.current_document()
        )
        # Pages repeat at the end of the results; skip known URLs
        pending = [c.url for c in candidates if c.url not in positions]
        positions.update(
            geocode_in_batches(
                session, pending, self.locate, source=self.source_name
            )
        )
        listings = self._build_listings(candidates, positions)
        if sentinel:
            return Stop(frozenset(listings))
        return Continue.of(listings, keys)

    def _extract(self, session: BrowsingSession) -> set[Listing]:
        positions: dict[str, Coordinate | None] = {}
        return sweep_pages(
            lambda page: self._load_page(session, page, positions),
            first_page=0,
            source=self.source_name,
        )
