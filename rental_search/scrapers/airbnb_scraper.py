# rental_search/scrapers/airbnb_scraper.py

"""Scraper for airbnb.pt search result pages."""

import base64
import calendar
import json
import re
from dataclasses import dataclass
from datetime import date
from urllib.parse import urlencode, urljoin

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
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper
from rental_search.utils.geomath import pixel_offset_to_coordinate

_LEFT_RE = re.compile(r"left:\s*(-?\d+(?:\.\d+)?)px")
_TOP_RE = re.compile(r"top:\s*(-?\d+(?:\.\d+)?)px")
_ZOOM_RE = re.compile(r"z=([\d.]+)")

POOL_AMENITY = 7


@dataclass(frozen=True)
class AirbnbQuery:
    """Search parameters in Airbnb's URL vocabulary."""

    destination: str
    adults: int
    price_max: int
    nights: int
    flexible_months: tuple[str, ...] = ()
    checkin: date | None = None
    checkout: date | None = None
    amenities: tuple[int, ...] = ()

    @classmethod
    def from_criteria(cls, criteria: SearchCriteria) -> "AirbnbQuery":
        amenities = (POOL_AMENITY,) if criteria.pool else ()
        if criteria.flexible:
            return cls(
                destination=criteria.destination,
                adults=criteria.occupancy,
                price_max=criteria.max_price_per_night,
                nights=criteria.night_count,
                flexible_months=tuple(
                    calendar.month_name[month.month].lower()
                    for month in criteria.months()
                ),
                amenities=amenities,
            )
        return cls(
            destination=criteria.destination,
            adults=criteria.occupancy,
            price_max=criteria.max_price_per_night,
            nights=criteria.night_count,
            checkin=criteria.start_date,
            checkout=criteria.end_date,
            amenities=amenities,
        )

    @property
    def flexible(self) -> bool:
        return bool(self.flexible_months)

    def params(self) -> list[tuple[str, str | int]]:
        params: list[tuple[str, str | int]] = [
            ("tab_id", "home_tab"),
            ("flexible_trip_lengths[]", "one_week"),
            ("query", self.destination),
            (
                "date_picker_type",
                "flexible_dates" if self.flexible else "calendar",
            ),
            ("adults", self.adults),
            ("price_max", self.price_max),
            ("price_filter_num_nights", self.nights),
        ]
        if self.flexible:
            params.extend(
                ("flexible_trip_dates[]", month)
                for month in self.flexible_months
            )
        else:
            params.append(("checkin", str(self.checkin)))
            params.append(("checkout", str(self.checkout)))
        params.extend(("amenities[]", code) for code in self.amenities)
        return params

    def page_url(self, items_offset: int) -> str:
        cursor = json.dumps(
            {"section_offset": 2, "items_offset": items_offset, "version": 1},
            separators=(",", ":"),
        )
        params = self.params()
        params.append(
            ("cursor", base64.b64encode(cursor.encode()).decode())
        )
        return f"{AirbnbScraper.BASE_URL}/s/homes?{urlencode(params)}"


@dataclass(frozen=True)
class MapView:
    """Center and zoom of the results map, read from its Google link."""

    latitude: float
    longitude: float
    zoom: float


class AirbnbScraper(BaseScraper):
    """Scraper for Airbnb.

    Cards carry no coordinates, but the results map draws a price pill
    per listing at a CSS offset from the map center; the center and
    zoom come from the map's "open in Google Maps" link.
    """

    BASE_URL = "https://www.airbnb.pt"
    PAGE_SIZE = 18

    def __init__(self, criteria: SearchCriteria) -> None:
        super().__init__("airbnb", criteria)
        self.query = AirbnbQuery.from_criteria(criteria)

    def _map_view(self, document: BeautifulSoup) -> MapView:
        link = document.select_one(self.selectors["map_link"])
        href = str(link.get("href", "")) if link else ""
        latitude, longitude = self.parse_coordinate_pair(href)
        zoom = _ZOOM_RE.search(href)
        if zoom is None:
            raise ParseError(f"No zoom level in map link {href!r}")
        return MapView(latitude, longitude, float(zoom.group(1)))

    def _pill_offset(
        self, document: BeautifulSoup, name: str,
    ) -> tuple[float, float]:
        pills = [
            pill
            for pill in document.select(self.selectors["map_pill"])
            if name in pill.get_text(" ", strip=True)
        ]
        if not pills:
            raise ParseError(f"No map pill for {name!r}")
        style = str(pills[-1].get("style", ""))
        left = _LEFT_RE.search(style)
        top = _TOP_RE.search(style)
        if left is None or top is None:
            raise ParseError(f"Map pill for {name!r} has no offset")
        return float(left.group(1)), float(top.group(1))

    def _card_url(self, card: Tag) -> str:
        anchor = card.select_one(self.selectors["url"])
        href = str(anchor.get("href", "")) if anchor else ""
        if not href:
            raise ParseError("Card has no link")
        return urljoin(self.BASE_URL, href)

    def _parse_card(
        self,
        card: Tag,
        url: str,
        document: BeautifulSoup,
        view: MapView,
    ) -> Listing:
        title = card.select_one(self.selectors["title"])
        name = title.get_text(strip=True) if title else ""
        if not name:
            raise ParseError(f"Card {url} has no title")

        price_tag = card.select_one(self.selectors["price"])
        nightly = self.extract_price(
            price_tag.get_text(" ", strip=True) if price_tag else None
        )
        if nightly <= 0:
            raise ParseError(f"Card {url} has no nightly price")

        left, top = self._pill_offset(document, name)
        latitude, longitude = pixel_offset_to_coordinate(
            left, top, view.latitude, view.longitude, view.zoom
        )
        return Listing(
            name=name,
            url=url,
            distance_km=self.distance_to(latitude, longitude),
            price_per_night=nightly,
            total_price=nightly * self.query.nights,
        )

    def parse_page(self, document: BeautifulSoup) -> Continue:
        """Turn one rendered results page into listings."""
        cards = document.select(self.selectors["card"])
        view: MapView | None
        try:
            view = self._map_view(document)
        except ParseError as exc:
            self.logger.warning(
                "[airbnb] Map not readable, page skipped: %s", exc
            )
            view = None

        keys: list[str] = []
        listings: list[Listing] = []
        for card in cards:
            try:
                url = self._card_url(card)
            except ParseError as exc:
                self.logger.debug("[airbnb] %s", exc)
                continue
            keys.append(url)
            if view is None:
                continue
            try:
                listing = self._parse_card(card, url, document, view)
            except (ParseError, ValidationError) as exc:
                self.logger.debug("[airbnb] Card skipped: %s", exc)
                continue
            if self.accept(listing):
                listings.append(listing)

        return Continue.of(listings, keys)

    def _load_page(
        self, session: BrowsingSession, items_offset: int,
    ) -> PageOutcome:
        """Load one results page.

        The ``cards_ready`` marker only shows on full pages, so a page
        that times out on it but still rendered cards is the last one:
        its listings are kept and the sweep ends.
        """
        session.navigate(self.query.page_url(items_offset))
        timeout = self.criteria.wait_timeout
        cards_ready = self.selectors["cards_ready"]
        last_page = not session.wait_for_selector(cards_ready, timeout)
        if last_page and not session.current_document().select(
            self.selectors["card"]
        ):
            raise ExtractionTimeout(cards_ready, timeout)

        map_ready = self.selectors["map_ready"]
        if not session.wait_for_selector(map_ready, timeout):
            raise ExtractionTimeout(map_ready, timeout)

        outcome = self.parse_page(session.current_document())
        if last_page:
            return Stop(outcome.listings)
        return outcome

    def _extract(self, session: BrowsingSession) -> set[Listing]:
        return sweep_pages(
            lambda offset: self._load_page(session, offset),
            first_page=0,
            step=self.PAGE_SIZE,
            source=self.source_name,
        )
