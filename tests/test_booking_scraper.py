# tests/test_booking_scraper.py

"""Tests for the Booking scraper."""

import unittest
from datetime import date
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from rental_search.errors import ExtractionTimeout
from rental_search.scrapers.booking_scraper import BookingQuery, BookingScraper
from tests.fakes import FakeSession, make_criteria

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SINTRA = "https://www.booking.com/hotel/pt/casa-sintra.html"
ALGARVE = "https://www.booking.com/hotel/pt/casa-algarve.html"
NO_MAP = "https://www.booking.com/hotel/pt/apartamento-sem-mapa.html"


def _property_page(latlng: str) -> str:
    return (
        "<html><body>"
        f'<div id="hotel_header" data-atlas-latlng="{latlng}"></div>'
        "</body></html>"
    )


def _search_page() -> str:
    with open(FIXTURES_DIR / "booking_search.html", encoding="utf-8") as f:
        return f.read()


class TestBookingQuery(unittest.TestCase):
    """URL building from criteria."""

    def test_fixed_dates(self) -> None:
        """Fixed searches carry dates and a nightly price cap."""
        url = BookingQuery.from_criteria(make_criteria()).search_url()
        params = parse_qs(urlparse(url).query)
        self.assertEqual(params["ss"], ["Portugal"])
        self.assertEqual(params["group_adults"], ["4"])
        self.assertEqual(params["checkin"], ["2026-07-01"])
        self.assertEqual(params["checkout"], ["2026-07-06"])
        self.assertEqual(
            params["nflt"], ["ht_id=220;ht_id=201;price=EUR-min-24-1"]
        )

    def test_flexible_with_pool(self) -> None:
        """Flexible searches use the ltfd window and the pool facility."""
        criteria = make_criteria(
            flexible=True,
            night_count=7,
            end_date=date(2026, 8, 31),
            pool=True,
        )
        params = parse_qs(
            urlparse(BookingQuery.from_criteria(criteria).search_url()).query
        )
        self.assertEqual(params["ltfd"], ["1:7:7-2026_8-2026:1:"])
        self.assertIn("hotelfacility=433;", params["nflt"][0])
        self.assertIn("price=EUR-min-17-1", params["nflt"][0])
        self.assertNotIn("checkin", params)


class TestBookingParsing(unittest.TestCase):
    """Card and property-page parsing."""

    def setUp(self) -> None:
        self.scraper = BookingScraper(make_criteria())

    def test_parse_cards_within_budget(self) -> None:
        """Unreadable and over-budget cards are left out."""
        document = BeautifulSoup(_search_page(), "lxml")
        cards = self.scraper.parse_cards(document)
        self.assertEqual(
            [card.name for card in cards],
            ["Casa Sintra", "Apartamento Sem Mapa", "Casa Algarve"],
        )
        self.assertEqual(cards[0].total_price, 100.0)

    def test_locate_reads_atlas_attribute(self) -> None:
        """The header's data-atlas-latlng holds the position."""
        session = FakeSession(pages={SINTRA: _property_page("38.8,-9.38")})
        session.navigate(SINTRA)
        self.assertEqual(self.scraper.locate(session, SINTRA), (38.8, -9.38))

    def test_locate_times_out(self) -> None:
        """A page without the header raises ExtractionTimeout."""
        session = FakeSession()
        session.navigate(NO_MAP)
        with self.assertRaises(ExtractionTimeout):
            self.scraper.locate(session, NO_MAP)


class TestBookingExtract(unittest.TestCase):
    """Full extraction against a fake browser."""

    def setUp(self) -> None:
        self.scraper = BookingScraper(make_criteria())
        self.session = FakeSession(
            pages={
                self.scraper.query.search_url(): _search_page(),
                SINTRA: _property_page("38.8,-9.38"),
                ALGARVE: _property_page("37.0,-8.0"),
            },
            xpath_rounds=2,
        )

    def test_extract(self) -> None:
        """Far listings are filtered; unlocated ones keep distance 0."""
        found = {
            listing.name: listing
            for listing in self.scraper.extract(self.session)
        }
        self.assertEqual(set(found), {"Casa Sintra", "Apartamento Sem Mapa"})
        self.assertEqual(found["Apartamento Sem Mapa"].distance_km, 0.0)
        self.assertEqual(found["Casa Sintra"].price_per_night, 20.0)
        self.assertGreater(found["Casa Sintra"].distance_km, 0.0)

    def test_load_more_pressed_until_gone(self) -> None:
        """The "load more" button is clicked while it keeps appearing."""
        self.scraper.extract(self.session)
        self.assertEqual(len(self.session.clicks), 2)

    def test_only_under_budget_cards_geocoded(self) -> None:
        """Property pages are opened for affordable cards only."""
        self.scraper.extract(self.session)
        self.assertEqual(
            sorted(self.session.tabs_opened), sorted([SINTRA, NO_MAP, ALGARVE])
        )
        self.assertEqual(self.session.list_open_handles(), ["tab-0"])
