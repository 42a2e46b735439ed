# tests/test_mediaferias_scraper.py

"""Tests for the MediaFerias scraper."""

import unittest
from datetime import date
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from rental_search.errors import ConfigError
from rental_search.scrapers.mediaferias_scraper import (
    MediaFeriasQuery,
    MediaFeriasScraper,
    location_code,
    people_code,
)
from tests.fakes import FakeSession, make_criteria

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SITE = "https://www.mediaferias.com/pt"


def _fixture(name: str) -> str:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return f.read()


class TestCodes(unittest.TestCase):
    """Occupancy and region codes."""

    def test_people_code(self) -> None:
        """Digits up to 9, letters up to 35, "0" beyond."""
        self.assertEqual(people_code(4), "4")
        self.assertEqual(people_code(9), "9")
        self.assertEqual(people_code(10), "a")
        self.assertEqual(people_code(35), "z")
        self.assertEqual(people_code(36), "0")

    def test_location_code(self) -> None:
        """Two digits, "00" for any region."""
        self.assertEqual(location_code(5), "05")
        self.assertEqual(location_code(12), "12")
        self.assertEqual(location_code(-1), "00")


class TestMediaFeriasQuery(unittest.TestCase):
    """URL building from criteria."""

    def test_fixed_dates(self) -> None:
        """The filter path and the dates land in the URL."""
        url = MediaFeriasQuery.from_criteria(make_criteria()).page_url(3)
        parsed = urlparse(url)
        self.assertEqual(
            parsed.path, "/aluguer-ferias-portugal/40012000/"
        )
        params = parse_qs(parsed.query)
        self.assertEqual(params["date1"], ["2026-07-01"])
        self.assertEqual(params["date2"], ["2026-07-06"])
        self.assertEqual(params["cur_page"], ["3"])

    def test_flexible_stay_from_start(self) -> None:
        """A flexible search departs night_count days after the start."""
        criteria = make_criteria(
            flexible=True,
            night_count=7,
            end_date=date(2026, 8, 31),
            pool=True,
            occupancy=12,
        )
        query = MediaFeriasQuery.from_criteria(criteria)
        self.assertEqual(query.departure, date(2026, 7, 8))
        self.assertEqual(query.filter_code, "c0012800")

    def test_missing_region(self) -> None:
        """Without a configured region code the query cannot be built."""
        with self.assertRaises(ConfigError):
            MediaFeriasQuery.from_criteria(make_criteria(location_codes={}))


class TestMediaFeriasParsing(unittest.TestCase):
    """Card prices and the sentinel."""

    def setUp(self) -> None:
        self.scraper = MediaFeriasScraper(make_criteria())

    def test_scan_page(self) -> None:
        """Nightly prices are scaled; over-budget cards are seen only."""
        document = BeautifulSoup(_fixture("mediaferias_page0.html"), "lxml")
        candidates, keys, sentinel = self.scraper.scan_page(document)
        self.assertFalse(sentinel)
        self.assertEqual(len(keys), 3)
        self.assertEqual(
            [(card.name, card.total_price) for card in candidates],
            [("Vivenda Sol", 100.0), ("Moinho", 110.0)],
        )

    def test_sentinel_cuts_page(self) -> None:
        """Cards after the first unpriced one are ignored."""
        document = BeautifulSoup(_fixture("mediaferias_page1.html"), "lxml")
        candidates, keys, sentinel = self.scraper.scan_page(document)
        self.assertTrue(sentinel)
        self.assertEqual(
            [card.name for card in candidates], ["Vivenda Sol", "Monte"]
        )
        self.assertNotIn(f"{SITE}/depois-6", keys)

    def test_locate_from_script(self) -> None:
        """Coordinates are read from the map script variables."""
        url = f"{SITE}/vivenda-sol-1"
        page = _fixture("mediaferias_property.html")
        session = FakeSession(pages={url: page})
        session.navigate(url)
        self.assertEqual(self.scraper.locate(session, url), (38.8, -9.2))

    def test_locate_without_variables(self) -> None:
        """A map script without coordinates gives None."""
        url = f"{SITE}/x"
        session = FakeSession(
            pages={
                url: '<div id="googlemap"><script>var z = 1;</script></div>'
            }
        )
        session.navigate(url)
        self.assertIsNone(self.scraper.locate(session, url))


class TestMediaFeriasExtract(unittest.TestCase):
    """Full sweep against a fake browser."""

    def setUp(self) -> None:
        self.scraper = MediaFeriasScraper(make_criteria())
        query = self.scraper.query
        property_page = _fixture("mediaferias_property.html")
        self.session = FakeSession(
            pages={
                query.page_url(0): _fixture("mediaferias_page0.html"),
                query.page_url(1): _fixture("mediaferias_page1.html"),
                f"{SITE}/vivenda-sol-1": property_page,
                f"{SITE}/monte-4": property_page,
            }
        )

    def test_extract_until_sentinel(self) -> None:
        """The sweep ends on the sentinel page, keeping earlier cards."""
        found = {
            listing.name: listing
            for listing in self.scraper.extract(self.session)
        }
        self.assertEqual(set(found), {"Vivenda Sol", "Moinho", "Monte"})
        self.assertEqual(found["Moinho"].distance_km, 0.0)
        self.assertEqual(found["Monte"].price_per_night, 18.0)
        self.assertEqual(len(self.session.visited), 2)

    def test_property_pages_opened_once(self) -> None:
        """A card repeated on a later page is not geocoded again."""
        self.scraper.extract(self.session)
        self.assertEqual(
            self.session.tabs_opened,
            [f"{SITE}/vivenda-sol-1", f"{SITE}/moinho-3", f"{SITE}/monte-4"],
        )
