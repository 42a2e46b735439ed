# tests/test_cli_runner.py

"""Tests for the headless CLI runner and main entry point."""

import io
import json
import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import patch

import main as entry
from rental_search.browser.session import BrowsingSession
from rental_search.cli.runner import (
    EXIT_CONFIG_ERROR,
    EXIT_NO_RESULTS,
    EXIT_OK,
    cli_search,
    resolve_sources,
)
from rental_search.config.criteria import SearchCriteria
from rental_search.errors import ConfigError
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper
from tests.fakes import FakeSession

CRITERIA: dict[str, Any] = {
    "coordinates": {"latitude": 38.7223, "longitude": -9.1393},
    "destination": "Portugal",
    "location_codes": {"mediaferias": 12, "vrbo": 6000453},
    "maximum": {"distance_km": 40, "price_per_night": 30},
    "quantity": {"people": 4},
    "dates": {"start": "01/07/2026", "end": "06/07/2026", "flexible": False},
    "amenities": {"pool": False},
    "wait_seconds": 1,
}

BUILD_PATH = "rental_search.cli.runner.build_scrapers"


class CannedScraper(BaseScraper):
    """Scraper returning fixed listings."""

    def __init__(
        self, criteria: SearchCriteria, source: str = "canned",
        listings: list[Listing] | None = None,
    ) -> None:
        super().__init__(source, criteria)
        self.listings = listings or []

    def _extract(self, session: BrowsingSession) -> set[Listing]:
        return set(self.listings)


def _fake_factory(**kwargs: Any) -> FakeSession:
    return FakeSession()


class TestResolveSources(unittest.TestCase):
    """Mapping --sources to registered ids."""

    def test_all_by_default(self) -> None:
        """No filter means every source."""
        self.assertEqual(
            resolve_sources(None), ["airbnb", "booking", "mediaferias", "vrbo"]
        )

    def test_subset_with_spaces(self) -> None:
        """Whitespace and empty items are ignored."""
        self.assertEqual(
            resolve_sources(" vrbo, airbnb ,"), ["vrbo", "airbnb"]
        )

    def test_repeated_source_kept_once(self) -> None:
        """Naming a source twice still runs it once, first order kept."""
        self.assertEqual(
            resolve_sources("airbnb,vrbo,airbnb"), ["airbnb", "vrbo"]
        )

    def test_unknown_source(self) -> None:
        """Unknown ids are a configuration error."""
        with self.assertRaises(ConfigError):
            resolve_sources("airbnb,expedia")


class TestCliSearch(unittest.IsolatedAsyncioTestCase):
    """End-to-end runs with canned scrapers."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)
        self.criteria_path = self.tmp / "criteria.json"
        self.criteria_path.write_text(json.dumps(CRITERIA), encoding="utf-8")
        self.output_dir = self.tmp / "out"

    def _canned(self, criteria: SearchCriteria, ids: Any) -> list[Any]:
        return [
            CannedScraper(
                criteria,
                "airbnb",
                [Listing("Casa Azul", "https://a/1", 3.0, 20.0, 100.0)],
            ),
            CannedScraper(
                criteria,
                "vrbo",
                [Listing("Casa da Praia", "https://v/1", 9.0, 16.0, 80.0)],
            ),
        ]

    async def _run(self, **overrides: Any) -> int:
        kwargs: dict[str, Any] = {
            "criteria_path": str(self.criteria_path),
            "source_csv": None,
            "output_format": "json",
            "output_dir": str(self.output_dir),
            "session_factory": _fake_factory,
        }
        kwargs.update(overrides)
        return await cli_search(**kwargs)

    async def test_json_output_and_files(self) -> None:
        """Results go to stdout as JSON and to the output directory."""
        with patch(BUILD_PATH, side_effect=self._canned), patch(
            "sys.stdout", new_callable=io.StringIO
        ) as stdout:
            code = await self._run()
        self.assertEqual(code, EXIT_OK)
        printed = json.loads(stdout.getvalue())
        self.assertEqual(
            [row["name"] for row in printed], ["Casa da Praia", "Casa Azul"]
        )
        names = sorted(path.name.split("_2")[0] for path in
                       self.output_dir.iterdir())
        self.assertEqual(
            names, ["airbnb", "combined", "export_combined", "vrbo"]
        )

    async def test_table_output(self) -> None:
        """The table format renders listing names."""
        with patch(BUILD_PATH, side_effect=self._canned), patch(
            "sys.stdout", new_callable=io.StringIO
        ) as stdout:
            code = await self._run(output_format="table")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("Casa Azul", stdout.getvalue())

    async def test_no_results(self) -> None:
        """A run that finds nothing exits with EXIT_NO_RESULTS."""
        with patch(
            BUILD_PATH,
            side_effect=lambda criteria, ids: [CannedScraper(criteria)],
        ):
            code = await self._run()
        self.assertEqual(code, EXIT_NO_RESULTS)

    async def test_missing_criteria_file(self) -> None:
        """An unreadable criteria file is a configuration error."""
        code = await self._run(criteria_path=str(self.tmp / "none.json"))
        self.assertEqual(code, EXIT_CONFIG_ERROR)

    async def test_unknown_source(self) -> None:
        """Unknown source ids are a configuration error."""
        code = await self._run(source_csv="expedia")
        self.assertEqual(code, EXIT_CONFIG_ERROR)

    async def test_missing_location_code(self) -> None:
        """A source needing an unconfigured code fails before searching."""
        data = dict(CRITERIA, location_codes={})
        self.criteria_path.write_text(json.dumps(data), encoding="utf-8")
        code = await self._run(source_csv="vrbo")
        self.assertEqual(code, EXIT_CONFIG_ERROR)


class TestMainEntry(unittest.TestCase):
    """main() argument handling."""

    def test_exit_code_propagates(self) -> None:
        """main() exits with the code cli_search returns."""

        async def fake_cli_search(**kwargs: Any) -> int:
            self.assertEqual(kwargs["source_csv"], "airbnb,vrbo")
            self.assertEqual(kwargs["output_format"], "table")
            return EXIT_NO_RESULTS

        with patch.object(entry, "setup_logging"), patch(
            "rental_search.cli.runner.cli_search", fake_cli_search
        ):
            with self.assertRaises(SystemExit) as ctx:
                entry.main(["-s", "airbnb,vrbo", "-f", "table"])
        self.assertEqual(ctx.exception.code, EXIT_NO_RESULTS)

    def test_rejects_unknown_format(self) -> None:
        """argparse rejects formats other than json and table."""
        with patch.object(entry, "setup_logging"), patch(
            "sys.stderr", new_callable=io.StringIO
        ):
            with self.assertRaises(SystemExit) as ctx:
                entry.main(["-f", "xml"])
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
