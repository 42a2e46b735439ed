# rental_search/scrapers/vrbo_scraper.py

"""Scraper for vrbo.com using the search API traffic of its web app."""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Any
from urllib.parse import urlencode

from rental_search.browser.session import BrowsingSession
from rental_search.config.criteria import SearchCriteria
from rental_search.config.settings import Settings
from rental_search.errors import (
    ParseError,
    TrafficCaptureEmpty,
    ValidationError,
)
from rental_search.extraction.retry import RetryPolicy
from rental_search.extraction.traffic import (
    extract_json_responses,
    poll_network_log,
)
from rental_search.models.listing import Listing
from rental_search.scrapers.base_scraper import BaseScraper


@dataclass(frozen=True)
class VrboQuery:
    """Search parameters in Vrbo's URL vocabulary."""

    region_id: int
    adults: int
    budget: int
    search_ranges: tuple[str, ...] = ()
    start: date | None = None
    end: date | None = None
    pool: bool = False

    @classmethod
    def from_criteria(cls, criteria: SearchCriteria) -> "VrboQuery":
        region_id = criteria.location_code("vrbo")
        if criteria.flexible:
            ranges = []
            for month in criteria.months():
                last_day = calendar.monthrange(month.year, month.month)[1]
                ranges.append(f"{month}_{month.replace(day=last_day)}")
            return cls(
                region_id=region_id,
                adults=criteria.occupancy,
                budget=criteria.budget,
                search_ranges=tuple(ranges),
                pool=criteria.pool,
            )
        return cls(
            region_id=region_id,
            adults=criteria.occupancy,
            budget=criteria.budget,
            start=criteria.start_date,
            end=criteria.end_date,
            pool=criteria.pool,
        )

    def search_url(self) -> str:
        params: list[tuple[str, str | int]] = [
            ("regionId", self.region_id),
            ("adults", self.adults),
            ("allowPreAppliedFilters", "false"),
            ("total_price", f"0,{self.budget}"),
        ]
        if self.search_ranges:
            params.append(("flexibility", "1_WEEK"))
            params.extend(
                ("searchRange", span) for span in self.search_ranges
            )
        else:
            params.append(("startDate", str(self.start)))
            params.append(("endDate", str(self.end)))
        if self.pool:
            params.append(("amenities_facilities_group", "pool,"))
        return f"{VrboScraper.BASE_URL}/pt-pt/search?{urlencode(params)}"


class VrboScraper(BaseScraper):
    """Scraper for Vrbo.

    The result pages render listings and map markers from GraphQL
    responses, so instead of parsing the DOM the scraper walks every
    page and then reads those responses back from the browser's
    network log.  Vrbo sometimes serves a session that never issues
    the search calls; the browser is then restarted and the walk
    repeated, a bounded number of times.
    """

    BASE_URL = "https://www.vrbo.com"
    needs_network_capture = True

    def __init__(self, criteria: SearchCriteria) -> None:
        super().__init__("vrbo", criteria)
        self.query = VrboQuery.from_criteria(criteria)
        self.retry_policy = RetryPolicy(
            max_attempts=Settings.MAX_SESSION_RESTARTS + 1,
            delay=Settings.RESTART_DELAY,
            retry_on=(TrafficCaptureEmpty,),
            name=self.source_name,
        )

    def _walk_pages(self, session: BrowsingSession) -> int:
        """Click through the result pages; returns pages advanced."""
        timeout = self.criteria.wait_timeout
        advanced = 0
        while advanced < Settings.MAX_PAGES:
            if not session.wait_for_selector(
                self.selectors["map_ready"], timeout
            ):
                break
            if not session.wait_for_selector(
                self.selectors["next_page"], timeout
            ):
                break
            if not session.click(self.selectors["next_page"]):
                break
            advanced += 1
        return advanced

    def capture_payloads(
        self, session: BrowsingSession,
    ) -> list[dict[str, Any]]:
        """One full pass over the results, returning search payloads.

        Raises:
            TrafficCaptureEmpty: No search response was captured.
        """
        session.navigate(self.query.search_url())
        pages = self._walk_pages(session)
        entries = poll_network_log(session)
        payloads = [
            payload
            for payload in extract_json_responses(
                session, entries, self.selectors["api_fragment"]
            )
            if isinstance(payload.get("data"), dict)
            and "propertySearch" in payload["data"]
        ]
        if not payloads:
            raise TrafficCaptureEmpty(
                f"No search responses among {len(entries)} log entries"
            )
        self.logger.info(
            "[vrbo] Captured %d search responses over %d pages",
            len(payloads),
            pages + 1,
        )
        return payloads

    def _parse_item(
        self, item: dict[str, Any], markers: dict[str, dict[str, Any]],
    ) -> Listing:
        try:
            marker = markers[str(item["id"])]
            position = marker["markerPosition"]
            latitude = float(position["latitude"])
            longitude = float(position["longitude"])
            name = item["headingSection"]["heading"]
            path = item["cardLink"]["resource"]["relativePath"]
            price_text = (
                item["priceSection"]["priceSummary"]["displayMessages"][2]
                ["lineItems"][0]["value"]
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ParseError(
                f"Incomplete listing {item.get('id')!r}: {exc!r}"
            ) from exc

        nightly = self.extract_price(str(price_text))
        if nightly <= 0:
            raise ParseError(f"No nightly price in {price_text!r}")
        return Listing(
            name=str(name),
            url=f"{self.BASE_URL}{path}",
            distance_km=self.distance_to(latitude, longitude),
            price_per_night=nightly,
            total_price=nightly * self.criteria.night_count,
        )

    def parse_payloads(
        self, payloads: list[dict[str, Any]],
    ) -> set[Listing]:
        """Join listings with their map markers by id."""
        listings: set[Listing] = set()
        for payload in payloads:
            search = payload["data"]["propertySearch"]
            if not isinstance(search, dict):
                continue
            try:
                raw_markers = search["dynamicMap"]["map"]["markers"]
            except (KeyError, TypeError):
                raw_markers = []
            markers = {
                str(marker["id"]): marker
                for marker in raw_markers or []
                if isinstance(marker, dict) and "id" in marker
            }
            for item in search.get("propertySearchListings") or []:
                if not isinstance(item, dict):
                    continue
                try:
                    listing = self._parse_item(item, markers)
                except (ParseError, ValidationError) as exc:
                    self.logger.debug("[vrbo] Listing skipped: %s", exc)
                    continue
                if self.accept(listing):
                    listings.add(listing)
        return listings

    def _extract(self, session: BrowsingSession) -> set[Listing]:
        payloads = self.retry_policy.call(
            lambda: self.capture_payloads(session),
            on_retry=lambda attempt, exc: session.restart(),
        )
        return self.parse_payloads(payloads)
