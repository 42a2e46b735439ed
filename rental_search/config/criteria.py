# rental_search/config/criteria.py

"""Trip criteria shared read-only by every scraper.

A :class:`SearchCriteria` is built once at startup, usually from a JSON
criteria file via :func:`load_criteria`, and passed explicitly to each
scraper and to the orchestrator.  Any problem with it is a
:class:`~rental_search.errors.ConfigError` and aborts the run before a
browser is started.
"""

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from rental_search.config.settings import Settings
from rental_search.errors import ConfigError

logger = logging.getLogger("rental_search.config")

DATE_FORMAT = "%d/%m/%Y"


@dataclass(frozen=True)
class SearchCriteria:
    """Immutable trip parameters.

    ``max_price_per_night`` is a per-person nightly budget, so the most a
    whole stay may cost is :attr:`budget`.  When ``flexible`` is set the
    two dates only bound a span of months and ``night_count`` is the
    desired stay length; otherwise ``night_count`` is derived from the
    dates.
    """

    latitude: float
    longitude: float
    max_distance_km: float
    max_price_per_night: int
    occupancy: int
    start_date: date
    end_date: date
    destination: str
    flexible: bool = False
    night_count: int = 0
    pool: bool = False
    location_codes: Mapping[str, int] = field(default_factory=dict)
    wait_timeout: float = Settings.DEFAULT_WAIT_SECONDS

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ConfigError(f"latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ConfigError(f"longitude out of range: {self.longitude}")
        if not math.isfinite(self.max_distance_km) or self.max_distance_km < 0:
            raise ConfigError(
                f"maximum distance must be >= 0, got {self.max_distance_km}"
            )
        if self.max_price_per_night < 0:
            raise ConfigError(
                "maximum price must be >= 0, "
                f"got {self.max_price_per_night}"
            )
        if self.occupancy < 1:
            raise ConfigError(
                f"people quantity must be >= 1, got {self.occupancy}"
            )
        if self.end_date <= self.start_date:
            raise ConfigError(
                f"end date {self.end_date} must be after "
                f"start date {self.start_date}"
            )
        if not self.destination.strip():
            raise ConfigError("destination must not be empty")
        if self.wait_timeout <= 0:
            raise ConfigError(
                f"wait time must be > 0, got {self.wait_timeout}"
            )

        if not self.flexible:
            derived = (self.end_date - self.start_date).days
            object.__setattr__(self, "night_count", derived)
        elif self.night_count < 1:
            raise ConfigError(
                "night quantity must be >= 1 for flexible dates, "
                f"got {self.night_count}"
            )

        # Freeze the lookup table too
        object.__setattr__(
            self, "location_codes", dict(self.location_codes)
        )

    @property
    def budget(self) -> int:
        """Most a whole stay may cost for the whole party."""
        return self.max_price_per_night * self.occupancy

    def months(self) -> list[date]:
        """First day of every month touched by the date span."""
        months: list[date] = []
        current = self.start_date.replace(day=1)
        while current <= self.end_date:
            months.append(current)
            if current.month == 12:
                current = current.replace(year=current.year + 1, month=1)
            else:
                current = current.replace(month=current.month + 1)
        return months

    def location_code(self, site: str) -> int:
        """Return the site-specific region code or raise ConfigError."""
        try:
            return self.location_codes[site]
        except KeyError:
            raise ConfigError(
                f"no location code configured for '{site}'"
            ) from None


# ── Loading ──────────────────────────────────────────────


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' section is missing or not an object")
    return value


def _number(section: Mapping[str, Any], key: str, label: str) -> float:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{label} must be a number, got {value!r}")
    return float(value)


def _integer(section: Mapping[str, Any], key: str, label: str) -> int:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{label} must be an integer, got {value!r}")
    return value


def _date(section: Mapping[str, Any], key: str, label: str) -> date:
    value = section.get(key)
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except ValueError:
        raise ConfigError(
            f'{label} must be in the "DD/MM/YYYY" format, got {value!r}'
        ) from None


def criteria_from_dict(data: Mapping[str, Any]) -> SearchCriteria:
    """Build criteria from the parsed criteria document."""
    coordinates = _section(data, "coordinates")
    maximum = _section(data, "maximum")
    quantity = _section(data, "quantity")
    dates = _section(data, "dates")
    amenities = data.get("amenities", {})
    if not isinstance(amenities, Mapping):
        raise ConfigError("'amenities' must be an object")

    destination = data.get("destination")
    if not isinstance(destination, str):
        raise ConfigError(f"destination must be text, got {destination!r}")

    raw_codes = data.get("location_codes", {})
    if not isinstance(raw_codes, Mapping):
        raise ConfigError("'location_codes' must be an object")
    codes: dict[str, int] = {}
    for site, code in raw_codes.items():
        if isinstance(code, bool) or not isinstance(code, int):
            raise ConfigError(
                f"location code for '{site}' must be an integer, "
                f"got {code!r}"
            )
        codes[str(site)] = code

    flexible = bool(dates.get("flexible", False))
    nights = (
        _integer(quantity, "nights", "The night quantity")
        if flexible
        else 0
    )
    wait = data.get("wait_seconds", Settings.DEFAULT_WAIT_SECONDS)
    if isinstance(wait, bool) or not isinstance(wait, (int, float)):
        raise ConfigError(f"The wait time must be a number, got {wait!r}")

    return SearchCriteria(
        latitude=_number(coordinates, "latitude", "The latitude"),
        longitude=_number(coordinates, "longitude", "The longitude"),
        max_distance_km=_number(
            maximum, "distance_km", "The maximum distance"
        ),
        max_price_per_night=_integer(
            maximum, "price_per_night", "The maximum price"
        ),
        occupancy=_integer(quantity, "people", "The people quantity"),
        start_date=_date(dates, "start", "The start date"),
        end_date=_date(dates, "end", "The end date"),
        destination=destination,
        flexible=flexible,
        night_count=nights,
        pool=bool(amenities.get("pool", False)),
        location_codes=codes,
        wait_timeout=float(wait),
    )


def load_criteria(path: Path | None = None) -> SearchCriteria:
    """Read and validate the criteria file.

    Raises:
        ConfigError: The file is missing, is not JSON, or any field is
            missing or malformed.
    """
    criteria_path = path or Settings.CRITERIA_PATH
    try:
        with open(criteria_path, encoding="utf-8") as f:
            data: Any = json.load(f)
    except FileNotFoundError:
        raise ConfigError(
            f"criteria file not found: {criteria_path}"
        ) from None
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"criteria file {criteria_path} is not valid JSON: {exc}"
        ) from exc

    if not isinstance(data, Mapping):
        raise ConfigError("criteria file must contain a JSON object")

    criteria = criteria_from_dict(data)
    logger.info(
        "Loaded criteria from %s: %s, %d people, %d nights, "
        "budget %d, radius %.1f km",
        criteria_path,
        criteria.destination,
        criteria.occupancy,
        criteria.night_count,
        criteria.budget,
        criteria.max_distance_km,
    )
    return criteria
