# rental_search/models/listing.py

"""Listing data model for inter-module data flow."""

import math
from dataclasses import dataclass
from typing import Any

from rental_search.errors import ValidationError


@dataclass(frozen=True, eq=False)
class Listing:
    """A single candidate rental from any source.

    Two listings are the same entity when they share ``name`` and
    ``distance_km``; price and URL do not take part in identity.
    Listings order by ``total_price`` only.
    """

    name: str
    url: str
    distance_km: float
    price_per_night: float
    total_price: float

    def __post_init__(self) -> None:
        for field_name in ("name", "url"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"Listing.{field_name} must be non-empty text, "
                    f"got {value!r}"
                )
        for field_name in (
            "distance_km", "price_per_night", "total_price",
        ):
            value = getattr(self, field_name)
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
                or value < 0
            ):
                raise ValidationError(
                    f"Listing.{field_name} must be a finite "
                    f"non-negative number, got {value!r}"
                )

    @property
    def key(self) -> tuple[str, float]:
        """Identity used for deduplication."""
        return self.name, self.distance_km

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Listing):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __lt__(self, other: "Listing") -> bool:
        if not isinstance(other, Listing):
            return NotImplemented
        return self.total_price < other.total_price

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict for JSON/CSV output."""
        return {
            "name": self.name,
            "url": self.url,
            "distance_km": round(self.distance_km, 3),
            "price_per_night": round(self.price_per_night, 2),
            "total_price": round(self.total_price, 2),
        }
