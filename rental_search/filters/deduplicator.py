# rental_search/filters/deduplicator.py

"""Listing deduplication across rental sources."""

import logging
from collections.abc import Iterable

from rental_search.models.listing import Listing

logger = logging.getLogger("rental_search.filters")


class ListingDeduplicator:
    """Merge listings from several sources into one ranked sequence."""

    @staticmethod
    def deduplicate(
        listings: Iterable[Listing],
    ) -> tuple[list[Listing], int]:
        """Remove listings sharing a name and distance with an earlier one.

        The first arrival wins; price and URL play no part.  Returns
        the kept listings in arrival order and the count removed.
        """
        seen: set[tuple[str, float]] = set()
        kept: list[Listing] = []
        removed = 0

        for listing in listings:
            if listing.key in seen:
                removed += 1
                continue
            seen.add(listing.key)
            kept.append(listing)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate listings",
                removed,
            )

        return kept, removed

    @staticmethod
    def rank(listings: Iterable[Listing]) -> list[Listing]:
        """Sort by total price, cheapest first; ties keep arrival order."""
        return sorted(listings, key=lambda listing: listing.total_price)

    @staticmethod
    def merge(
        batches: Iterable[Iterable[Listing]],
    ) -> tuple[list[Listing], int]:
        """Flatten, deduplicate and rank the per-source results."""
        flat = [listing for batch in batches for listing in batch]
        unique, removed = ListingDeduplicator.deduplicate(flat)
        return ListingDeduplicator.rank(unique), removed
