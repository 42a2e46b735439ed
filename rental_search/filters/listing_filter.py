# rental_search/filters/listing_filter.py

"""Price and distance filters applied by every source."""

from rental_search.config.criteria import SearchCriteria
from rental_search.models.listing import Listing


class ListingFilter:
    """Drop listings over the party's budget or outside the radius."""

    @staticmethod
    def within_budget(total_price: float, criteria: SearchCriteria) -> bool:
        return total_price <= criteria.budget

    @staticmethod
    def within_distance(distance_km: float, criteria: SearchCriteria) -> bool:
        return distance_km <= criteria.max_distance_km

    @staticmethod
    def accepts(listing: Listing, criteria: SearchCriteria) -> bool:
        return ListingFilter.within_budget(
            listing.total_price, criteria
        ) and ListingFilter.within_distance(listing.distance_km, criteria)
