"""Utilities for building provider hotel search payloads."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Set, Union

from hotel_search.hotels.models import Occupancy, PartyConfiguration, SearchContext

logger = logging.getLogger(__name__)

PricePoint = Union[int, float, str]

AMENITY_FACILITIES: dict[str, str] = {
    "wifi": "WiFi",
    "pool": "Swimming Pool",
    "spa": "Spa",
    "gym": "Fitness Center",
    "restaurant": "Restaurant",
    "parking": "Parking",
    "aircon": "Air Conditioning",
    "pets": "Pet Friendly",
    "beach": "Beach Access",
}
BREAKFAST_AMENITY = "breakfast"

SORT_OPTIONS: dict[str, dict[str, object]] = {
    "relevance": {"label": "Relevance", "id": 1, "value": 1},
    "priceAsc": {"finalRate": "asc", "label": "Price: Low to High", "id": 2, "value": 1},
    "priceDesc": {"finalRate": "desc", "label": "Price: High to Low", "id": 2, "value": 2},
    "ratingDesc": {"rating": "desc", "label": "Rating: High to Low", "id": 3, "value": 2},
    "nameAsc": {"name": "asc", "label": "Name: A to Z", "id": 4, "value": 1},
}
DEFAULT_SORT = "relevance"
# The provider reads the budget ceiling from the sort object's finalRate field.
BUDGET_FIELD = "finalRate"


@dataclass(slots=True)
class FilterState:
    """Snapshot of the filter sidebar."""

    text_search: str = ""
    star_ratings: Set[int] = field(default_factory=set)
    review_rating_buckets: Set[int] = field(default_factory=set)
    amenity_flags: Set[str] = field(default_factory=set)
    price_point: PricePoint = "max"
    property_type: Optional[str] = None
    tags: Set[str] = field(default_factory=set)
    refundable_only: bool = False


@dataclass(slots=True)
class SortSpec:
    key: str = DEFAULT_SORT
    budget_ceiling: Optional[float] = None


@dataclass(slots=True)
class SearchQuery:
    filter_by: Optional[dict[str, object]]
    sort_by: dict[str, object]

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"sortBy": dict(self.sort_by)}
        if self.filter_by:
            payload["filterBy"] = dict(self.filter_by)
        return payload


@dataclass(slots=True)
class SearchRequest:
    """Body of one ``POST /hotels/...`` page request."""

    occupancies: List[Occupancy]
    page: int
    nationality: str
    sort_by: dict[str, object]
    filter_by: Optional[dict[str, object]] = None
    trace_id: Optional[str] = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "occupancies": occupancies_payload(self.occupancies),
            "page": self.page,
            "nationality": self.nationality,
            "sortBy": dict(self.sort_by),
        }
        if self.trace_id:
            payload["traceId"] = self.trace_id
        if self.filter_by:
            payload["filterBy"] = dict(self.filter_by)
        return payload


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def price_point_ceiling(
    price_point: PricePoint,
    context: SearchContext,
    party: PartyConfiguration,
) -> Optional[float]:
    """Convert a per-night, per-adult price point into a whole-trip budget."""
    if price_point == "max" or price_point is None:
        return None
    if not _is_finite_number(price_point):
        logger.warning("Ignoring unusable price point %r; searching without a budget ceiling", price_point)
        return None
    total_adults = max(1, party.total_adults)
    return price_point * context.nights * total_adults


def _clean_ints(values: Iterable[Any], *, low: int = 1, high: int = 5) -> List[int]:
    cleaned: Set[int] = set()
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            number = int(value)
        except (TypeError, ValueError):
            logger.debug("Dropping non-numeric rating filter %r", value)
            continue
        if low <= number <= high:
            cleaned.add(number)
    return sorted(cleaned)


def _clean_strings(values: Iterable[Any]) -> List[str]:
    return sorted({str(value).strip() for value in values if value is not None and str(value).strip()})


def _facilities(amenity_flags: Iterable[str]) -> List[str]:
    selected = set(amenity_flags)
    for flag in selected - set(AMENITY_FACILITIES) - {BREAKFAST_AMENITY}:
        logger.debug("Ignoring unknown amenity flag %r", flag)
    return [facility for amenity, facility in AMENITY_FACILITIES.items() if amenity in selected]


def build_filter_by(filters: FilterState) -> Optional[dict[str, object]]:
    """Return the provider ``filterBy`` object, or ``None`` when unconstrained."""
    filter_by: dict[str, object] = {}

    name = (filters.text_search or "").strip()
    if name:
        filter_by["hotelName"] = name

    ratings = _clean_ints(filters.star_ratings)
    if ratings:
        filter_by["ratings"] = ratings

    review_ratings = _clean_ints(filters.review_rating_buckets)
    if review_ratings:
        filter_by["reviewRatings"] = sorted(review_ratings, reverse=True)

    facilities = _facilities(filters.amenity_flags)
    if facilities:
        filter_by["facilities"] = facilities
    if BREAKFAST_AMENITY in filters.amenity_flags:
        filter_by["freeBreakfast"] = True

    if filters.refundable_only:
        filter_by["isRefundable"] = True

    property_type = (filters.property_type or "").strip()
    if property_type:
        filter_by["type"] = property_type

    tags = _clean_strings(filters.tags)
    if tags:
        filter_by["tags"] = tags

    return filter_by or None


def build_sort_by(sort: SortSpec, budget_ceiling: Optional[float] = None) -> dict[str, object]:
    option = SORT_OPTIONS.get(sort.key)
    if option is None:
        logger.warning("Unknown sort key %r; falling back to %s", sort.key, DEFAULT_SORT)
        option = SORT_OPTIONS[DEFAULT_SORT]
    sort_by = dict(option)
    ceiling = budget_ceiling if budget_ceiling is not None else sort.budget_ceiling
    if ceiling is not None:
        sort_by[BUDGET_FIELD] = ceiling
    return sort_by


def build_search_query(
    filters: FilterState,
    sort: Optional[SortSpec],
    context: SearchContext,
    party: PartyConfiguration,
) -> SearchQuery:
    """Translate UI filter/sort state into provider query fragments."""
    ceiling = price_point_ceiling(filters.price_point, context, party)
    return SearchQuery(
        filter_by=build_filter_by(filters),
        sort_by=build_sort_by(sort or SortSpec(), ceiling),
    )


def occupancies_payload(occupancies: Sequence[Occupancy]) -> List[dict[str, object]]:
    return [occupancy.to_payload() for occupancy in occupancies]
