"""Hotel domain models, normalisation and allocation helpers."""

from .models import (
    AllocationEntry,
    CatalogContext,
    CommitResult,
    HotelAvailability,
    HotelSummary,
    ItineraryContext,
    Occupancy,
    PartyConfiguration,
    ProviderSelection,
    RateInfo,
    RateOccupancy,
    Recommendation,
    RecommendationOption,
    Room,
    RoomInfo,
    SearchContext,
    SearchPage,
)
from .normalizer import build_hotel_summaries, build_hotel_summary, build_search_page
from .occupancy import to_occupancies
from .rate_catalog import RateCatalog
from .resolver import resolve_recommendation

__all__ = [
    "AllocationEntry",
    "CatalogContext",
    "CommitResult",
    "HotelAvailability",
    "HotelSummary",
    "ItineraryContext",
    "Occupancy",
    "PartyConfiguration",
    "ProviderSelection",
    "RateCatalog",
    "RateInfo",
    "RateOccupancy",
    "Recommendation",
    "RecommendationOption",
    "Room",
    "RoomInfo",
    "SearchContext",
    "SearchPage",
    "build_hotel_summaries",
    "build_hotel_summary",
    "build_search_page",
    "resolve_recommendation",
    "to_occupancies",
]
