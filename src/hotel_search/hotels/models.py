"""Dataclasses for parties, search pages, rate catalogs and selections."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional


@dataclass(slots=True)
class Room:
    """Guests sharing one room; ages may be unset."""

    adults: List[Optional[int]] = field(default_factory=list)
    children: List[Optional[int]] = field(default_factory=list)


@dataclass(slots=True)
class PartyConfiguration:
    """Ordered room list as edited by the search-modification form."""

    rooms: List[Room] = field(default_factory=list)

    @property
    def total_adults(self) -> int:
        return sum(len(room.adults) for room in self.rooms)

    @property
    def total_children(self) -> int:
        return sum(len(room.children) for room in self.rooms)

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "PartyConfiguration":
        """Build a party from the CRM ``travelersDetails`` shape."""
        rooms: List[Room] = []
        for entry in (payload or {}).get("rooms") or []:
            rooms.append(
                Room(
                    adults=list(entry.get("adults") or []),
                    children=list(entry.get("children") or []),
                )
            )
        return cls(rooms=rooms)


@dataclass(slots=True)
class Occupancy:
    num_of_adults: int
    child_ages: List[int] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {"numOfAdults": self.num_of_adults, "childAges": list(self.child_ages)}


@dataclass(frozen=True, slots=True)
class SearchContext:
    """Immutable description of one logical search."""

    city_name: str
    check_in: date
    check_out: date
    inquiry_token: str
    nationality: Optional[str] = None

    @property
    def nights(self) -> int:
        seconds = (self.check_out - self.check_in).total_seconds()
        return max(1, math.ceil(seconds / 86400))

    def to_dict(self) -> dict[str, object]:
        return {
            "city_name": self.city_name,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "nationality": self.nationality,
        }


@dataclass(slots=True)
class HotelAvailability:
    final_rate: Optional[float] = None
    currency: Optional[str] = None
    free_breakfast: bool = False
    free_cancellation: bool = False
    pay_at_hotel: bool = False
    refundable: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "rate": {"finalRate": self.final_rate, "currency": self.currency},
            "options": {
                "freeBreakfast": self.free_breakfast,
                "freeCancellation": self.free_cancellation,
                "payAtHotel": self.pay_at_hotel,
                "refundable": self.refundable,
            },
        }


@dataclass(slots=True)
class PriceComparison:
    status: str
    difference: float


@dataclass(slots=True)
class HotelSummary:
    """One hotel row from a search results page."""

    id: str
    name: str
    star_rating: Optional[float] = None
    images: List[str] = field(default_factory=list)
    facilities: List[str] = field(default_factory=list)
    reviews: List[Dict[str, Any]] = field(default_factory=list)
    availability: HotelAvailability = field(default_factory=HotelAvailability)
    raw: Dict[str, Any] = field(default_factory=dict)

    def compare_price(self, existing_price: Optional[float]) -> PriceComparison:
        """Compare this hotel's rate against the hotel it would replace."""
        current = self.availability.final_rate or 0.0
        difference = current - (existing_price or 0.0)
        if difference == 0:
            status = "same"
        elif difference > 0:
            status = "increased"
        else:
            status = "decreased"
        return PriceComparison(status=status, difference=difference)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "starRating": self.star_rating,
            "images": list(self.images),
            "facilities": list(self.facilities),
            "reviews": list(self.reviews),
            "availability": self.availability.to_dict(),
        }

    @classmethod
    def from_iterable(cls, records: Iterable["HotelSummary"]) -> List[dict[str, object]]:
        return [record.to_dict() for record in records]


@dataclass(slots=True)
class SearchPage:
    hotels: List[HotelSummary]
    continuation_token: Optional[str]
    page_number: int
    has_next_page: bool
    total_count: int = 0
    filtered_count: int = 0
    message: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.hotels

    def to_dict(self) -> dict[str, object]:
        return {
            "page_number": self.page_number,
            "has_next_page": self.has_next_page,
            "total_count": self.total_count,
            "filtered_count": self.filtered_count,
            "message": self.message,
            "hotels": HotelSummary.from_iterable(self.hotels),
        }


@dataclass(slots=True)
class RoomInfo:
    id: str
    name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RateOccupancy:
    room_id: Optional[str]
    num_of_adults: Optional[int]
    child_ages: List[int] = field(default_factory=list)
    num_of_children: int = 0


@dataclass(slots=True)
class RateInfo:
    id: str
    final_rate: Optional[float] = None
    currency: Optional[str] = None
    occupancies: List[RateOccupancy] = field(default_factory=list)
    board_basis: Optional[str] = None
    refundable: Optional[bool] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Recommendation:
    id: str
    rate_ids: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RecommendationOption:
    """Display row derived from a recommendation and its rates."""

    id: str
    total_price: float
    currency: Optional[str]
    rates_count: int
    mixed_currency: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "total_price": self.total_price,
            "currency": self.currency,
            "rates_count": self.rates_count,
            "mixed_currency": self.mixed_currency,
        }


@dataclass(slots=True)
class CatalogContext:
    """Details-fetch metadata the select-room and commit steps reuse."""

    hotel_id: Optional[str] = None
    hotel_name: Optional[str] = None
    trace_id: Optional[str] = None
    items: Optional[List[Any]] = None
    itinerary_code: Optional[str] = None


@dataclass(slots=True)
class AllocationEntry:
    rate_id: str
    room_id: str
    adults: int
    child_ages: Optional[List[int]] = None

    def to_payload(self) -> dict[str, object]:
        occupancy: dict[str, object] = {"adults": self.adults}
        if self.child_ages:
            occupancy["childAges"] = list(self.child_ages)
        return {"rateId": self.rate_id, "roomId": self.room_id, "occupancy": occupancy}


@dataclass(slots=True)
class ProviderSelection:
    """Result of the provider's select-room step."""

    data: Dict[str, Any]
    allocation: List[AllocationEntry]
    recommendation_id: str
    catalog_context: CatalogContext


@dataclass(frozen=True, slots=True)
class ItineraryContext:
    itinerary_token: str
    city_name: str
    date: date
    check_in: date
    check_out: date
    inquiry_token: str
    old_hotel_code: Optional[str] = None


@dataclass(slots=True)
class CommitResult:
    hotel_name: str
    final_allocation: List[AllocationEntry]
    committed: bool = True
    partial_success: bool = False
    warning: Optional[str] = None
    message: Optional[str] = None
