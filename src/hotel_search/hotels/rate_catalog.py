"""Normalised, addressable view of one hotel's rooms, rates and recommendations.

The provider's details response nests the rate data several levels deep
(``data.results[0].data[0].roomRate[0]``) and is loosely typed. Everything
downstream works from the three flat mappings built here, so dangling room
or rate references are caught once, at normalisation time.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional

from hotel_search.core.errors import UnknownRecommendationError

from .models import (
    CatalogContext,
    RateInfo,
    RateOccupancy,
    Recommendation,
    RecommendationOption,
    RoomInfo,
)
from .normalizer import to_float, to_int

logger = logging.getLogger(__name__)

_SECTIONS = ("rooms", "rates", "recommendations")


def _first(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    if isinstance(value, dict):
        return value
    return None


def _split_envelope(raw: Mapping[str, Any]) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """Return ``(room_rate, result)`` from either a bare or an enveloped payload."""
    if any(section in raw for section in _SECTIONS):
        return dict(raw), {}
    data = raw.get("data") if isinstance(raw.get("data"), dict) else {}
    result = _first(data.get("results")) or {}
    hotel_entry = _first(result.get("data")) or {}
    room_rate = _first(hotel_entry.get("roomRate"))
    if room_rate is None:
        logger.warning("Hotel details payload has no roomRate block; treating it as empty")
        room_rate = {}
    return room_rate, result


def _keyed(section: str, value: Any) -> Dict[str, Dict[str, Any]]:
    """Coerce a provider section into ``{id: entry}``; lists are keyed by ``id``."""
    if value is None:
        logger.warning("Hotel details payload is missing %s; using an empty mapping", section)
        return {}
    if isinstance(value, dict):
        return {str(key): entry for key, entry in value.items() if isinstance(entry, dict)}
    if isinstance(value, list):
        keyed: Dict[str, Dict[str, Any]] = {}
        for entry in value:
            if isinstance(entry, dict) and entry.get("id") is not None:
                keyed[str(entry["id"])] = entry
            else:
                logger.warning("Dropping %s entry without an id: %r", section, entry)
        return keyed
    logger.warning("Hotel details %s has unexpected type %s; using an empty mapping", section, type(value).__name__)
    return {}


def _parse_occupancy(entry: Dict[str, Any]) -> RateOccupancy:
    child_ages = [to_int(age) for age in entry.get("childAges") or [] if age is not None]
    num_adults = entry.get("numOfAdults")
    return RateOccupancy(
        room_id=str(entry["roomId"]) if entry.get("roomId") not in (None, "") else None,
        num_of_adults=to_int(num_adults) if num_adults is not None else None,
        child_ages=child_ages,
        num_of_children=to_int(entry.get("numOfChildren"), default=len(child_ages)),
    )


def _parse_rate(key: str, entry: Dict[str, Any]) -> RateInfo:
    board_basis = entry.get("boardBasis")
    if isinstance(board_basis, dict):
        board_basis = board_basis.get("description")
    occupancies = [
        _parse_occupancy(item) for item in entry.get("occupancies") or [] if isinstance(item, dict)
    ]
    rate_id = entry.get("id")
    return RateInfo(
        id=str(rate_id) if rate_id not in (None, "") else key,
        final_rate=to_float(entry.get("finalRate")),
        currency=entry.get("currency"),
        occupancies=occupancies,
        board_basis=board_basis,
        refundable=entry.get("refundable"),
        raw=entry,
    )


def _rate_ids(entry: Dict[str, Any]) -> Optional[List[str]]:
    value = entry.get("rateIds")
    if value is None:
        value = entry.get("rates")
    if not isinstance(value, list):
        return None
    return [str(rate_id) for rate_id in value if rate_id is not None]


class RateCatalog:
    """Rooms, rates and recommendations for a single selected hotel."""

    def __init__(
        self,
        rooms: Dict[str, RoomInfo],
        rates: Dict[str, RateInfo],
        recommendations: Dict[str, Recommendation],
        *,
        context: Optional[CatalogContext] = None,
    ) -> None:
        self.rooms = rooms
        self.rates = rates
        self.recommendations = recommendations
        self.context = context or CatalogContext()

    @classmethod
    def normalize(
        cls,
        raw: Optional[Mapping[str, Any]],
        *,
        hotel_id: Optional[str] = None,
        hotel_name: Optional[str] = None,
    ) -> "RateCatalog":
        if not isinstance(raw, Mapping):
            logger.warning("Hotel details payload is not an object; building an empty catalog")
            raw = {}
        room_rate, result = _split_envelope(raw)

        rooms = {
            key: RoomInfo(id=str(entry.get("id") or key), name=entry.get("name"), raw=entry)
            for key, entry in _keyed("rooms", room_rate.get("rooms")).items()
        }
        rates = {
            key: _parse_rate(key, entry)
            for key, entry in _keyed("rates", room_rate.get("rates")).items()
        }
        recommendations = cls._validated_recommendations(
            _keyed("recommendations", room_rate.get("recommendations")), rooms, rates
        )

        itinerary = result.get("itinerary") if isinstance(result.get("itinerary"), dict) else {}
        context = CatalogContext(
            hotel_id=hotel_id,
            hotel_name=hotel_name,
            trace_id=result.get("traceId"),
            items=result.get("items"),
            itinerary_code=itinerary.get("code"),
        )
        logger.debug(
            "Normalised catalog for hotel %s: %s rooms, %s rates, %s recommendations",
            hotel_id,
            len(rooms),
            len(rates),
            len(recommendations),
        )
        return cls(rooms, rates, recommendations, context=context)

    @staticmethod
    def _validated_recommendations(
        entries: Dict[str, Dict[str, Any]],
        rooms: Dict[str, RoomInfo],
        rates: Dict[str, RateInfo],
    ) -> Dict[str, Recommendation]:
        valid: Dict[str, Recommendation] = {}
        for rec_id, entry in entries.items():
            rate_ids = _rate_ids(entry)
            if not rate_ids:
                logger.warning("Dropping recommendation %s: it lists no rates", rec_id)
                continue
            missing_rates = [rate_id for rate_id in rate_ids if rate_id not in rates]
            if missing_rates:
                logger.warning("Dropping recommendation %s: unknown rate ids %s", rec_id, missing_rates)
                continue
            missing_rooms = sorted(
                {
                    occupancy.room_id
                    for rate_id in rate_ids
                    for occupancy in rates[rate_id].occupancies
                    if occupancy.room_id is not None and occupancy.room_id not in rooms
                }
            )
            if missing_rooms:
                logger.warning("Dropping recommendation %s: unknown room ids %s", rec_id, missing_rooms)
                continue
            valid[rec_id] = Recommendation(id=rec_id, rate_ids=rate_ids)
        return valid

    def get_recommendation(self, recommendation_id: str) -> Recommendation:
        try:
            return self.recommendations[recommendation_id]
        except KeyError:
            raise UnknownRecommendationError(recommendation_id) from None

    def _option_for(self, recommendation: Recommendation) -> RecommendationOption:
        total = 0.0
        currencies: List[str] = []
        for rate_id in recommendation.rate_ids:
            rate = self.rates.get(rate_id)
            if rate is None:
                continue
            total += rate.final_rate or 0.0
            if rate.currency:
                currencies.append(rate.currency)
        mixed = len(set(currencies)) > 1
        if mixed:
            logger.warning(
                "Recommendation %s mixes currencies %s; total is not comparable",
                recommendation.id,
                sorted(set(currencies)),
            )
        return RecommendationOption(
            id=recommendation.id,
            total_price=total,
            currency=currencies[0] if currencies else None,
            rates_count=len(recommendation.rate_ids),
            mixed_currency=mixed,
        )

    def list_recommendations(self) -> List[RecommendationOption]:
        return [self._option_for(recommendation) for recommendation in self.recommendations.values()]

    def __len__(self) -> int:
        return len(self.recommendations)

    def __iter__(self) -> Iterator[Recommendation]:
        return iter(self.recommendations.values())
