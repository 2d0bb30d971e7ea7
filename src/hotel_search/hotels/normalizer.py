"""Utilities to transform raw provider search payloads into normalised records."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from .models import HotelAvailability, HotelSummary, SearchPage

logger = logging.getLogger(__name__)


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _extract_images(hotel: dict[str, Any]) -> List[str]:
    urls: List[str] = []
    for image in hotel.get("images") or []:
        if isinstance(image, str):
            urls.append(image)
            continue
        if not isinstance(image, dict):
            continue
        links = image.get("links") or []
        standard = next(
            (link.get("url") for link in links if isinstance(link, dict) and link.get("size") == "Standard"),
            None,
        )
        url = standard or image.get("url")
        if url:
            urls.append(url)
    hero = hotel.get("heroImage")
    if hero and hero not in urls:
        urls.insert(0, hero)
    return urls


def _extract_facilities(entries: Optional[Iterable[Any]]) -> List[str]:
    names: List[str] = []
    for entry in entries or []:
        if isinstance(entry, str):
            name = entry
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("description")
        else:
            name = None
        if name:
            names.append(str(name).strip())
    return names


def _extract_reviews(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, dict)]
    return []


def _parse_availability(info: Optional[dict[str, Any]]) -> HotelAvailability:
    if not info:
        return HotelAvailability()
    rate: Dict[str, Any] = info.get("rate") or {}
    options: Dict[str, Any] = info.get("options") or {}
    return HotelAvailability(
        final_rate=to_float(rate.get("finalRate")),
        currency=rate.get("currency"),
        free_breakfast=bool(options.get("freeBreakfast")),
        free_cancellation=bool(options.get("freeCancellation")),
        pay_at_hotel=bool(options.get("payAtHotel")),
        refundable=bool(options.get("refundable")),
    )


def build_hotel_summary(hotel: dict[str, Any]) -> HotelSummary:
    hotel_id = hotel.get("id") or hotel.get("hotel_code") or ""
    return HotelSummary(
        id=str(hotel_id),
        name=hotel.get("name") or "",
        star_rating=to_float(hotel.get("starRating")),
        images=_extract_images(hotel),
        facilities=_extract_facilities(hotel.get("facilities")),
        reviews=_extract_reviews(hotel.get("reviews")),
        availability=_parse_availability(hotel.get("availability")),
        raw=hotel,
    )


def build_hotel_summaries(hotels: Iterable[dict[str, Any]]) -> List[HotelSummary]:
    summaries: List[HotelSummary] = []
    for hotel in hotels:
        if not isinstance(hotel, dict):
            logger.warning("Skipping malformed hotel entry of type %s", type(hotel).__name__)
            continue
        summary = build_hotel_summary(hotel)
        if not summary.id:
            logger.warning("Hotel %r has no id or hotel_code; it cannot be selected", summary.name)
        summaries.append(summary)
    return summaries


def build_search_page(payload: dict[str, Any], *, requested_page: int) -> SearchPage:
    """Normalise one ``POST /hotels/...`` response into a :class:`SearchPage`."""
    if not isinstance(payload, dict):
        payload = {}
    data = payload.get("data")
    if not isinstance(data, dict):
        data = {}
    results = data.get("results")
    result: Optional[Dict[str, Any]] = None
    if isinstance(results, list) and results and isinstance(results[0], dict):
        result = results[0]

    if not payload.get("success") or result is None:
        message = data.get("message") or payload.get("message") or "No hotels found matching criteria."
        logger.info("Search page %s returned no results: %s", requested_page, message)
        return SearchPage(
            hotels=[],
            continuation_token=None,
            page_number=requested_page,
            has_next_page=False,
            message=message,
        )

    hotels = build_hotel_summaries(result.get("data") or [])
    total_count = to_int(result.get("totalCount"), default=len(hotels))
    filtered_raw = result.get("filteredCount")
    filtered_count = to_int(filtered_raw, default=total_count) if filtered_raw is not None else total_count
    return SearchPage(
        hotels=hotels,
        continuation_token=result.get("traceId"),
        page_number=to_int(result.get("currentPage"), default=requested_page) or requested_page,
        has_next_page=bool(result.get("nextPage")),
        total_count=total_count,
        filtered_count=filtered_count,
        message=None if hotels else "No hotels found matching criteria.",
    )
