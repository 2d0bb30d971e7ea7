from __future__ import annotations

import logging
import math
from datetime import date

import pytest

from hotel_search.hotels import Occupancy, PartyConfiguration, Room, SearchContext
from hotel_search.tasks.search_payloads import (
    FilterState,
    SearchRequest,
    SortSpec,
    build_search_query,
    price_point_ceiling,
)


def _context() -> SearchContext:
    return SearchContext(
        city_name="Dubai",
        check_in=date(2024, 3, 1),
        check_out=date(2024, 3, 4),
        inquiry_token="INQ-1",
    )


def _party(adults: int = 2) -> PartyConfiguration:
    return PartyConfiguration(rooms=[Room(adults=[None] * adults)])


def test_default_filters_omit_filter_by_and_sort_by_relevance():
    query = build_search_query(FilterState(), None, _context(), _party())

    assert query.filter_by is None
    assert query.sort_by == {"label": "Relevance", "id": 1, "value": 1}
    assert "filterBy" not in query.to_payload()


def test_price_point_is_scaled_by_nights_and_adults():
    filters = FilterState(price_point=2000)

    query = build_search_query(filters, SortSpec(key="priceAsc"), _context(), _party(2))

    assert query.sort_by["finalRate"] == 12000
    assert query.sort_by["id"] == 2
    assert query.sort_by["value"] == 1


def test_max_price_point_sends_no_ceiling():
    query = build_search_query(FilterState(price_point="max"), SortSpec(key="priceAsc"), _context(), _party())

    assert query.sort_by["finalRate"] == "asc"
    assert price_point_ceiling("max", _context(), _party()) is None


def test_ceiling_counts_adults_across_rooms_and_at_least_one_night():
    party = PartyConfiguration(rooms=[Room(adults=[None, None]), Room(adults=[None])])
    same_day = SearchContext(
        city_name="Goa",
        check_in=date(2024, 5, 1),
        check_out=date(2024, 5, 1),
        inquiry_token="INQ-2",
    )

    assert price_point_ceiling(100, same_day, party) == 300
    assert price_point_ceiling(100, _context(), PartyConfiguration(rooms=[])) == 300


@pytest.mark.parametrize("value", [math.nan, math.inf, "cheap", True])
def test_unusable_price_point_is_treated_as_max(value, caplog):
    with caplog.at_level(logging.WARNING):
        ceiling = price_point_ceiling(value, _context(), _party())

    assert ceiling is None
    assert "price point" in caplog.text


def test_explicit_sort_ceiling_only_used_without_price_point():
    sort = SortSpec(key="relevance", budget_ceiling=5000)

    assert build_search_query(FilterState(), sort, _context(), _party()).sort_by["finalRate"] == 5000
    assert build_search_query(FilterState(price_point=100), sort, _context(), _party()).sort_by["finalRate"] == 600


def test_filter_fields_map_to_provider_keys():
    filters = FilterState(
        text_search="  Marina  ",
        star_ratings={5, 3, 9},
        review_rating_buckets={3, 5, 4},
        amenity_flags={"pool", "wifi", "breakfast", "jacuzzi"},
        property_type=" Resort ",
        tags={"beach", " family ", ""},
        refundable_only=True,
    )

    filter_by = build_search_query(filters, None, _context(), _party()).filter_by

    assert filter_by == {
        "hotelName": "Marina",
        "ratings": [3, 5],
        "reviewRatings": [5, 4, 3],
        "facilities": ["WiFi", "Swimming Pool"],
        "freeBreakfast": True,
        "isRefundable": True,
        "type": "Resort",
        "tags": ["beach", "family"],
    }


def test_breakfast_alone_is_not_a_facility():
    filter_by = build_search_query(FilterState(amenity_flags={"breakfast"}), None, _context(), _party()).filter_by

    assert filter_by == {"freeBreakfast": True}


def test_unknown_sort_key_falls_back_to_relevance():
    query = build_search_query(FilterState(), SortSpec(key="distance"), _context(), _party())

    assert query.sort_by["label"] == "Relevance"


def test_search_request_echoes_trace_id_only_when_held():
    occupancies = [Occupancy(num_of_adults=2)]
    first = SearchRequest(occupancies, page=1, nationality="IN", sort_by={"id": 1})
    second = SearchRequest(occupancies, page=2, nationality="IN", sort_by={"id": 1}, trace_id="T-1")

    assert "traceId" not in first.to_payload()
    assert second.to_payload()["traceId"] == "T-1"
    assert second.to_payload()["occupancies"] == [{"numOfAdults": 2, "childAges": []}]
