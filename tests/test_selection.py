from __future__ import annotations

import logging
from datetime import date
from typing import Any

import pytest

from hotel_search.core.errors import (
    ItineraryCommitError,
    MissingReplacementTargetError,
    ProviderHttpError,
    ProviderSelectionError,
    RateUnavailableError,
)
from hotel_search.hotels import (
    CatalogContext,
    ItineraryContext,
    ProviderSelection,
    RateCatalog,
    SearchContext,
    resolve_recommendation,
)
from hotel_search.services import SelectionCommitter

SEARCH_CONTEXT = SearchContext(
    city_name="Dubai",
    check_in=date(2024, 3, 1),
    check_out=date(2024, 3, 4),
    inquiry_token="INQ-1",
)


def _itinerary(old_hotel_code: str | None = None) -> ItineraryContext:
    return ItineraryContext(
        itinerary_token="ITN-1",
        city_name="Dubai",
        date=date(2024, 3, 1),
        check_in=date(2024, 3, 1),
        check_out=date(2024, 3, 4),
        inquiry_token="INQ-1",
        old_hotel_code=old_hotel_code,
    )


class _DummyProviderClient:
    def __init__(
        self,
        *,
        select_response: Any = None,
        commit_response: Any = None,
    ) -> None:
        self.select_response = select_response if select_response is not None else {
            "success": True,
            "data": {"hotelDetails": {"name": "Palm Resort"}, "items": ["sel-item"], "itineraryCode": "SEL-1"},
        }
        self.commit_response = commit_response if commit_response is not None else {
            "success": True,
            "message": "Hotel updated",
        }
        self.calls: list[tuple[str, Any]] = []

    async def _answer(self, name: str, body: dict[str, Any], response: Any) -> dict[str, Any]:
        self.calls.append((name, body))
        if isinstance(response, Exception):
            raise response
        return response

    async def select_room(self, context: SearchContext, hotel_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._answer("select_room", body, self.select_response)

    async def add_hotel(self, itinerary: ItineraryContext, body: dict[str, Any]) -> dict[str, Any]:
        return await self._answer("add_hotel", body, self.commit_response)

    async def replace_hotel(self, itinerary: ItineraryContext, body: dict[str, Any]) -> dict[str, Any]:
        return await self._answer("replace_hotel", body, self.commit_response)

    async def replace_room(self, itinerary: ItineraryContext, body: dict[str, Any]) -> dict[str, Any]:
        return await self._answer("replace_room", body, self.commit_response)


def _catalog() -> RateCatalog:
    raw = {
        "success": True,
        "data": {
            "results": [
                {
                    "traceId": "T-1",
                    "items": ["catalog-item"],
                    "itinerary": {"code": "CAT-1"},
                    "data": [
                        {
                            "roomRate": [
                                {
                                    "rooms": {"RM1": {"id": "RM1"}, "RM2": {"id": "RM2"}},
                                    "rates": {
                                        "RT1": {
                                            "id": "RT1",
                                            "finalRate": 100,
                                            "occupancies": [{"roomId": "RM1", "numOfAdults": 2}],
                                        },
                                        "RT2": {
                                            "id": "RT2",
                                            "finalRate": 80,
                                            "occupancies": [
                                                {"roomId": "RM2", "numOfAdults": 1, "numOfChildren": 1, "childAges": [6]}
                                            ],
                                        },
                                    },
                                    "recommendations": {"R1": {"rates": ["RT1", "RT2"]}},
                                }
                            ]
                        }
                    ],
                }
            ]
        },
    }
    return RateCatalog.normalize(raw, hotel_id="H1", hotel_name="Catalog Hotel")


@pytest.mark.asyncio
async def test_select_room_sends_one_allocation_per_rate_in_order():
    catalog = _catalog()
    client = _DummyProviderClient()
    allocation = resolve_recommendation("R1", catalog)

    selection = await SelectionCommitter(client).select_room(allocation, "R1", catalog.context, SEARCH_CONTEXT)

    name, body = client.calls[0]
    assert name == "select_room"
    assert [entry["rateId"] for entry in body["roomsAndRateAllocations"]] == ["RT1", "RT2"]
    assert body["roomsAndRateAllocations"][1]["occupancy"] == {"adults": 1, "childAges": [6]}
    assert body["recommendationId"] == "R1"
    assert body["traceId"] == "T-1"
    assert body["itineraryCode"] == "CAT-1"
    assert body["items"] == ["catalog-item"]
    assert body["date"] == "2024-03-01"
    assert selection.data["hotelDetails"]["name"] == "Palm Resort"


@pytest.mark.asyncio
async def test_rate_gone_conflict_requires_reselection():
    catalog = _catalog()
    client = _DummyProviderClient(select_response=ProviderHttpError(409, "rate sold out"))

    with pytest.raises(RateUnavailableError) as excinfo:
        await SelectionCommitter(client).select_room(
            resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT
        )

    assert excinfo.value.requires_reselection
    assert not excinfo.value.retryable


@pytest.mark.asyncio
async def test_selection_without_data_is_rejected():
    catalog = _catalog()
    client = _DummyProviderClient(select_response={"success": True})

    with pytest.raises(ProviderSelectionError):
        await SelectionCommitter(client).select_room(
            resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT
        )


@pytest.mark.asyncio
async def test_replace_without_old_hotel_code_fails_before_any_call():
    catalog = _catalog()
    client = _DummyProviderClient()
    committer = SelectionCommitter(client)

    with pytest.raises(MissingReplacementTargetError):
        await committer.execute(
            "replace",
            resolve_recommendation("R1", catalog),
            "R1",
            catalog.context,
            SEARCH_CONTEXT,
            _itinerary(old_hotel_code=None),
        )

    selection = ProviderSelection(data={"x": 1}, allocation=[], recommendation_id="R1", catalog_context=catalog.context)
    with pytest.raises(MissingReplacementTargetError):
        await committer.commit("replace", selection, _itinerary())

    assert client.calls == []


@pytest.mark.asyncio
async def test_add_wraps_selection_in_new_hotel_details():
    catalog = _catalog()
    client = _DummyProviderClient()

    result = await SelectionCommitter(client).execute(
        "add", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
    )

    name, body = client.calls[1]
    assert name == "add_hotel"
    assert body["cityName"] == "Dubai"
    assert body["date"] == "2024-03-01"
    details = body["newHotelDetails"]
    assert details["success"] is True
    assert details["checkOut"] == "2024-03-04"
    assert details["message"] == "Added hotel: Palm Resort"
    assert details["data"]["itineraryCode"] == "SEL-1"
    assert result.committed
    assert result.hotel_name == "Palm Resort"
    assert [entry.rate_id for entry in result.final_allocation] == ["RT1", "RT2"]
    assert not result.partial_success


@pytest.mark.asyncio
async def test_replace_falls_back_to_catalog_context_then_placeholder(caplog):
    catalog = _catalog()
    client = _DummyProviderClient(commit_response={"success": True})
    selection = ProviderSelection(
        data={"staticContent": [{"id": "H1"}]},
        allocation=resolve_recommendation("R1", catalog),
        recommendation_id="R1",
        catalog_context=CatalogContext(hotel_id="H1", items=["catalog-item"], itinerary_code=None),
    )

    with caplog.at_level(logging.WARNING):
        result = await SelectionCommitter(client).commit("replace", selection, _itinerary(old_hotel_code="OLD-7"))

    name, body = client.calls[0]
    assert name == "replace_hotel"
    assert body["oldHotelCode"] == "OLD-7"
    details = body["newHotelDetails"]
    assert details["bookingStatus"] == "pending"
    assert details["items"] == ["catalog-item"]
    assert details["itineraryCode"] == "PENDING"
    assert details["staticContent"] == [{"id": "H1"}]
    assert result.hotel_name == "Unknown hotel"
    assert "catalog context" in caplog.text
    assert "placeholder" in caplog.text


@pytest.mark.asyncio
async def test_partial_success_is_committed_with_warning():
    catalog = _catalog()
    client = _DummyProviderClient(
        commit_response={"success": True, "partialSuccess": True, "transferUpdateFailed": True, "message": "ok"}
    )

    result = await SelectionCommitter(client).execute(
        "replace",
        resolve_recommendation("R1", catalog),
        "R1",
        catalog.context,
        SEARCH_CONTEXT,
        _itinerary(old_hotel_code="OLD-7"),
    )

    assert result.committed
    assert result.partial_success
    assert "transfers" in result.warning


@pytest.mark.asyncio
async def test_rejected_commit_raises():
    catalog = _catalog()
    client = _DummyProviderClient(commit_response={"success": False, "message": "Day not found"})

    with pytest.raises(ItineraryCommitError, match="Day not found"):
        await SelectionCommitter(client).execute(
            "add", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
        )


@pytest.mark.asyncio
async def test_unknown_commit_kind_is_rejected():
    catalog = _catalog()
    selection = ProviderSelection(data={"x": 1}, allocation=[], recommendation_id="R1", catalog_context=catalog.context)

    with pytest.raises(ValueError):
        await SelectionCommitter(_DummyProviderClient()).commit("upsert", selection, _itinerary())


@pytest.mark.asyncio
@pytest.mark.parametrize("kind, old_hotel_code", [("add", None), ("replace", "OLD-7")])
async def test_failed_selection_never_writes_the_itinerary(kind, old_hotel_code):
    catalog = _catalog()
    client = _DummyProviderClient(select_response=ProviderHttpError(503, "supplier down"))

    with pytest.raises(ProviderSelectionError) as excinfo:
        await SelectionCommitter(client).execute(
            kind,
            resolve_recommendation("R1", catalog),
            "R1",
            catalog.context,
            SEARCH_CONTEXT,
            _itinerary(old_hotel_code=old_hotel_code),
        )

    assert excinfo.value.retryable
    assert excinfo.value.status == 503
    assert [name for name, _ in client.calls] == ["select_room"]


@pytest.mark.asyncio
async def test_sold_out_rate_aborts_execute_before_commit():
    catalog = _catalog()
    client = _DummyProviderClient(select_response=ProviderHttpError(409, "rate sold out"))

    with pytest.raises(RateUnavailableError) as excinfo:
        await SelectionCommitter(client).execute(
            "add", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
        )

    assert excinfo.value.requires_reselection
    assert [name for name, _ in client.calls] == ["select_room"]


@pytest.mark.asyncio
async def test_room_change_uses_check_in_and_search_request_log_dates():
    catalog = _catalog()
    client = _DummyProviderClient(
        select_response={
            "success": True,
            "data": {
                "hotelDetails": {"name": "Palm Resort"},
                "searchRequestLog": {"checkIn": "2024-03-02", "checkOut": "2024-03-05"},
            },
        }
    )

    result = await SelectionCommitter(client).execute(
        "room", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
    )

    (select_name, select_body), (commit_name, commit_body) = client.calls
    assert select_name == "select_room"
    assert select_body["checkIn"] == "2024-03-01"
    assert "date" not in select_body
    assert select_body["traceId"] == "T-1"
    assert commit_name == "replace_room"
    assert commit_body["date"] == "2024-03-01"
    assert "oldHotelCode" not in commit_body
    details = commit_body["newHotelDetails"]
    assert (details["checkIn"], details["checkOut"]) == ("2024-03-02", "2024-03-05")
    assert details["hotelDetails"]["name"] == "Palm Resort"
    assert result.committed


@pytest.mark.asyncio
async def test_room_change_without_request_log_uses_itinerary_dates(caplog):
    catalog = _catalog()
    client = _DummyProviderClient()

    with caplog.at_level(logging.WARNING):
        await SelectionCommitter(client).execute(
            "room", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
        )

    _, body = client.calls[1]
    assert (body["newHotelDetails"]["checkIn"], body["newHotelDetails"]["checkOut"]) == ("2024-03-01", "2024-03-04")
    assert "searchRequestLog" in caplog.text


@pytest.mark.asyncio
async def test_failed_room_change_reports_the_action():
    catalog = _catalog()
    client = _DummyProviderClient(commit_response=ProviderHttpError(500, "boom"))

    with pytest.raises(ItineraryCommitError, match="change the room of hotel 'Palm Resort'"):
        await SelectionCommitter(client).execute(
            "room", resolve_recommendation("R1", catalog), "R1", catalog.context, SEARCH_CONTEXT, _itinerary()
        )
