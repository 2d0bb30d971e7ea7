"""Two-step commit of a resolved room allocation into a travel itinerary."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from hotel_search.core.errors import (
    ItineraryCommitError,
    MissingReplacementTargetError,
    ProviderHttpError,
    ProviderSelectionError,
    RateUnavailableError,
)
from hotel_search.hotels.models import (
    AllocationEntry,
    CatalogContext,
    CommitResult,
    ItineraryContext,
    ProviderSelection,
    SearchContext,
)

logger = logging.getLogger(__name__)

COMMIT_KINDS = ("add", "replace", "room")
_COMMIT_ACTIONS = {"add": "add hotel", "replace": "replace hotel", "room": "change the room of hotel"}
# The provider answers these when the selected rate has been sold or expired.
RATE_GONE_STATUSES = frozenset({409, 410})
PLACEHOLDER_HOTEL_NAME = "Unknown hotel"
PLACEHOLDER_ITINERARY_CODE = "PENDING"
PARTIAL_SUCCESS_WARNING = "Hotel saved, but a dependent itinerary update failed"
TRANSFER_WARNING = "linked transfers were not updated; check them manually"


def _present(value: Any) -> bool:
    return value not in (None, "", [], {})


def _reconcile(field: str, from_selection: Any, from_catalog: Any, placeholder: Any) -> Any:
    if _present(from_selection):
        return from_selection
    if _present(from_catalog):
        logger.warning("Selection response has no %s; using the value from the catalog context", field)
        return from_catalog
    logger.warning("No %s in the selection response or catalog context; using placeholder %r", field, placeholder)
    return placeholder


def _stay_dates(details: Dict[str, Any], itinerary: ItineraryContext) -> tuple[str, str]:
    log = details.get("searchRequestLog")
    log = log if isinstance(log, dict) else {}
    check_in, check_out = log.get("checkIn"), log.get("checkOut")
    if not check_in or not check_out:
        logger.warning("Selection response has no searchRequestLog dates; using the itinerary stay dates")
        check_in = check_in or itinerary.check_in.isoformat()
        check_out = check_out or itinerary.check_out.isoformat()
    return str(check_in), str(check_out)


def allocation_payload(allocation: Sequence[AllocationEntry]) -> List[Dict[str, object]]:
    return [entry.to_payload() for entry in allocation]


def _check_commit_request(kind: str, itinerary: ItineraryContext) -> None:
    if kind not in COMMIT_KINDS:
        raise ValueError(f"Commit kind must be one of {COMMIT_KINDS}, got {kind!r}")
    if kind == "replace" and not itinerary.old_hotel_code:
        raise MissingReplacementTargetError()


class SelectionCommitter:
    """Runs select-room followed by the itinerary add, replace or room-change call."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def select_room(
        self,
        allocation: Sequence[AllocationEntry],
        recommendation_id: str,
        catalog_context: CatalogContext,
        search_context: SearchContext,
        *,
        room_change: bool = False,
    ) -> ProviderSelection:
        """POST the allocation to select-room.

        A room change on a hotel already in the itinerary sends ``checkIn``
        where a new hotel sends ``date``.
        """
        if not allocation:
            raise ProviderSelectionError("Cannot select a room option with an empty allocation")
        hotel_id = catalog_context.hotel_id
        if not hotel_id:
            raise ProviderSelectionError("Cannot select a room option without the hotel id")

        body: Dict[str, Any] = {
            "roomsAndRateAllocations": allocation_payload(allocation),
            "recommendationId": recommendation_id,
            "items": catalog_context.items,
            "itineraryCode": catalog_context.itinerary_code,
            "traceId": catalog_context.trace_id,
            "inquiryToken": search_context.inquiry_token,
            "cityName": search_context.city_name,
            "checkIn" if room_change else "date": search_context.check_in.isoformat(),
        }
        body = {key: value for key, value in body.items() if value is not None}

        try:
            response = await self._client.select_room(search_context, hotel_id, body)
        except ProviderHttpError as exc:
            if exc.status in RATE_GONE_STATUSES:
                raise RateUnavailableError(exc.message, status=exc.status) from exc
            raise ProviderSelectionError(
                f"Room selection failed: {exc}", status=exc.status, retryable=exc.retryable
            ) from exc

        if response.get("success") is False:
            raise ProviderSelectionError(response.get("message") or "Provider rejected the room selection")
        data = response.get("data")
        if not isinstance(data, dict) or not data:
            raise ProviderSelectionError("Room selection response carried no selection data")

        logger.info(
            "Selected recommendation %s for hotel %s (%s rooms)",
            recommendation_id,
            hotel_id,
            len(allocation),
        )
        return ProviderSelection(
            data=data,
            allocation=list(allocation),
            recommendation_id=recommendation_id,
            catalog_context=catalog_context,
        )

    def _reconciled_details(self, selection: ProviderSelection) -> tuple[Dict[str, Any], str]:
        data = dict(selection.data)
        context = selection.catalog_context

        data["items"] = _reconcile("items", data.get("items"), context.items, [])
        data["itineraryCode"] = _reconcile(
            "itinerary code", data.get("itineraryCode"), context.itinerary_code, PLACEHOLDER_ITINERARY_CODE
        )
        hotel_details = dict(data.get("hotelDetails") or {})
        hotel_name = _reconcile("hotel name", hotel_details.get("name"), context.hotel_name, PLACEHOLDER_HOTEL_NAME)
        hotel_details["name"] = hotel_name
        data["hotelDetails"] = hotel_details
        return data, hotel_name

    async def commit(
        self,
        kind: str,
        selection: ProviderSelection,
        itinerary_context: ItineraryContext,
    ) -> CommitResult:
        _check_commit_request(kind, itinerary_context)
        details, hotel_name = self._reconciled_details(selection)
        check_in = itinerary_context.check_in.isoformat()
        check_out = itinerary_context.check_out.isoformat()

        try:
            if kind == "add":
                body = {
                    "cityName": itinerary_context.city_name,
                    "date": itinerary_context.date.isoformat(),
                    "newHotelDetails": {
                        "success": True,
                        "data": details,
                        "checkIn": check_in,
                        "checkOut": check_out,
                        "message": f"Added hotel: {hotel_name}",
                    },
                }
                response = await self._client.add_hotel(itinerary_context, body)
            elif kind == "room":
                stay_in, stay_out = _stay_dates(details, itinerary_context)
                body = {
                    "cityName": itinerary_context.city_name,
                    "date": itinerary_context.check_in.isoformat(),
                    "newHotelDetails": {**details, "checkIn": stay_in, "checkOut": stay_out},
                }
                response = await self._client.replace_room(itinerary_context, body)
            else:
                body = {
                    "cityName": itinerary_context.city_name,
                    "date": itinerary_context.date.isoformat(),
                    "oldHotelCode": itinerary_context.old_hotel_code,
                    "newHotelDetails": {
                        **details,
                        "checkIn": check_in,
                        "checkOut": check_out,
                        "bookingStatus": details.get("bookingStatus") or "pending",
                    },
                }
                response = await self._client.replace_hotel(itinerary_context, body)
        except ProviderHttpError as exc:
            raise ItineraryCommitError(f"Failed to {_COMMIT_ACTIONS[kind]} {hotel_name!r}: {exc}") from exc

        if not response.get("success"):
            message = response.get("message") or f"Failed to {_COMMIT_ACTIONS[kind]} in the itinerary"
            raise ItineraryCommitError(message)

        warning: Optional[str] = None
        partial = bool(response.get("partialSuccess"))
        if partial:
            warning = PARTIAL_SUCCESS_WARNING
            if response.get("transferUpdateFailed"):
                warning = f"{warning}: {TRANSFER_WARNING}"
            logger.warning("Hotel %s committed with partial success: %s", hotel_name, warning)

        logger.info("Committed hotel %s to itinerary %s (%s)", hotel_name, itinerary_context.itinerary_token, kind)
        return CommitResult(
            hotel_name=hotel_name,
            final_allocation=list(selection.allocation),
            committed=True,
            partial_success=partial,
            warning=warning,
            message=response.get("message"),
        )

    async def execute(
        self,
        kind: str,
        allocation: Sequence[AllocationEntry],
        recommendation_id: str,
        catalog_context: CatalogContext,
        search_context: SearchContext,
        itinerary_context: ItineraryContext,
    ) -> CommitResult:
        """Select the room option and commit it; nothing is written if selection fails."""
        _check_commit_request(kind, itinerary_context)
        selection = await self.select_room(
            allocation,
            recommendation_id,
            catalog_context,
            search_context,
            room_change=kind == "room",
        )
        return await self.commit(kind, selection, itinerary_context)
