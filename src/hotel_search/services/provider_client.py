"""Async client for the booking-provider REST backend."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from hotel_search.config.settings import Settings
from hotel_search.core.errors import ProviderHttpError, ProviderUnavailableError
from hotel_search.hotels.models import ItineraryContext, SearchContext

logger = logging.getLogger(__name__)

_BODY_PREVIEW = 512


def _segment(value: object) -> str:
    return quote(str(value), safe="")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:_BODY_PREVIEW] or response.reason_phrase


class ProviderClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the hotel and itinerary endpoints.

    Every call carries the bearer token and the ``X-Inquiry-Token`` header
    unchanged. Non-2xx answers become :class:`ProviderHttpError`; transport
    failures become :class:`ProviderUnavailableError`.
    """

    def __init__(
        self,
        *,
        base_url: str,
        auth_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ProviderClient":
        return cls(
            base_url=settings.api_base_url,
            auth_token=settings.auth_token(),
            timeout=settings.http_timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, inquiry_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._auth_token}",
            "X-Inquiry-Token": inquiry_token,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        inquiry_token: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(
                method,
                path,
                headers=self._headers(inquiry_token),
                json=json,
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.warning("Provider request %s %s failed: %s", method, path, exc)
            raise ProviderUnavailableError(str(exc) or type(exc).__name__) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("Provider answered %s %s with HTTP %s: %s", method, path, response.status_code, message)
            raise ProviderHttpError(response.status_code, message)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderHttpError(response.status_code, "response body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderHttpError(response.status_code, "response body is not a JSON object")
        return payload

    async def search_hotels(self, context: SearchContext, body: Dict[str, Any]) -> Dict[str, Any]:
        path = "/hotels/{}/{}/{}/{}".format(
            _segment(context.inquiry_token),
            _segment(context.city_name),
            context.check_in.isoformat(),
            context.check_out.isoformat(),
        )
        return await self._request("POST", path, inquiry_token=context.inquiry_token, json=body)

    async def _hotel_rates(self, context: SearchContext, hotel_id: str, trace_id: str, view: str) -> Dict[str, Any]:
        path = f"/hotels/{_segment(context.inquiry_token)}/{_segment(hotel_id)}/{view}"
        params = {
            "traceId": trace_id,
            "cityName": context.city_name,
            "checkIn": context.check_in.isoformat(),
        }
        return await self._request("GET", path, inquiry_token=context.inquiry_token, params=params)

    async def fetch_hotel_details(
        self,
        context: SearchContext,
        hotel_id: str,
        trace_id: str,
    ) -> Dict[str, Any]:
        return await self._hotel_rates(context, hotel_id, trace_id, "details")

    async def fetch_hotel_rooms(
        self,
        context: SearchContext,
        hotel_id: str,
        trace_id: str,
    ) -> Dict[str, Any]:
        """Room options of a hotel already booked in an itinerary, for a room change."""
        return await self._hotel_rates(context, hotel_id, trace_id, "rooms")

    async def select_room(
        self,
        context: SearchContext,
        hotel_id: str,
        body: Dict[str, Any],
    ) -> Dict[str, Any]:
        path = f"/hotels/{_segment(context.inquiry_token)}/{_segment(hotel_id)}/select-room"
        return await self._request("POST", path, inquiry_token=context.inquiry_token, json=body)

    async def add_hotel(self, itinerary: ItineraryContext, body: Dict[str, Any]) -> Dict[str, Any]:
        path = f"/itinerary/{_segment(itinerary.itinerary_token)}/hotel"
        return await self._request("POST", path, inquiry_token=itinerary.inquiry_token, json=body)

    async def replace_hotel(self, itinerary: ItineraryContext, body: Dict[str, Any]) -> Dict[str, Any]:
        path = f"/itinerary/{_segment(itinerary.itinerary_token)}/hotel"
        return await self._request("PUT", path, inquiry_token=itinerary.inquiry_token, json=body)

    async def replace_room(self, itinerary: ItineraryContext, body: Dict[str, Any]) -> Dict[str, Any]:
        path = f"/itinerary/{_segment(itinerary.itinerary_token)}/room"
        return await self._request("PUT", path, inquiry_token=itinerary.inquiry_token, json=body)
