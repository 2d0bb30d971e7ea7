"""Fetch and own the rate catalog of the currently selected hotel."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from hotel_search.core.errors import NoContinuationTokenError, SearchCancelledError
from hotel_search.hotels.models import SearchContext
from hotel_search.hotels.rate_catalog import RateCatalog

from .search_session import RequestTicket

logger = logging.getLogger(__name__)


class CatalogLoader:
    def __init__(self, client: Any) -> None:
        self._client = client
        self._current: Optional[RateCatalog] = None
        self._ticket: Optional[RequestTicket] = None

    @property
    def current(self) -> Optional[RateCatalog]:
        return self._current

    def cancel(self) -> None:
        """Retire the in-flight details fetch and the catalog held so far."""
        ticket, self._ticket = self._ticket, None
        if ticket is not None:
            ticket.cancel()
            logger.info("Cancelled in-flight %s", ticket.label)
        self._current = None

    async def load(
        self,
        search_context: SearchContext,
        hotel_id: str,
        trace_id: Optional[str],
        *,
        hotel_name: Optional[str] = None,
    ) -> RateCatalog:
        return await self._load(
            self._client.fetch_hotel_details,
            "details fetch",
            search_context,
            hotel_id,
            trace_id,
            hotel_name,
        )

    async def load_rooms(
        self,
        search_context: SearchContext,
        hotel_id: str,
        trace_id: Optional[str],
        *,
        hotel_name: Optional[str] = None,
    ) -> RateCatalog:
        """Load the room options of a hotel already in the itinerary.

        The catalog's ``trace_id`` is the one returned by the rooms call, so a
        following select-room echoes it instead of the search session's token.
        """
        return await self._load(
            self._client.fetch_hotel_rooms,
            "rooms fetch",
            search_context,
            hotel_id,
            trace_id,
            hotel_name,
        )

    async def _load(
        self,
        fetch: Callable[[SearchContext, str, str], Awaitable[Dict[str, Any]]],
        action: str,
        search_context: SearchContext,
        hotel_id: str,
        trace_id: Optional[str],
        hotel_name: Optional[str],
    ) -> RateCatalog:
        self.cancel()
        if not trace_id:
            raise NoContinuationTokenError(f"The {action} requires the traceId of the search session")

        ticket = RequestTicket(f"{action} for hotel {hotel_id}")
        ticket.task = asyncio.ensure_future(fetch(search_context, hotel_id, trace_id))
        self._ticket = ticket
        try:
            payload = await ticket.wait()
        finally:
            retired = self._ticket is not ticket
            if not retired:
                self._ticket = None

        if retired:
            logger.info("Discarding late response for retired %s", ticket.label)
            raise SearchCancelledError(f"{ticket.label} was superseded")

        catalog = RateCatalog.normalize(payload, hotel_id=hotel_id, hotel_name=hotel_name)
        if not catalog.context.trace_id:
            catalog.context.trace_id = trace_id
        self._current = catalog
        logger.info("Loaded %s room options for hotel %s", len(catalog), hotel_id)
        return catalog
