"""Event-driven coordination of search, hotel details and commit."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from hotel_search.core.errors import HotelSearchError, NoContinuationTokenError
from hotel_search.hotels.models import (
    CommitResult,
    HotelSummary,
    ItineraryContext,
    Occupancy,
    PartyConfiguration,
    SearchContext,
    SearchPage,
)
from hotel_search.hotels.occupancy import to_occupancies
from hotel_search.hotels.rate_catalog import RateCatalog
from hotel_search.hotels.resolver import resolve_recommendation
from hotel_search.tasks.search_payloads import FilterState, SortSpec, build_search_query

from .catalog_loader import CatalogLoader
from .search_session import SearchSession
from .selection import SelectionCommitter

logger = logging.getLogger(__name__)


class HotelSearchFlow:
    """Drives one search screen: context, filters, paging, hotel and room choice.

    A context change retires the current session and catalog before a new
    session is created, so at most one session owns a continuation token.
    """

    def __init__(self, client: Any, *, nationality: Optional[str] = None) -> None:
        self._client = client
        self._nationality = nationality
        self._session: Optional[SearchSession] = None
        self._loader = CatalogLoader(client)
        self._committer = SelectionCommitter(client)
        self._context: Optional[SearchContext] = None
        self._party: Optional[PartyConfiguration] = None
        self._occupancies: List[Occupancy] = []
        self.filters = FilterState()
        self.sort = SortSpec()

    @property
    def session(self) -> Optional[SearchSession]:
        return self._session

    @property
    def context(self) -> Optional[SearchContext]:
        return self._context

    @property
    def catalog(self) -> Optional[RateCatalog]:
        return self._loader.current

    async def context_changed(self, context: SearchContext, party: PartyConfiguration) -> SearchPage:
        occupancies = to_occupancies(party)
        self.cancelled()
        self._session = SearchSession(self._client, nationality=self._nationality)
        self._context = context
        self._party = party
        self._occupancies = occupancies
        logger.info("Search context changed to %s for %s adults", context.city_name, party.total_adults)
        return await self._start()

    async def filters_applied(self, filters: FilterState, sort: Optional[SortSpec] = None) -> SearchPage:
        if self._session is None:
            raise HotelSearchError("Set a search context before applying filters")
        self.filters = filters
        self.sort = sort or SortSpec()
        self._loader.cancel()
        return await self._start()

    async def page_requested(self) -> SearchPage:
        if self._session is None:
            raise NoContinuationTokenError("No search has been started")
        return await self._session.next_page()

    async def hotel_selected(self, hotel: HotelSummary) -> RateCatalog:
        if self._session is None or self._context is None:
            raise NoContinuationTokenError("No search has been started")
        return await self._loader.load(
            self._context,
            hotel.id,
            self._session.continuation_token,
            hotel_name=hotel.name,
        )

    async def room_change_requested(
        self,
        context: SearchContext,
        hotel_id: str,
        trace_id: Optional[str],
        *,
        hotel_name: Optional[str] = None,
    ) -> RateCatalog:
        """Open the room options of a hotel already booked in the itinerary.

        Confirm one with ``room_option_confirmed(..., "room", itinerary)``.
        """
        self.cancelled()
        self._context = context
        logger.info("Room change requested for hotel %s in %s", hotel_id, context.city_name)
        return await self._loader.load_rooms(context, hotel_id, trace_id, hotel_name=hotel_name)

    async def room_option_confirmed(
        self,
        recommendation_id: str,
        kind: str,
        itinerary: ItineraryContext,
    ) -> CommitResult:
        catalog = self._loader.current
        if catalog is None or self._context is None:
            raise HotelSearchError("Select a hotel before confirming a room option")
        allocation = resolve_recommendation(recommendation_id, catalog)
        return await self._committer.execute(
            kind,
            allocation,
            recommendation_id,
            catalog.context,
            self._context,
            itinerary,
        )

    def cancelled(self) -> None:
        if self._session is not None:
            self._session.cancel()
        self._loader.cancel()

    async def _start(self) -> SearchPage:
        assert self._session is not None and self._context is not None and self._party is not None
        query = build_search_query(self.filters, self.sort, self._context, self._party)
        return await self._session.start(
            self._context,
            self._occupancies,
            query.filter_by,
            query.sort_by,
        )
