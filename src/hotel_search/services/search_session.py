"""Paged hotel search session keyed by the provider's continuation token."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from hotel_search.core.errors import (
    NoContinuationTokenError,
    SearchCancelledError,
    SessionBusyError,
)
from hotel_search.hotels.models import HotelSummary, Occupancy, SearchContext, SearchPage
from hotel_search.hotels.normalizer import build_search_page
from hotel_search.tasks.search_payloads import SearchRequest, SortSpec, build_sort_by

logger = logging.getLogger(__name__)

DEFAULT_NATIONALITY = "IN"


class SessionState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    EXHAUSTED = "exhausted"
    ERRORED = "errored"


class RequestTicket:
    """Identity of one in-flight provider request.

    Owners compare tickets by identity; a response whose ticket is no longer
    current is discarded no matter when it arrives.
    """

    __slots__ = ("label", "task", "cancelled")

    def __init__(self, label: str) -> None:
        self.label = label
        self.task: Optional[asyncio.Future[Any]] = None
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def wait(self) -> Any:
        """Await the request, translating a retirement into :class:`SearchCancelledError`."""
        assert self.task is not None
        try:
            return await self.task
        except asyncio.CancelledError:
            if self.cancelled:
                raise SearchCancelledError(f"{self.label} was cancelled") from None
            raise


class SearchSession:
    """One logical search: page 1 via :meth:`start`, further pages via :meth:`next_page`.

    The session allows a single request in flight. The continuation token
    and the page-1 query (occupancies, filterBy, sortBy) are reused for
    every follow-up page; changing any of them requires a new ``start``.
    """

    def __init__(self, client: Any, *, nationality: Optional[str] = None) -> None:
        self._client = client
        self._nationality = nationality or DEFAULT_NATIONALITY
        self._state = SessionState.IDLE
        self._context: Optional[SearchContext] = None
        self._occupancies: List[Occupancy] = []
        self._filter_by: Optional[Dict[str, object]] = None
        self._sort_by: Dict[str, object] = {}
        self._token: Optional[str] = None
        self._next_page_number = 1
        self._pages: List[SearchPage] = []
        self._hotels: List[HotelSummary] = []
        self._ticket: Optional[RequestTicket] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def context(self) -> Optional[SearchContext]:
        return self._context

    @property
    def continuation_token(self) -> Optional[str]:
        return self._token

    @property
    def hotels(self) -> List[HotelSummary]:
        return list(self._hotels)

    @property
    def pages(self) -> List[SearchPage]:
        return list(self._pages)

    @property
    def last_page(self) -> Optional[SearchPage]:
        return self._pages[-1] if self._pages else None

    async def start(
        self,
        context: SearchContext,
        occupancies: Sequence[Occupancy],
        filter_by: Optional[Dict[str, object]] = None,
        sort_by: Optional[Dict[str, object]] = None,
    ) -> SearchPage:
        self.cancel()
        self._context = context
        self._occupancies = list(occupancies)
        self._filter_by = dict(filter_by) if filter_by else None
        self._sort_by = dict(sort_by) if sort_by else build_sort_by(SortSpec())
        self._token = None
        self._next_page_number = 1
        self._pages = []
        self._hotels = []
        logger.info(
            "Starting hotel search for %s (%s → %s)",
            context.city_name,
            context.check_in,
            context.check_out,
        )
        return await self._fetch(1)

    async def next_page(self) -> SearchPage:
        if self._ticket is not None:
            raise SessionBusyError()
        if self._state is SessionState.EXHAUSTED:
            raise NoContinuationTokenError("All result pages have already been fetched")
        if self._context is None or not self._token:
            raise NoContinuationTokenError("No continuation token held; start a search first")
        return await self._fetch(self._next_page_number)

    def cancel(self) -> bool:
        """Retire the in-flight request, if any. Returns ``True`` when one was retired."""
        ticket = self._ticket
        if ticket is None:
            return False
        self._ticket = None
        ticket.cancel()
        self._state = SessionState.IDLE
        logger.info("Cancelled in-flight %s", ticket.label)
        return True

    def _build_request(self, page: int) -> SearchRequest:
        assert self._context is not None
        return SearchRequest(
            occupancies=self._occupancies,
            page=page,
            nationality=self._context.nationality or self._nationality,
            sort_by=self._sort_by,
            filter_by=self._filter_by,
            trace_id=self._token if page > 1 else None,
        )

    async def _fetch(self, page: int) -> SearchPage:
        assert self._context is not None
        body = self._build_request(page).to_payload()
        ticket = RequestTicket(f"search page {page}")
        ticket.task = asyncio.ensure_future(self._client.search_hotels(self._context, body))
        self._ticket = ticket
        self._state = SessionState.FETCHING

        try:
            payload = await ticket.wait()
        except SearchCancelledError:
            raise
        except asyncio.CancelledError:
            if self._ticket is ticket:
                self._ticket = None
                self._state = SessionState.IDLE
            raise
        except Exception as exc:
            if self._ticket is ticket:
                self._ticket = None
                self._state = SessionState.ERRORED
            logger.warning("Search page %s failed: %s", page, exc)
            raise

        if self._ticket is not ticket:
            logger.info("Discarding late response for retired %s", ticket.label)
            raise SearchCancelledError(f"{ticket.label} was superseded")
        self._ticket = None

        result = build_search_page(payload, requested_page=page)
        if result.continuation_token:
            self._token = result.continuation_token
        elif page > 1 and self._token:
            logger.debug("Page %s carried no traceId; keeping the held token", page)

        self._pages.append(result)
        self._hotels.extend(result.hotels)
        self._next_page_number = page + 1

        if result.has_next_page:
            if not self._token:
                logger.warning("Provider reports more pages but returned no traceId")
            self._state = SessionState.READY
        else:
            self._state = SessionState.EXHAUSTED
        logger.info(
            "Search page %s: %s hotels (%s accumulated, next page: %s)",
            result.page_number,
            len(result.hotels),
            len(self._hotels),
            result.has_next_page,
        )
        return result
