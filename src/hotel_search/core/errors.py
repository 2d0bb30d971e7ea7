"""Error taxonomy for the hotel rate search engine."""
from __future__ import annotations

from typing import Optional


class HotelSearchError(RuntimeError):
    """Base class for every error surfaced by the search engine."""


class InvalidPartyError(HotelSearchError, ValueError):
    """Raised when a party configuration violates room or age constraints."""


class NoContinuationTokenError(HotelSearchError):
    """Raised when a follow-up page is requested without a usable traceId."""


class SessionBusyError(HotelSearchError):
    """Raised when a session already has a request in flight."""

    def __init__(self, message: str = "A search request is already in progress") -> None:
        super().__init__(message)


class SearchCancelledError(HotelSearchError):
    """Raised to the caller whose request was cancelled or superseded."""


class UnknownRecommendationError(HotelSearchError, LookupError):
    """Raised when a recommendation id is not present in the catalog."""

    def __init__(self, recommendation_id: str) -> None:
        super().__init__(f"Recommendation {recommendation_id!r} is not available for this hotel")
        self.recommendation_id = recommendation_id


class IncompleteRateDataError(HotelSearchError):
    """Raised when a rate cannot be turned into a complete room allocation."""

    def __init__(self, rate_id: Optional[str], reason: str) -> None:
        super().__init__(f"Rate {rate_id!r} is incomplete: {reason}")
        self.rate_id = rate_id
        self.reason = reason


class ProviderHttpError(HotelSearchError):
    """Raised when the booking provider answers with a non-2xx status."""

    def __init__(self, status: Optional[int], message: str) -> None:
        label = f"HTTP {status}" if status is not None else "no response"
        super().__init__(f"Booking provider request failed ({label}): {message}")
        self.status = status
        self.message = message

    @property
    def retryable(self) -> bool:
        if self.status is None:
            return True
        return self.status == 429 or self.status >= 500


class ProviderUnavailableError(ProviderHttpError):
    """Raised when the booking provider cannot be reached at all."""

    def __init__(self, message: str) -> None:
        super().__init__(None, f"provider unreachable, please retry ({message})")


class ProviderSelectionError(HotelSearchError):
    """Raised when the provider's select-room step fails."""

    requires_reselection = False

    def __init__(self, message: str, *, status: Optional[int] = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class RateUnavailableError(ProviderSelectionError):
    """Raised when the selected rate is no longer offered by the provider."""

    requires_reselection = True

    def __init__(self, message: str = "", *, status: Optional[int] = None) -> None:
        text = "Selected rate is no longer available; choose another room option"
        if message:
            text = f"{text} ({message})"
        super().__init__(text, status=status, retryable=False)


class MissingReplacementTargetError(HotelSearchError):
    """Raised when a hotel replacement is requested without the old hotel code."""

    def __init__(self) -> None:
        super().__init__("Replacing a hotel requires the code of the hotel being replaced")


class ItineraryCommitError(HotelSearchError):
    """Raised when the itinerary rejects an add or replace request."""
