"""Provider client and the async search, details and commit services."""

from .catalog_loader import CatalogLoader
from .provider_client import ProviderClient
from .search_flow import HotelSearchFlow
from .search_session import SearchSession, SessionState
from .selection import SelectionCommitter

__all__ = [
    "CatalogLoader",
    "HotelSearchFlow",
    "ProviderClient",
    "SearchSession",
    "SelectionCommitter",
    "SessionState",
]
