"""Resolve a recommendation into the allocation the select-room step needs."""
from __future__ import annotations

import logging
from typing import List

from hotel_search.core.errors import IncompleteRateDataError

from .models import AllocationEntry
from .rate_catalog import RateCatalog

logger = logging.getLogger(__name__)


def resolve_recommendation(recommendation_id: str, catalog: RateCatalog) -> List[AllocationEntry]:
    """Return one allocation entry per rate, in the recommendation's rate order.

    Only the first occupancy of each rate is used. Any gap in the rate data
    aborts the whole resolution; a partial allocation is never returned.
    """
    recommendation = catalog.get_recommendation(recommendation_id)

    allocation: List[AllocationEntry] = []
    for rate_id in recommendation.rate_ids:
        rate = catalog.rates.get(rate_id)
        if rate is None:
            raise IncompleteRateDataError(rate_id, "rate is missing from the catalog")
        if not rate.id:
            raise IncompleteRateDataError(rate_id, "rate has no id")
        if not rate.occupancies:
            raise IncompleteRateDataError(rate.id, "rate has no occupancy")
        occupancy = rate.occupancies[0]
        if occupancy.room_id is None:
            raise IncompleteRateDataError(rate.id, "occupancy has no room id")
        if occupancy.num_of_adults is None:
            raise IncompleteRateDataError(rate.id, "occupancy has no adult count")

        child_ages = list(occupancy.child_ages) if occupancy.num_of_children > 0 else None
        allocation.append(
            AllocationEntry(
                rate_id=rate.id,
                room_id=occupancy.room_id,
                adults=occupancy.num_of_adults,
                child_ages=child_ages,
            )
        )

    logger.debug("Resolved recommendation %s into %s allocation entries", recommendation_id, len(allocation))
    return allocation
