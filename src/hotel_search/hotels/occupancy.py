"""Convert party configurations into the provider's occupancy format."""
from __future__ import annotations

from typing import List, Optional

from hotel_search.core.errors import InvalidPartyError

from .models import Occupancy, PartyConfiguration

MAX_ADULTS_PER_ROOM = 6
MAX_CHILDREN_PER_ROOM = 4
ADULT_AGE_RANGE = (18, 120)
CHILD_AGE_RANGE = (0, 17)


def _check_age(value: Optional[int], bounds: tuple[int, int], *, label: str, room_number: int) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPartyError(f"Room {room_number}: {label} age {value!r} is not a whole number")
    low, high = bounds
    if not low <= value <= high:
        raise InvalidPartyError(
            f"Room {room_number}: {label} age {value} is outside the allowed range {low}-{high}"
        )


def to_occupancies(party: PartyConfiguration) -> List[Occupancy]:
    """Return one occupancy per room, validating party constraints."""
    if not party.rooms:
        raise InvalidPartyError("At least one room is required")

    occupancies: List[Occupancy] = []
    for index, room in enumerate(party.rooms, start=1):
        if not room.adults:
            raise InvalidPartyError(f"Room {index}: each room needs at least one adult")
        if len(room.adults) > MAX_ADULTS_PER_ROOM:
            raise InvalidPartyError(f"Room {index}: at most {MAX_ADULTS_PER_ROOM} adults are allowed")
        if len(room.children) > MAX_CHILDREN_PER_ROOM:
            raise InvalidPartyError(f"Room {index}: at most {MAX_CHILDREN_PER_ROOM} children are allowed")
        for age in room.adults:
            _check_age(age, ADULT_AGE_RANGE, label="adult", room_number=index)
        for age in room.children:
            _check_age(age, CHILD_AGE_RANGE, label="child", room_number=index)
        # Unset child ages go out as 0.
        occupancies.append(
            Occupancy(
                num_of_adults=len(room.adults),
                child_ages=[age if age is not None else 0 for age in room.children],
            )
        )
    return occupancies
