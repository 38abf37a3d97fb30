"""Initial state of the baseline banking and hotel-reservation scenarios."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from actorbench.hotel import RoomType, WeekAvailability

DAYS_PER_WEEK = 7
INITIAL_ACCOUNT_AMOUNT = 10_000
_ROOM_TYPES = (RoomType.STANDARD, RoomType.PREMIUM)


@dataclass(frozen=True)
class BaselineBankingParameters:
    accounts_count: int = 0


@dataclass(frozen=True)
class BaselineHotelReservationParameters:
    hotels_count: int = 0
    weeks_count: int = 0
    rooms_per_type_count: int = 0
    users_count: int = 0


@dataclass
class BaselineHotel:
    id: str
    weeks_availabilities: List[WeekAvailability] = field(default_factory=list)


def build_hotel(hotel_id: str, weeks_count: int, rooms_per_type_count: int) -> BaselineHotel:
    """Build a hotel whose every week has all rooms free on every day.

    Rooms are named by the room type's initial, ``ROOM`` and a number.
    """
    available_rooms = {
        day: {
            room_type: {f"{room_type.value[0]}ROOM{n}" for n in range(rooms_per_type_count)}
            for room_type in _ROOM_TYPES
        }
        for day in range(DAYS_PER_WEEK)
    }
    weeks = [WeekAvailability.create(str(week), available_rooms) for week in range(weeks_count)]
    return BaselineHotel(hotel_id, weeks)


def build_baseline_hotel_reservation_state(
    params: BaselineHotelReservationParameters,
) -> Tuple[List[BaselineHotel], List[str]]:
    """Return the hotels ``Hotel/<i>`` and the user ids ``User/<i>`` to load."""
    hotels = [
        build_hotel(f"Hotel/{i}", params.weeks_count, params.rooms_per_type_count)
        for i in range(params.hotels_count)
    ]
    user_ids = [f"User/{i}" for i in range(params.users_count)]
    return hotels, user_ids


def build_baseline_account_ids(params: BaselineBankingParameters) -> List[str]:
    """Return the ids ``Account/<i>`` of the accounts to load."""
    return [f"Account/{i}" for i in range(params.accounts_count)]