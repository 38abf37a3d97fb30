"""Baseline hotel reservation: week availabilities, bookings and their services."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Mapping, Set

from actorbench.retrier import Retrier, default_retrier

log = logging.getLogger(__name__)


class RoomType(str, Enum):
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"


Rooms = Dict[int, Dict[RoomType, Set[str]]]


@dataclass(frozen=True)
class BookingPeriod:
    week: str = ""
    day_of_week: int = 0


@dataclass(frozen=True)
class BookingRequest:
    request_id: str
    user_id: str
    hotel_id: str
    room_type: RoomType
    booking_period: BookingPeriod = field(default_factory=BookingPeriod)


@dataclass(frozen=True)
class ReservationOverview:
    id: str = ""
    user_id: str = ""
    hotel_id: str = ""
    room_number: str = ""
    booking_period: BookingPeriod = field(default_factory=BookingPeriod)


@dataclass(frozen=True)
class BookingResponse:
    request_id: str
    success: bool
    failure_reason: str = ""
    reservation: ReservationOverview = field(default_factory=ReservationOverview)


@dataclass
class Hotel:
    id: str
    total_reservations_count: int = 0
    failed_reservations_count: int = 0


class NoRoomsAvailable(Exception):
    """Raised when no room of the requested type is left for a day."""


@dataclass
class WeekAvailability:
    """Free rooms of one week, by day of week and room type."""

    week_id: str
    available_rooms: Rooms = field(default_factory=dict)
    total_rooms_available: int = 0

    @classmethod
    def create(
        cls, week_id: str, available_rooms: Mapping[int, Mapping[RoomType, Iterable[str]]]
    ) -> "WeekAvailability":
        """Build an availability from a copy of ``available_rooms``, counting its rooms."""
        rooms: Rooms = {
            day: {RoomType(room_type): set(ids) for room_type, ids in by_type.items()}
            for day, by_type in available_rooms.items()
        }
        total = sum(len(ids) for by_type in rooms.values() for ids in by_type.values())
        return cls(week_id, rooms, total)

    def reserve_room(self, room_type: RoomType, day_of_week: int) -> str:
        """Take one free room of ``room_type`` on ``day_of_week`` and return its id.

        Raises KeyError when the day or room type is unknown and
        NoRoomsAvailable when every such room is taken.
        """
        try:
            rooms_for_day = self.available_rooms[day_of_week]
        except KeyError:
            raise KeyError(
                f"Week availability malformed: cannot find the day {day_of_week}"
            ) from None
        room_type = RoomType(room_type)
        try:
            rooms = rooms_for_day[room_type]
        except KeyError:
            raise KeyError(
                f"Week availability malformed: cannot find the room type {room_type.value}"
            ) from None
        if not rooms:
            raise NoRoomsAvailable(f"no more {room_type.value} rooms")
        room_id = min(rooms)
        rooms.remove(room_id)
        self.total_rooms_available -= 1
        return room_id

    def to_json(self) -> str:
        """Serialize with room sets written as objects of empty objects."""
        payload = {
            "WeekId": self.week_id,
            "AvailableRooms": {
                str(day): {
                    room_type.value: {room_id: {} for room_id in sorted(ids)}
                    for room_type, ids in by_type.items()
                }
                for day, by_type in sorted(self.available_rooms.items())
            },
            "TotalRoomsAvailable": self.total_rooms_available,
        }
        return json.dumps(payload)

    @classmethod
    def from_json(cls, text: str) -> "WeekAvailability":
        data = json.loads(text)
        rooms: Rooms = {
            int(day): {
                RoomType(room_type): set(ids or {})
                for room_type, ids in (by_type or {}).items()
            }
            for day, by_type in (data.get("AvailableRooms") or {}).items()
        }
        return cls(data.get("WeekId", ""), rooms, int(data.get("TotalRoomsAvailable", 0)))


class HotelDao(ABC):
    """Storage of hotels and their lockable week availabilities."""

    @abstractmethod
    def get_and_lock_week_availability(self, hotel_id: str, week_id: str) -> WeekAvailability:
        ...

    @abstractmethod
    def update_week_availability(
        self, hotel_id: str, week_availability: WeekAvailability
    ) -> None:
        ...

    @abstractmethod
    def unlock_week_availability(self, hotel_id: str, week_id: str) -> None:
        ...

    @abstractmethod
    def increment_hotel_failed_reservations(self, hotel_id: str) -> None:
        ...

    @abstractmethod
    def increment_hotel_reservations(self, hotel_id: str) -> None:
        ...


class UserDao(ABC):
    """Storage of per-user reservation counters."""

    @abstractmethod
    def increment_total_reservations(self, user_id: str) -> None:
        ...

    @abstractmethod
    def increment_total_failed_reservations(self, user_id: str) -> None:
        ...


def _try(action: Callable[[], None], message: str, *args: object) -> None:
    try:
        action()
    except Exception as err:
        log.warning(message + ": %s", *args, err)


class ReservationService:
    """Books rooms while holding the lock on the week availability."""

    def __init__(
        self,
        hotel_dao: HotelDao,
        retrier_factory: Callable[[], Retrier] = default_retrier,
    ) -> None:
        self.hotel_dao = hotel_dao
        self._retrier_factory = retrier_factory

    def reserve_room(self, booking_request: BookingRequest) -> BookingResponse:
        """Reserve a room; a full day is answered with ``success=False``.

        Errors while locking propagate once the retrier gives up; failing to
        release the lock ends the process.
        """
        request = booking_request
        week = self._retrier_factory().do_with_return(
            lambda: self.hotel_dao.get_and_lock_week_availability(
                request.hotel_id, request.booking_period.week
            )
        )
        try:
            return self._book(request, week)
        finally:
            self._unlock(request)

    def _unlock(self, request: BookingRequest) -> None:
        week_id = request.booking_period.week
        try:
            self._retrier_factory().do_with_return(
                lambda: self.hotel_dao.unlock_week_availability(request.hotel_id, week_id)
            )
        except Exception as err:
            message = (
                f"Could not unlock week availability {week_id} "
                f"for hotel {request.hotel_id}: {err}"
            )
            log.critical(message)
            raise SystemExit(message) from err

    def _book(self, request: BookingRequest, week: WeekAvailability) -> BookingResponse:
        hotel_id = request.hotel_id
        try:
            room_id = week.reserve_room(request.room_type, request.booking_period.day_of_week)
        except NoRoomsAvailable:
            _try(
                lambda: self.hotel_dao.increment_hotel_failed_reservations(hotel_id),
                "Failed to increment reservation count for hotel %s",
                hotel_id,
            )
            return BookingResponse(
                request_id=request.request_id,
                success=False,
                failure_reason=(
                    f"There was no enough rooms for hotel {hotel_id} in the selected period"
                ),
            )

        _try(
            lambda: self.hotel_dao.increment_hotel_reservations(hotel_id),
            "Failed to increment reservation count for hotel %s",
            hotel_id,
        )
        overview = ReservationOverview(
            id=request.request_id,
            user_id=request.user_id,
            hotel_id=hotel_id,
            room_number=room_id,
            booking_period=request.booking_period,
        )
        _try(
            lambda: self.hotel_dao.update_week_availability(hotel_id, week),
            "Failed to update week availability %s for hotel %s",
            week.week_id,
            hotel_id,
        )
        return BookingResponse(request_id=request.request_id, success=True, reservation=overview)


class UserService:
    """Books through a hotel booker and keeps the user's counters."""

    def __init__(self, user_dao: UserDao) -> None:
        self.user_dao = user_dao

    def book(
        self,
        hotel_booker: Callable[[BookingRequest], BookingResponse],
        booking_request: BookingRequest,
    ) -> BookingResponse:
        """Forward the request to ``hotel_booker`` and count the outcome for the user."""
        response = hotel_booker(booking_request)
        user_id = booking_request.user_id
        if response.success:
            _try(
                lambda: self.user_dao.increment_total_reservations(user_id),
                "Failed to increment reservation count for user %s",
                user_id,
            )
        else:
            _try(
                lambda: self.user_dao.increment_total_failed_reservations(user_id),
                "Failed to increment failed reservation count for user %s",
                user_id,
            )
        return response