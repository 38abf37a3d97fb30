import json
from collections import Counter

import pytest

from actorbench.hotel import (
    BookingPeriod,
    BookingRequest,
    BookingResponse,
    HotelDao,
    NoRoomsAvailable,
    ReservationService,
    RoomType,
    UserDao,
    UserService,
    WeekAvailability,
)
from actorbench.retrier import ExponentialBackoffStrategy, Retrier, nop_retrier_factory


def _rooms(per_type=2, days=range(7)):
    return {
        day: {
            RoomType.STANDARD: {f"SROOM{n}" for n in range(per_type)},
            RoomType.PREMIUM: {f"PROOM{n}" for n in range(per_type)},
        }
        for day in days
    }


class FakeHotelDao(HotelDao):
    def __init__(self, weeks, fail_locks=0, fail_update=False, fail_unlock=False):
        self.stored = {key: week.to_json() for key, week in weeks.items()}
        self.locked = set()
        self.counters = Counter()
        self.unlocks = []
        self.fail_locks = fail_locks
        self.fail_update = fail_update
        self.fail_unlock = fail_unlock

    def get_and_lock_week_availability(self, hotel_id, week_id):
        if self.fail_locks:
            self.fail_locks -= 1
            raise RuntimeError("locked by another instance")
        self.locked.add((hotel_id, week_id))
        return WeekAvailability.from_json(self.stored[(hotel_id, week_id)])

    def update_week_availability(self, hotel_id, week_availability):
        if self.fail_update:
            raise RuntimeError("update failed")
        self.stored[(hotel_id, week_availability.week_id)] = week_availability.to_json()

    def unlock_week_availability(self, hotel_id, week_id):
        if self.fail_unlock:
            raise RuntimeError("unlock failed")
        self.unlocks.append((hotel_id, week_id))
        self.locked.discard((hotel_id, week_id))

    def increment_hotel_failed_reservations(self, hotel_id):
        self.counters[("failed", hotel_id)] += 1

    def increment_hotel_reservations(self, hotel_id):
        self.counters[("ok", hotel_id)] += 1


class FakeUserDao(UserDao):
    def __init__(self, fail=False):
        self.counters = Counter()
        self.fail = fail

    def increment_total_reservations(self, user_id):
        if self.fail:
            raise RuntimeError("counter failed")
        self.counters[("ok", user_id)] += 1

    def increment_total_failed_reservations(self, user_id):
        if self.fail:
            raise RuntimeError("counter failed")
        self.counters[("failed", user_id)] += 1


def _request(room_type=RoomType.STANDARD, day=0):
    return BookingRequest(
        request_id="req-1",
        user_id="User/0",
        hotel_id="Hotel/0",
        room_type=room_type,
        booking_period=BookingPeriod(week="0", day_of_week=day),
    )


def _fast_retrier():
    return Retrier(ExponentialBackoffStrategy(-1, 0.001, 0.1, 0.002), sleep=lambda _: None)


def test_create_counts_every_room():
    rooms = _rooms(per_type=3)
    week = WeekAvailability.create("0", rooms)
    expected = sum(len(ids) for by_type in rooms.values() for ids in by_type.values())
    assert week.total_rooms_available == expected


def test_create_copies_its_input():
    rooms = _rooms(per_type=1)
    week = WeekAvailability.create("0", rooms)
    rooms[0][RoomType.STANDARD].clear()
    assert week.available_rooms[0][RoomType.STANDARD] == {"SROOM0"}


def test_reserve_room_takes_one_room():
    week = WeekAvailability.create("0", _rooms(per_type=2))
    before = week.total_rooms_available
    room = week.reserve_room(RoomType.PREMIUM, 3)
    assert room in {"PROOM0", "PROOM1"}
    assert room not in week.available_rooms[3][RoomType.PREMIUM]
    assert week.total_rooms_available == before - 1
    assert len(week.available_rooms[4][RoomType.PREMIUM]) == 2


def test_reserve_room_until_empty_raises():
    week = WeekAvailability.create("0", _rooms(per_type=2))
    taken = {week.reserve_room(RoomType.PREMIUM, 1) for _ in range(2)}
    assert taken == {"PROOM0", "PROOM1"}
    with pytest.raises(NoRoomsAvailable, match="no more PREMIUM rooms"):
        week.reserve_room(RoomType.PREMIUM, 1)


def test_reserve_room_unknown_day_raises():
    week = WeekAvailability.create("0", _rooms(days=range(2)))
    with pytest.raises(KeyError):
        week.reserve_room(RoomType.STANDARD, 5)


def test_reserve_room_unknown_room_type_raises():
    week = WeekAvailability.create("0", {0: {RoomType.STANDARD: {"SROOM0"}}})
    with pytest.raises(KeyError):
        week.reserve_room(RoomType.PREMIUM, 0)


def test_json_round_trip():
    week = WeekAvailability.create("3", _rooms(per_type=2))
    week.reserve_room(RoomType.STANDARD, 2)
    assert WeekAvailability.from_json(week.to_json()) == week


def test_json_layout():
    week = WeekAvailability.create("7", {0: {RoomType.STANDARD: {"SROOM0"}}})
    data = json.loads(week.to_json())
    assert data["WeekId"] == "7"
    assert data["AvailableRooms"]["0"]["STANDARD"] == {"SROOM0": {}}
    assert data["TotalRoomsAvailable"] == week.total_rooms_available


def test_from_json_with_null_rooms():
    week = WeekAvailability.from_json('{"WeekId": "1", "AvailableRooms": null}')
    assert week.week_id == "1"
    assert week.available_rooms == {}


def test_reserve_room_service_success():
    dao = FakeHotelDao({("Hotel/0", "0"): WeekAvailability.create("0", _rooms(per_type=2))})
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    response = service.reserve_room(_request())
    assert response.success is True
    assert response.request_id == "req-1"
    assert response.reservation.room_number in {"SROOM0", "SROOM1"}
    assert response.reservation.booking_period == BookingPeriod("0", 0)
    assert dao.counters[("ok", "Hotel/0")] == 1
    stored = WeekAvailability.from_json(dao.stored[("Hotel/0", "0")])
    assert response.reservation.room_number not in stored.available_rooms[0][RoomType.STANDARD]
    assert dao.unlocks == [("Hotel/0", "0")]
    assert dao.locked == set()


def test_reserve_room_service_no_rooms():
    dao = FakeHotelDao({("Hotel/0", "0"): WeekAvailability.create("0", _rooms(per_type=0))})
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    before = dao.stored[("Hotel/0", "0")]
    response = service.reserve_room(_request())
    assert response.success is False
    assert response.failure_reason == (
        "There was no enough rooms for hotel Hotel/0 in the selected period"
    )
    assert dao.counters[("failed", "Hotel/0")] == 1
    assert dao.stored[("Hotel/0", "0")] == before
    assert dao.unlocks == [("Hotel/0", "0")]


def test_repeated_bookings_exhaust_rooms():
    dao = FakeHotelDao({("Hotel/0", "0"): WeekAvailability.create("0", _rooms(per_type=2))})
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    results = [service.reserve_room(_request()).success for _ in range(3)]
    assert results == [True, True, False]


def test_lock_failure_propagates_without_unlock():
    dao = FakeHotelDao(
        {("Hotel/0", "0"): WeekAvailability.create("0", _rooms())}, fail_locks=1
    )
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    with pytest.raises(RuntimeError, match="locked by another instance"):
        service.reserve_room(_request())
    assert dao.unlocks == []


def test_lock_failures_are_retried():
    dao = FakeHotelDao(
        {("Hotel/0", "0"): WeekAvailability.create("0", _rooms())}, fail_locks=3
    )
    service = ReservationService(dao, retrier_factory=_fast_retrier)
    response = service.reserve_room(_request())
    assert response.success is True
    assert dao.fail_locks == 0


def test_update_failure_still_succeeds():
    dao = FakeHotelDao(
        {("Hotel/0", "0"): WeekAvailability.create("0", _rooms())}, fail_update=True
    )
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    response = service.reserve_room(_request())
    assert response.success is True
    assert dao.unlocks == [("Hotel/0", "0")]


def test_unlock_failure_ends_process():
    dao = FakeHotelDao(
        {("Hotel/0", "0"): WeekAvailability.create("0", _rooms())}, fail_unlock=True
    )
    service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    with pytest.raises(SystemExit):
        service.reserve_room(_request())


def test_user_service_counts_success():
    user_dao = FakeUserDao()
    response = BookingResponse(request_id="req-1", success=True)
    result = UserService(user_dao).book(lambda request: response, _request())
    assert result == response
    assert user_dao.counters == Counter({("ok", "User/0"): 1})


def test_user_service_counts_failure():
    user_dao = FakeUserDao()
    response = BookingResponse(request_id="req-1", success=False, failure_reason="full")
    result = UserService(user_dao).book(lambda request: response, _request())
    assert result.failure_reason == "full"
    assert user_dao.counters == Counter({("failed", "User/0"): 1})


def test_user_service_booker_error_propagates():
    user_dao = FakeUserDao()

    def booker(request):
        raise ConnectionError("unreachable")

    with pytest.raises(ConnectionError):
        UserService(user_dao).book(booker, _request())
    assert user_dao.counters == Counter()


def test_user_service_counter_error_is_swallowed():
    user_dao = FakeUserDao(fail=True)
    response = BookingResponse(request_id="req-1", success=True)
    assert UserService(user_dao).book(lambda request: response, _request()) == response


def test_user_service_with_reservation_service():
    dao = FakeHotelDao({("Hotel/0", "0"): WeekAvailability.create("0", _rooms(per_type=1))})
    hotel_service = ReservationService(dao, retrier_factory=nop_retrier_factory())
    user_dao = FakeUserDao()
    users = UserService(user_dao)
    first = users.book(hotel_service.reserve_room, _request(RoomType.PREMIUM, 6))
    second = users.book(hotel_service.reserve_room, _request(RoomType.PREMIUM, 6))
    assert (first.success, second.success) == (True, False)
    assert user_dao.counters == Counter({("ok", "User/0"): 1, ("failed", "User/0"): 1})