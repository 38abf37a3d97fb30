"""Generation of baseline requests and concurrent sending with time measurement."""

from __future__ import annotations

import logging
import queue
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from actorbench.banking import BankingService, TransactionRequest, TransactionResponse
from actorbench.hotel import (
    BookingPeriod,
    BookingRequest,
    BookingResponse,
    ReservationOverview,
    ReservationService,
    RoomType,
)

R = TypeVar("R")
S = TypeVar("S")

log = logging.getLogger(__name__)

_STOP = object()


class RequestSender(ABC, Generic[R, S]):
    """Delivers one request and returns its response."""

    @abstractmethod
    def send(self, request: R) -> S:
        ...


class MockRequestSender(RequestSender[BookingRequest, BookingResponse]):
    """Answers every booking request with an empty successful response."""

    def send(self, request: BookingRequest) -> BookingResponse:
        return BookingResponse(
            request_id=request.request_id,
            success=True,
            failure_reason="",
            reservation=ReservationOverview(),
        )


class HotelServiceSender(RequestSender[BookingRequest, BookingResponse]):
    """Sends booking requests straight to an in-process reservation service."""

    def __init__(self, hotel_service: ReservationService) -> None:
        self.hotel_service = hotel_service

    def send(self, request: BookingRequest) -> BookingResponse:
        return self.hotel_service.reserve_room(request)


class BankingServiceSender(RequestSender[TransactionRequest, TransactionResponse]):
    """Sends transaction requests straight to an in-process banking service."""

    def __init__(self, banking_service: BankingService) -> None:
        self.banking_service = banking_service

    def send(self, request: TransactionRequest) -> TransactionResponse:
        return self.banking_service.execute_transaction(request)


@dataclass(frozen=True)
class BaselineBookingRequestsParameters:
    active_hotels_count: int = 0
    active_weeks_per_hotel_count: int = 0
    active_users_count: int = 0
    requests_per_user: int = 0
    sending_period_millis: int = 0
    max_concurrent_requests: int = 0


@dataclass(frozen=True)
class BaselineBankingRequestsParameters:
    active_accounts_count: int = 0
    transactions_per_account: int = 0
    sending_period_millis: int = 0
    max_concurrent_requests: int = 0


def generate_booking_requests(
    params: BaselineBookingRequestsParameters, rng: Optional[random.Random] = None
) -> Iterator[List[BookingRequest]]:
    """Yield, for each active user in order, the list of that user's booking requests.

    Hotels and weeks are walked round-robin across all users; day, room type
    and the request-id suffix are random.
    """
    rng = rng if rng is not None else random.Random()
    hotel_seed = 0
    week_seed = 0
    for user_index in range(params.active_users_count):
        user_id = f"User/{user_index}"
        requests: List[BookingRequest] = []
        for _ in range(params.requests_per_user):
            week_seed += 1
            if week_seed >= params.active_weeks_per_hotel_count:
                week_seed = 0
                hotel_seed += 1
            if hotel_seed >= params.active_hotels_count:
                hotel_seed = 0

            hotel_id = f"Hotel/{hotel_seed}"
            week_id = str(week_seed)
            day_of_week = rng.randrange(7)
            salt = rng.randrange(100)
            room_type = RoomType.PREMIUM if salt % 2 == 0 else RoomType.STANDARD
            suffix = rng.randrange(100)
            requests.append(
                BookingRequest(
                    request_id=f"{user_id}->{hotel_id}->{week_id}->{day_of_week}#{suffix}",
                    user_id=user_id,
                    hotel_id=hotel_id,
                    room_type=room_type,
                    booking_period=BookingPeriod(week=week_id, day_of_week=day_of_week),
                )
            )
        yield requests


def build_banking_requests_for_account(
    account_index: int,
    params: BaselineBankingRequestsParameters,
    rng: Optional[random.Random] = None,
) -> List[TransactionRequest]:
    """Build the transfers from ``Account/<account_index>`` to random other accounts."""
    rng = rng if rng is not None else random.Random()
    source_id = f"Account/{account_index}"
    requests: List[TransactionRequest] = []
    for _ in range(params.transactions_per_account):
        destination = rng.randrange(params.active_accounts_count)
        if destination == account_index:
            destination = (destination + 1) % params.active_accounts_count
        amount = rng.randrange(500)
        requests.append(TransactionRequest.create(source_id, f"Account/{destination}", amount))
    return requests


def _handle_requests(
    inbox: "queue.Queue[object]",
    sender: RequestSender,
    time_logger,
    identify: Callable[[object], str],
) -> None:
    while (request := inbox.get()) is not _STOP:
        identifier = identify(request)
        try:
            time_logger.log_start_request(identifier)
        except Exception as err:
            log.warning("Could not log the start request %s: %s", identifier, err)
        try:
            sender.send(request)
        except Exception as err:
            log.warning("Failed to execute request with id %s: %s", identifier, err)
        try:
            time_logger.log_end_request(identifier)
        except Exception as err:
            log.warning("Could not log the end request %s: %s", identifier, err)


def _send_and_measure(
    batches: Iterable[List[object]],
    sending_period_millis: int,
    max_concurrent_requests: int,
    sender: RequestSender,
    time_logger,
    identify: Callable[[object], str],
) -> None:
    inbox: "queue.Queue[object]" = queue.Queue(maxsize=max_concurrent_requests)
    time_logger.start()
    try:
        workers = [
            threading.Thread(
                target=_handle_requests,
                args=(inbox, sender, time_logger, identify),
                daemon=True,
            )
            for _ in range(max_concurrent_requests)
        ]
        for worker in workers:
            worker.start()
        try:
            for batch in batches:
                for index, request in enumerate(batch):
                    if index % max_concurrent_requests == 0 and sending_period_millis != -1:
                        time.sleep(sending_period_millis / 1000)
                    inbox.put(request)
        finally:
            for _ in workers:
                inbox.put(_STOP)
            for worker in workers:
                worker.join()
    finally:
        time_logger.stop()


def _check_concurrency(max_concurrent_requests: int) -> None:
    if max_concurrent_requests <= 0:
        raise ValueError("max_concurrent_requests must be positive")


def send_and_measure_baseline_booking_requests(
    params: BaselineBookingRequestsParameters,
    sender: RequestSender[BookingRequest, BookingResponse],
    time_logger,
    rng: Optional[random.Random] = None,
) -> None:
    """Send every generated booking request, logging the start and end of each.

    ``sending_period_millis`` of -1 disables the pause between bursts.
    """
    _check_concurrency(params.max_concurrent_requests)
    _send_and_measure(
        generate_booking_requests(params, rng),
        params.sending_period_millis,
        params.max_concurrent_requests,
        sender,
        time_logger,
        lambda request: request.request_id,
    )


def send_and_measure_baseline_banking_requests(
    params: BaselineBankingRequestsParameters,
    sender: RequestSender[TransactionRequest, TransactionResponse],
    time_logger,
    rng: Optional[random.Random] = None,
) -> None:
    """Send the transfers of every active account, logging the start and end of each.

    ``sending_period_millis`` of -1 disables the pause between bursts.
    """
    _check_concurrency(params.max_concurrent_requests)
    rng = rng if rng is not None else random.Random()
    batches = (
        build_banking_requests_for_account(index, params, rng)
        for index in range(params.active_accounts_count)
    )
    _send_and_measure(
        batches,
        params.sending_period_millis,
        params.max_concurrent_requests,
        sender,
        time_logger,
        lambda request: request.transaction_id,
    )