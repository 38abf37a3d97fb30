"""Retrying of actions with pluggable back-off strategies."""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """What to do after a failure: wait ``time_to_wait`` seconds or give up."""

    time_to_wait: float = 0.0
    return_error: bool = False


class HandlingStrategy(ABC):
    """Decides how a retrier reacts to failures and successes."""

    @abstractmethod
    def handle_error(self, err: BaseException) -> Decision:
        ...

    @abstractmethod
    def handle_success(self) -> None:
        ...

    @abstractmethod
    def is_pre_request_delay_needed(self) -> bool:
        ...

    @abstractmethod
    def compute_pre_request_delay(self) -> float:
        ...


class ExponentialBackoffStrategy(HandlingStrategy):
    """Doubling delays with jitter, capped at ``max_delay``. Not thread safe.

    Delays are in seconds. ``maximum_retries`` of -1 means retry forever.
    """

    def __init__(
        self,
        maximum_retries: int,
        initial_delay: float,
        jitter_percentage: float,
        max_delay: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.maximum_retries = maximum_retries
        self.initial_delay = initial_delay
        self.jitter_percentage = jitter_percentage
        self.max_delay = max_delay
        self._rng = rng if rng is not None else random.Random()
        self._current_retry_number = 0
        self._next_delay = initial_delay
        self._recovered_from_failures = True

    def handle_error(self, err: BaseException) -> Decision:
        self._recovered_from_failures = False
        if self.maximum_retries != -1 and self._current_retry_number > self.maximum_retries:
            return Decision(return_error=True)
        current_delay = self._next_delay
        next_base_delay = self._next_delay * 2
        if next_base_delay > self.max_delay:
            next_base_delay = self.max_delay
        else:
            self._current_retry_number += 1
        self._next_delay = self._with_jitter(next_base_delay)
        return Decision(time_to_wait=current_delay)

    def handle_success(self) -> None:
        self._next_delay /= 2
        self._current_retry_number = 0
        if self._next_delay <= self.initial_delay:
            self._next_delay = self.initial_delay
            self._recovered_from_failures = True

    def _with_jitter(self, duration: float) -> float:
        max_jitter_ms = int(int(duration * 1000) * self.jitter_percentage)
        if max_jitter_ms <= 0:
            return duration
        jitter_ms = self._rng.randrange(max_jitter_ms) - max_jitter_ms // 2
        return duration + jitter_ms / 1000

    def compute_pre_request_delay(self) -> float:
        return self._next_delay

    def is_pre_request_delay_needed(self) -> bool:
        return not self._recovered_from_failures


class NopRetryStrategy(HandlingStrategy):
    """Never retries."""

    def handle_error(self, err: BaseException) -> Decision:
        return Decision(return_error=True)

    def handle_success(self) -> None:
        pass

    def is_pre_request_delay_needed(self) -> bool:
        return False

    def compute_pre_request_delay(self) -> float:
        return 0.0


class Retrier(Generic[T]):
    """Runs an action, retrying on exceptions as the strategy decides."""

    def __init__(
        self, strategy: HandlingStrategy, sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.strategy = strategy
        self._sleep = sleep

    def do_with_return(self, action: Callable[[], T]) -> T:
        """Return the action's result; re-raise its exception once the strategy gives up."""
        if self.strategy.is_pre_request_delay_needed():
            wait = self.strategy.compute_pre_request_delay()
            log.info("Recovering from errors. Waiting %.3fs", wait)
            self._sleep(wait)
        while True:
            try:
                result = action()
            except Exception as err:
                decision = self.strategy.handle_error(err)
                if decision.return_error:
                    raise
                log.info(
                    "Retrying due to error: %s. Time to wait: %.3fs", err, decision.time_to_wait
                )
                self._sleep(decision.time_to_wait)
                continue
            self.strategy.handle_success()
            return result


def default_retrier() -> Retrier:
    """Unlimited retries starting at 50 ms, 10% jitter, capped at 2 s."""
    return Retrier(ExponentialBackoffStrategy(-1, 0.05, 0.1, 2.0))


def exponential_retrier_factory(
    maximum_retries: int, initial_delay: float, jitter_percentage: float, max_delay: float
) -> Callable[[], Retrier]:
    """Return a callable that builds fresh exponential-back-off retriers."""

    def build() -> Retrier:
        return Retrier(
            ExponentialBackoffStrategy(maximum_retries, initial_delay, jitter_percentage, max_delay)
        )

    return build


def nop_retrier_factory() -> Callable[[], Retrier]:
    """Return a callable that builds retriers which never retry."""

    def build() -> Retrier:
        return Retrier(NopRetryStrategy())

    return build