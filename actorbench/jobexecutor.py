"""A thread pool that routes job results to consumers and errors to handlers."""

from __future__ import annotations

import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

_STOP = object()


@dataclass(frozen=True)
class Result:
    """Outcome of a job; ``tag`` selects which consumers receive it."""

    data: Any = None
    tag: str = ""


class Consumer(ABC):
    """Receives results from the executor, one at a time."""

    @abstractmethod
    def consume(self, result: Result) -> None:
        ...


def _drain(source: "queue.Queue[Any]", callback: Callable[[Any], None]) -> None:
    while (item := source.get()) is not _STOP:
        callback(item)


class ParallelJobExecutor:
    """Runs submitted jobs on ``max_parallel_units`` worker threads.

    A job is a callable returning a :class:`Result`; an exception it raises is
    passed to the registered error handlers instead.
    """

    def __init__(self, max_parallel_units: int) -> None:
        self.max_parallel_units = max_parallel_units
        self._jobs: "queue.Queue[Any]" = queue.Queue(maxsize=1000)
        self._errors: "queue.Queue[Any]" = queue.Queue()
        self._routes: List[Tuple[Callable[[str], bool], "queue.Queue[Any]"]] = []
        self._workers: List[threading.Thread] = []
        self._consumer_threads: List[threading.Thread] = []
        self._error_threads: List[threading.Thread] = []

    def register_consumer(self, matcher: Callable[[str], bool], consumer: Consumer) -> None:
        """Send every result whose tag satisfies ``matcher`` to ``consumer``."""
        inbox: "queue.Queue[Any]" = queue.Queue()
        self._routes.append((matcher, inbox))
        thread = threading.Thread(target=_drain, args=(inbox, consumer.consume), daemon=True)
        thread.start()
        self._consumer_threads.append(thread)

    def register_error_handler(self, handler: Callable[[BaseException], None]) -> None:
        thread = threading.Thread(target=_drain, args=(self._errors, handler), daemon=True)
        thread.start()
        self._error_threads.append(thread)

    def start(self) -> None:
        for _ in range(self.max_parallel_units):
            worker = threading.Thread(target=self._work, daemon=True)
            worker.start()
            self._workers.append(worker)

    def _work(self) -> None:
        while (job := self._jobs.get()) is not _STOP:
            try:
                result = job()
            except Exception as err:
                self._errors.put(err)
                continue
            for matcher, inbox in self._routes:
                if matcher(result.tag):
                    inbox.put(result)

    def submit_job(self, job: Callable[[], Result]) -> None:
        self._jobs.put(job)

    def stop(self) -> None:
        """Finish all submitted jobs, then deliver all results and errors."""
        for _ in self._workers:
            self._jobs.put(_STOP)
        for worker in self._workers:
            worker.join()
        for _, inbox in self._routes:
            inbox.put(_STOP)
        for _ in self._error_threads:
            self._errors.put(_STOP)
        for thread in self._consumer_threads + self._error_threads:
            thread.join()