"""Per-request start/end time logging, spread over several log files by hash."""

from __future__ import annotations

import logging
import queue
import threading
import time
import zlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

PathLike = Union[str, Path]

log = logging.getLogger(__name__)

_STOP = object()
_QUEUE_SIZE = 1000
_NS_PER_MS = 1_000_000


class RequestType(str, Enum):
    START = "START"
    END = "END"


@dataclass(frozen=True)
class Request:
    """A start or end event for a request; the timestamp is in Unix nanoseconds."""

    identifier: str
    request_type: RequestType
    timestamp_ns: int = field(default_factory=time.time_ns)


@dataclass(frozen=True)
class Record:
    """A finished request with its start and end times in Unix nanoseconds."""

    identifier: str
    start_ns: int
    end_ns: int


def _truncating_ms(ns: int) -> int:
    magnitude = abs(ns) // _NS_PER_MS
    return magnitude if ns >= 0 else -magnitude


def format_record(record: Record) -> str:
    """Render ``identifier,start_ms,end_ms,delta_ms`` for a record."""
    start_ms = record.start_ns // _NS_PER_MS
    end_ms = record.end_ns // _NS_PER_MS
    delta_ms = _truncating_ms(record.end_ns - record.start_ns)
    return f"{record.identifier},{start_ms},{end_ms},{delta_ms}"


def bucket_for(identifier: str, buckets: int) -> int:
    """Pick the log that handles ``identifier``: CRC-32 of the id modulo ``buckets``."""
    return zlib.crc32(identifier.encode("utf-8")) % buckets


class TimeLogger:
    """Matches start and end events and appends finished records to one file."""

    def __init__(self, directory: PathLike, log_identifier: str) -> None:
        self.path = Path(directory) / f"{log_identifier}.log"
        self._file = self.path.open("a", encoding="utf-8")
        self._pending: Dict[str, int] = {}

    def process_request(self, request: Request) -> Optional[Record]:
        """Handle one event; return the record written when an END completes a request."""
        if request.request_type == RequestType.START:
            self._pending[request.identifier] = request.timestamp_ns
            return None
        if request.request_type == RequestType.END:
            start_ns = self._pending.get(request.identifier)
            if start_ns is None:
                log.warning("Could not find the start request for '%s'", request.identifier)
                return None
            record = Record(request.identifier, start_ns, request.timestamp_ns)
            try:
                self._file.write(format_record(record) + "\n")
                self._file.flush()
            except OSError as err:
                log.warning(
                    "Could not log end timestamp for request '%s': %s", request.identifier, err
                )
                return None
            del self._pending[request.identifier]
            return record
        raise ValueError(
            f"Request type {request.request_type!r} is malformed: "
            "it needs to be either START or END"
        )

    def close(self) -> None:
        try:
            self._file.close()
        except OSError as err:
            log.warning("Could not close the file '%s': %s", self.path, err)


class RequestTimeLogger:
    """Logs request timings into ``<base>/<group>/<n>.log``, one thread per file."""

    def __init__(
        self, base_log_path: PathLike, log_group_name: str, concurrent_logs_count: int
    ) -> None:
        if concurrent_logs_count <= 0:
            raise ValueError("concurrent_logs_count must be positive")
        self.base_path = Path(base_log_path) / log_group_name
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.concurrent_logs_count = concurrent_logs_count
        self._loggers: List[TimeLogger] = [
            TimeLogger(self.base_path, str(i)) for i in range(concurrent_logs_count)
        ]
        self._queues: List["queue.Queue[object]"] = [
            queue.Queue(maxsize=_QUEUE_SIZE) for _ in range(concurrent_logs_count)
        ]
        self._threads: List[threading.Thread] = []
        self._stopped = False

    def log_start_request(self, identifier: str) -> None:
        self._dispatch(Request(identifier, RequestType.START))

    def log_end_request(self, identifier: str) -> None:
        self._dispatch(Request(identifier, RequestType.END))

    def _dispatch(self, request: Request) -> None:
        self._queues[bucket_for(request.identifier, self.concurrent_logs_count)].put(request)

    @staticmethod
    def _run(logger: TimeLogger, inbox: "queue.Queue[object]") -> None:
        while (request := inbox.get()) is not _STOP:
            logger.process_request(request)  # type: ignore[arg-type]
        logger.close()

    def start(self) -> None:
        if self._threads:
            return
        for logger, inbox in zip(self._loggers, self._queues):
            thread = threading.Thread(target=self._run, args=(logger, inbox), daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self) -> None:
        """Process every queued event, then close all log files."""
        if self._stopped:
            return
        self._stopped = True
        if self._threads:
            for inbox in self._queues:
                inbox.put(_STOP)
            for thread in self._threads:
                thread.join()
            return
        for logger, inbox in zip(self._loggers, self._queues):
            while True:
                try:
                    request = inbox.get_nowait()
                except queue.Empty:
                    break
                logger.process_request(request)  # type: ignore[arg-type]
            logger.close()

    def __enter__(self) -> "RequestTimeLogger":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()