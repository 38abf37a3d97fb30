# actorbench

Tools for driving and measuring request-processing benchmarks against
lock-based baseline services (banking transfers and hotel reservations).
The package generates requests, sends them concurrently, times each one,
and exports the results.

## Modules

- `actorbench.containers`: a FIFO `Queue` that can also push to its front, an
  insertion-ordered `MapSet`, a frozen `Pair`, and `find_min`. `find_min`
  returns the `(key, value)` with the smallest value, or `None` for an empty
  mapping.
- `actorbench.retrier`: a `Retrier` whose `do_with_return(action)` runs the
  action and retries on exceptions as its strategy decides. It re-raises the
  exception once the strategy gives up. Two strategies are included.
  `ExponentialBackoffStrategy` doubles the delay with jitter, up to a cap
  (delays in seconds, `maximum_retries=-1` means no limit).
  `NopRetryStrategy` never retries. `default_retrier()` starts at 50 ms, adds
  10% jitter, caps at 2 s and retries without limit.
  `exponential_retrier_factory(...)` and `nop_retrier_factory()` return
  callables that build fresh retriers.
- `actorbench.jobexecutor`: `ParallelJobExecutor`, a fixed pool of worker
  threads. A job returns a `Result`, and the result goes to every `Consumer`
  whose tag matcher accepts its `tag`. An exception raised by a job goes to
  the registered error handlers instead. `stop()` waits for all jobs, results
  and errors to be handled.
- `actorbench.logsetup`: `set_logger(file_name, log_dir)` sends root logging to
  `<log_dir>/<file_name>.txt`, and the directory must exist.
  `export_to_csv(name, records, log_dir)` writes `<log_dir>/<name>.csv`.
  `log_dir` defaults to `./log`.
- `actorbench.timelogger`: `RequestTimeLogger(base, group, n)` records the
  start and end of each request. It spreads requests over `n` files,
  `<base>/<group>/<i>.log`, by CRC-32 of the identifier (`bucket_for`). Each
  file has its own thread. Every finished request is written as
  `id,start_ms,end_ms,delta_ms` (`format_record`). An end event without a
  start is logged as a warning and skipped. The class is a context manager:
  it starts on entry and drains and closes its files on exit.
- `actorbench.exporters`: `CsvExporter` and `LogExporter` for metric tables
  whose first row is the header. `LogExporter.format_rows` gives the lines it
  logs, in the form `table: <name>, row: <n>, {col: value, ...}`.
- `actorbench.banking`: `TransactionRequest` (`create` builds the id
  `TX<src>-><dst>:<amount>`), `TransactionResponse`, `Account`, the `AccountDao`
  interface, and `BankingService`.
  `BankingService.execute_transaction` locks both accounts and refuses a
  transfer that would leave the source negative (`success=False`). It unlocks
  both accounts afterwards.
- `actorbench.hotel`: `RoomType`, the booking dataclasses, and
  `WeekAvailability`. `WeekAvailability.reserve_room` takes the lowest free
  room id of the requested type and raises `NoRoomsAvailable` when none is
  left. `to_json`/`from_json` convert it to and from JSON. The module also
  has the `HotelDao` and `UserDao` interfaces, `ReservationService` and
  `UserService`. `UserService.book(hotel_booker, request)` forwards the request
  to a callable and updates the user's counters.
- `actorbench.baselinestate`: `build_hotel`,
  `build_baseline_hotel_reservation_state` and `build_baseline_account_ids`
  build the initial hotels (`Hotel/<i>`), users (`User/<i>`) and accounts
  (`Account/<i>`). Rooms are named `SROOM<n>` and `PROOM<n>`.
- `actorbench.requestsender`: `generate_booking_requests` and
  `build_banking_requests_for_account` generate requests. Both accept an
  optional `random.Random`. `send_and_measure_baseline_booking_requests` and
  `send_and_measure_baseline_banking_requests` send the requests through a
  `RequestSender` on `max_concurrent_requests` threads and log the start and
  end of each with a time logger. `sending_period_millis=-1` disables the
  pause between bursts. The available senders are `MockRequestSender`,
  `HotelServiceSender` and `BankingServiceSender`.
- `actorbench.timeserver`: the time-logging HTTP server and its command.

## Example

```python
from actorbench.retrier import default_retrier

value = default_retrier().do_with_return(lambda: 42)
```

```python
from actorbench.timelogger import RequestTimeLogger

with RequestTimeLogger("logs", "run-1", 4) as time_logger:
    time_logger.log_start_request("req-1")
    time_logger.log_end_request("req-1")
```

## Time server

```
actorbench-timeserver timeServer
```

The `timeServer` command word is required. Without it the command exits
with a list of the possible commands. The server answers any request to
`/start/<id>` or `/end/<id>` with status 200 and records it with a
`RequestTimeLogger`. Other paths get 404. It stops on Ctrl-C.

Options:

- `--params-dir DIR`: directory of the parameter files. The default is
  `./params`.
- `--log-dir DIR`: where logs go. The default is `./log`. If the command words
  include `aws`, the default is `./time-logs` instead.

Without `aws`, the command also sends logging to `<log-dir>/LoaderLog.txt`,
so that directory must exist. The timing files go to
`<log-dir>/<RunId>/<i>.log`.

Parameter files:

- `run-specific-params.json`: `RunId` (string) and `ConcurrentLogsCount`
  (a positive integer).
- `time-server.json`: `Port` (a string; empty means port 80).

## What the package does not do

The package has no storage backend. `AccountDao`, `HotelDao` and `UserDao`
are interfaces that you implement. The package does not load the generated
state into a database. It does not invoke remote functions, and it does not
gather results from stored responses. The only command it provides runs the
time server.

## Tests

```
pip install -e .[test]
pytest
```