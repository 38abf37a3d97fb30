"""HTTP server that records request start and end times, and its command line."""

from __future__ import annotations

import argparse
import json
import logging
import re
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import unquote, urlsplit

from actorbench.logsetup import set_logger
from actorbench.timelogger import RequestTimeLogger

PathLike = Union[str, Path]

log = logging.getLogger(__name__)

RUN_SPECIFIC_PARAMS_FILE = "run-specific-params.json"
TIME_SERVER_PARAMS_FILE = "time-server.json"
POSSIBLE_COMMANDS = ("timeServer",)
_DEFAULT_HTTP_PORT = 80


def _lookup(data: Mapping[str, Any], key: str, default: Any) -> Any:
    """Find ``key`` in a JSON object, preferring an exact match over a case-insensitive one."""
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if name.casefold() == folded:
            return value
    return default


def _read_object(path: Path) -> Mapping[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as err:
        raise ValueError(f"Cannot deserialize {path.name}: {err}") from err
    if not isinstance(data, dict):
        raise ValueError(f"Cannot deserialize {path.name}: expected a JSON object")
    return data


@dataclass(frozen=True)
class TimeLoggerServerParams:
    """Settings of the time server; ``port`` is kept as text, as in the params file."""

    port: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TimeLoggerServerParams":
        port = _lookup(data, "Port", "")
        if not isinstance(port, str):
            raise ValueError("Port must be a string")
        return cls(port=port)


@dataclass(frozen=True)
class RunSpecificParams:
    """Identifies a benchmark run and how many log files it spreads over."""

    run_id: str = ""
    concurrent_logs_count: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RunSpecificParams":
        run_id = _lookup(data, "RunId", "")
        count = _lookup(data, "ConcurrentLogsCount", 0)
        if not isinstance(run_id, str):
            raise ValueError("RunId must be a string")
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError("ConcurrentLogsCount must be an integer")
        return cls(run_id=run_id, concurrent_logs_count=count)


def load_params(params_dir: PathLike) -> Tuple[RunSpecificParams, TimeLoggerServerParams]:
    """Read the run-specific and time-server parameter files from ``params_dir``.

    Raises FileNotFoundError for a missing file and ValueError for a malformed one.
    """
    directory = Path(params_dir)
    run_params = RunSpecificParams.from_mapping(
        _read_object(directory / RUN_SPECIFIC_PARAMS_FILE)
    )
    server_params = TimeLoggerServerParams.from_mapping(
        _read_object(directory / TIME_SERVER_PARAMS_FILE)
    )
    return run_params, server_params


def parse_identifier(path: str, prefix: str) -> Optional[str]:
    """Return what follows ``/<prefix>/`` in ``path``, or None when it is absent."""
    match = re.search(re.escape(f"/{prefix}/") + r"(.*)$", path)
    return match.group(1) if match else None


def make_server(port: Union[str, int], time_logger) -> ThreadingHTTPServer:
    """Build a server that logs ``/start/<id>`` and ``/end/<id>`` with ``time_logger``.

    An empty port means the default HTTP port; port 0 picks a free one.
    """
    port_number = int(port) if str(port) != "" else _DEFAULT_HTTP_PORT
    routes = (
        ("start", time_logger.log_start_request, "start"),
        ("end", time_logger.log_end_request, "end"),
    )

    class _Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            request_path = unquote(urlsplit(self.path).path)
            for prefix, action, label in routes:
                if not request_path.startswith(f"/{prefix}/"):
                    continue
                identifier = parse_identifier(request_path, prefix)
                if identifier is None:
                    log.warning("Malformed request: %s", request_path)
                else:
                    try:
                        action(identifier)
                    except Exception as err:
                        log.warning(
                            "Could not log the %s of request %s: %s", label, identifier, err
                        )
                self._reply(200)
                return
            self._reply(404)

        def _reply(self, status: int) -> None:
            self.send_response(status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = _handle

        def log_message(self, format: str, *args: Any) -> None:
            log.debug(format, *args)

    return ThreadingHTTPServer(("", port_number), _Handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Benchmark loader: runs the request time-logging server."
    )
    parser.add_argument("commands", nargs="*", help="command words, e.g. timeServer, aws")
    parser.add_argument(
        "--params-dir", type=Path, default=None, help="directory with the JSON parameter files"
    )
    parser.add_argument("--log-dir", type=Path, default=None, help="directory for log files")
    return parser


def _run_time_server(
    server_params: TimeLoggerServerParams, run_params: RunSpecificParams, base_path: Path
) -> None:
    log.info("BASE PATH: %s", base_path)
    with RequestTimeLogger(
        base_path, run_params.run_id, run_params.concurrent_logs_count
    ) as time_logger:
        server = make_server(server_params.port, time_logger)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()
            log.info("The server has been shut down")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command named on the command line; errors end with SystemExit."""
    args = _build_parser().parse_args(argv)
    commands: List[str] = list(args.commands)
    is_local = "aws" not in commands
    params_dir = args.params_dir if args.params_dir is not None else Path.cwd() / "params"
    if args.log_dir is not None:
        log_dir = args.log_dir
    else:
        log_dir = Path.cwd() / ("log" if is_local else "time-logs")

    if is_local:
        try:
            set_logger("LoaderLog", log_dir)
        except OSError as err:
            raise SystemExit(f"Could not correctly setup the logger: {err}") from err

    try:
        run_params, server_params = load_params(params_dir)
    except (OSError, ValueError) as err:
        raise SystemExit(f"Cannot load parameters: {err}") from err

    if "timeServer" not in commands:
        raise SystemExit(
            f"No command inserted. Please use one of the following: {list(POSSIBLE_COMMANDS)}"
        )
    try:
        _run_time_server(server_params, run_params, log_dir)
    except (OSError, ValueError) as err:
        raise SystemExit(str(err)) from err
    return 0