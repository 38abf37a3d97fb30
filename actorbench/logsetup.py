"""Log-file setup and CSV export into the project's log directory."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

PathLike = Union[str, Path]

_FORMAT = "%(asctime)s.%(msecs)03d %(filename)s:%(lineno)d: %(message)s"
_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def _log_dir(log_dir: Optional[PathLike]) -> Path:
    return Path(log_dir) if log_dir is not None else Path.cwd() / "log"


def set_logger(file_name: str, log_dir: Optional[PathLike] = None) -> Path:
    """Send all root logging to ``<log_dir>/<file_name>.txt`` (appending).

    The directory must already exist. Returns the path of the log file.
    """
    path = _log_dir(log_dir) / f"{file_name}.txt"
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    logging.getLogger(__name__).info("log file created")
    return path


def export_to_csv(
    name: str, records: Iterable[Sequence[str]], log_dir: Optional[PathLike] = None
) -> Path:
    """Write ``records`` to ``<log_dir>/<name>.csv``, replacing any old file."""
    path = _log_dir(log_dir) / f"{name}.csv"
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, lineterminator="\n")
        writer.writerows(records)
    return path