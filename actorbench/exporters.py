"""Exporters for tables of benchmark metrics."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Union

from actorbench.logsetup import export_to_csv

PathLike = Union[str, Path]


class MetricsExporter(ABC):
    """Exports a table whose first row is the header."""

    @abstractmethod
    def export(self, records: Sequence[Sequence[str]]) -> None:
        ...


class CsvExporter(MetricsExporter):
    """Writes the table to ``<log_dir>/<name>.csv``."""

    def __init__(self, name: str, log_dir: Optional[PathLike] = None) -> None:
        self.name = name
        self.log_dir = log_dir

    def export(self, records: Sequence[Sequence[str]]) -> None:
        export_to_csv(self.name, records, self.log_dir)


class LogExporter(MetricsExporter):
    """Logs each data row, labelled with the header's column names."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None) -> None:
        self.name = name
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    def format_rows(self, records: Sequence[Sequence[str]]) -> List[str]:
        """Return one log line per data row; the header row is not logged."""
        if not records:
            return []
        header, *rows = records
        return [
            f"table: {self.name}, row: {number}, {{"
            + ", ".join(f"{column}: {value}" for column, value in zip(header, row))
            + "}"
            for number, row in enumerate(rows, start=1)
        ]

    def export(self, records: Sequence[Sequence[str]]) -> None:
        for line in self.format_rows(records):
            self._logger.info(line)