"""
Session KPI table writer.

One row per played session, columns in `MetricsCollector.kpi_names()` order
unless told otherwise. The header goes out with the first row, so a table
can be grown session by session while a long headless run is in progress.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable, Optional

from snakesim.simulation.metrics import MetricsCollector


def _parse_cell(text: str) -> Any:
    """Best-effort conversion of a CSV cell back to bool/int/float."""
    if text in ("True", "False"):
        return text == "True"
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


class CSVLogger:
    """
    Append-friendly CSV table of session KPIs.

    Attributes:
        file_path: Target CSV file (parent directories are created).
        columns: Column order; keys outside it are dropped on write.
    """

    def __init__(
        self,
        file_path: str | Path,
        columns: Optional[list[str]] = None,
    ):
        self.file_path = Path(file_path)
        self.columns = columns or MetricsCollector.kpi_names()
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _has_rows(self) -> bool:
        return self.file_path.exists() and self.file_path.stat().st_size > 0

    def _write(self, rows: Iterable[dict], mode: str, header: bool) -> None:
        with open(self.file_path, mode, newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.columns, extrasaction="ignore")
            if header:
                writer.writeheader()
            writer.writerows(rows)

    def log_row(self, kpi_dict: dict) -> None:
        """Append one session row, writing the header first on an empty file."""
        self._write([kpi_dict], "a", header=not self._has_rows())

    def log_all(self, kpi_list: list[dict]) -> None:
        """Replace the file with the given rows."""
        self._write(kpi_list, "w", header=True)

    def read_back(self, parse: bool = False) -> list[dict]:
        """
        Load every row of the table.

        Args:
            parse: Convert numeric and boolean cells back from text.

        Returns:
            List of row dicts; empty if the file does not exist.
        """
        if not self.file_path.exists():
            return []

        with open(self.file_path, "r", newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        if parse:
            rows = [{k: _parse_cell(v) for k, v in row.items()} for row in rows]
        return rows
