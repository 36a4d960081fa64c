from __future__ import annotations

import numbers
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

PathLike = Union[str, Path]
Cell = Union[int, float, str]


class ResultsTable:
    """Append-only table of rows with named, mixed-type columns.

    Columns are created the first time a value is written to them and keep
    that order. Cells that were never written read back as ``None`` (and as
    ``NaN`` once converted with :meth:`to_dataframe`).
    """

    def __init__(self, headings: Optional[Iterable[str]] = None) -> None:
        self._headings: List[str] = []
        self._rows: List[Dict[str, Cell]] = []
        for heading in headings or ():
            self.add_column(heading)

    @property
    def headings(self) -> Tuple[str, ...]:
        return tuple(self._headings)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"ResultsTable(rows={len(self)}, columns={len(self._headings)})"

    def add_column(self, column: str) -> None:
        """Register ``column`` (no-op when it exists) without touching any row."""
        if column not in self._headings:
            self._headings.append(column)

    def increment_counter(self) -> int:
        """Start a new empty row and return its index."""
        self._rows.append({})
        return len(self._rows) - 1

    def add_value(self, column: str, value: Cell) -> None:
        """Set ``column`` of the last row to ``value``."""
        if not self._rows:
            raise ValueError("Call increment_counter() before adding values")
        self.add_column(column)
        self._rows[-1][column] = value

    def add_row(self, values: Mapping[str, Cell]) -> int:
        index = self.increment_counter()
        for column, value in values.items():
            self.add_value(column, value)
        return index

    def get_value(self, column: str, row: int) -> Optional[Cell]:
        if column not in self._headings:
            raise KeyError(column)
        return self._rows[row].get(column)

    def column_is_numeric(self, column: str) -> bool:
        """True when every populated cell of ``column`` holds a number."""
        if column not in self._headings:
            raise KeyError(column)
        return all(
            _is_number(row[column]) for row in self._rows if column in row
        )

    def rows(self) -> List[Dict[str, Optional[Cell]]]:
        return [
            {heading: row.get(heading) for heading in self._headings}
            for row in self._rows
        ]

    def to_dataframe(self) -> pd.DataFrame:
        records = [
            {heading: row.get(heading, np.nan) for heading in self._headings}
            for row in self._rows
        ]
        return pd.DataFrame.from_records(records, columns=list(self._headings))

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame) -> "ResultsTable":
        """Build a table from ``frame``; ``NaN`` cells are left unset."""
        table = cls(str(column) for column in frame.columns)
        for record in frame.to_dict(orient="records"):
            table.increment_counter()
            for column, value in record.items():
                if _is_missing(value):
                    continue
                if isinstance(value, np.generic):
                    value = value.item()
                table.add_value(str(column), value if _is_number(value) else str(value))
        return table

    def save(self, path: PathLike, *, sep: str = ",") -> Path:
        """Write the table to a delimited text file and return its path."""
        csv_path = Path(path)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(csv_path, sep=sep, index=False)
        return csv_path


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


__all__ = ["Cell", "ResultsTable"]
