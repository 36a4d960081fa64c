"""Selected Imaris statistics as a sorted, one-row-per-object table.

Imaris hands out statistics as one flat row per statistic, object, channel and
timepoint. :class:`StatsQuery` filters those rows and pivots them so that each
object gets a single row and each statistic/channel pair a column::

    table = (
        StatsQuery(surfaces)
        .select_statistics(["Volume", "Intensity Mean"])
        .select_channel(2)
        .execute()
    )

Indexing caveat: timepoint and channel selections are compared as plain strings
against the factor values Imaris reports, with no offset applied. Imaris labels
channels and timepoints starting at 1, so ``select_channel(2)`` selects what the
Imaris GUI calls "Ch2".
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Pattern, Union

import pandas as pd

from .connection import image_display_name, open_image_name
from .errors import InvalidFilterError
from .statistics import StatisticRecord, StatisticValues, fetch_statistics
from .table import Cell, ResultsTable

logger = logging.getLogger(__name__)

FIRST_COLUMNS = ("Label", "Name", "ID", "Timepoint", "Category")
_NUMBER_PATTERN = re.compile(
    r"(?P<sign>[+-]?)(?:(?P<word>NaN|Infinity)"
    r"|(?P<digits>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)[fFdD]?)"
)


@dataclass
class SelectionFilter:
    """Selections applied by :meth:`StatsQuery.execute`; empty means everything."""

    ids: List[int] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    channels: List[str] = field(default_factory=list)
    timepoints: List[str] = field(default_factory=list)

    def add(self, attribute: str, values: Iterable[Any]) -> None:
        target = getattr(self, attribute)
        for value in values:
            if value not in target:
                target.append(value)


class StatsQuery:
    """Filter and reshape the statistics of one Surpass item.

    Parameters
    ----------
    item:
        Imaris item (Surfaces, Spots, ...) to query, or statistics that were
        already fetched with :func:`~imaris_stats.statistics.fetch_statistics`.
    image_name:
        Path or name of the image the item belongs to; its file name fills the
        ``Label`` column.
    application:
        Imaris application asked for the open image name when ``image_name``
        is not given.
    """

    def __init__(
        self,
        item: Any,
        *,
        image_name: Optional[str] = None,
        application: Any = None,
    ) -> None:
        if isinstance(item, StatisticValues):
            self._statistics = item
        else:
            self._statistics = fetch_statistics(item)
        self.item_name = self._statistics.item_name
        self.filters = SelectionFilter()
        self._image_name = image_name
        self._application = application
        self._results = ResultsTable()

    def select_id(self, object_id: int) -> "StatsQuery":
        """Select one object ID, as shown in the Imaris GUI.

        IDs are neither necessarily contiguous nor starting at 0.
        """
        self.filters.add("ids", [int(object_id)])
        return self

    def select_ids(self, object_ids: Iterable[int]) -> "StatsQuery":
        self.filters.add("ids", [int(object_id) for object_id in object_ids])
        return self

    def select_statistic(self, name: str) -> "StatsQuery":
        """Select statistics whose name matches the regular expression ``name``.

        Use the name as it appears in Imaris without the channel or image part
        (``"Intensity Sum"``, not ``"Intensity Sum Ch=1 Img=1"``) and select
        channels with :meth:`select_channel`. The pattern is searched, so
        ``"Intensity"`` matches every intensity statistic; anchor it with
        ``^...$`` for an exact name.
        """
        self.filters.add("names", [name])
        return self

    def select_statistics(self, names: Iterable[str]) -> "StatsQuery":
        self.filters.add("names", list(names))
        return self

    def select_time(self, timepoint: int) -> "StatsQuery":
        """Select a timepoint, compared verbatim with the Imaris ``Time`` factor."""
        self.filters.add("timepoints", [str(timepoint)])
        return self

    def select_times(self, timepoints: Iterable[int]) -> "StatsQuery":
        self.filters.add("timepoints", [str(timepoint) for timepoint in timepoints])
        return self

    def select_channel(self, channel: int) -> "StatsQuery":
        """Select a channel; values ``<= 0`` mean "no channel" and are ignored."""
        if channel > 0:
            self.filters.add("channels", [str(channel)])
        return self

    def select_channels(self, channels: Iterable[int]) -> "StatsQuery":
        """Select several channels.

        Unlike :meth:`select_channel`, every value is kept, including ``0``.
        """
        self.filters.add("channels", [str(channel) for channel in channels])
        return self

    def results_table(self, table: ResultsTable) -> "StatsQuery":
        """Append rows to ``table`` instead of a fresh table.

        Columns already in ``table`` keep their position; statistic columns new
        to it are added after them in alphabetical order, so a table shared by
        several queries is only sorted within each query's additions.
        """
        self._results = table
        return self

    def append_to(self, table: Union[ResultsTable, pd.DataFrame]) -> "StatsQuery":
        """Copy the rows of a finished table ahead of this query's rows.

        Cells of columns holding only numbers are copied as numbers, cells of
        any other column as text. Unset cells stay unset.
        """
        if isinstance(table, pd.DataFrame):
            table = ResultsTable.from_dataframe(table)
        numeric = {column: table.column_is_numeric(column) for column in table.headings}
        for row in table.rows():
            self._results.increment_counter()
            for column, value in row.items():
                if value is None:
                    continue
                self._results.add_value(column, value if numeric[column] else str(value))
        return self

    def execute(self) -> ResultsTable:
        """Run the selection and return the results table.

        Rows are sorted by object ID. ``Label``, ``Name``, ``ID``, ``Timepoint``
        and ``Category`` come first, then one column per statistic (suffixed
        with ``" C<channel>"`` for channel statistics) in alphabetical order.
        Global statistics (ID ``-1``) are skipped.
        """
        label = self._resolve_image_name()
        patterns = _compile_patterns(self.filters.names)
        ids = set(self.filters.ids)
        channels = set(self.filters.channels)
        timepoints = set(self.filters.timepoints)

        stats_by_id: Dict[int, Dict[str, Cell]] = {}
        for record in self._statistics.records:
            if record.is_global:
                continue
            if not (
                _matches_name(record.name, patterns)
                and _matches_value(record.channel, channels)
                and _matches_value(record.timepoint, timepoints)
                and _matches_value(record.object_id, ids)
            ):
                continue
            columns = stats_by_id.setdefault(record.object_id, {})
            columns["Label"] = label
            columns["ID"] = record.object_id
            columns["Category"] = record.category
            columns["Timepoint"] = record.timepoint
            columns["Name"] = self.item_name
            columns[column_name(record)] = record.value

        for name in FIRST_COLUMNS:
            self._results.add_column(name)
        statistic_columns = set()
        for columns in stats_by_id.values():
            statistic_columns.update(key for key in columns if key not in FIRST_COLUMNS)
        for name in sorted(statistic_columns):
            self._results.add_column(name)

        for object_id in sorted(stats_by_id):
            columns = stats_by_id[object_id]
            row: Dict[str, Cell] = {name: columns.pop(name) for name in FIRST_COLUMNS}
            for name in sorted(columns):
                row[name] = as_cell(columns[name])
            self._results.add_row(row)

        logger.debug(
            "%s: kept %d of %d objects' statistics",
            self.item_name,
            len(stats_by_id),
            len({record.object_id for record in self._statistics.records if not record.is_global}),
        )
        return self._results

    get = execute

    def _resolve_image_name(self) -> str:
        if self._image_name is not None:
            return image_display_name(self._image_name)
        if self._application is not None:
            return open_image_name(self._application)
        return ""


def column_name(record: StatisticRecord) -> str:
    """Column heading for ``record``: its name plus ``" C<channel>"`` if any."""
    if record.channel != "":
        return f"{record.name} C{record.channel}"
    return record.name


def as_cell(value: Any) -> Cell:
    """Return ``value`` as a float when it parses as a number, else as text.

    Text counts as a number in decimal or exponent notation with an optional
    ``f``/``d`` suffix, or as one of the exact words ``NaN`` and ``Infinity``
    (signed or not). Other spellings such as ``nan`` or ``inf``, hexadecimal
    literals and underscore digit separators stay text.
    """
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value)
    match = _NUMBER_PATTERN.fullmatch(text.strip())
    if match is None:
        return text
    return float(match.group("sign") + (match.group("word") or match.group("digits")))


def _compile_patterns(names: Iterable[str]) -> List[Pattern[str]]:
    patterns: List[Pattern[str]] = []
    for name in names:
        try:
            patterns.append(re.compile(name))
        except re.error as exc:
            raise InvalidFilterError(name, str(exc)) from exc
    return patterns


def _matches_name(name: str, patterns: List[Pattern[str]]) -> bool:
    if not patterns:
        return True
    return any(pattern.search(name) for pattern in patterns)


def _matches_value(value: Any, selected: set) -> bool:
    return not selected or value in selected


__all__ = [
    "FIRST_COLUMNS",
    "SelectionFilter",
    "StatsQuery",
    "column_name",
    "as_cell",
]
