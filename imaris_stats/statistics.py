"""Boundary between Imaris ``cStatisticValues`` responses and plain records.

Imaris returns the statistics of a Surpass item as a set of parallel arrays
(``mNames``, ``mValues``, ``mIds``) plus a factor table: ``mFactorNames`` names
each categorical dimension and ``mFactors[f][i]`` is the value of factor ``f``
for record ``i``. :func:`fetch_statistics` flattens that response into
:class:`StatisticRecord` objects and checks it is usable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from .errors import EngineQueryError, MissingFactorError

logger = logging.getLogger(__name__)

GLOBAL_OBJECT_ID = -1

CHANNEL_FACTOR = "Channel"
TIME_FACTOR = "Time"
CATEGORY_FACTOR = "Category"
REQUIRED_FACTORS = (CHANNEL_FACTOR, TIME_FACTOR, CATEGORY_FACTOR)


@dataclass(frozen=True)
class StatisticRecord:
    """One row of the flat statistics dump."""

    name: str
    value: Union[float, str]
    object_id: int
    category: str
    channel: str
    timepoint: str

    @property
    def is_global(self) -> bool:
        return self.object_id == GLOBAL_OBJECT_ID


@dataclass(frozen=True)
class StatisticValues:
    """All statistic records of a single Surpass item."""

    item_name: str
    records: Tuple[StatisticRecord, ...]
    factor_names: Tuple[str, ...] = REQUIRED_FACTORS

    def __len__(self) -> int:
        return len(self.records)


def fetch_statistics(item: Any) -> StatisticValues:
    """Ask Imaris for every statistic of ``item``.

    Parameters
    ----------
    item:
        An Imaris ``IDataItem`` proxy (Surfaces, Spots, ...), or anything with
        ``GetStatistics()`` and ``GetName()``.

    Raises
    ------
    EngineQueryError
        Imaris raised while computing the statistics, or returned arrays of
        mismatched length.
    MissingFactorError
        The response lacks one of the ``Channel``, ``Time`` or ``Category``
        factors.
    """
    try:
        raw = item.GetStatistics()
        item_name = item.GetName()
    except Exception as exc:
        raise EngineQueryError(f"Imaris could not provide statistics: {exc}") from exc

    values = statistic_values_from_arrays(
        item_name=item_name,
        names=raw.mNames,
        values=raw.mValues,
        ids=raw.mIds,
        factor_names=raw.mFactorNames,
        factors=raw.mFactors,
    )
    logger.debug("Fetched %d statistic records for %s", len(values), values.item_name)
    return values


def statistic_values_from_arrays(
    *,
    item_name: str,
    names: Sequence[str],
    values: Sequence[Union[float, str]],
    ids: Sequence[int],
    factor_names: Sequence[str],
    factors: Sequence[Sequence[str]],
) -> StatisticValues:
    """Build :class:`StatisticValues` from ``cStatisticValues``-style arrays."""
    factor_names = [str(name) for name in factor_names]
    missing = [name for name in REQUIRED_FACTORS if name not in factor_names]
    if missing:
        raise MissingFactorError(missing, factor_names)

    count = len(ids)
    if len(names) != count or len(values) != count:
        raise EngineQueryError(
            f"Statistics arrays differ in length: {len(names)} names, "
            f"{len(values)} values, {count} ids"
        )
    if len(factors) != len(factor_names):
        raise EngineQueryError(
            f"Expected {len(factor_names)} factor columns, got {len(factors)}"
        )

    channel_values = _factor_column(factors, factor_names, CHANNEL_FACTOR, count)
    time_values = _factor_column(factors, factor_names, TIME_FACTOR, count)
    category_values = _factor_column(factors, factor_names, CATEGORY_FACTOR, count)

    records: List[StatisticRecord] = []
    for index in range(count):
        records.append(
            StatisticRecord(
                name=str(names[index]),
                value=values[index],
                object_id=int(ids[index]),
                category=category_values[index],
                channel=channel_values[index],
                timepoint=time_values[index],
            )
        )
    return StatisticValues(
        item_name=str(item_name),
        records=tuple(records),
        factor_names=tuple(factor_names),
    )


def _factor_column(
    factors: Sequence[Sequence[str]],
    factor_names: Sequence[str],
    name: str,
    count: int,
) -> List[str]:
    column = factors[list(factor_names).index(name)]
    if len(column) != count:
        raise EngineQueryError(
            f"Factor {name!r} has {len(column)} values, expected {count}"
        )
    return ["" if value is None else str(value) for value in column]


__all__ = [
    "GLOBAL_OBJECT_ID",
    "CHANNEL_FACTOR",
    "TIME_FACTOR",
    "CATEGORY_FACTOR",
    "REQUIRED_FACTORS",
    "StatisticRecord",
    "StatisticValues",
    "fetch_statistics",
    "statistic_values_from_arrays",
]
