"""Statistic selections stored as JSON."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Union

from .query import StatsQuery

PathLike = Union[str, Path]


@dataclass
class QueryConfig:
    """Selections to apply to every :class:`~imaris_stats.query.StatsQuery`.

    ``channels`` goes through :meth:`StatsQuery.select_channels`, so a ``0``
    listed here is kept as a channel value.
    """

    ids: List[int] = field(default_factory=list)
    statistics: List[str] = field(default_factory=list)
    channels: List[int] = field(default_factory=list)
    timepoints: List[int] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "QueryConfig":
        unknown = set(data) - {"ids", "statistics", "channels", "timepoints"}
        if unknown:
            raise ValueError(f"Unknown statistics selection keys: {', '.join(sorted(unknown))}")
        return cls(
            ids=[int(value) for value in data.get("ids", [])],
            statistics=[str(value) for value in data.get("statistics", [])],
            channels=[int(value) for value in data.get("channels", [])],
            timepoints=[int(value) for value in data.get("timepoints", [])],
        )

    def apply(self, query: StatsQuery) -> StatsQuery:
        query.select_ids(self.ids)
        query.select_statistics(self.statistics)
        query.select_channels(self.channels)
        query.select_times(self.timepoints)
        return query


def read_json(path: PathLike) -> dict:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected object at top level of {config_path}")
    return data


def load_query_config(path: PathLike) -> QueryConfig:
    """Load a :class:`QueryConfig` from a JSON file such as::

        {"statistics": ["^Volume$", "Intensity Mean"], "channels": [1, 2]}
    """
    return QueryConfig.from_mapping(read_json(path))


__all__ = ["QueryConfig", "load_query_config", "read_json"]
