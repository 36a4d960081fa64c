from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from .query import StatsQuery
from .table import ResultsTable

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
QueryConfigurer = Callable[[StatsQuery], Any]


def query_items(
    items: Iterable[Any],
    *,
    configure: Optional[QueryConfigurer] = None,
    image_name: Optional[str] = None,
    application: Any = None,
    table: Optional[ResultsTable] = None,
) -> ResultsTable:
    """Run one :class:`StatsQuery` per item, collecting every row in one table.

    ``configure`` is called with each query before it runs and should apply
    the wanted selections (for instance :meth:`QueryConfig.apply`).
    """
    results = table if table is not None else ResultsTable()
    for item in items:
        query = StatsQuery(item, image_name=image_name, application=application)
        query.results_table(results)
        if configure is not None:
            configure(query)
        before = len(results)
        query.execute()
        logger.info("%s: %d rows", query.item_name, len(results) - before)
    return results


def export_statistics(
    items: Iterable[Any],
    csv_path: PathLike,
    *,
    configure: Optional[QueryConfigurer] = None,
    image_name: Optional[str] = None,
    application: Any = None,
    sep: str = ",",
) -> Path:
    """Query every item and write the combined table to ``csv_path``."""
    results = query_items(
        items,
        configure=configure,
        image_name=image_name,
        application=application,
    )
    output = results.save(csv_path, sep=sep)
    logger.info("Wrote %d rows to %s", len(results), output)
    return output


__all__ = ["query_items", "export_statistics"]
