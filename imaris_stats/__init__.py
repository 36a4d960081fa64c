"""
Utilities for pulling statistics out of a running Imaris session.

Imaris reports the statistics of a Surpass item (Surfaces, Spots, ...) as a
flat list with one entry per statistic, object, channel and timepoint. The
package reshapes that list into one row per object. The core entry points are:

* :class:`StatsQuery` – select statistics by object ID, name, channel and
  timepoint and pivot them into a :class:`ResultsTable`.
* :func:`export_statistics` – query several items and write one CSV.
* :func:`run_workflow` – run preset surface/spot detections in Imaris and
  collect the statistics of the created items.
* :class:`ImarisCalibration` – voxel geometry of an Imaris dataset or ``.ims``
  file.
"""

from .calibration import ImarisCalibration
from .config import QueryConfig, load_query_config
from .connection import find_item, get_imaris_application, open_image_name
from .errors import (
    EngineQueryError,
    ImarisStatsError,
    InvalidFilterError,
    MissingFactorError,
)
from .export import export_statistics, query_items
from .query import FIRST_COLUMNS, StatsQuery
from .statistics import (
    GLOBAL_OBJECT_ID,
    StatisticRecord,
    StatisticValues,
    fetch_statistics,
    statistic_values_from_arrays,
)
from .table import ResultsTable
from .workflow import (
    SpotDetectionPreset,
    SurfaceDetectionPreset,
    Workflow,
    load_workflow,
    nucleolus_workflow,
    run_workflow,
)

__all__ = [
    "ImarisCalibration",
    "QueryConfig",
    "load_query_config",
    "find_item",
    "get_imaris_application",
    "open_image_name",
    "ImarisStatsError",
    "EngineQueryError",
    "InvalidFilterError",
    "MissingFactorError",
    "export_statistics",
    "query_items",
    "FIRST_COLUMNS",
    "StatsQuery",
    "GLOBAL_OBJECT_ID",
    "StatisticRecord",
    "StatisticValues",
    "fetch_statistics",
    "statistic_values_from_arrays",
    "ResultsTable",
    "SpotDetectionPreset",
    "SurfaceDetectionPreset",
    "Workflow",
    "load_workflow",
    "nucleolus_workflow",
    "run_workflow",
]
