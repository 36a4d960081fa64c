"""Scripted surface/spot detection workflows run inside Imaris.

Detection, thresholding and filtering are performed by Imaris; the presets here
only carry the parameters handed to ``IImageProcessing``. A workflow JSON file
looks like::

    {
        "surfaces": [
            {"name": "Nuclei", "channel": 0, "smoothing_width": 0.5,
             "surface_filter": "\\"Volume\\" above 8 um^3", "color_rgb": [0, 0, 255]}
        ],
        "spots": [
            {"name": "Foci", "channel": 1, "diameter_xy": 0.6}
        ],
        "statistics": {"statistics": ["Volume", "Intensity Mean"]}
    }

Channel indices in presets are 0-based, as Imaris expects them in
``DetectSurfaces``/``DetectSpots2``; the Imaris GUI labels the same channel
``index + 1``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .config import QueryConfig, read_json
from .connection import add_to_scene
from .errors import EngineQueryError
from .export import query_items
from .table import ResultsTable

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
RGB = Tuple[int, int, int]


@dataclass
class SurfaceDetectionPreset:
    """Parameters for ``IImageProcessing.DetectSurfaces``.

    ``lower_threshold`` of ``None`` lets Imaris pick the threshold
    automatically.
    """

    name: str
    channel: int
    smoothing_width: float = 0.0
    local_contrast_width: float = 0.0
    lower_threshold: Optional[float] = None
    surface_filter: str = ""
    color_rgb: RGB = (255, 255, 255)

    @property
    def automatic_threshold(self) -> bool:
        return self.lower_threshold is None


@dataclass
class SpotDetectionPreset:
    """Parameters for ``IImageProcessing.DetectSpots2``."""

    name: str
    channel: int
    diameter_xy: float
    subtract_background: bool = True
    spot_filter: str = '"Quality" above automatic threshold'
    color_rgb: RGB = (255, 255, 0)


@dataclass
class Workflow:
    surfaces: List[SurfaceDetectionPreset] = field(default_factory=list)
    spots: List[SpotDetectionPreset] = field(default_factory=list)
    statistics: QueryConfig = field(default_factory=QueryConfig)


# Nucleus / nucleolus / FBL particle segmentation of a 3-channel spinning disc
# acquisition: nuclei in channel 0, FBL spots in channel 1, nucleoli in channel 2.
NUCLEI_SURFACES = SurfaceDetectionPreset(
    name="Nuclei",
    channel=0,
    smoothing_width=0.5,
    surface_filter='"Volume" above 8 um^3 "Distance to Image Border XYZ Img=1" above 0.001 um',
    color_rgb=(0, 0, 255),
)
NUCLEOLI_SURFACES = SurfaceDetectionPreset(
    name="Nucleoli",
    channel=2,
    smoothing_width=0.13,
    surface_filter='"Volume" above 1 um^3 "Distance to Image Border XYZ Img=1" above 0.001 um',
    color_rgb=(0, 255, 0),
)
FBL_SPOTS = SpotDetectionPreset(
    name="Spots",
    channel=1,
    diameter_xy=0.65,
    subtract_background=True,
    spot_filter='"Quality" above automatic threshold',
    color_rgb=(255, 0, 0),
)


def nucleolus_workflow(statistics: Optional[QueryConfig] = None) -> Workflow:
    """Nuclei and nucleoli surfaces plus FBL spots, exporting ``statistics``."""
    return Workflow(
        surfaces=[replace(NUCLEI_SURFACES), replace(NUCLEOLI_SURFACES)],
        spots=[replace(FBL_SPOTS)],
        statistics=statistics if statistics is not None else QueryConfig(),
    )


def pack_rgba(color_rgb: Sequence[int], alpha: int = 0) -> int:
    """Pack 0-255 components into the integer Imaris uses for ``SetColorRGBA``."""
    red, green, blue = (int(component) for component in color_rgb)
    for component in (red, green, blue, alpha):
        if not 0 <= component <= 255:
            raise ValueError(f"Colour components must be within 0-255, got {tuple(color_rgb)}")
    return red + (green << 8) + (blue << 16) + (alpha << 24)


def detect_surfaces(application: Any, preset: SurfaceDetectionPreset) -> Any:
    """Create surfaces with Imaris and add them to the Surpass scene."""
    logger.info("Detecting surfaces %r in channel %d", preset.name, preset.channel)
    try:
        surfaces = application.GetImageProcessing().DetectSurfaces(
            application.GetDataSet(),
            None,
            preset.channel,
            preset.smoothing_width,
            preset.local_contrast_width,
            preset.automatic_threshold,
            0.0 if preset.lower_threshold is None else preset.lower_threshold,
            preset.surface_filter,
        )
        surfaces.SetName(preset.name)
        surfaces.SetColorRGBA(pack_rgba(preset.color_rgb))
    except Exception as exc:
        raise EngineQueryError(f"Surface detection {preset.name!r} failed: {exc}") from exc
    add_to_scene(application, surfaces)
    return surfaces


def detect_spots(application: Any, preset: SpotDetectionPreset) -> Any:
    """Create spots with Imaris and add them to the Surpass scene."""
    logger.info("Detecting spots %r in channel %d", preset.name, preset.channel)
    try:
        spots = application.GetImageProcessing().DetectSpots2(
            application.GetDataSet(),
            None,
            preset.channel,
            preset.diameter_xy,
            preset.subtract_background,
            preset.spot_filter,
        )
        spots.SetName(preset.name)
        spots.SetColorRGBA(pack_rgba(preset.color_rgb))
    except Exception as exc:
        raise EngineQueryError(f"Spot detection {preset.name!r} failed: {exc}") from exc
    add_to_scene(application, spots)
    return spots


def workflow_from_mapping(data: Dict[str, Any]) -> Workflow:
    surfaces = [SurfaceDetectionPreset(**_with_rgb(entry)) for entry in data.get("surfaces", [])]
    spots = [SpotDetectionPreset(**_with_rgb(entry)) for entry in data.get("spots", [])]
    statistics = QueryConfig.from_mapping(data.get("statistics", {}))
    return Workflow(surfaces=surfaces, spots=spots, statistics=statistics)


def load_workflow(path: PathLike) -> Workflow:
    return workflow_from_mapping(read_json(path))


def run_workflow(
    application: Any,
    workflow: Workflow,
    output_csv: Optional[PathLike] = None,
) -> ResultsTable:
    """Run every detection of ``workflow`` and collect the new items' statistics."""
    items = [detect_surfaces(application, preset) for preset in workflow.surfaces]
    items.extend(detect_spots(application, preset) for preset in workflow.spots)
    results = query_items(items, configure=workflow.statistics.apply, application=application)
    if output_csv is not None:
        results.save(output_csv)
        logger.info("Saved workflow statistics to %s", output_csv)
    return results


def _with_rgb(entry: Dict[str, Any]) -> Dict[str, Any]:
    entry = dict(entry)
    if "color_rgb" in entry:
        entry["color_rgb"] = tuple(int(component) for component in entry["color_rgb"])
    return entry


__all__ = [
    "SurfaceDetectionPreset",
    "SpotDetectionPreset",
    "Workflow",
    "NUCLEI_SURFACES",
    "NUCLEOLI_SURFACES",
    "FBL_SPOTS",
    "nucleolus_workflow",
    "pack_rgba",
    "detect_surfaces",
    "detect_spots",
    "workflow_from_mapping",
    "load_workflow",
    "run_workflow",
]
