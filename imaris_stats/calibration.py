"""Voxel geometry of an Imaris dataset."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import h5py  # type: ignore
import numpy as np

from .errors import EngineQueryError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class ImarisCalibration:
    """Extents, sizes and pixel spacing of an Imaris dataset.

    ``x_origin``/``x_end`` (and y, z) are the dataset extents in ``unit``;
    pixel sizes are the extent divided by the number of voxels along the axis.
    """

    x_origin: float
    y_origin: float
    z_origin: float
    x_end: float
    y_end: float
    z_end: float
    x_size: int
    y_size: int
    z_size: int
    c_size: int
    t_size: int
    pixel_width: float
    pixel_height: float
    pixel_depth: float
    unit: str = "um"
    frame_interval: float = 0.0
    time_unit: str = "s"

    @classmethod
    def from_extents(
        cls,
        extent_min: Tuple[float, float, float],
        extent_max: Tuple[float, float, float],
        size_xyzct: Tuple[int, int, int, int, int],
        *,
        unit: str = "um",
        frame_interval: float = 0.0,
    ) -> "ImarisCalibration":
        x, y, z, c, t = (int(value) for value in size_xyzct)
        width, height, depth = (
            _spacing(lo, hi, n) for lo, hi, n in zip(extent_min, extent_max, (x, y, z))
        )
        return cls(
            x_origin=float(extent_min[0]),
            y_origin=float(extent_min[1]),
            z_origin=float(extent_min[2]),
            x_end=float(extent_max[0]),
            y_end=float(extent_max[1]),
            z_end=float(extent_max[2]),
            x_size=x,
            y_size=y,
            z_size=z,
            c_size=c,
            t_size=t,
            pixel_width=width,
            pixel_height=height,
            pixel_depth=depth,
            unit=unit,
            frame_interval=float(frame_interval),
        )

    @classmethod
    def from_dataset(cls, dataset: Any) -> "ImarisCalibration":
        """Read the calibration from an Imaris ``IDataSet`` proxy."""
        try:
            extent_min = (dataset.GetExtendMinX(), dataset.GetExtendMinY(), dataset.GetExtendMinZ())
            extent_max = (dataset.GetExtendMaxX(), dataset.GetExtendMaxY(), dataset.GetExtendMaxZ())
            sizes = (
                dataset.GetSizeX(),
                dataset.GetSizeY(),
                dataset.GetSizeZ(),
                dataset.GetSizeC(),
                dataset.GetSizeT(),
            )
            unit = dataset.GetUnit()
            frame_interval = dataset.GetTimePointsDelta()
        except Exception as exc:
            raise EngineQueryError(f"Could not read dataset geometry: {exc}") from exc
        return cls.from_extents(
            extent_min, extent_max, sizes, unit=unit or "um", frame_interval=frame_interval
        )

    @classmethod
    def from_ims_file(cls, path: PathLike) -> "ImarisCalibration":
        """Read the calibration stored in the ``DataSetInfo`` of an ``.ims`` file."""
        file_path = Path(path)
        with h5py.File(file_path, "r") as handle:
            image = handle.get("DataSetInfo/Image")
            if not isinstance(image, h5py.Group):
                raise ValueError(f"{file_path} has no DataSetInfo/Image group")
            attrs = image.attrs
            extent_min = tuple(_required_float(attrs, f"ExtMin{axis}", file_path) for axis in range(3))
            extent_max = tuple(_required_float(attrs, f"ExtMax{axis}", file_path) for axis in range(3))
            sizes_xyz = [int(_required_float(attrs, key, file_path)) for key in ("X", "Y", "Z")]
            unit = _decode_attr(attrs.get("Unit")) or "um"
            channels = _count_channels(handle["DataSetInfo"])
            time_points, frame_interval = _read_time_info(handle.get("DataSetInfo/TimeInfo"))

        logger.debug("Read calibration from %s", file_path)
        return cls.from_extents(
            extent_min,  # type: ignore[arg-type]
            extent_max,  # type: ignore[arg-type]
            (sizes_xyz[0], sizes_xyz[1], sizes_xyz[2], channels, time_points),
            unit=unit,
            frame_interval=frame_interval,
        )

    @property
    def voxel_size(self) -> Tuple[float, float, float]:
        return (self.pixel_width, self.pixel_height, self.pixel_depth)

    def downsampled(self, factor: float) -> "ImarisCalibration":
        """Calibration of the same extents sampled ``factor`` times coarser."""
        if factor <= 0:
            raise ValueError(f"Downsampling factor must be positive, got {factor}")
        return replace(
            self,
            x_size=int(self.x_size / factor),
            y_size=int(self.y_size / factor),
            z_size=int(self.z_size / factor),
            pixel_width=self.pixel_width * factor,
            pixel_height=self.pixel_height * factor,
            pixel_depth=self.pixel_depth * factor,
        )


def _spacing(extent_min: float, extent_max: float, size: int) -> float:
    if size <= 0:
        return 0.0
    return abs(float(extent_max) - float(extent_min)) / float(size)


def _decode_attr(value: Any) -> Optional[str]:
    # .ims attributes are stored as arrays of single characters
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="ignore").strip().strip("\x00")
    if isinstance(value, str):
        return value.strip()
    array = np.asarray(value)
    if array.dtype.kind in ("S", "a"):
        return array.tobytes().decode("utf-8", errors="ignore").strip().strip("\x00")
    if array.dtype.kind == "U":
        return "".join(array.ravel().tolist()).strip()
    if array.ndim == 0 or array.size == 1:
        return str(array.ravel()[0])
    return " ".join(str(item) for item in array.ravel())


def _required_float(attrs: h5py.AttributeManager, key: str, path: Path) -> float:
    text = _decode_attr(attrs.get(key))
    try:
        return float(text)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"{path}: DataSetInfo/Image attribute {key!r} is missing or invalid") from None


def _count_channels(info: h5py.Group) -> int:
    count = 0
    for key, node in info.items():
        if key.startswith("Channel ") and isinstance(node, h5py.Group):
            count += 1
    return count or 1


def _read_time_info(group: Any) -> Tuple[int, float]:
    if not isinstance(group, h5py.Group):
        return 1, 0.0
    attrs = group.attrs
    points_text = _decode_attr(attrs.get("DatasetTimePoints")) or _decode_attr(attrs.get("FileTimePoints"))
    try:
        time_points = int(points_text) if points_text else 1
    except ValueError:
        time_points = 1

    stamps: List[datetime] = []
    for index in (1, 2):
        stamp = _parse_timestamp(_decode_attr(attrs.get(f"TimePoint{index}")))
        if stamp is None:
            break
        stamps.append(stamp)
    if len(stamps) == 2:
        return time_points, (stamps[1] - stamps[0]).total_seconds()
    return time_points, 0.0


def _parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.warning("Unrecognised Imaris timestamp %r", text)
    return None


__all__ = ["ImarisCalibration"]
