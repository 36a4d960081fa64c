from pathlib import Path
from types import SimpleNamespace

import h5py  # type: ignore
import numpy as np
import pytest

from imaris_stats import EngineQueryError, ImarisCalibration


def _ascii(text: str) -> np.ndarray:
    # Imaris stores attribute strings as arrays of single characters
    return np.array(list(text), dtype="S1")


def _create_mock_ims(path: Path, *, with_time: bool = True) -> None:
    with h5py.File(path, "w") as handle:
        image = handle.create_group("DataSetInfo/Image")
        for key, value in {
            "X": "100",
            "Y": "50",
            "Z": "10",
            "ExtMin0": "0",
            "ExtMin1": "-5",
            "ExtMin2": "0",
            "ExtMax0": "20",
            "ExtMax1": "5",
            "ExtMax2": "5",
            "Unit": "um",
        }.items():
            image.attrs[key] = _ascii(value)
        handle.create_group("DataSetInfo/Channel 0")
        handle.create_group("DataSetInfo/Channel 1")
        if with_time:
            time_info = handle.create_group("DataSetInfo/TimeInfo")
            time_info.attrs["DatasetTimePoints"] = _ascii("3")
            time_info.attrs["TimePoint1"] = _ascii("2020-12-01 10:00:00.000")
            time_info.attrs["TimePoint2"] = _ascii("2020-12-01 10:00:30.500")


def _fake_dataset() -> SimpleNamespace:
    return SimpleNamespace(
        GetExtendMinX=lambda: 0.0,
        GetExtendMinY=lambda: 0.0,
        GetExtendMinZ=lambda: 0.0,
        GetExtendMaxX=lambda: 51.2,
        GetExtendMaxY=lambda: 25.6,
        GetExtendMaxZ=lambda: 10.0,
        GetSizeX=lambda: 512,
        GetSizeY=lambda: 256,
        GetSizeZ=lambda: 20,
        GetSizeC=lambda: 3,
        GetSizeT=lambda: 2,
        GetUnit=lambda: "um",
        GetTimePointsDelta=lambda: 60.0,
    )


def test_from_dataset_computes_pixel_sizes() -> None:
    calibration = ImarisCalibration.from_dataset(_fake_dataset())

    assert calibration.voxel_size == pytest.approx((0.1, 0.1, 0.5))
    assert (calibration.x_size, calibration.c_size, calibration.t_size) == (512, 3, 2)
    assert calibration.x_end == pytest.approx(51.2)
    assert calibration.frame_interval == 60.0
    assert calibration.time_unit == "s"


def test_from_dataset_wraps_engine_errors() -> None:
    def broken():
        raise RuntimeError("connection lost")

    dataset = _fake_dataset()
    dataset.GetSizeZ = broken
    with pytest.raises(EngineQueryError):
        ImarisCalibration.from_dataset(dataset)


def test_from_ims_file_reads_dataset_info(tmp_path: Path) -> None:
    ims_path = tmp_path / "sample.ims"
    _create_mock_ims(ims_path)

    calibration = ImarisCalibration.from_ims_file(ims_path)

    assert (calibration.x_size, calibration.y_size, calibration.z_size) == (100, 50, 10)
    assert calibration.c_size == 2
    assert calibration.t_size == 3
    assert calibration.y_origin == -5.0
    assert calibration.voxel_size == pytest.approx((0.2, 0.2, 0.5))
    assert calibration.frame_interval == pytest.approx(30.5)
    assert calibration.unit == "um"


def test_from_ims_file_without_time_info(tmp_path: Path) -> None:
    ims_path = tmp_path / "static.ims"
    _create_mock_ims(ims_path, with_time=False)

    calibration = ImarisCalibration.from_ims_file(ims_path)
    assert calibration.t_size == 1
    assert calibration.frame_interval == 0.0


def test_from_ims_file_requires_image_group(tmp_path: Path) -> None:
    ims_path = tmp_path / "empty.ims"
    with h5py.File(ims_path, "w") as handle:
        handle.create_group("DataSet")
    with pytest.raises(ValueError):
        ImarisCalibration.from_ims_file(ims_path)


def test_downsampled_scales_sizes_and_spacing() -> None:
    calibration = ImarisCalibration.from_dataset(_fake_dataset())
    coarse = calibration.downsampled(2)

    assert (coarse.x_size, coarse.y_size, coarse.z_size) == (256, 128, 10)
    assert coarse.voxel_size == pytest.approx((0.2, 0.2, 1.0))
    assert coarse.x_origin == calibration.x_origin
    assert calibration.x_size == 512

    with pytest.raises(ValueError):
        calibration.downsampled(0)
