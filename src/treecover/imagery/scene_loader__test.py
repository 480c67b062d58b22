from pathlib import Path

import arrow
import numpy as np
import pytest
import rasterio
from affine import Affine

from treecover.imagery.scene_loader import load_scene, load_scenes_from_directory

NO_DATA = 255
TRANSFORM = Affine(0.25, 0.0, 80.0, 0.0, -0.25, 10.0)


def _write_labels(path: Path, labels: np.ndarray) -> Path:
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=labels.shape[0],
        width=labels.shape[1],
        count=1,
        dtype="uint8",
        crs="EPSG:4326",
        transform=TRANSFORM,
        nodata=NO_DATA,
    ) as dst:
        dst.write(labels, 1)
    return path


@pytest.fixture
def labels() -> np.ndarray:
    return np.array(
        [
            [0, 1, 2, 3],
            [4, 5, 6, 7],
            [8, 9, 10, NO_DATA],
        ],
        dtype=np.uint8,
    )


def test__load_scene__reads_labels_grid_and_date(tmp_path, labels) -> None:
    path = _write_labels(tmp_path / "2024-03-15_dynamic_world.tif", labels)

    scene = load_scene(path)

    assert scene.acquired == arrow.get("2024-03-15")
    assert scene.grid.shape == (3, 4)
    assert scene.grid.transform == TRANSFORM
    assert scene.grid.crs == "EPSG:4326"
    assert scene.grid.bounds == pytest.approx((80.0, 9.25, 81.0, 10.0))
    assert list(scene.band("label").compressed()) == list(range(11))


def test__load_scene__nodata__masked(tmp_path, labels) -> None:
    path = _write_labels(tmp_path / "2024-03-15.tif", labels)

    values = load_scene(path).band("label")

    assert values.mask[2, 3]
    assert not values.mask[0, 0]


def test__load_scene__custom_band_name(tmp_path, labels) -> None:
    path = _write_labels(tmp_path / "2024-03-15.tif", labels)

    scene = load_scene(path, band="classification")

    assert list(scene.bands) == ["classification"]


def test__load_scene__undated_file_name__raises(tmp_path, labels) -> None:
    path = _write_labels(tmp_path / "labels.tif", labels)

    with pytest.raises(ValueError, match="must start with an acquisition date"):
        load_scene(path)


def test__load_scenes_from_directory__orders_by_date_and_skips_undated(tmp_path, labels) -> None:
    _write_labels(tmp_path / "2024-06-01.tif", labels)
    _write_labels(tmp_path / "2024-01-01.tif", labels)
    _write_labels(tmp_path / "mosaic.tif", labels)
    (tmp_path / "2024-02-01.txt").write_text("not a raster")

    scenes = load_scenes_from_directory(tmp_path)

    assert [s.acquired for s in scenes] == [arrow.get("2024-01-01"), arrow.get("2024-06-01")]


def test__load_scenes_from_directory__missing__raises(tmp_path) -> None:
    with pytest.raises(ValueError, match="Scene directory not found"):
        load_scenes_from_directory(tmp_path / "missing")
