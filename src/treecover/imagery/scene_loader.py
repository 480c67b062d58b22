"""Load label scenes from GeoTIFF files."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import arrow
import rasterio

from treecover.date_range import ISO8601_DATE_ONLY
from treecover.imagery.collection_filter import DEFAULT_LABEL_BAND
from treecover.imagery.scene import WGS84, RasterGrid, Scene, SceneCollection
from treecover.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

_DATED_FILE_NAME = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def load_scene(path: Path, *, band: str = DEFAULT_LABEL_BAND) -> Scene:
    """
    Load a single band label GeoTIFF as a scene.

    The acquisition date comes from the file name, which must start with
    YYYY-MM-DD. Pixels equal to the file's nodata value are masked.

    :param path: The GeoTIFF file.
    :param band: The band name to give the raster's first band.
    :return: The scene.
    """
    match = _DATED_FILE_NAME.match(path.name)
    if not match:
        msg = f"Scene file name must start with an acquisition date (YYYY-MM-DD): {path.name}"
        raise ValueError(msg)

    with rasterio.open(path) as src:
        labels = src.read(1, masked=True)
        grid = RasterGrid(
            transform=src.transform,
            height=src.height,
            width=src.width,
            crs=src.crs.to_string() if src.crs else WGS84,
        )

    return Scene(
        acquired=arrow.get(match.group(1), ISO8601_DATE_ONLY),
        grid=grid,
        bands={band: labels},
    )


def load_scenes_from_directory(directory: Path, *, band: str = DEFAULT_LABEL_BAND) -> SceneCollection:
    """
    Load every dated GeoTIFF in a directory, ordered by acquisition date.

    :param directory: The directory to scan, not recursively.
    :param band: The band name to give each raster's first band.
    :return: The scenes.
    """
    if not directory.is_dir():
        msg = f"Scene directory not found: {directory}"
        raise ValueError(msg)

    paths = sorted(p for p in directory.glob("*.tif") if _DATED_FILE_NAME.match(p.name))
    scenes = tuple(load_scene(p, band=band) for p in paths)
    logger.debug(f"Loaded {len(scenes)} scenes from {directory}")
    return SceneCollection(tuple(sorted(scenes, key=lambda s: s.acquired)))
