"""In-memory scenes of per-pixel land cover labels."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from affine import Affine
from shapely.geometry import box

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from arrow import Arrow
    from shapely.geometry.base import BaseGeometry

    from treecover.boundaries.boundary import ResolvedBoundary
    from treecover.date_range import DateRange

WGS84 = "EPSG:4326"


@dataclass(frozen=True)
class RasterGrid:
    """
    The pixel grid of a raster.

    The transform maps (column, row) pixel corner coordinates to (x, y) in the
    grid's CRS, as in rasterio.
    """

    transform: Affine
    height: int
    width: int
    crs: str = WGS84

    @staticmethod
    def from_origin(
        *,
        west: float,
        north: float,
        pixel_size: float,
        height: int,
        width: int,
        crs: str = WGS84,
    ) -> RasterGrid:
        """Create a north-up grid from its top left corner and square pixel size."""
        return RasterGrid(
            transform=Affine(pixel_size, 0.0, west, 0.0, -pixel_size, north),
            height=height,
            width=width,
            crs=crs,
        )

    @property
    def shape(self) -> tuple[int, int]:
        """Return the (rows, columns) shape of the grid."""
        return (self.height, self.width)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return the (min x, min y, max x, max y) extent of the grid."""
        xs, ys = self.transform @ (
            np.array([0, self.width, 0, self.width]),
            np.array([0, 0, self.height, self.height]),
        )
        return (float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max()))

    @property
    def footprint(self) -> BaseGeometry:
        """Return the extent of the grid as a polygon."""
        return box(*self.bounds)

    def pixel_centres(self) -> tuple[np.ndarray, np.ndarray]:
        """Return the x and y coordinates of every pixel centre, each shaped like the grid."""
        cols, rows = np.meshgrid(
            np.arange(self.width) + 0.5,
            np.arange(self.height) + 0.5,
        )
        xs, ys = self.transform @ (cols, rows)
        return xs, ys


@dataclass(frozen=True)
class Scene:
    """One timestamped raster of label bands on a grid."""

    acquired: Arrow
    grid: RasterGrid
    bands: Mapping[str, np.ma.MaskedArray] = field(compare=False)

    def __post_init__(self) -> None:
        """Validate that every band matches the grid."""
        for name, values in self.bands.items():
            if values.shape != self.grid.shape:
                msg = f"Band '{name}' has shape {values.shape}, expected {self.grid.shape}."
                raise ValueError(msg)

    def band(self, name: str) -> np.ma.MaskedArray:
        """Return a band's values, masked where there is no data."""
        if name not in self.bands:
            msg = f"Scene from {self.acquired} has no band '{name}', has: {', '.join(self.bands)}"
            raise ValueError(msg)
        return self.bands[name]

    def select(self, name: str) -> Scene:
        """Return a copy of the scene keeping only one band."""
        return Scene(acquired=self.acquired, grid=self.grid, bands={name: self.band(name)})


@dataclass(frozen=True)
class SceneCollection:
    """An ordered, immutable sequence of scenes."""

    scenes: tuple[Scene, ...] = ()

    def __len__(self) -> int:
        """Return the number of scenes."""
        return len(self.scenes)

    def __iter__(self) -> Iterator[Scene]:
        """Iterate over the scenes in order."""
        return iter(self.scenes)

    def filter_date(self, date_range: DateRange) -> SceneCollection:
        """Keep the scenes acquired within the date range."""
        return SceneCollection(tuple(s for s in self.scenes if date_range.contains(s.acquired)))

    def filter_bounds(self, boundary: ResolvedBoundary) -> SceneCollection:
        """
        Keep the scenes whose footprint intersects the boundary.

        The boundary is reprojected to each scene's CRS before the test.
        """
        in_crs: dict[str, BaseGeometry] = {}
        kept = []
        for scene in self.scenes:
            crs = scene.grid.crs
            if crs not in in_crs:
                in_crs[crs] = boundary.geometry_in(crs)
            if scene.grid.footprint.intersects(in_crs[crs]):
                kept.append(scene)
        return SceneCollection(tuple(kept))

    def select(self, band: str) -> SceneCollection:
        """Keep a single band in every scene."""
        return SceneCollection(tuple(s.select(band) for s in self.scenes))
