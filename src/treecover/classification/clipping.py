"""Restrict a tree cover raster to a boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from shapely import contains_xy

from treecover.classification.vegetation_reducer import TreeCoverRaster
from treecover.logging import logger

if TYPE_CHECKING:
    from ee.featurecollection import FeatureCollection
    from ee.image import Image
    from shapely.geometry.base import BaseGeometry

    from treecover.boundaries.boundary import ResolvedBoundary


def clip_to_geometry(raster: TreeCoverRaster, geometry: BaseGeometry) -> TreeCoverRaster:
    """
    Mask every pixel whose centre is not inside the geometry.

    Pixels inside keep their values unchanged, and the grid is not resampled.

    :param raster: The raster to clip.
    :param geometry: The geometry, in the raster's CRS.
    :return: A new raster on the same grid.
    """
    xs, ys = raster.grid.pixel_centres()
    inside = contains_xy(geometry, xs, ys)

    clipped_mask = np.ma.getmaskarray(raster.values) | ~inside
    values = np.ma.MaskedArray(np.ma.getdata(raster.values).copy(), mask=clipped_mask)
    return TreeCoverRaster(grid=raster.grid, values=values, band_name=raster.band_name)


class LocalClipper:
    """Clips in-memory rasters to a resolved boundary."""

    def clip(self, raster: TreeCoverRaster, boundary: ResolvedBoundary) -> TreeCoverRaster:
        """Clip the raster to the union of the boundary's features, in the raster's CRS."""
        clipped = clip_to_geometry(raster, boundary.geometry_in(raster.grid.crs))
        logger.debug(
            f"Clipped raster to {boundary.query}: {raster.valid_pixel_count} -> "
            f"{clipped.valid_pixel_count} valid pixels",
        )
        return clipped


class GeeClipper:
    """Clips Earth Engine images to a boundary feature collection."""

    def clip(self, image: Image, boundary: FeatureCollection) -> Image:
        """Clip the image to the boundary's geometry."""
        return image.clip(boundary.geometry())
