"""
Classify label scenes as vegetated and average them over time.

The result is, for each pixel, the fraction of valid observations in which
the pixel carried a vegetated label:

    vegetated observations / valid observations

Pixels without a single valid observation are no-data, never zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from ee import Algorithms
from ee.image import Image

from treecover.export.export_request import DEFAULT_SCALE_METERS, cell_count, pixel_size_degrees
from treecover.imagery.collection_filter import DEFAULT_LABEL_BAND
from treecover.imagery.scene import RasterGrid
from treecover.labels import DEFAULT_VEGETATED_LABELS, VegetatedLabelSet
from treecover.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ee.featurecollection import FeatureCollection
    from ee.imagecollection import ImageCollection

    from treecover.boundaries.boundary import ResolvedBoundary
    from treecover.imagery.scene import SceneCollection

DEFAULT_OUTPUT_BAND = "tree_cover"

DEFAULT_EMPTY_PIXEL_SIZE_DEGREES = pixel_size_degrees(DEFAULT_SCALE_METERS)


@dataclass(frozen=True)
class TreeCoverRaster:
    """Fractional vegetated cover per pixel, masked where there is no data."""

    grid: RasterGrid
    values: np.ma.MaskedArray
    band_name: str = DEFAULT_OUTPUT_BAND

    def __post_init__(self) -> None:
        """Validate that the values match the grid."""
        if self.values.shape != self.grid.shape:
            msg = f"Raster values have shape {self.values.shape}, expected {self.grid.shape}."
            raise ValueError(msg)

    @property
    def valid_pixel_count(self) -> int:
        """Return the number of pixels that hold a value."""
        return int(np.ma.count(self.values))

    def filled(self) -> np.ndarray:
        """Return the values as float32 with NaN in place of no-data."""
        return self.values.astype(np.float32).filled(np.nan)


def classify_labels(labels: np.ma.MaskedArray, vegetated: VegetatedLabelSet) -> np.ma.MaskedArray:
    """
    Turn a label grid into a vegetated mask.

    :param labels: Integer label codes, masked where there is no data.
    :param vegetated: The codes that count as vegetated.
    :return: 1 where the label is vegetated, 0 where it is not, masked where
    the label is masked.
    """
    is_vegetated = np.isin(np.ma.getdata(labels), vegetated.sorted_codes)
    return np.ma.MaskedArray(
        is_vegetated.astype(np.uint8),
        mask=np.ma.getmaskarray(labels).copy(),
    )


def reduce_mean(masks: Sequence[np.ma.MaskedArray], shape: tuple[int, int]) -> np.ma.MaskedArray:
    """
    Average a sequence of vegetated masks pixel by pixel.

    Masked observations are ignored. A pixel with no valid observation is
    masked in the result, including when `masks` is empty.

    :param masks: The per-scene vegetated masks, all of `shape`.
    :param shape: The (rows, columns) shape of the grid.
    :return: float32 values in [0, 1].
    """
    vegetated_count = np.zeros(shape, dtype=np.int64)
    valid_count = np.zeros(shape, dtype=np.int64)

    for mask in masks:
        if mask.shape != shape:
            msg = f"Mask has shape {mask.shape}, expected {shape}."
            raise ValueError(msg)
        valid = ~np.ma.getmaskarray(mask)
        valid_count += valid
        vegetated_count += np.where(valid, np.ma.getdata(mask), 0)

    fraction = np.divide(
        vegetated_count,
        valid_count,
        out=np.zeros(shape, dtype=np.float64),
        where=valid_count > 0,
    )
    return np.ma.MaskedArray(fraction.astype(np.float32), mask=valid_count == 0)


def grid_for_bounds(
    bounds: tuple[float, float, float, float],
    pixel_size: float,
) -> RasterGrid:
    """Create an EPSG:4326 grid covering a bounding box."""
    west, south, east, north = bounds
    return RasterGrid.from_origin(
        west=west,
        north=north,
        pixel_size=pixel_size,
        height=cell_count(north - south, pixel_size),
        width=cell_count(east - west, pixel_size),
    )


class LocalVegetationReducer:
    """Classifies and reduces in-memory scenes."""

    def __init__(
        self,
        *,
        vegetated: VegetatedLabelSet = DEFAULT_VEGETATED_LABELS,
        band: str = DEFAULT_LABEL_BAND,
        output_band: str = DEFAULT_OUTPUT_BAND,
        empty_pixel_size: float = DEFAULT_EMPTY_PIXEL_SIZE_DEGREES,
    ) -> None:
        """
        Initialize the LocalVegetationReducer.

        :param vegetated: The codes that count as vegetated.
        :param band: The label band to classify.
        :param output_band: The name of the resulting band.
        :param empty_pixel_size: Pixel size, in degrees, of the all no-data
        raster produced for an empty collection.
        """
        self.vegetated = vegetated
        self.band = band
        self.output_band = output_band
        self.empty_pixel_size = empty_pixel_size

    def reduce(self, scenes: SceneCollection, boundary: ResolvedBoundary) -> TreeCoverRaster:
        """
        Compute the vegetated fraction of every pixel across the scenes.

        :param scenes: Scenes on one shared grid.
        :param boundary: The region, used for the grid when there are no scenes.
        :return: The tree cover raster.
        """
        if len(scenes) == 0:
            grid = grid_for_bounds(boundary.bounds, self.empty_pixel_size)
            logger.warning(f"No scenes to reduce, returning an all no-data {grid.shape} raster")
            return TreeCoverRaster(
                grid=grid,
                values=reduce_mean([], grid.shape),
                band_name=self.output_band,
            )

        grids = {scene.grid for scene in scenes}
        if len(grids) > 1:
            msg = f"All scenes must share one grid to be reduced, found {len(grids)} grids."
            raise ValueError(msg)
        grid = grids.pop()

        masks = [classify_labels(scene.band(self.band), self.vegetated) for scene in scenes]
        raster = TreeCoverRaster(
            grid=grid,
            values=reduce_mean(masks, grid.shape),
            band_name=self.output_band,
        )
        logger.debug(
            f"Reduced {len(masks)} scenes to {raster.valid_pixel_count} valid pixels "
            f"with vegetated labels {self.vegetated.sorted_codes}",
        )
        return raster


class GeeVegetationReducer:
    """Classifies and reduces an Earth Engine image collection, server side."""

    def __init__(
        self,
        *,
        vegetated: VegetatedLabelSet = DEFAULT_VEGETATED_LABELS,
        band: str = DEFAULT_LABEL_BAND,
        output_band: str = DEFAULT_OUTPUT_BAND,
    ) -> None:
        """
        Initialize the GeeVegetationReducer.

        :param vegetated: The codes that count as vegetated.
        :param band: The label band to classify.
        :param output_band: The name of the resulting band.
        """
        self.vegetated = vegetated
        self.band = band
        self.output_band = output_band

    def reduce(
        self,
        images: ImageCollection,
        boundary: FeatureCollection,  # noqa: ARG002
    ) -> Image:
        """
        Build the image of the vegetated fraction of every pixel.

        Earth Engine's mean ignores masked pixels, so pixels with no valid
        observation stay masked. An empty collection gives a fully masked
        single band image instead of an image without bands.

        :param images: The filtered label images.
        :param boundary: Unused, the grid comes from the images.
        :return: The lazily evaluated tree cover image.
        """
        codes = self.vegetated.sorted_codes

        def to_vegetated_mask(image: Image) -> Image:
            return (
                image.select(self.band)
                .remap(codes, [1] * len(codes), 0, self.band)
                .rename(self.output_band)
            )

        mean_image = images.map(to_vegetated_mask).mean()
        no_data_image = Image.constant(0).toFloat().rename(self.output_band).updateMask(0)

        return Image(
            Algorithms.If(
                images.size().gt(0),
                mean_image,
                no_data_image,
            ),
        )
