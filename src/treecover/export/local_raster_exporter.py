"""Write tree cover rasters as GeoTIFFs to a filesystem."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from fsspec import AbstractFileSystem
from nanoid import generate
from rasterio.io import MemoryFile
from rasterio.warp import Resampling, reproject

from treecover.classification.vegetation_reducer import TreeCoverRaster, grid_for_bounds
from treecover.export.export_request import (
    ExportDestination,
    ExportJob,
    ExportJobState,
    ExportRequest,
    check_pixel_limit,
    pixel_size_degrees,
)
from treecover.logging import logger

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

    from treecover.boundaries.boundary import ResolvedBoundary
    from treecover.imagery.scene import RasterGrid


def _resample(raster: TreeCoverRaster, grid: RasterGrid) -> TreeCoverRaster:
    if raster.grid == grid:
        return raster

    destination = np.full(grid.shape, np.nan, dtype=np.float32)
    reproject(
        source=raster.filled(),
        destination=destination,
        src_transform=raster.grid.transform,
        src_crs=raster.grid.crs,
        src_nodata=np.nan,
        dst_transform=grid.transform,
        dst_crs=grid.crs,
        dst_nodata=np.nan,
        resampling=Resampling.nearest,
    )
    return TreeCoverRaster(grid, np.ma.masked_invalid(destination), raster.band_name)


class LocalRasterExporter:
    """
    Exports in-memory rasters to a filesystem as single band GeoTIFFs.

    The raster is resampled, nearest neighbour, onto an EPSG:4326 grid that
    covers the request's region at the request's scale, the grid Earth Engine
    would export. The pixel limit is checked against that grid.
    """

    def __init__(self, filesystem: AbstractFileSystem, root: str) -> None:
        """
        Initialize the LocalRasterExporter with the filesystem to write to.

        :param filesystem: The filesystem to write the GeoTIFF to.
        :param root: The directory, or bucket, the files are written under.
        """
        self.filesystem = filesystem
        self.root = root

    def region_for(self, boundary: ResolvedBoundary) -> BaseGeometry:
        """Return the export region for a resolved boundary."""
        return boundary.geometry

    def submit(self, request: ExportRequest[TreeCoverRaster, BaseGeometry]) -> ExportJob:
        """
        Write the raster to `<root>/<file_name_prefix>.tif`.

        :param request: The export request.
        :return: The handle of the finished export.
        :raises ExportTooLargeError: If the region at the requested scale has
        too many pixels. Nothing is written in that case.
        """
        grid = grid_for_bounds(request.region.bounds, pixel_size_degrees(request.scale))
        check_pixel_limit(grid.height * grid.width, request)
        raster = _resample(request.image, grid)

        path = f"{self.root}/{request.file_name_prefix}.tif"
        logger.debug(f"Writing export '{request.description}' to {path}")

        with self.filesystem.open(path, "wb") as file:
            file.write(self._encode(raster, request.description))

        job_id = generate(size=10)
        logger.info(f"Export '{request.description}' written to {path} as job {job_id}")
        return ExportJob(
            job_id=job_id,
            description=request.description,
            file_name_prefix=request.file_name_prefix,
            destination=ExportDestination.FILESYSTEM,
            state=ExportJobState.COMPLETED,
            location=path,
        )

    @staticmethod
    def _encode(raster: TreeCoverRaster, description: str) -> bytes:
        profile = {
            "driver": "GTiff",
            "height": raster.grid.height,
            "width": raster.grid.width,
            "count": 1,
            "dtype": "float32",
            "crs": raster.grid.crs,
            "transform": raster.grid.transform,
            "nodata": np.nan,
            "compress": "lzw",
        }
        with MemoryFile() as memfile:
            with memfile.open(**profile) as dst:
                dst.write(raster.filled(), 1)
                dst.set_band_description(1, raster.band_name)
                dst.update_tags(description=description)
            memfile.seek(0)
            return memfile.read()
