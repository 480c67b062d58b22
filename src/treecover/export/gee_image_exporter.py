"""Submit Earth Engine image exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ee.batch import Export, Task

from treecover.export.export_request import (
    EXPORT_CRS,
    ExportDestination,
    ExportJob,
    ExportJobState,
    ExportRequest,
    check_pixel_limit,
    estimate_pixel_count,
)
from treecover.logging import logger

if TYPE_CHECKING:
    from ee.featurecollection import FeatureCollection
    from ee.geometry import Geometry
    from ee.image import Image

    from treecover.remote import RemoteCaller


def _bounds_of_geojson_polygon(polygon: dict) -> tuple[float, float, float, float]:
    ring = polygon["coordinates"][0]
    xs = [point[0] for point in ring]
    ys = [point[1] for point in ring]
    return (min(xs), min(ys), max(xs), max(ys))


class GeeImageExporter:
    """
    Submits image exports to Earth Engine's batch system.

    Submission returns as soon as the task has started. The task's progress
    and outcome are tracked by Earth Engine, not by this class.
    """

    def __init__(
        self,
        *,
        remote: RemoteCaller,
        destination: ExportDestination = ExportDestination.DRIVE,
        folder: str | None = None,
        bucket: str | None = None,
    ) -> None:
        """
        Initialize the GeeImageExporter with its destination.

        :param remote: Runs the blocking calls with retries.
        :param destination: DRIVE or CLOUD_STORAGE.
        :param folder: The Google Drive folder, for DRIVE.
        :param bucket: The Cloud Storage bucket, required for CLOUD_STORAGE.
        """
        if destination is ExportDestination.FILESYSTEM:
            msg = "Earth Engine exports go to Google Drive or Cloud Storage."
            raise ValueError(msg)
        if destination is ExportDestination.CLOUD_STORAGE and not bucket:
            msg = "A bucket is required to export to Cloud Storage."
            raise ValueError(msg)

        self.remote = remote
        self.destination = destination
        self.folder = folder
        self.bucket = bucket

    def region_for(self, boundary: FeatureCollection) -> Geometry:
        """Return the export region for a resolved boundary."""
        return boundary.geometry()

    def submit(self, request: ExportRequest[Image, Geometry]) -> ExportJob:
        """
        Check the request's size and start the export task.

        :param request: The export request.
        :return: The handle of the started task.
        :raises ExportTooLargeError: If the region at the requested scale has
        too many pixels. Nothing is submitted in that case.
        """
        bounds = _bounds_of_geojson_polygon(
            self.remote.call(
                f"reading the bounds of export '{request.description}'",
                lambda: request.region.bounds().getInfo(),
            ),
        )
        pixel_count = estimate_pixel_count(bounds, request.scale)
        logger.debug(f"Export '{request.description}' is estimated at {pixel_count} pixels")
        check_pixel_limit(pixel_count, request)

        task = self._define_task(request)
        self.remote.call(f"starting export '{request.description}'", task.start)

        logger.info(f"Export '{request.description}' submitted as task {task.id}")
        return ExportJob(
            job_id=task.id,
            description=request.description,
            file_name_prefix=request.file_name_prefix,
            destination=self.destination,
            state=ExportJobState.SUBMITTED,
            location=self._location(),
        )

    def _location(self) -> str | None:
        if self.destination is ExportDestination.CLOUD_STORAGE:
            return self.bucket
        return self.folder

    def _define_task(self, request: ExportRequest[Image, Geometry]) -> Task:
        if self.destination is ExportDestination.CLOUD_STORAGE:
            return Export.image.toCloudStorage(
                image=request.image,
                description=request.description,
                bucket=self.bucket,
                fileNamePrefix=request.file_name_prefix,
                region=request.region,
                crs=EXPORT_CRS,
                scale=request.scale,
                maxPixels=request.max_pixels,
            )

        return Export.image.toDrive(
            image=request.image,
            description=request.description,
            folder=self.folder,
            fileNamePrefix=request.file_name_prefix,
            region=request.region,
            crs=EXPORT_CRS,
            scale=request.scale,
            maxPixels=request.max_pixels,
        )
