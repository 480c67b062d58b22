"""Export requests, job handles and the output size check."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pyproj import Geod

from treecover.errors import ExportTooLargeError

ImageT = TypeVar("ImageT")
RegionT = TypeVar("RegionT")

DEFAULT_SCALE_METERS = 30.0
DEFAULT_MAX_PIXELS = 10_000_000_000_000

EXPORT_CRS = "EPSG:4326"

# Length of one degree along the WGS84 equator. Earth Engine turns a scale in
# metres into a pixel size in degrees with it when exporting in EPSG:4326.
METRES_PER_DEGREE = 2 * math.pi * Geod(ellps="WGS84").a / 360


class ExportDestination(Enum):
    """Where an export job writes its output."""

    DRIVE = "drive"
    CLOUD_STORAGE = "cloud_storage"
    FILESYSTEM = "filesystem"


class ExportJobState(Enum):
    """The state of an export job when it was handed back to the caller."""

    SUBMITTED = "submitted"
    """
    Accepted by the remote platform. Its outcome is only known to the platform.
    """

    COMPLETED = "completed"
    """
    Written before the handle was returned.
    """


@dataclass(frozen=True)
class ExportRequest(Generic[ImageT, RegionT]):
    """
    Describes one raster export.

    Every field is passed through to the export exactly as given.
    """

    image: ImageT
    description: str
    file_name_prefix: str
    region: RegionT
    scale: float
    max_pixels: int

    def __post_init__(self) -> None:
        """Validate the request."""
        if not self.description:
            msg = "Export description must not be empty."
            raise ValueError(msg)
        if not self.file_name_prefix:
            msg = "Export file name prefix must not be empty."
            raise ValueError(msg)
        if not self.scale > 0:
            msg = f"Export scale must be positive, got {self.scale}."
            raise ValueError(msg)
        if self.max_pixels <= 0:
            msg = f"Export max_pixels must be positive, got {self.max_pixels}."
            raise ValueError(msg)


@dataclass(frozen=True)
class ExportJob:
    """The handle returned once an export has been submitted."""

    job_id: str
    description: str
    file_name_prefix: str
    destination: ExportDestination
    state: ExportJobState
    location: str | None = None


def pixel_size_degrees(scale: float) -> float:
    """Return the EPSG:4326 pixel size, in degrees, of a scale in metres."""
    return scale / METRES_PER_DEGREE


def cell_count(extent: float, pixel_size: float) -> int:
    """
    Return how many pixels of `pixel_size` cover `extent`, at least one.

    The ratio is rounded to 1e-6 first so that float error in an exact
    multiple does not add a pixel.
    """
    return max(1, math.ceil(round(extent / pixel_size, 6)))


def estimate_pixel_count(bounds: tuple[float, float, float, float], scale: float) -> int:
    """
    Count the pixels of an EPSG:4326 export of a lon/lat bounding box.

    Pixels are square in degrees, so the count does not depend on latitude.

    :param bounds: (west, south, east, north) in degrees.
    :param scale: The pixel size in metres at the equator.
    :return: The pixel count.
    """
    west, south, east, north = bounds
    pixel_size = pixel_size_degrees(scale)
    return cell_count(east - west, pixel_size) * cell_count(north - south, pixel_size)


def check_pixel_limit(pixel_count: int, request: ExportRequest[ImageT, RegionT]) -> None:
    """
    Refuse an export whose pixel count exceeds the request's limit.

    :param pixel_count: The projected number of output pixels.
    :param request: The export request.
    :raises ExportTooLargeError: If the limit is exceeded.
    """
    if pixel_count > request.max_pixels:
        msg = (
            f"Export '{request.description}' would have about {pixel_count} pixels at "
            f"{request.scale} m, more than the limit of {request.max_pixels}."
        )
        raise ExportTooLargeError(msg)
