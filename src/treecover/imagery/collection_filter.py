"""Select the scenes of a land cover image collection for a region and date range."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from ee.imagecollection import ImageCollection

from treecover.errors import NoDataInRangeError
from treecover.logging import logger

if TYPE_CHECKING:
    from ee.featurecollection import FeatureCollection

    from treecover.boundaries.boundary import ResolvedBoundary
    from treecover.date_range import DateRange
    from treecover.imagery.scene import SceneCollection
    from treecover.remote import RemoteCaller

DEFAULT_COLLECTION = "GOOGLE/DYNAMICWORLD/V1"
DEFAULT_LABEL_BAND = "label"


class EmptyCollectionPolicy(Enum):
    """
    What to do when no scenes match the date range and region.

    An empty collection is never treated as a valid "nothing is vegetated"
    result: it either fails or carries through as no-data.
    """

    FAIL = "fail"
    """
    Raise NoDataInRangeError.
    """

    NO_DATA = "no_data"
    """
    Carry on with the empty collection, producing an all no-data raster.
    """


def _check_not_empty(
    n_scenes: int,
    policy: EmptyCollectionPolicy,
    source: str,
    date_range: DateRange,
) -> None:
    if n_scenes > 0:
        return

    msg = f"No scenes in {source} for {date_range} over the region."
    if policy is EmptyCollectionPolicy.FAIL:
        raise NoDataInRangeError(msg)
    logger.warning(f"{msg} Continuing with an all no-data result.")


class LocalCollectionFilter:
    """Filters an in-memory scene collection."""

    def __init__(
        self,
        source: SceneCollection,
        *,
        band: str = DEFAULT_LABEL_BAND,
        empty_policy: EmptyCollectionPolicy = EmptyCollectionPolicy.FAIL,
    ) -> None:
        """
        Initialize the LocalCollectionFilter with the scenes to filter.

        :param source: All available scenes.
        :param band: The label band to keep.
        :param empty_policy: What to do when nothing matches.
        """
        self.source = source
        self.band = band
        self.empty_policy = empty_policy

    def filter(self, date_range: DateRange, boundary: ResolvedBoundary) -> SceneCollection:
        """
        Keep the scenes in the date range that intersect the boundary.

        :param date_range: The half-open range of acquisition instants.
        :param boundary: The region the scenes must intersect.
        :return: The matching scenes with only the label band.
        :raises NoDataInRangeError: If nothing matches and the policy is FAIL.
        """
        filtered = (
            self.source.filter_date(date_range).filter_bounds(boundary).select(self.band)
        )
        logger.debug(f"Kept {len(filtered)} of {len(self.source)} local scenes for {date_range}")
        _check_not_empty(len(filtered), self.empty_policy, "the local collection", date_range)
        return filtered


class GeeCollectionFilter:
    """Filters an Earth Engine image collection."""

    def __init__(
        self,
        *,
        remote: RemoteCaller,
        collection_name: str = DEFAULT_COLLECTION,
        band: str = DEFAULT_LABEL_BAND,
        empty_policy: EmptyCollectionPolicy = EmptyCollectionPolicy.FAIL,
    ) -> None:
        """
        Initialize the GeeCollectionFilter with the collection to filter.

        :param remote: Runs the blocking size check with retries.
        :param collection_name: The Earth Engine image collection ID.
        :param band: The label band to keep.
        :param empty_policy: What to do when nothing matches.
        """
        self.remote = remote
        self.collection_name = collection_name
        self.band = band
        self.empty_policy = empty_policy

    def filter(self, date_range: DateRange, boundary: FeatureCollection) -> ImageCollection:
        """
        Keep the images in the date range that intersect the boundary.

        :param date_range: The half-open range of acquisition instants.
        :param boundary: The region the images must intersect.
        :return: The lazily evaluated collection with only the label band.
        :raises NoDataInRangeError: If nothing matches and the policy is FAIL.
        """
        images = (
            ImageCollection(self.collection_name)
            .filterDate(date_range.start_iso, date_range.end_iso)
            .filterBounds(boundary)
            .select(self.band)
        )

        n_scenes = self.remote.call(
            f"counting images in {self.collection_name}",
            lambda: images.size().getInfo(),
        )
        logger.debug(f"Found {n_scenes} images in {self.collection_name} for {date_range}")
        _check_not_empty(n_scenes, self.empty_policy, self.collection_name, date_range)
        return images
