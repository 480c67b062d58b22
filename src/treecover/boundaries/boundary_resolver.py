"""Resolve an administrative boundary by country and province name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ee.featurecollection import FeatureCollection
from ee.filter import Filter

from treecover.boundaries.boundary import (
    DEFAULT_BOUNDARY_ASSET,
    DEFAULT_COUNTRY_PROPERTY,
    DEFAULT_PROVINCE_PROPERTY,
    BoundaryQuery,
    ResolvedBoundary,
)
from treecover.errors import BoundaryNotFoundError
from treecover.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from treecover.boundaries.boundary import BoundaryFeature
    from treecover.remote import RemoteCaller


def _not_found_message(query: BoundaryQuery) -> str:
    return (
        f"No boundary found for country '{query.country_name}' and province "
        f"'{query.province_name}'. Names must match the dataset exactly."
    )


class LocalBoundaryResolver:
    """Resolves boundaries from features held in memory."""

    def __init__(self, features: Iterable[BoundaryFeature]) -> None:
        """
        Initialize the LocalBoundaryResolver with the available features.

        :param features: Every boundary feature that can be resolved.
        """
        self.features = tuple(features)

    def resolve(self, query: BoundaryQuery) -> ResolvedBoundary:
        """
        Find the features whose country and province names equal the query.

        :param query: The names to look for.
        :return: The matched features.
        :raises BoundaryNotFoundError: If no feature matches.
        """
        # Country first, then province, as with the Earth Engine filters.
        in_country = [f for f in self.features if f.country_name == query.country_name]
        matched = tuple(f for f in in_country if f.province_name == query.province_name)

        if not matched:
            raise BoundaryNotFoundError(_not_found_message(query))

        if len(matched) > 1:
            logger.warning(f"Boundary {query} matched {len(matched)} features, using their union")

        resolved = ResolvedBoundary(query=query, features=matched)
        logger.debug(f"Resolved boundary {query} with bounds {resolved.bounds}")
        return resolved


class GeeBoundaryResolver:
    """Resolves boundaries from an Earth Engine feature collection asset."""

    def __init__(
        self,
        *,
        remote: RemoteCaller,
        boundary_asset: str = DEFAULT_BOUNDARY_ASSET,
        country_property: str = DEFAULT_COUNTRY_PROPERTY,
        province_property: str = DEFAULT_PROVINCE_PROPERTY,
    ) -> None:
        """
        Initialize the GeeBoundaryResolver with the asset to query.

        :param remote: Runs the blocking size check with retries.
        :param boundary_asset: The Earth Engine asset with the administrative boundaries.
        :param country_property: The property holding the country name.
        :param province_property: The property holding the province name.
        """
        self.remote = remote
        self.boundary_asset = boundary_asset
        self.country_property = country_property
        self.province_property = province_property

    def resolve(self, query: BoundaryQuery) -> FeatureCollection:
        """
        Filter the asset down to the features matching the query.

        :param query: The names to look for.
        :return: The lazily evaluated feature collection of the matches.
        :raises BoundaryNotFoundError: If no feature matches.
        """
        boundaries = FeatureCollection(self.boundary_asset)
        in_country = boundaries.filter(Filter.eq(self.country_property, query.country_name))
        region = in_country.filter(Filter.eq(self.province_property, query.province_name))

        n_features = self.remote.call(
            f"counting boundary features for {query}",
            lambda: region.size().getInfo(),
        )

        if n_features == 0:
            raise BoundaryNotFoundError(_not_found_message(query))

        if n_features > 1:
            logger.warning(f"Boundary {query} matched {n_features} features in {self.boundary_asset}")

        logger.debug(f"Resolved boundary {query} from {self.boundary_asset}")
        return region
