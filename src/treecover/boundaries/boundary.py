"""Administrative boundary types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pyproj import CRS, Transformer
from shapely import unary_union
from shapely.ops import transform

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

DEFAULT_BOUNDARY_ASSET = "FAO/GAUL_SIMPLIFIED_500m/2015/level1"
DEFAULT_COUNTRY_PROPERTY = "ADM0_NAME"
DEFAULT_PROVINCE_PROPERTY = "ADM1_NAME"
BOUNDARY_CRS = "EPSG:4326"


@dataclass(frozen=True)
class BoundaryQuery:
    """
    Names the administrative region to resolve.

    Both names must match the boundary dataset's attribute values exactly,
    including case.
    """

    country_name: str
    province_name: str

    def __str__(self) -> str:
        """Return a readable form of the query."""
        return f"{self.province_name} ({self.country_name})"


@dataclass(frozen=True)
class BoundaryFeature:
    """A named administrative polygon in EPSG:4326."""

    country_name: str
    province_name: str
    geometry: BaseGeometry
    properties: dict[str, Any] = field(default_factory=dict, compare=False)

    def matches(self, query: BoundaryQuery) -> bool:
        """Check whether both names equal the query's names."""
        return (
            self.country_name == query.country_name and self.province_name == query.province_name
        )


@dataclass(frozen=True)
class ResolvedBoundary:
    """The features that matched a boundary query. Never empty."""

    query: BoundaryQuery
    features: tuple[BoundaryFeature, ...]

    def __post_init__(self) -> None:
        """Validate the resolved boundary."""
        if not self.features:
            msg = "A resolved boundary needs at least one feature."
            raise ValueError(msg)

    @property
    def geometry(self) -> BaseGeometry:
        """Return the geometry of the region, the union of all matched features."""
        if len(self.features) == 1:
            return self.features[0].geometry
        return unary_union([feature.geometry for feature in self.features])

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return the (min lon, min lat, max lon, max lat) bounding box."""
        return self.geometry.bounds

    def geometry_in(self, crs: str) -> BaseGeometry:
        """
        Return the geometry of the region reprojected to another CRS.

        :param crs: The target CRS, e.g. the CRS of a scene in UTM.
        :return: The geometry, unchanged when `crs` is already EPSG:4326.
        """
        target = CRS.from_user_input(crs)
        source = CRS.from_user_input(BOUNDARY_CRS)
        if target == source:
            return self.geometry
        transformer = Transformer.from_crs(source, target, always_xy=True)
        return transform(transformer.transform, self.geometry)
