import pytest
from shapely.geometry import Point, box

from treecover.boundaries.boundary import BoundaryFeature, BoundaryQuery, ResolvedBoundary


@pytest.fixture
def boundary() -> ResolvedBoundary:
    return ResolvedBoundary(
        query=BoundaryQuery("Sri Lanka", "Northern"),
        features=(BoundaryFeature("Sri Lanka", "Northern", box(80.2, 9.2, 80.8, 9.8)),),
    )


def test__ResolvedBoundary__no_features__raises() -> None:
    with pytest.raises(ValueError, match="at least one feature"):
        ResolvedBoundary(query=BoundaryQuery("Sri Lanka", "Northern"), features=())


def test__ResolvedBoundary_geometry_in__lon_lat__unchanged(boundary) -> None:
    assert boundary.geometry_in("EPSG:4326") is boundary.geometry
    assert boundary.geometry_in("epsg:4326") is boundary.geometry


def test__ResolvedBoundary_geometry_in__utm__metres(boundary) -> None:
    projected = boundary.geometry_in("EPSG:32644")

    west, south, east, north = projected.bounds
    assert west == pytest.approx(412_100, abs=3_000)
    assert east == pytest.approx(478_050, abs=3_000)
    assert south == pytest.approx(1_017_100, abs=3_000)
    assert north == pytest.approx(1_083_500, abs=3_000)
    # Near 80.5 E, 9.5 N.
    assert projected.contains(Point(445_000.0, 1_050_000.0))
