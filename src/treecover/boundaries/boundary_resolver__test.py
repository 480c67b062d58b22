from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from shapely.geometry import box

from treecover.boundaries.boundary import BoundaryFeature, BoundaryQuery, ResolvedBoundary
from treecover.boundaries.boundary_resolver import GeeBoundaryResolver, LocalBoundaryResolver
from treecover.errors import BoundaryNotFoundError, ServiceUnavailableError
from treecover.remote import RemoteCaller

NORTHERN = BoundaryQuery(country_name="Sri Lanka", province_name="Northern")


@pytest.fixture
def features():
    return [
        BoundaryFeature("Sri Lanka", "Northern", box(79.8, 8.8, 81.0, 9.9)),
        BoundaryFeature("Sri Lanka", "Western", box(79.8, 6.4, 80.3, 7.4)),
        BoundaryFeature("India", "Northern", box(70.0, 30.0, 71.0, 31.0)),
        BoundaryFeature("Sri Lanka", "Eastern", box(81.0, 6.5, 81.9, 8.8)),
        BoundaryFeature("Sri Lanka", "Eastern", box(81.0, 8.8, 81.4, 9.2)),
    ]


def test__LocalBoundaryResolver_resolve__single_match__returns_feature_geometry(features) -> None:
    resolver = LocalBoundaryResolver(features)

    resolved = resolver.resolve(NORTHERN)

    assert resolved.features == (features[0],)
    assert resolved.geometry.equals(box(79.8, 8.8, 81.0, 9.9))


def test__LocalBoundaryResolver_resolve__repeated__same_geometry(features) -> None:
    resolver = LocalBoundaryResolver(features)

    first = resolver.resolve(NORTHERN)
    second = resolver.resolve(NORTHERN)

    assert first == second
    assert first.geometry.equals(second.geometry)


def test__LocalBoundaryResolver_resolve__multiple_matches__union_geometry(features) -> None:
    resolver = LocalBoundaryResolver(features)

    resolved = resolver.resolve(BoundaryQuery("Sri Lanka", "Eastern"))

    assert len(resolved.features) == 2
    assert resolved.bounds == pytest.approx((81.0, 6.5, 81.9, 9.2))


@pytest.mark.parametrize(
    "query",
    [
        BoundaryQuery("Sri Lanka", "Atlantis"),
        BoundaryQuery("Sri Lanka", "northern"),
        BoundaryQuery("Sri lanka", "Northern"),
    ],
)
def test__LocalBoundaryResolver_resolve__no_exact_match__raises(features, query) -> None:
    resolver = LocalBoundaryResolver(features)

    with pytest.raises(BoundaryNotFoundError, match=query.province_name):
        resolver.resolve(query)


def test__ResolvedBoundary__no_features__raises() -> None:
    with pytest.raises(ValueError, match="at least one feature"):
        ResolvedBoundary(query=NORTHERN, features=())


@pytest.fixture
def mock_gee() -> Iterator[dict[str, MagicMock]]:
    with (
        patch("treecover.boundaries.boundary_resolver.FeatureCollection") as MockFeatureCollection,
        patch("treecover.boundaries.boundary_resolver.Filter") as MockFilter,
    ):
        boundaries = MagicMock()
        in_country = MagicMock()
        region = MagicMock()
        MockFeatureCollection.return_value = boundaries
        boundaries.filter.return_value = in_country
        in_country.filter.return_value = region
        region.size.return_value.getInfo.return_value = 1

        yield {
            "MockFeatureCollection": MockFeatureCollection,
            "MockFilter": MockFilter,
            "boundaries": boundaries,
            "in_country": in_country,
            "region": region,
        }


def test__GeeBoundaryResolver_resolve__filters_country_then_province(mock_gee) -> None:
    resolver = GeeBoundaryResolver(remote=RemoteCaller(tries=1))

    result = resolver.resolve(NORTHERN)

    assert result is mock_gee["region"]
    mock_gee["MockFeatureCollection"].assert_called_once_with("FAO/GAUL_SIMPLIFIED_500m/2015/level1")
    assert [c.args for c in mock_gee["MockFilter"].eq.call_args_list] == [
        ("ADM0_NAME", "Sri Lanka"),
        ("ADM1_NAME", "Northern"),
    ]
    mock_gee["boundaries"].filter.assert_called_once_with(mock_gee["MockFilter"].eq.return_value)
    mock_gee["in_country"].filter.assert_called_once_with(mock_gee["MockFilter"].eq.return_value)


def test__GeeBoundaryResolver_resolve__custom_properties(mock_gee) -> None:
    resolver = GeeBoundaryResolver(
        remote=RemoteCaller(tries=1),
        boundary_asset="projects/example/assets/gadm_level1",
        country_property="COUNTRY",
        province_property="NAME_1",
    )

    resolver.resolve(NORTHERN)

    mock_gee["MockFeatureCollection"].assert_called_once_with("projects/example/assets/gadm_level1")
    assert [c.args[0] for c in mock_gee["MockFilter"].eq.call_args_list] == ["COUNTRY", "NAME_1"]


def test__GeeBoundaryResolver_resolve__no_match__raises(mock_gee) -> None:
    mock_gee["region"].size.return_value.getInfo.return_value = 0
    resolver = GeeBoundaryResolver(remote=RemoteCaller(tries=1))

    with pytest.raises(BoundaryNotFoundError, match="Northern"):
        resolver.resolve(NORTHERN)


def test__GeeBoundaryResolver_resolve__service_down__raises_unavailable(mock_gee) -> None:
    mock_gee["region"].size.return_value.getInfo.side_effect = Exception("503 Service Unavailable")
    resolver = GeeBoundaryResolver(remote=RemoteCaller(tries=2, delay=0))

    with pytest.raises(ServiceUnavailableError):
        resolver.resolve(NORTHERN)

    assert mock_gee["region"].size.return_value.getInfo.call_count == 2
