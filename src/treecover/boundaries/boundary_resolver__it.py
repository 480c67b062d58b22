import os

import ee
import pytest

from treecover.boundaries.boundary import BoundaryQuery
from treecover.boundaries.boundary_resolver import GeeBoundaryResolver
from treecover.classification.clipping import GeeClipper
from treecover.classification.vegetation_reducer import GeeVegetationReducer
from treecover.date_range import DateRange
from treecover.errors import BoundaryNotFoundError
from treecover.imagery.collection_filter import GeeCollectionFilter
from treecover.remote import RemoteCaller

pytestmark = pytest.mark.integration

NORTHERN = BoundaryQuery(country_name="Sri Lanka", province_name="Northern")

# Loose bounding box of Sri Lanka's Northern province.
NORTHERN_LON_RANGE = (79.5, 81.5)
NORTHERN_LAT_RANGE = (8.0, 10.0)


@pytest.fixture(scope="module")
def remote():
    project = os.environ.get("GCP_PROJECT")
    if not project:
        pytest.skip("GCP_PROJECT is not set")
    ee.Initialize(project=project)
    return RemoteCaller(tries=3)


def test__GeeBoundaryResolver_resolve__northern_province__single_feature(remote):
    resolver = GeeBoundaryResolver(remote=remote)

    region = resolver.resolve(NORTHERN)

    assert region.size().getInfo() == 1
    lon, lat = region.geometry().centroid(maxError=1).coordinates().getInfo()
    assert NORTHERN_LON_RANGE[0] < lon < NORTHERN_LON_RANGE[1]
    assert NORTHERN_LAT_RANGE[0] < lat < NORTHERN_LAT_RANGE[1]


def test__GeeBoundaryResolver_resolve__unknown_province__raises(remote):
    resolver = GeeBoundaryResolver(remote=remote)

    with pytest.raises(BoundaryNotFoundError):
        resolver.resolve(BoundaryQuery(country_name="Sri Lanka", province_name="Atlantis"))


def test__tree_cover__one_month__fractions_within_unit_interval(remote):
    region = GeeBoundaryResolver(remote=remote).resolve(NORTHERN)
    images = GeeCollectionFilter(remote=remote).filter(
        DateRange.parse("2024-01-01", "2024-02-01"),
        region,
    )

    image = GeeClipper().clip(GeeVegetationReducer().reduce(images, region), region)
    stats = image.reduceRegion(
        reducer=ee.Reducer.minMax(),
        geometry=region.geometry(),
        scale=1000,
        maxPixels=10_000_000,
    ).getInfo()

    assert 0.0 <= stats["tree_cover_min"] <= stats["tree_cover_max"] <= 1.0
