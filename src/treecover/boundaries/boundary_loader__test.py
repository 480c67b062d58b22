import json
import zipfile
from pathlib import Path

import pytest
import shapefile
from pyproj import CRS, Transformer

from treecover.boundaries.boundary_loader import (
    load_boundaries,
    load_boundaries_from_geojson,
    load_boundaries_from_zip,
)


def _square(west: float, south: float, east: float, north: float) -> list[list[float]]:
    return [[west, south], [west, north], [east, north], [east, south], [west, south]]


@pytest.fixture
def geojson_path(tmp_path: Path) -> Path:
    document = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"ADM0_NAME": "Sri Lanka", "ADM1_NAME": "Northern", "ADM1_CODE": 2},
                "geometry": {"type": "Polygon", "coordinates": [_square(79.8, 8.8, 81.0, 9.9)]},
            },
            {
                "type": "Feature",
                "properties": {"ADM0_NAME": "Sri Lanka", "ADM1_NAME": "Western", "ADM1_CODE": 9},
                "geometry": {"type": "Polygon", "coordinates": [_square(79.8, 6.4, 80.3, 7.4)]},
            },
        ],
    }
    path = tmp_path / "boundaries.geojson"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def shapefile_zip_path(tmp_path: Path) -> Path:
    # Written in Web Mercator to check the reprojection back to EPSG:4326.
    to_mercator = Transformer.from_crs(4326, 3857, always_xy=True)
    ring = [list(to_mercator.transform(x, y)) for x, y in _square(79.8, 8.8, 81.0, 9.9)]

    shp_dir = tmp_path / "gaul_level1"
    shp_dir.mkdir()
    base = shp_dir / "gaul_level1"
    with shapefile.Writer(str(base), shapeType=shapefile.POLYGON) as writer:
        writer.field("ADM0_NAME", "C")
        writer.field("ADM1_NAME", "C")
        writer.poly([ring])
        writer.record("Sri Lanka", "Northern")

    (shp_dir / "gaul_level1.prj").write_text(CRS.from_epsg(3857).to_wkt())

    zip_path = tmp_path / "gaul_level1.zip"
    with zipfile.ZipFile(zip_path, "w") as zip_ref:
        for file in shp_dir.iterdir():
            zip_ref.write(file, f"gaul_level1/{file.name}")
    return zip_path


def test__load_boundaries_from_geojson__reads_names_and_geometry(geojson_path) -> None:
    features = load_boundaries_from_geojson(geojson_path)

    assert [(f.country_name, f.province_name) for f in features] == [
        ("Sri Lanka", "Northern"),
        ("Sri Lanka", "Western"),
    ]
    assert features[0].geometry.bounds == pytest.approx((79.8, 8.8, 81.0, 9.9))
    assert features[1].properties["ADM1_CODE"] == 9


def test__load_boundaries_from_geojson__missing_property__raises(geojson_path) -> None:
    with pytest.raises(ValueError, match="missing attributes: NAME_1"):
        load_boundaries_from_geojson(geojson_path, province_property="NAME_1")


def test__load_boundaries_from_geojson__not_a_collection__raises(tmp_path) -> None:
    path = tmp_path / "feature.geojson"
    path.write_text(json.dumps({"type": "Feature"}), encoding="utf-8")

    with pytest.raises(ValueError, match="Expected a GeoJSON FeatureCollection"):
        load_boundaries_from_geojson(path)


def test__load_boundaries_from_zip__reprojects_to_wgs84(shapefile_zip_path) -> None:
    features = load_boundaries_from_zip(shapefile_zip_path)

    assert len(features) == 1
    assert features[0].country_name == "Sri Lanka"
    assert features[0].province_name == "Northern"
    assert features[0].geometry.bounds == pytest.approx((79.8, 8.8, 81.0, 9.9), abs=1e-6)


def test__load_boundaries_from_zip__no_prj__raises(tmp_path) -> None:
    zip_path = tmp_path / "empty.zip"
    with zipfile.ZipFile(zip_path, "w") as zip_ref:
        zip_ref.writestr("boundaries/readme.txt", "nothing here")

    with pytest.raises(ValueError, match=r"Shapefile \(.shp\) not found"):
        load_boundaries_from_zip(zip_path)


def test__load_boundaries__dispatches_on_suffix(geojson_path, shapefile_zip_path, tmp_path) -> None:
    assert len(load_boundaries(geojson_path)) == 2
    assert len(load_boundaries(shapefile_zip_path)) == 1

    with pytest.raises(ValueError, match="Unsupported boundary file type"):
        load_boundaries(tmp_path / "boundaries.csv")
