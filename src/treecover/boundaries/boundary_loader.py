"""Load administrative boundaries from local files."""

from __future__ import annotations

import json
import tempfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import shapefile
from pyproj import CRS, Transformer
from shapely.geometry import shape
from shapely.ops import transform

from treecover.boundaries.boundary import (
    DEFAULT_COUNTRY_PROPERTY,
    DEFAULT_PROVINCE_PROPERTY,
    BoundaryFeature,
)
from treecover.logging import logger

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry


def _to_feature(
    attrs: dict[str, Any],
    geometry: BaseGeometry,
    country_property: str,
    province_property: str,
) -> BoundaryFeature:
    missing = [prop for prop in (country_property, province_property) if prop not in attrs]
    if missing:
        msg = f"Boundary feature is missing attributes: {', '.join(missing)}"
        raise ValueError(msg)

    return BoundaryFeature(
        country_name=str(attrs[country_property]),
        province_name=str(attrs[province_property]),
        geometry=geometry,
        properties=attrs,
    )


# The zip holds one shapefile with its sidecar files, for example:
# - gaul_level1/
#   - gaul_level1.shp
#   - gaul_level1.shx
#   - gaul_level1.dbf
#   - gaul_level1.prj
def load_boundaries_from_zip(
    path_to_shapefile_zip: Path,
    *,
    country_property: str = DEFAULT_COUNTRY_PROPERTY,
    province_property: str = DEFAULT_PROVINCE_PROPERTY,
) -> list[BoundaryFeature]:
    """
    Load boundary features from a zipped shapefile, reprojected to EPSG:4326.

    :param path_to_shapefile_zip: The zip file containing the shapefile.
    :param country_property: The attribute holding the country name.
    :param province_property: The attribute holding the province name.
    :return: The boundary features, in file order.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        with zipfile.ZipFile(path_to_shapefile_zip, "r") as zip_ref:
            zip_ref.extractall(tmpdir)

        tmpdir_path = Path(tmpdir)

        shp_path = next(tmpdir_path.rglob("*.shp"), None)
        prj_path = next(tmpdir_path.rglob("*.prj"), None)

        if not shp_path:
            msg = "Shapefile (.shp) not found in the ZIP archive."
            raise ValueError(msg)

        if not prj_path:
            msg = "Projection file (.prj) not found in the ZIP archive."
            raise ValueError(msg)

        with prj_path.open() as f:
            input_crs = CRS.from_wkt(f.read())

        transformer = Transformer.from_crs(input_crs, CRS.from_epsg(4326), always_xy=True)

        with shapefile.Reader(str(shp_path)) as reader:
            fields = [f[0] for f in reader.fields[1:]]  # skip deletion flag

            features = []
            for sr in reader.shapeRecords():
                attrs = dict(zip(fields, sr.record))
                geom = transform(transformer.transform, shape(sr.shape.__geo_interface__))
                features.append(_to_feature(attrs, geom, country_property, province_property))

    logger.debug(f"Loaded {len(features)} boundary features from {path_to_shapefile_zip}")
    return features


def load_boundaries_from_geojson(
    path: Path,
    *,
    country_property: str = DEFAULT_COUNTRY_PROPERTY,
    province_property: str = DEFAULT_PROVINCE_PROPERTY,
) -> list[BoundaryFeature]:
    """
    Load boundary features from a GeoJSON FeatureCollection in EPSG:4326.

    :param path: The GeoJSON file.
    :param country_property: The property holding the country name.
    :param province_property: The property holding the province name.
    :return: The boundary features, in file order.
    """
    with path.open(encoding="utf-8") as f:
        document = json.load(f)

    if document.get("type") != "FeatureCollection":
        msg = f"Expected a GeoJSON FeatureCollection in {path}, got {document.get('type')}"
        raise ValueError(msg)

    features = [
        _to_feature(
            dict(feature.get("properties") or {}),
            shape(feature["geometry"]),
            country_property,
            province_property,
        )
        for feature in document["features"]
    ]

    logger.debug(f"Loaded {len(features)} boundary features from {path}")
    return features


def load_boundaries(path: Path, **kwargs: str) -> list[BoundaryFeature]:
    """Load boundary features from a zipped shapefile or a GeoJSON file."""
    if path.suffix.lower() == ".zip":
        return load_boundaries_from_zip(path, **kwargs)
    if path.suffix.lower() in {".geojson", ".json"}:
        return load_boundaries_from_geojson(path, **kwargs)

    msg = f"Unsupported boundary file type: {path}"
    raise ValueError(msg)
