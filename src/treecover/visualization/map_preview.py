"""
HTML map previews of a boundary and its tree cover.

Previews are for looking at the result only. They never change what is
exported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import folium
import numpy as np
from branca.colormap import LinearColormap
from folium.raster_layers import ImageOverlay
from rasterio.warp import transform_bounds
from shapely.geometry import mapping

from treecover.boundaries.boundary import BOUNDARY_CRS
from treecover.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from ee.featurecollection import FeatureCollection
    from ee.image import Image

    from treecover.boundaries.boundary import ResolvedBoundary
    from treecover.classification.vegetation_reducer import TreeCoverRaster
    from treecover.remote import RemoteCaller

BASEMAPS: dict[str, tuple[str, str]] = {
    "SATELLITE": (
        "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        "Esri World Imagery",
    ),
    "ROADMAP": (
        "https://tile.openstreetmap.org/{z}/{x}/{y}.png",
        "OpenStreetMap contributors",
    ),
}

BOUNDARY_STYLE = {"color": "#000000", "weight": 2, "fillOpacity": 0.0}


@dataclass(frozen=True)
class MapViewConfig:
    """How a preview map is centred and styled."""

    zoom: int = 8
    basemap: str = "SATELLITE"
    palette: tuple[str, ...] = field(default=("white", "green"))
    min: float = 0.0
    max: float = 1.0
    opacity: float = 0.8

    def __post_init__(self) -> None:
        """Validate the configuration."""
        if self.basemap not in BASEMAPS:
            msg = f"Unknown basemap '{self.basemap}'. Valid basemaps: {', '.join(BASEMAPS)}"
            raise ValueError(msg)
        if len(self.palette) < 2:  # noqa: PLR2004
            msg = "A palette needs at least two colours."
            raise ValueError(msg)
        if self.max <= self.min:
            msg = f"Visualisation max {self.max} must be greater than min {self.min}."
            raise ValueError(msg)

    def colormap(self, caption: str) -> LinearColormap:
        """Return the palette as a colour scale between min and max."""
        colormap = LinearColormap(list(self.palette), vmin=self.min, vmax=self.max)
        colormap.caption = caption
        return colormap

    def gee_visualization(self) -> dict[str, object]:
        """Return the visualisation parameters in Earth Engine's format."""
        return {"min": self.min, "max": self.max, "palette": list(self.palette)}


def _base_map(config: MapViewConfig, lat: float, lon: float) -> folium.Map:
    tiles, attribution = BASEMAPS[config.basemap]
    base = folium.Map(location=[lat, lon], zoom_start=config.zoom, tiles=None)
    folium.TileLayer(tiles=tiles, attr=attribution, name=config.basemap.title()).add_to(base)
    return base


def _save(base: folium.Map, output_path: Path) -> Path:
    folium.LayerControl(collapsed=False).add_to(base)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    base.save(str(output_path))
    logger.info(f"Map preview saved to {output_path}")
    return output_path


def render_rgba(raster: TreeCoverRaster, config: MapViewConfig) -> np.ndarray:
    """
    Colour a raster with the configured palette.

    :return: A (rows, columns, 4) uint8 array, transparent where there is no data.
    """
    colormap = config.colormap(raster.band_name)
    steps = 256
    lookup = np.array(
        [
            colormap.rgba_floats_tuple(value)
            for value in np.linspace(config.min, config.max, steps)
        ],
    )

    values = np.ma.getdata(raster.values).astype(np.float64)
    scaled = (np.clip(values, config.min, config.max) - config.min) / (config.max - config.min)
    indices = np.nan_to_num(scaled * (steps - 1)).round().astype(int)

    rgba = (lookup[indices] * 255).round().astype(np.uint8)
    rgba[..., 3] = np.where(np.ma.getmaskarray(raster.values), 0, round(config.opacity * 255))
    return rgba


class LocalMapPreview:
    """Renders in-memory boundaries and rasters to an HTML map."""

    def __init__(self, config: MapViewConfig) -> None:
        """Initialize the LocalMapPreview with its view configuration."""
        self.config = config

    def render(
        self,
        boundary: ResolvedBoundary,
        raster: TreeCoverRaster,
        output_path: Path,
    ) -> Path:
        """
        Save a map of the raster and boundary, centred on the boundary.

        :param boundary: The resolved boundary.
        :param raster: The tree cover raster. It is overlaid unwarped over its
        lon/lat bounding box, so it is only approximately placed.
        :param output_path: Where to write the HTML file.
        :return: The written path.
        """
        centre = boundary.geometry.centroid
        base = _base_map(self.config, centre.y, centre.x)

        west, south, east, north = transform_bounds(
            raster.grid.crs, BOUNDARY_CRS, *raster.grid.bounds
        )
        ImageOverlay(
            image=render_rgba(raster, self.config),
            bounds=[[south, west], [north, east]],
            name=raster.band_name,
        ).add_to(base)
        folium.GeoJson(
            mapping(boundary.geometry),
            name=str(boundary.query),
            style_function=lambda _: BOUNDARY_STYLE,
        ).add_to(base)
        self.config.colormap(raster.band_name).add_to(base)

        return _save(base, output_path)


class GeeMapPreview:
    """Renders Earth Engine boundaries and images to an HTML map."""

    def __init__(self, config: MapViewConfig, remote: RemoteCaller) -> None:
        """
        Initialize the GeeMapPreview.

        :param config: The view configuration.
        :param remote: Runs the blocking map and centroid requests with retries.
        """
        self.config = config
        self.remote = remote

    def render(
        self,
        boundary: FeatureCollection,
        image: Image,
        output_path: Path,
    ) -> Path:
        """
        Save a map of the image and boundary, centred on the boundary.

        :param boundary: The resolved boundary.
        :param image: The tree cover image.
        :param output_path: Where to write the HTML file.
        :return: The written path.
        """
        lon, lat = self.remote.call(
            "reading the boundary centroid",
            lambda: boundary.geometry().centroid(maxError=1).coordinates().getInfo(),
        )
        base = _base_map(self.config, lat, lon)

        self._add_ee_layer(base, image, self.config.gee_visualization(), "Tree Cover Mask")
        self._add_ee_layer(base, boundary, {}, "Boundary")
        self.config.colormap("Tree Cover Mask").add_to(base)

        return _save(base, output_path)

    def _add_ee_layer(
        self,
        base: folium.Map,
        ee_object: Image | FeatureCollection,
        vis_params: dict[str, object],
        name: str,
    ) -> None:
        map_id = self.remote.call(
            f"requesting map tiles for {name}",
            lambda: ee_object.getMapId(vis_params),
        )
        folium.TileLayer(
            tiles=map_id["tile_fetcher"].url_format,
            attr="Google Earth Engine",
            name=name,
            overlay=True,
            control=True,
        ).add_to(base)
