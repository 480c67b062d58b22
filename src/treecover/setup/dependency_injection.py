"""A module for setting up the tree cover pipeline using Dependency Injection."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import ee
import google.auth
from dependency_injector import containers, providers
from fsspec.implementations.local import LocalFileSystem

from treecover.boundaries.boundary import (
    DEFAULT_BOUNDARY_ASSET,
    DEFAULT_COUNTRY_PROPERTY,
    DEFAULT_PROVINCE_PROPERTY,
    BoundaryQuery,
)
from treecover.boundaries.boundary_loader import load_boundaries
from treecover.boundaries.boundary_resolver import GeeBoundaryResolver, LocalBoundaryResolver
from treecover.classification.clipping import GeeClipper, LocalClipper
from treecover.classification.vegetation_reducer import (
    DEFAULT_OUTPUT_BAND,
    GeeVegetationReducer,
    LocalVegetationReducer,
)
from treecover.date_range import DateRange
from treecover.export.export_request import ExportDestination
from treecover.export.gee_image_exporter import GeeImageExporter
from treecover.export.local_raster_exporter import LocalRasterExporter
from treecover.imagery.collection_filter import (
    DEFAULT_COLLECTION,
    DEFAULT_LABEL_BAND,
    EmptyCollectionPolicy,
    GeeCollectionFilter,
    LocalCollectionFilter,
)
from treecover.imagery.scene_loader import load_scenes_from_directory
from treecover.labels import VegetatedLabelSet
from treecover.logging import logger
from treecover.pipeline import TreeCoverPipeline, TreeCoverSettings
from treecover.remote import RemoteCaller
from treecover.visualization.map_preview import GeeMapPreview, LocalMapPreview, MapViewConfig

if TYPE_CHECKING:
    from collections.abc import Generator

    from treecover.boundaries.boundary import BoundaryFeature
    from treecover.imagery.scene import SceneCollection

GEE_ENGINE = "gee"
LOCAL_ENGINE = "local"


@contextmanager
def _init_gee(
    engine: str,
    gcp_project: str | None,
) -> Generator[None, None, None]:
    if engine != GEE_ENGINE:
        logger.debug(f"Engine is '{engine}', not initializing GEE")
        yield
        return

    if not gcp_project:
        msg = "GCP_PROJECT must be set to use the Earth Engine engine."
        raise ValueError(msg)

    logger.debug("Initializing GEE with project: %s", gcp_project)
    creds, _ = google.auth.default(
        scopes=[
            "https://www.googleapis.com/auth/earthengine",
            "https://www.googleapis.com/auth/cloud-platform",
        ],
    )
    ee.Initialize(project=gcp_project, credentials=creds)
    yield


def _required_path(value: str | None, name: str) -> Path:
    if not value:
        msg = f"{name} must be set to use the local engine."
        raise ValueError(msg)
    return Path(value)


def _load_local_boundaries(
    path: str | None,
    country_property: str,
    province_property: str,
) -> list[BoundaryFeature]:
    boundary_path = _required_path(path, "TREECOVER_LOCAL_BOUNDARIES")
    logger.debug("Loading local boundaries from: %s", boundary_path)
    return load_boundaries(
        boundary_path,
        country_property=country_property,
        province_property=province_property,
    )


def _load_local_scenes(directory: str | None, band: str) -> SceneCollection:
    scenes_dir = _required_path(directory, "TREECOVER_LOCAL_SCENES_DIR")
    logger.debug("Loading local scenes from: %s", scenes_dir)
    return load_scenes_from_directory(scenes_dir, band=band)


def build_settings(  # noqa: PLR0913
    *,
    country: str,
    province: str,
    start_date: str,
    end_date: str,
    export_description: str,
    file_name_prefix: str,
    scale: str,
    max_pixels: str,
    preview_html: str | None,
) -> TreeCoverSettings:
    """
    Create the run settings from raw configuration values.

    :return: The typed settings.
    """
    return TreeCoverSettings(
        boundary=BoundaryQuery(country_name=country, province_name=province),
        date_range=DateRange.parse(start_date, end_date),
        export_description=export_description,
        file_name_prefix=file_name_prefix,
        scale=float(scale),
        # Accept scientific notation such as "1e13".
        max_pixels=int(float(max_pixels)),
        preview_path=Path(preview_html) if preview_html else None,
    )


class TreeCoverContainer(containers.DeclarativeContainer):
    """
    Dependency Injection container for the tree cover pipeline.

    The `engine` setting picks which set of stages the pipeline runs with.
    """

    # Not strict: optional settings such as the export folder are None when unset.
    config = providers.Configuration()

    gee_auth = providers.Resource(
        _init_gee,
        engine=config.engine,
        gcp_project=config.gcp.gcp_project,
    )

    remote = providers.Singleton(
        RemoteCaller,
        tries=providers.Callable(int, config.remote.tries),
        delay=providers.Callable(float, config.remote.delay),
    )

    settings = providers.Singleton(
        build_settings,
        country=config.boundary.country,
        province=config.boundary.province,
        start_date=config.start_date,
        end_date=config.end_date,
        export_description=config.export.description,
        file_name_prefix=config.export.file_name_prefix,
        scale=config.export.scale,
        max_pixels=config.export.max_pixels,
        preview_html=config.preview.html,
    )

    vegetated = providers.Singleton(
        VegetatedLabelSet.parse,
        config.vegetated_labels,
    )

    empty_policy = providers.Singleton(
        EmptyCollectionPolicy,
        config.empty_collection_policy,
    )

    map_view_config = providers.Singleton(
        MapViewConfig,
        zoom=providers.Callable(int, config.preview.zoom),
        basemap=config.preview.basemap,
    )

    # Earth Engine stages

    gee_boundary_resolver = providers.Singleton(
        GeeBoundaryResolver,
        remote=remote,
        boundary_asset=config.gee.boundary_asset,
        country_property=config.boundary.country_property,
        province_property=config.boundary.province_property,
    )

    gee_collection_filter = providers.Singleton(
        GeeCollectionFilter,
        remote=remote,
        collection_name=config.gee.collection,
        band=config.band,
        empty_policy=empty_policy,
    )

    gee_reducer = providers.Singleton(
        GeeVegetationReducer,
        vegetated=vegetated,
        band=config.band,
        output_band=config.output_band,
    )

    gee_clipper = providers.Singleton(GeeClipper)

    gee_exporter = providers.Singleton(
        GeeImageExporter,
        remote=remote,
        destination=providers.Callable(ExportDestination, config.export.destination),
        folder=config.export.folder,
        bucket=config.export.bucket,
    )

    gee_preview = providers.Singleton(
        GeeMapPreview,
        config=map_view_config,
        remote=remote,
    )

    # In-memory stages

    local_boundaries = providers.Singleton(
        _load_local_boundaries,
        path=config.local.boundaries,
        country_property=config.boundary.country_property,
        province_property=config.boundary.province_property,
    )

    local_boundary_resolver = providers.Singleton(
        LocalBoundaryResolver,
        features=local_boundaries,
    )

    local_scenes = providers.Singleton(
        _load_local_scenes,
        directory=config.local.scenes_dir,
        band=config.band,
    )

    local_collection_filter = providers.Singleton(
        LocalCollectionFilter,
        source=local_scenes,
        band=config.band,
        empty_policy=empty_policy,
    )

    local_reducer = providers.Singleton(
        LocalVegetationReducer,
        vegetated=vegetated,
        band=config.band,
        output_band=config.output_band,
    )

    local_clipper = providers.Singleton(LocalClipper)

    local_filesystem = providers.Singleton(LocalFileSystem, auto_mkdir=True)

    local_exporter = providers.Singleton(
        LocalRasterExporter,
        filesystem=local_filesystem,
        root=config.local.output_root,
    )

    local_preview = providers.Singleton(
        LocalMapPreview,
        config=map_view_config,
    )

    pipeline = providers.Singleton(
        TreeCoverPipeline,
        settings=settings,
        boundary_resolver=providers.Selector(
            config.engine,
            gee=gee_boundary_resolver,
            local=local_boundary_resolver,
        ),
        collection_filter=providers.Selector(
            config.engine,
            gee=gee_collection_filter,
            local=local_collection_filter,
        ),
        reducer=providers.Selector(
            config.engine,
            gee=gee_reducer,
            local=local_reducer,
        ),
        clipper=providers.Selector(
            config.engine,
            gee=gee_clipper,
            local=local_clipper,
        ),
        exporter=providers.Selector(
            config.engine,
            gee=gee_exporter,
            local=local_exporter,
        ),
        preview=providers.Selector(
            config.engine,
            gee=gee_preview,
            local=local_preview,
        ),
    )


def init_dependencies_from_env() -> TreeCoverContainer:
    """
    Create a container instance with configuration loaded from environment variables.

    The defaults reproduce the Northern Province (Sri Lanka) 2024 export.

    Returns:
        TreeCoverContainer: An instance of the container with configuration set.

    """
    container = TreeCoverContainer()
    config = container.config

    config.engine.from_env("TREECOVER_ENGINE", default=GEE_ENGINE)
    config.gcp.gcp_project.from_env("GCP_PROJECT", default=None)

    config.boundary.country.from_env("TREECOVER_COUNTRY", default="Sri Lanka")
    config.boundary.province.from_env("TREECOVER_PROVINCE", default="Northern")
    config.boundary.country_property.from_env(
        "TREECOVER_COUNTRY_PROPERTY",
        default=DEFAULT_COUNTRY_PROPERTY,
    )
    config.boundary.province_property.from_env(
        "TREECOVER_PROVINCE_PROPERTY",
        default=DEFAULT_PROVINCE_PROPERTY,
    )

    config.start_date.from_env("TREECOVER_START_DATE", default="2024-01-01")
    config.end_date.from_env("TREECOVER_END_DATE", default="2025-01-01")

    config.vegetated_labels.from_env("TREECOVER_VEGETATED_LABELS", default="0,1,2,6,9")
    config.band.from_env("TREECOVER_BAND", default=DEFAULT_LABEL_BAND)
    config.output_band.from_env("TREECOVER_OUTPUT_BAND", default=DEFAULT_OUTPUT_BAND)
    config.empty_collection_policy.from_env(
        "TREECOVER_EMPTY_COLLECTION_POLICY",
        default=EmptyCollectionPolicy.FAIL.value,
    )

    config.gee.boundary_asset.from_env("TREECOVER_BOUNDARY_ASSET", default=DEFAULT_BOUNDARY_ASSET)
    config.gee.collection.from_env("TREECOVER_COLLECTION", default=DEFAULT_COLLECTION)

    config.export.description.from_env(
        "TREECOVER_EXPORT_DESCRIPTION",
        default="Northern_Treecover_2024",
    )
    config.export.file_name_prefix.from_env(
        "TREECOVER_FILE_NAME_PREFIX",
        default="Northern_Treecover_2024",
    )
    config.export.scale.from_env("TREECOVER_SCALE", default="30")
    config.export.max_pixels.from_env("TREECOVER_MAX_PIXELS", default="1e13")
    config.export.destination.from_env(
        "TREECOVER_EXPORT_DESTINATION",
        default=ExportDestination.DRIVE.value,
    )
    config.export.folder.from_env("TREECOVER_EXPORT_FOLDER", default=None)
    config.export.bucket.from_env("TREECOVER_EXPORT_BUCKET", default=None)

    config.local.boundaries.from_env("TREECOVER_LOCAL_BOUNDARIES", default=None)
    config.local.scenes_dir.from_env("TREECOVER_LOCAL_SCENES_DIR", default=None)
    config.local.output_root.from_env("TREECOVER_LOCAL_OUTPUT_ROOT", default="./output")

    config.preview.html.from_env("TREECOVER_PREVIEW_HTML", default=None)
    config.preview.zoom.from_env("TREECOVER_PREVIEW_ZOOM", default="8")
    config.preview.basemap.from_env("TREECOVER_PREVIEW_BASEMAP", default="SATELLITE")

    config.remote.tries.from_env("TREECOVER_REMOTE_TRIES", default="5")
    config.remote.delay.from_env("TREECOVER_REMOTE_DELAY", default="1.0")

    engine = config.engine()
    if engine not in {GEE_ENGINE, LOCAL_ENGINE}:
        msg = f"TREECOVER_ENGINE must be '{GEE_ENGINE}' or '{LOCAL_ENGINE}', got '{engine}'."
        raise ValueError(msg)

    container.init_resources()

    return container
