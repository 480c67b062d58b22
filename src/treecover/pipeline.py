"""The tree cover pipeline: resolve, filter, classify and reduce, clip, export."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from treecover.export.export_request import (
    DEFAULT_MAX_PIXELS,
    DEFAULT_SCALE_METERS,
    ExportJob,
    ExportRequest,
)
from treecover.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from treecover.boundaries.boundary import BoundaryQuery
    from treecover.date_range import DateRange

BoundaryT = TypeVar("BoundaryT")
CollectionT = TypeVar("CollectionT")
ImageT = TypeVar("ImageT")
RegionT = TypeVar("RegionT")


class BoundaryResolver(Protocol[BoundaryT]):
    """Finds the region to work on."""

    def resolve(self, query: BoundaryQuery) -> BoundaryT:
        """Return the boundary matching the query or raise BoundaryNotFoundError."""
        ...


class CollectionFilter(Protocol[BoundaryT, CollectionT]):
    """Selects the label scenes for the region and date range."""

    def filter(self, date_range: DateRange, boundary: BoundaryT) -> CollectionT:
        """Return the matching scenes, with only the label band."""
        ...


class VegetationReducer(Protocol[BoundaryT, CollectionT, ImageT]):
    """Turns label scenes into the fraction of time each pixel was vegetated."""

    def reduce(self, images: CollectionT, boundary: BoundaryT) -> ImageT:
        """Return the tree cover image."""
        ...


class Clipper(Protocol[BoundaryT, ImageT]):
    """Restricts an image to the boundary."""

    def clip(self, image: ImageT, boundary: BoundaryT) -> ImageT:
        """Return the image with no-data outside the boundary."""
        ...


class Exporter(Protocol[BoundaryT, ImageT, RegionT]):
    """Submits the final image for export."""

    def region_for(self, boundary: BoundaryT) -> RegionT:
        """Return the export region of the boundary."""
        ...

    def submit(self, request: ExportRequest[ImageT, RegionT]) -> ExportJob:
        """Submit the export and return its handle without waiting for it."""
        ...


class MapPreview(Protocol[BoundaryT, ImageT]):
    """Renders the result for a person to look at."""

    def render(self, boundary: BoundaryT, image: ImageT, output_path: Path) -> Path:
        """Write the preview and return where it was written."""
        ...


@dataclass(frozen=True)
class TreeCoverSettings:
    """What one pipeline run computes and how it is exported."""

    boundary: BoundaryQuery
    date_range: DateRange
    export_description: str
    file_name_prefix: str
    scale: float = DEFAULT_SCALE_METERS
    max_pixels: int = DEFAULT_MAX_PIXELS
    preview_path: Path | None = field(default=None)


@dataclass(frozen=True)
class PipelineResult(Generic[BoundaryT, ImageT]):
    """What a pipeline run produced."""

    boundary: BoundaryT
    image: ImageT
    export_job: ExportJob
    preview_path: Path | None = None


class TreeCoverPipeline:
    """
    Runs the five stages in order, each consuming the previous one's output.

    The stages are given as a consistent set for one engine: either all
    Earth Engine stages or all in-memory stages.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        settings: TreeCoverSettings,
        boundary_resolver: BoundaryResolver[Any],
        collection_filter: CollectionFilter[Any, Any],
        reducer: VegetationReducer[Any, Any, Any],
        clipper: Clipper[Any, Any],
        exporter: Exporter[Any, Any, Any],
        preview: MapPreview[Any, Any] | None = None,
    ) -> None:
        """Initialize the TreeCoverPipeline with its settings and stages."""
        self.settings = settings
        self.boundary_resolver = boundary_resolver
        self.collection_filter = collection_filter
        self.reducer = reducer
        self.clipper = clipper
        self.exporter = exporter
        self.preview = preview

    def run(self) -> PipelineResult[Any, Any]:
        """
        Compute the tree cover of the configured region and submit its export.

        :return: The boundary, the clipped image and the export job handle.
        """
        settings = self.settings

        logger.info(f"Resolving boundary {settings.boundary}")
        boundary = self.boundary_resolver.resolve(settings.boundary)

        logger.info(f"Filtering scenes for {settings.date_range}")
        scenes = self.collection_filter.filter(settings.date_range, boundary)

        logger.info("Classifying scenes and reducing them over time")
        tree_cover = self.reducer.reduce(scenes, boundary)

        logger.info("Clipping tree cover to the boundary")
        clipped = self.clipper.clip(tree_cover, boundary)

        logger.info(f"Submitting export '{settings.export_description}'")
        export_job = self.exporter.submit(
            ExportRequest(
                image=clipped,
                description=settings.export_description,
                file_name_prefix=settings.file_name_prefix,
                region=self.exporter.region_for(boundary),
                scale=settings.scale,
                max_pixels=settings.max_pixels,
            ),
        )

        # The export is already submitted when the preview fails.
        preview_path = None
        if self.preview is not None and settings.preview_path is not None:
            logger.info(f"Rendering map preview to {settings.preview_path}")
            preview_path = self.preview.render(boundary, clipped, settings.preview_path)

        return PipelineResult(
            boundary=boundary,
            image=clipped,
            export_job=export_job,
            preview_path=preview_path,
        )
