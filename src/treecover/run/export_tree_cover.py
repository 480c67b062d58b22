"""Runner to compute the tree cover of a region and submit its export."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dependency_injector.wiring import Provide, inject

from treecover.logging import logger
from treecover.setup.dependency_injection import TreeCoverContainer, init_dependencies_from_env

if TYPE_CHECKING:
    from treecover.pipeline import TreeCoverPipeline


@inject
def _main(
    pipeline: TreeCoverPipeline = Provide[TreeCoverContainer.pipeline],
) -> None:
    logger.info("Running the tree cover pipeline")
    result = pipeline.run()

    job = result.export_job
    logger.info(
        f"Export job {job.job_id} ({job.state.value}) for '{job.description}' "
        f"to {job.destination.value}",
    )
    if result.preview_path is not None:
        logger.info(f"Map preview at {result.preview_path}")


if __name__ == "__main__":
    container = init_dependencies_from_env()
    container.wire(modules=[__name__])
    _main()
