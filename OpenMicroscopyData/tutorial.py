"""
The complete walkthrough: from the IDR project list down to a cell count.

    1. list all projects, keep the experiments and save them as a table
    2. pick one project and read its description and annotations
    3. open one of its datasets and list the images
    4. show all thumbnails as a montage and fetch one full image
    5. threshold the image and outline the cells
"""

import logging
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from .IDRData import IDRData, pick
from .config import TutorialConfig
from .connectors.IDRConnector import IDRConnector
from .exceptions import MetadataFieldError
from .figures import (
    BW_IMAGE_FILE,
    FULL_IMAGE_FILE,
    GRAY_IMAGE_FILE,
    MONTAGE_FILE,
    OVERLAY_FILE,
    PROJECT_TABLE_FILE,
    build_montage,
    save_image_figure,
    save_overlay_figure,
    write_table,
)
from .metadata import experiment_projects, projects_to_table, publication_titles, select_project
from .models import Image
from .segmentation import CellRegion, binarize, segment_cells, smooth_boundaries, to_grayscale

logger = logging.getLogger(__name__)


@dataclass
class TutorialResult:
    projects: pd.DataFrame
    data: Optional[IDRData] = None
    image: Optional[Image] = None
    regions: List[CellRegion] = field(default_factory=list)
    files: List[pathlib.Path] = field(default_factory=list)
    crate_id: Optional[str] = None

    @property
    def cell_count(self) -> int:
        return len(self.regions)


def choose_project_id(table: pd.DataFrame, config: TutorialConfig) -> int:
    """
    Resolve the configured project selection against the experiment table.

    ``project_id`` must appear in the table. Otherwise the publication title
    is taken from ``publication_title`` or, failing that, from the row at
    ``project_index``, and ``experiment`` picks between experiments of the
    same publication.
    """
    if config.project_id is not None:
        if config.project_id not in set(table["id"]):
            raise ValueError(f"Project {config.project_id} is not in the experiment project list")
        return config.project_id

    title = config.publication_title
    if title is None:
        title = pick(publication_titles(table), config.project_index, "Project")
        if title is None:
            row = table.iloc[config.project_index]
            raise MetadataFieldError("Publication Title", f"description of project {row['id']}")

    return select_project(table, title, config.experiment)


def run_tutorial(config: TutorialConfig, connector: Optional[IDRConnector] = None) -> TutorialResult:
    """
    Run every step once and write the table and figures to ``config.output_dir``.

    Missing data (no experiment projects, no datasets, no images, no cells)
    ends the run early with a warning; the result holds what was produced
    up to that point.
    """
    if connector is None:
        connector = IDRConnector(config.base_url, timeout=config.timeout)
    output_dir = pathlib.Path(config.output_dir)

    # 1. Projects
    table = experiment_projects(projects_to_table(connector.list_projects()))
    result = TutorialResult(projects=table)
    result.files.append(write_table(table, output_dir / PROJECT_TABLE_FILE))

    if table.empty:
        logger.warning("No experiment projects found")
        return result

    # 2-3. Project metadata, dataset and images
    project_id = choose_project_id(table, config)
    data = IDRData.from_api(connector, project_id, config.dataset_name, config.dataset_index)
    result.data = data
    logger.info(f"Selected project {data.project.id} ({data.project.name}), DOI {data.publication_doi}")

    if not data.images:
        logger.warning(f"No images to analyse in project {project_id}")
        return result

    # 4. Thumbnails and the full image
    thumbnails = connector.fetch_thumbnails(data.images)
    montage = build_montage(thumbnails, config.thumbnail_size, config.montage_border)
    result.files.append(save_image_figure(montage, output_dir / MONTAGE_FILE))

    image = pick(data.images, config.image_index, "Image")
    result.image = image
    full_image = connector.fetch_image(image.id)
    result.files.append(save_image_figure(full_image, output_dir / FULL_IMAGE_FILE))

    # 5. Cell counting
    gray = to_grayscale(full_image)
    result.files.append(save_image_figure(gray, output_dir / GRAY_IMAGE_FILE))
    result.files.append(save_image_figure(binarize(gray, config.threshold), output_dir / BW_IMAGE_FILE))

    regions = segment_cells(full_image, config.threshold, config.min_pixel_count)
    result.regions = smooth_boundaries(regions, config.smoothing_factor)

    if result.regions:
        title = f"Image-ID: {image.id} / {image.name}"
        result.files.append(save_overlay_figure(full_image, result.regions, output_dir / OVERLAY_FILE, title))
    else:
        logger.warning(f"No cells larger than {config.min_pixel_count} px in image {image.id}; skipping overlay")

    if config.rocrate:
        result.crate_id = data.to_rocrate(output_dir, result.files)

    return result
