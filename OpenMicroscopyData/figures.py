import logging
import math
import pathlib
from typing import List, Optional, Sequence, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from PIL import Image as PILImage, ImageOps
from skimage.util import img_as_ubyte

from .exceptions import OutputWriteError
from .segmentation import CellRegion

logger = logging.getLogger(__name__)

PathLike = Union[str, pathlib.Path]

PROJECT_TABLE_FILE = "projectTable.xlsx"
MONTAGE_FILE = "MontageFigure.png"
FULL_IMAGE_FILE = "FullImageFigure.png"
GRAY_IMAGE_FILE = "GrayImageFigure.png"
BW_IMAGE_FILE = "BWImageFigure.png"
OVERLAY_FILE = "ImageWithCentroidsFigure.png"


def write_table(table: pd.DataFrame, path: PathLike) -> pathlib.Path:
    """
    Write a table to an Excel workbook, replacing any existing file.

    Raises:
        OutputWriteError: if the file cannot be written
    """
    path = pathlib.Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        table.to_excel(path, index=False)
    except OSError as e:
        raise OutputWriteError(path, e) from e

    logger.info(f"Wrote {len(table)} rows to {path}")
    return path


def _as_rgb8(image: np.ndarray) -> np.ndarray:
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = img_as_ubyte(image)
    if image.ndim == 2:
        image = np.stack([image] * 3, axis=-1)
    return image[..., :3]


def build_montage(
    images: Sequence[np.ndarray],
    thumbnail_size: int = 128,
    border: int = 10,
    background: int = 255,
) -> np.ndarray:
    """
    Arrange images in a near-square grid.

    Each image is scaled to fit a ``thumbnail_size`` square, keeping its
    aspect ratio, and centred in its cell. Cells are separated by ``border``
    pixels of background. Images fill the grid row by row in the order given.

    Args:
        images: Grayscale or RGB(A) arrays
        thumbnail_size: Edge length of each grid cell in pixels
        border: Gap between cells and around the grid
        background: Gray level of the canvas

    Returns:
        uint8 RGB array of the whole montage
    """
    if len(images) == 0:
        raise ValueError("Cannot build a montage from zero images")

    n_cols = math.ceil(math.sqrt(len(images)))
    n_rows = math.ceil(len(images) / n_cols)
    step = thumbnail_size + border

    canvas = np.full(
        (n_rows * step + border, n_cols * step + border, 3),
        background,
        dtype=np.uint8,
    )

    for idx, image in enumerate(images):
        tile = ImageOps.contain(PILImage.fromarray(_as_rgb8(image)), (thumbnail_size, thumbnail_size))
        tile = np.asarray(tile)
        row, col = divmod(idx, n_cols)
        top = border + row * step + (thumbnail_size - tile.shape[0]) // 2
        left = border + col * step + (thumbnail_size - tile.shape[1]) // 2
        canvas[top:top + tile.shape[0], left:left + tile.shape[1]] = tile

    return canvas


def _save(fig: plt.Figure, path: PathLike) -> pathlib.Path:
    path = pathlib.Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, bbox_inches="tight")
    except OSError as e:
        raise OutputWriteError(path, e) from e
    finally:
        plt.close(fig)

    logger.info(f"Saved figure {path}")
    return path


def save_image_figure(image: np.ndarray, path: PathLike, title: Optional[str] = None) -> pathlib.Path:
    """Render a single image (grayscale, binary or color) without axes."""
    fig, ax = plt.subplots(figsize=(8, 8))
    image = np.asarray(image)
    if image.ndim == 2:
        ax.imshow(image, cmap="gray", interpolation="nearest")
    else:
        ax.imshow(image, interpolation="nearest")
    ax.axis("off")
    if title:
        ax.set_title(title)
    return _save(fig, path)


def save_overlay_figure(
    image: np.ndarray,
    regions: List[CellRegion],
    path: PathLike,
    title: Optional[str] = None,
) -> pathlib.Path:
    """
    Draw cell outlines (white) and centroids (red crosses) over an image.

    Uses each region's smoothed boundary when one is present.
    """
    fig, ax = plt.subplots(figsize=(8, 8))
    image = np.asarray(image)
    ax.imshow(image, cmap="gray" if image.ndim == 2 else None, interpolation="nearest")

    for region in regions:
        outline = region.display_boundary
        ax.plot(outline[:, 1], outline[:, 0], "w", linewidth=0.5)

    if regions:
        xs = [region.centroid[0] for region in regions]
        ys = [region.centroid[1] for region in regions]
        ax.plot(xs, ys, "rx", markersize=12)

    ax.axis("off")
    if title:
        ax.set_title(title)
    return _save(fig, path)
