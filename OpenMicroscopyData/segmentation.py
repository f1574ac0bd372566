"""
Simple threshold-based cell counting.

The steps follow the classic recipe: grayscale conversion, a fixed global
threshold, 8-connected labelling, rejection of small debris, and an outer
boundary plus centroid per remaining region. Boundaries can be smoothed for
display without touching the measured area or centroid.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import numpy as np
from scipy import ndimage
from skimage import color, measure
from skimage.util import img_as_ubyte

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CellRegion:
    """One connected foreground component."""
    label: int
    area: int
    centroid: Tuple[float, float]  # (x, y) = (col, row)
    boundary: np.ndarray  # closed (N, 2) polygon of (row, col) points
    smoothed_boundary: Optional[np.ndarray] = None

    @property
    def display_boundary(self) -> np.ndarray:
        return self.boundary if self.smoothed_boundary is None else self.smoothed_boundary


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to a single uint8 channel.

    2-D arrays are taken to be grayscale already and returned unchanged.
    RGB and RGBA images are reduced with luminance weighting and rescaled to
    0-255 so that thresholds keep their 8-bit meaning.
    """
    image = np.asarray(image)
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[-1] == 1:
        return image[..., 0]
    if image.ndim == 3 and image.shape[-1] == 4:
        image = color.rgba2rgb(image)
    if image.ndim != 3 or image.shape[-1] != 3:
        raise ValueError(f"Expected a grayscale, RGB or RGBA image, got shape {image.shape}")
    return img_as_ubyte(color.rgb2gray(image))


def binarize(gray: np.ndarray, threshold: float) -> np.ndarray:
    """Foreground mask: True where ``gray > threshold``."""
    return np.asarray(gray) > threshold


def _is_half(value: float) -> bool:
    return abs(value - round(value)) > 0.25


def _insert_pixel_corners(contour: np.ndarray) -> np.ndarray:
    # Marching squares at level 0.5 on a binary mask visits the midpoint of
    # every pixel edge on the boundary and cuts each corner diagonally.
    # Putting the corners back yields the polygon along the pixel edges.
    points = [contour[0]]
    for prev, curr in zip(contour[:-1], contour[1:]):
        if prev[0] != curr[0] and prev[1] != curr[1]:
            corner_row = prev[0] if _is_half(prev[0]) else curr[0]
            corner_col = prev[1] if _is_half(prev[1]) else curr[1]
            points.append((corner_row, corner_col))
        points.append(curr)
    return np.array(points, dtype=float)


def _outer_boundary(props) -> np.ndarray:
    """Closed pixel-edge outline of a region, ignoring interior holes."""
    filled = ndimage.binary_fill_holes(props.image)
    padded = np.pad(filled, 1).astype(float)
    contours = measure.find_contours(padded, 0.5, fully_connected="high")
    contour = max(contours, key=len)

    min_row, min_col = props.bbox[0], props.bbox[1]
    return _insert_pixel_corners(contour) + (min_row - 1, min_col - 1)


def segment_cells(image: np.ndarray, threshold: float, min_pixel_count: int) -> List[CellRegion]:
    """
    Find bright cells in an image.

    Args:
        image: Grayscale or color pixel array
        threshold: Pixels with grayscale intensity above this are foreground
        min_pixel_count: Regions with an area at or below this are dropped as debris

    Returns:
        Regions in label scan order. Empty when nothing passes the threshold
        or the debris filter.
    """
    mask = binarize(to_grayscale(image), threshold)
    labels = measure.label(mask, connectivity=2)

    regions = []
    n_debris = 0
    for props in measure.regionprops(labels):
        if props.area <= min_pixel_count:
            n_debris += 1
            continue
        row, col = props.centroid
        regions.append(CellRegion(
            label=int(props.label),
            area=int(props.area),
            centroid=(float(col), float(row)),
            boundary=_outer_boundary(props),
        ))

    logger.info(f"Found {len(regions)} cells above threshold {threshold} "
                f"({n_debris} regions of <= {min_pixel_count} px rejected)")
    return regions


def smooth_boundary(region: CellRegion, window: int) -> CellRegion:
    """
    Smooth a region's outline with a circular moving average.

    Only ``smoothed_boundary`` is set; area, centroid and the raw boundary
    are left as they are.

    Args:
        region: Region from ``segment_cells``
        window: Moving-average width in points; 1 or less disables smoothing
    """
    boundary = region.boundary
    if window <= 1 or len(boundary) < 3:
        return replace(region, smoothed_boundary=boundary.copy())

    closed = np.array_equal(boundary[0], boundary[-1])
    points = boundary[:-1] if closed else boundary
    size = min(int(window), len(points))

    smoothed = ndimage.uniform_filter1d(points, size=size, axis=0, mode="wrap")
    if closed:
        smoothed = np.vstack([smoothed, smoothed[:1]])
    return replace(region, smoothed_boundary=smoothed)


def smooth_boundaries(regions: List[CellRegion], window: int) -> List[CellRegion]:
    return [smooth_boundary(region, window) for region in regions]
