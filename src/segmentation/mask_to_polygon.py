"""Mask → polygon conversion for segmentation-assisted annotation.

Pipeline:
    1. Binarize logits (strictly > threshold)
    2. Find outer contours (border following, 8-connectivity)
    3. Keep the contour with the largest absolute shoelace area
       (first in scan order on ties)
    4. Douglas-Peucker simplification with tolerance epsilon (px)
    5. Normalize: x / width, y / height → flat [x0, y0, x1, y1, ...]

Returns None when the mask has no usable region (no contour, or fewer
than 3 vertices before/after simplification). Those are expected
outcomes of an interactive click, not errors. Inconsistent arguments
(non-positive size, mask length != width * height, negative epsilon)
raise ValueError.

Pure function: every call allocates its own grids, so concurrent calls
need no locking.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..utils import compute, geometry
from ..utils.validators import MIN_POLYGON_VERTICES, MaskToPolygonConfig
from .contours import find_contours
from .grid import MaskLike, binarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolygonResult:
    """Simplified polygon in normalized coordinates.

    Attributes
    ----------
    points : Tuple[float, ...]
        Flat [x0, y0, x1, y1, ...], each value x / width or y / height
    vertex_count : int
        Number of (x, y) pairs, >= 3
    """
    points: Tuple[float, ...]
    vertex_count: int

    def __post_init__(self):
        if len(self.points) != 2 * self.vertex_count:
            raise ValueError(
                f"Expected {2 * self.vertex_count} coordinates for {self.vertex_count} vertices, "
                f"got {len(self.points)}"
            )
        if self.vertex_count < MIN_POLYGON_VERTICES:
            raise ValueError(f"Polygon needs >= {MIN_POLYGON_VERTICES} vertices, got {self.vertex_count}")

    def as_array(self) -> np.ndarray:
        """Vertices as (N, 2) float64."""
        return np.asarray(self.points, dtype=np.float64).reshape(-1, 2)

    def to_pixels(self, width: int, height: int) -> np.ndarray:
        """Vertices scaled back to pixel space, (N, 2) float64."""
        return compute.normalized_to_px(self.as_array(), width, height)


def largest_contour(contours: List[np.ndarray]) -> Optional[np.ndarray]:
    """Contour with the greatest |area|; earliest wins ties. None if empty."""
    if not contours:
        return None

    best = contours[0]
    best_area = abs(geometry.contour_area(best))
    for contour in contours[1:]:
        area = abs(geometry.contour_area(contour))
        if area > best_area:
            best, best_area = contour, area
    return best


def mask_to_polygon(
    mask: MaskLike,
    width: int,
    height: int,
    threshold: float = 0.0,
    epsilon: float = 2.0
) -> Optional[PolygonResult]:
    """Convert a logit mask to a simplified polygon in normalized coordinates.

    Parameters
    ----------
    mask : MaskLike
        Logits, flat row-major length width * height or shape (H, W)
    width, height : int
        Mask size in pixels
    threshold : float
        Foreground iff logit > threshold, default 0.0
    epsilon : float
        Douglas-Peucker tolerance in pixels, default 2.0

    Returns
    -------
    Optional[PolygonResult]
        Polygon of the largest region, or None if there is no foreground
        contour or it collapses below 3 vertices

    Raises
    ------
    ValueError
        If arguments are inconsistent (see module docstring)
    """
    if not math.isfinite(epsilon) or epsilon < 0.0:
        raise ValueError(f"epsilon must be finite and >= 0, got {epsilon}")

    grid = binarize(mask, width, height, threshold)
    contours = find_contours(grid)
    if not contours:
        logger.debug(f"No foreground contour in {width}x{height} mask (threshold={threshold})")
        return None

    largest = largest_contour(contours)
    if len(largest) < MIN_POLYGON_VERTICES:
        return None

    simplified = geometry.approx_poly_dp(largest, epsilon)
    if len(simplified) < MIN_POLYGON_VERTICES:
        logger.debug(
            f"Largest contour ({len(largest)} points) collapsed to {len(simplified)} "
            f"vertices at epsilon={epsilon}"
        )
        return None

    normalized = compute.px_to_normalized(simplified, width, height)
    logger.debug(
        f"Polygon: {len(largest)} contour points → {len(simplified)} vertices "
        f"(area={abs(geometry.contour_area(largest)):.1f} px², {len(contours)} contours)"
    )
    return PolygonResult(
        points=tuple(float(v) for v in normalized.ravel()),
        vertex_count=len(simplified),
    )


def mask_to_polygon_from_config(
    mask: MaskLike,
    width: int,
    height: int,
    cfg: MaskToPolygonConfig
) -> Optional[PolygonResult]:
    """mask_to_polygon() with threshold/epsilon taken from a validated config."""
    return mask_to_polygon(mask, width, height, threshold=cfg.threshold, epsilon=cfg.epsilon)
