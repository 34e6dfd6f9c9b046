"""Geometric operations for contours and polylines.

Provides:
    - Point-to-line distance with a zero-length-segment fallback
    - Douglas-Peucker polyline simplification (approx_poly_dp)
    - Signed polygon area (shoelace formula)
    - Axis-aligned bounding box of a point set

Used by:
    - segmentation.mask_to_polygon: rank contours by area, simplify the winner
    - annotation.factory: derive a bbox from a polygon
    - Tests: synthetic contours and reference checks

All coordinates are (x, y) pixels in image frame (top-left origin, +Y down)
unless explicitly noted as normalized. Point sets are numpy arrays of
shape (N, 2).

Simplification uses an explicit worklist instead of recursion, so contour
length is never limited by the interpreter's recursion depth. The kept
vertices are exactly those the recursive formulation keeps.
"""

import math
from typing import Sequence, Tuple, Union

import numpy as np

PointLike = Union[Sequence[float], np.ndarray]


def perpendicular_distance(
    point: PointLike,
    line_start: PointLike,
    line_end: PointLike
) -> float:
    """Distance from ``point`` to the infinite line through two points.

    Parameters
    ----------
    point, line_start, line_end : PointLike
        (x, y) coordinates

    Returns
    -------
    float
        |dy·px − dx·py + x2·y1 − y2·x1| / |line_end − line_start|, or the
        Euclidean distance to ``line_start`` when both line points coincide
    """
    px, py = float(point[0]), float(point[1])
    x1, y1 = float(line_start[0]), float(line_start[1])
    x2, y2 = float(line_end[0]), float(line_end[1])

    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0.0:
        ex = px - x1
        ey = py - y1
        return math.sqrt(ex * ex + ey * ey)

    num = abs(dy * px - dx * py + x2 * y1 - y2 * x1)
    return num / math.sqrt(length_sq)


def _line_distances(pts: np.ndarray, line_start: np.ndarray, line_end: np.ndarray) -> np.ndarray:
    """Vectorized perpendicular_distance for pts of shape (M, 2)."""
    x1, y1 = line_start
    x2, y2 = line_end
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0.0:
        ex = pts[:, 0] - x1
        ey = pts[:, 1] - y1
        return np.sqrt(ex * ex + ey * ey)

    num = np.abs(dy * pts[:, 0] - dx * pts[:, 1] + x2 * y1 - y2 * x1)
    return num / math.sqrt(length_sq)


def approx_poly_dp(points: np.ndarray, epsilon: float = 2.0) -> np.ndarray:
    """Simplify an open polyline with the Douglas-Peucker algorithm.

    Parameters
    ----------
    points : np.ndarray
        Ordered vertices, shape (N, 2). First and last are fixed anchors.
    epsilon : float
        Distance tolerance in pixels, must be finite and >= 0, default 2.0

    Returns
    -------
    np.ndarray
        Subsequence of ``points`` (same dtype), shape (M, 2), M <= N.
        Inputs with N <= 2 are returned unchanged (as a copy).

    Raises
    ------
    ValueError
        If epsilon is negative or not finite

    Notes
    -----
    For each range [first, last] the interior vertex farthest from the
    first→last line is found. If that distance exceeds epsilon the range
    is split there (the split vertex belongs to both halves), otherwise
    only the two endpoints survive. Ties resolve to the lowest index
    (np.argmax returns the first maximum), so output is deterministic.
    """
    if not math.isfinite(epsilon) or epsilon < 0.0:
        raise ValueError(f"epsilon must be finite and >= 0, got {epsilon}")

    pts = np.asarray(points)
    if pts.size == 0:
        return pts.reshape(0, 2).copy()
    pts = pts.reshape(-1, 2)
    n = pts.shape[0]
    if n <= 2:
        return pts.copy()

    xy = pts.astype(np.float64)
    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True

    ranges = [(0, n - 1)]
    while ranges:
        first, last = ranges.pop()
        if last - first < 2:
            continue

        dists = _line_distances(xy[first + 1:last], xy[first], xy[last])
        offset = int(np.argmax(dists))
        if dists[offset] > epsilon:
            split = first + 1 + offset
            keep[split] = True
            ranges.append((split, last))
            ranges.append((first, split))

    return pts[keep]


def contour_area(points: np.ndarray) -> float:
    """Signed area of a closed polygon (shoelace formula).

    Parameters
    ----------
    points : np.ndarray
        Vertices, shape (N, 2); the closing edge (N-1 → 0) is implicit

    Returns
    -------
    float
        Sum of (x_i·y_{i+1} − x_{i+1}·y_i) over i, halved. Positive for
        clockwise order in image frame (+Y down). 0.0 for empty input and
        for any point set with fewer than 3 vertices.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] == 0:
        return 0.0

    x = pts[:, 0]
    y = pts[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    return float(np.sum(x * y_next - x_next * y) / 2.0)


def polyline_bbox(points: np.ndarray) -> Tuple[float, float, float, float]:
    """Axis-aligned bounding box (xmin, ymin, xmax, ymax).

    Returns (0, 0, 0, 0) for an empty point set.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] == 0:
        return (0.0, 0.0, 0.0, 0.0)

    xmin, ymin = pts.min(axis=0)
    xmax, ymax = pts.max(axis=0)
    return (float(xmin), float(ymin), float(xmax), float(ymax))
