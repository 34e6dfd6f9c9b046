"""Border following over a binary PixelGrid (8-connectivity).

Two layers:
    1. trace_contour(): Moore-neighbour walk around one region, starting
       from a known border pixel, until it returns to the start
    2. find_contours(): row-major scan that launches a trace at every
       unvisited border pixel and keeps traces of >= 3 points

Direction ring (clockwise from east in image frame, +Y down):

    index:  0   1   2   3   4   5   6   7
            E   SE  S   SW  W   NW  N   NE

The walk starts with direction 7 (NE). At each step the search begins two
positions back from the arrival direction, (dir + 6) % 8, and sweeps the
ring once; the first in-bounds foreground neighbour is the next point.

Holes are not traced as holes. Foreground pixels next to a hole are
border pixels the outer walk never visits, so they start short extra
traces of their own; the largest-area pick in mask_to_polygon discards
them and a ring-shaped region comes out as its outer boundary.
"""

import logging
from typing import List

import numpy as np

from .grid import PixelGrid, border_map

logger = logging.getLogger(__name__)

DX = (1, 1, 0, -1, -1, -1, 0, 1)
DY = (0, 1, 1, 1, 0, -1, -1, -1)

START_DIRECTION = 7
MIN_CONTOUR_POINTS = 3


def trace_contour(
    grid: PixelGrid,
    visited: PixelGrid,
    start_x: int,
    start_y: int
) -> np.ndarray:
    """Walk the closed boundary of the region containing (start_x, start_y).

    Parameters
    ----------
    grid : PixelGrid
        Binary foreground grid
    visited : PixelGrid
        Visited map of the same size; every appended point is marked,
        including the start
    start_x, start_y : int
        A foreground border pixel

    Returns
    -------
    np.ndarray
        Ordered boundary points, shape (N, 2) as (x, y), int32, N >= 1.
        The start point appears once, at index 0.

    Raises
    ------
    ValueError
        If the grids differ in size or the start is not an in-bounds
        foreground pixel

    Notes
    -----
    Stops when the walk re-enters the start pixel, when the current pixel
    has no foreground neighbour (isolated pixel), or after 2 * W * H steps.
    """
    w, h = grid.width, grid.height
    if (visited.width, visited.height) != (w, h):
        raise ValueError(
            f"Visited map {visited.width}x{visited.height} doesn't match grid {w}x{h}"
        )
    if not grid.in_bounds(start_x, start_y) or grid.get(start_x, start_y) != 1:
        raise ValueError(f"Start ({start_x}, {start_y}) is not a foreground pixel")

    cells = grid.data
    max_steps = 2 * w * h

    contour = []
    cx, cy = start_x, start_y
    direction = START_DIRECTION
    steps = 0

    while True:
        contour.append((cx, cy))
        visited.mark(cx, cy)

        search_from = (direction + 6) % 8
        for i in range(8):
            d = (search_from + i) % 8
            nx = cx + DX[d]
            ny = cy + DY[d]
            if 0 <= nx < w and 0 <= ny < h and cells[grid.index(nx, ny)] == 1:
                cx, cy, direction = nx, ny, d
                break
        else:
            break

        steps += 1
        if (cx == start_x and cy == start_y) or steps >= max_steps:
            break

    if steps >= max_steps and (cx, cy) != (start_x, start_y):
        logger.warning(
            f"Contour trace from ({start_x}, {start_y}) hit the {max_steps}-step limit"
        )

    return np.array(contour, dtype=np.int32).reshape(-1, 2)


def find_contours(grid: PixelGrid) -> List[np.ndarray]:
    """Trace every outer boundary in the grid.

    Parameters
    ----------
    grid : PixelGrid
        Binary foreground grid

    Returns
    -------
    List[np.ndarray]
        Contours in row-major order of their start pixels, each (N, 2)
        int32 with N >= MIN_CONTOUR_POINTS. Empty if there is no foreground.

    Notes
    -----
    A pixel starts a trace when it is foreground, a border pixel and not
    yet visited by an earlier trace. Foreground and border status never
    change during the scan, so candidates are precomputed with border_map()
    and only the visited test runs per candidate.
    """
    visited = PixelGrid.zeros(grid.width, grid.height)
    candidates = np.flatnonzero(border_map(grid))

    contours = []
    skipped = 0
    for idx in candidates:
        idx = int(idx)
        if visited.data[idx]:
            continue
        y, x = divmod(idx, grid.width)
        contour = trace_contour(grid, visited, x, y)
        if len(contour) >= MIN_CONTOUR_POINTS:
            contours.append(contour)
        else:
            skipped += 1

    logger.debug(
        f"Found {len(contours)} contours ({skipped} degenerate traces skipped) "
        f"in {grid.width}x{grid.height} grid"
    )
    return contours
