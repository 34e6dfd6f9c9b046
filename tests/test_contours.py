"""Test border following and region scanning.

Tests for src.segmentation.contours:
    - Filled rectangle round trip (perimeter count, area (W-1)(H-1))
    - Exact trace order of a block (clockwise from its top-left pixel)
    - Every traced point is marked visited
    - Walks that never re-enter the start stop at 2 * W * H steps with a warning
    - Two disjoint blobs → two contours in scan order
    - Degenerate regions (single pixel, 2-pixel run) are dropped
    - Ring-shaped region: outer boundary has the largest area
    - Invalid start pixel / mismatched visited map raise ValueError

Run:
    pytest tests/test_contours.py -v
"""

import logging

import numpy as np
import pytest

from src.segmentation.contours import MIN_CONTOUR_POINTS, find_contours, trace_contour
from src.segmentation.grid import PixelGrid
from src.utils import geometry


def _grid(arr):
    return PixelGrid.from_array(np.asarray(arr))


def _block(width, height, x0, y0, x1, y1):
    """width x height zeros with an inclusive [x0..x1] x [y0..y1] block of ones."""
    arr = np.zeros((height, width), dtype=np.uint8)
    arr[y0:y1 + 1, x0:x1 + 1] = 1
    return arr


# ============================================================================
# ROUND TRIP
# ============================================================================

@pytest.mark.parametrize("width,height", [(4, 3), (5, 4), (8, 8), (12, 5)])
def test_filled_rectangle_round_trip(width, height):
    """All-ones grid: one contour over every perimeter pixel."""
    contours = find_contours(_grid(np.ones((height, width))))

    assert len(contours) == 1
    contour = contours[0]
    assert len(contour) == 2 * (width + height) - 4
    assert abs(geometry.contour_area(contour)) == pytest.approx((width - 1) * (height - 1))


def test_trace_order_of_block():
    """4x4 block at (3,3)-(6,6) is walked clockwise from its top-left pixel."""
    grid = _grid(_block(10, 10, 3, 3, 6, 6))
    visited = PixelGrid.zeros(10, 10)

    contour = trace_contour(grid, visited, 3, 3)

    expected = [
        (3, 3), (4, 3), (5, 3), (6, 3),
        (6, 4), (6, 5), (6, 6),
        (5, 6), (4, 6), (3, 6),
        (3, 5), (3, 4),
    ]
    assert [tuple(p) for p in contour] == expected
    assert contour.dtype == np.int32
    # Clockwise in image frame → positive shoelace area
    assert geometry.contour_area(contour) == pytest.approx(9.0)


def test_trace_marks_every_point_visited():
    grid = _grid(_block(10, 10, 3, 3, 6, 6))
    visited = PixelGrid.zeros(10, 10)

    contour = trace_contour(grid, visited, 3, 3)

    assert visited.count() == len(contour)
    for x, y in contour:
        assert visited.get(int(x), int(y)) == 1
    # Interior pixels are never touched
    assert visited.get(4, 4) == 0


def test_trace_single_pixel_stops():
    grid = _grid(_block(5, 5, 2, 2, 2, 2))
    contour = trace_contour(grid, PixelGrid.zeros(5, 5), 2, 2)
    assert contour.tolist() == [[2, 2]]


def test_trace_stops_at_step_limit(caplog):
    """A start the boundary walk never re-enters is capped at 2 * W * H steps."""
    grid = _grid([
        [0, 0, 0, 1, 1, 1],
        [1, 1, 1, 1, 0, 1],
        [0, 1, 0, 1, 1, 0],
        [0, 0, 0, 1, 1, 1],
        [0, 1, 1, 1, 1, 1],
    ])

    with caplog.at_level(logging.WARNING, logger="src.segmentation.contours"):
        contour = trace_contour(grid, PixelGrid.zeros(6, 5), 3, 1)

    assert len(contour) == 2 * 6 * 5
    assert (3, 1) not in [tuple(p) for p in contour[1:]]
    assert "60-step limit" in caplog.text


def test_closed_trace_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="src.segmentation.contours"):
        trace_contour(_grid(_block(10, 10, 3, 3, 6, 6)), PixelGrid.zeros(10, 10), 3, 3)
        trace_contour(_grid(np.ones((1, 2))), PixelGrid.zeros(2, 1), 0, 0)

    assert "step limit" not in caplog.text


# ============================================================================
# SCANNER
# ============================================================================

def test_empty_grid_has_no_contours():
    assert find_contours(PixelGrid.zeros(6, 4)) == []


def test_two_blobs_in_scan_order():
    arr = _block(20, 10, 1, 1, 3, 3) | _block(20, 10, 12, 4, 15, 7)
    contours = find_contours(_grid(arr))

    assert len(contours) == 2
    assert tuple(contours[0][0]) == (1, 1)
    assert tuple(contours[1][0]) == (12, 4)
    assert geometry.contour_area(contours[0]) == pytest.approx(4.0)
    assert geometry.contour_area(contours[1]) == pytest.approx(9.0)


def test_degenerate_regions_dropped():
    """A lone pixel (1 point) and a 2-pixel run (2 points) never qualify."""
    arr = np.zeros((6, 8), dtype=np.uint8)
    arr[1, 1] = 1
    arr[4, 4:6] = 1
    assert find_contours(_grid(arr)) == []


def test_contours_meet_minimum_length():
    rng = np.random.default_rng(7)
    arr = (rng.random((30, 30)) > 0.6).astype(np.uint8)
    for contour in find_contours(_grid(arr)):
        assert len(contour) >= MIN_CONTOUR_POINTS


def test_ring_outer_boundary_is_largest():
    """5x5 block with a one-pixel hole: the outer walk encloses the most area."""
    arr = _block(7, 7, 1, 1, 5, 5)
    arr[3, 3] = 0
    contours = find_contours(_grid(arr))

    areas = [abs(geometry.contour_area(c)) for c in contours]
    assert tuple(contours[0][0]) == (1, 1)
    assert areas[0] == pytest.approx(16.0)
    assert max(areas) == areas[0]


# ============================================================================
# ERRORS
# ============================================================================

def test_trace_rejects_background_start():
    grid = _grid(_block(5, 5, 1, 1, 3, 3))
    with pytest.raises(ValueError, match="not a foreground pixel"):
        trace_contour(grid, PixelGrid.zeros(5, 5), 0, 0)


def test_trace_rejects_out_of_bounds_start():
    grid = _grid(np.ones((3, 3)))
    with pytest.raises(ValueError, match="not a foreground pixel"):
        trace_contour(grid, PixelGrid.zeros(3, 3), 3, 0)


def test_trace_rejects_mismatched_visited():
    grid = _grid(np.ones((3, 3)))
    with pytest.raises(ValueError, match="doesn't match"):
        trace_contour(grid, PixelGrid.zeros(4, 3), 0, 0)
