"""Mask → polygon extraction core.

Modules (leaves first):
    - grid: PixelGrid arena, binarize(), is_border_pixel(), border_map()
    - contours: trace_contour(), find_contours()
    - mask_to_polygon: PolygonResult, mask_to_polygon()

Depends only on src.utils (geometry, compute, validators).
"""

from .contours import find_contours, trace_contour
from .grid import PixelGrid, binarize, border_map, is_border_pixel
from .mask_to_polygon import (
    PolygonResult,
    largest_contour,
    mask_to_polygon,
    mask_to_polygon_from_config,
)

__all__ = [
    'PixelGrid',
    'PolygonResult',
    'binarize',
    'border_map',
    'find_contours',
    'is_border_pixel',
    'largest_contour',
    'mask_to_polygon',
    'mask_to_polygon_from_config',
    'trace_contour',
]
