"""Annotation construction: one place that mints ids and validates geometry.

Every annotation leaving this module is a frozen pydantic model from
``utils.validators`` with a fresh UUID4 id, so callers never build the
models by hand.

Usage:
    from src.annotation import factory

    result = mask_to_polygon(mask, w, h)
    if result is not None:
        polygon = factory.polygon_from_result("cat", result)
"""

import uuid
from typing import Sequence

import numpy as np

from ..segmentation.mask_to_polygon import PolygonResult
from ..utils import geometry
from ..utils.validators import (
    Annotation,
    BBoxAnnotation,
    ImageAnnotation,
    PointAnnotation,
    PolygonAnnotation,
)


def generate_id() -> str:
    return str(uuid.uuid4())


def create_bbox(label: str, x: float, y: float, width: float, height: float) -> BBoxAnnotation:
    """Box with top-left corner (x, y), all values normalized.

    Raises
    ------
    ValueError
        If the label is empty or a value lies outside [0, 1]
    """
    return BBoxAnnotation(id=generate_id(), label=label, x=x, y=y, width=width, height=height)


def create_polygon(label: str, points: Sequence[float]) -> PolygonAnnotation:
    """Polygon from flat normalized [x0, y0, x1, y1, ...].

    Raises
    ------
    ValueError
        If the label is empty, there are fewer than 3 vertices, the count
        is odd, or a value lies outside [0, 1]
    """
    return PolygonAnnotation(
        id=generate_id(),
        label=label,
        points=tuple(float(p) for p in points),
    )


def create_point(label: str, x: float, y: float) -> PointAnnotation:
    return PointAnnotation(id=generate_id(), label=label, x=x, y=y)


def polygon_from_result(label: str, result: PolygonResult) -> PolygonAnnotation:
    return create_polygon(label, result.points)


def bbox_from_polygon(label: str, polygon: PolygonAnnotation) -> BBoxAnnotation:
    """Tight normalized bbox around a polygon's vertices."""
    xmin, ymin, xmax, ymax = geometry.polyline_bbox(np.asarray(polygon.points).reshape(-1, 2))
    return create_bbox(label, xmin, ymin, xmax - xmin, ymax - ymin)


def create_empty_image_annotation(image_file: str) -> ImageAnnotation:
    return ImageAnnotation(image_file=image_file, width=0, height=0, annotations=[])


def with_annotation(
    image_annotation: ImageAnnotation,
    annotation: Annotation,
    width: int = 0,
    height: int = 0,
) -> ImageAnnotation:
    """Copy of ``image_annotation`` with ``annotation`` appended.

    Non-zero width/height replace the stored image size.
    """
    return ImageAnnotation(
        image_file=image_annotation.image_file,
        width=width or image_annotation.width,
        height=height or image_annotation.height,
        annotations=[*image_annotation.annotations, annotation],
    )
