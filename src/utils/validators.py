"""YAML schema validation, config loading and annotation schemas.

Provides centralized validation using pydantic:
    - Pipeline schema (pipeline.v1.yaml): binarization threshold, Douglas-Peucker
      tolerance, SAM prompt/preprocessing constants
    - Annotation schemas: bbox / polygon / point annotations (discriminated on
      ``type``), per-image annotation file, project config

All modules must use these validators to load configs for fail-fast error
detection with actionable messages (offending keys, expected ranges).

Units:
    - Threshold: logit units (mask values are raw logits)
    - Epsilon: pixels
    - Annotation geometry: normalized [0.0, 1.0] image coordinates

Usage:
    from src.utils import validators

    cfg = validators.load_pipeline_config("configs/pipeline.v1.yaml")
    poly = validators.PolygonAnnotation(id=..., label="cat", points=[...])
"""

import math
import uuid
from pathlib import Path
from typing import Annotated, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Minimum vertex count of an emitted polygon (a triangle).
MIN_POLYGON_VERTICES = 3


# ============================================================================
# PIPELINE SCHEMA V1
# ============================================================================

class MaskToPolygonConfig(BaseModel):
    """Binarize + simplify parameters for mask → polygon extraction."""
    threshold: float = Field(0.0, description="Logit threshold; foreground is strictly greater")
    epsilon: float = Field(2.0, ge=0.0, description="Douglas-Peucker tolerance (px)")

    @field_validator('threshold', 'epsilon')
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"Expected a finite value, got {v}")
        return v


class SamPromptConfig(BaseModel):
    """SAM encoder/decoder input geometry."""
    long_side: int = Field(1024, ge=16, description="Encoder input side (px)")
    mask_input_size: int = Field(256, ge=1, description="Low-res mask prompt side (px)")
    embedding_shape: Tuple[int, int, int, int] = Field(
        (1, 256, 64, 64), description="Encoder output shape [1 x C x H x W]"
    )
    pixel_mean: Tuple[float, float, float] = Field(
        (0.485, 0.456, 0.406), description="ImageNet RGB mean in [0, 1]"
    )
    pixel_std: Tuple[float, float, float] = Field(
        (0.229, 0.224, 0.225), description="ImageNet RGB std in [0, 1]"
    )

    @field_validator('pixel_std')
    @classmethod
    def validate_positive_std(cls, v: Tuple[float, float, float]) -> Tuple[float, float, float]:
        if any(s <= 0.0 for s in v):
            raise ValueError(f"pixel_std entries must be > 0, got {v}")
        return v


class PipelineConfigV1(BaseModel):
    """Complete pipeline configuration (pipeline.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("pipeline.v1", alias="schema", description="Schema version")
    mask_to_polygon: MaskToPolygonConfig = Field(default_factory=MaskToPolygonConfig)
    sam: SamPromptConfig = Field(default_factory=SamPromptConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "pipeline.v1":
            raise ValueError(f"Expected schema 'pipeline.v1', got '{v}'")
        return v


# ============================================================================
# ANNOTATION SCHEMAS
# ============================================================================

NormalizedCoord = Annotated[float, Field(ge=0.0, le=1.0)]


class _AnnotationBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="UUID identifier")
    label: str = Field(..., min_length=1, description="Class label")

    @field_validator('id')
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        try:
            uuid.UUID(v)
        except ValueError as e:
            raise ValueError(f"Annotation id must be a UUID, got '{v}'") from e
        return v


class BBoxAnnotation(_AnnotationBase):
    """Axis-aligned box; (x, y) is the top-left corner."""
    type: Literal["bbox"] = "bbox"
    x: NormalizedCoord
    y: NormalizedCoord
    width: NormalizedCoord
    height: NormalizedCoord


class PolygonAnnotation(_AnnotationBase):
    """Polygon as flat [x0, y0, x1, y1, ...] normalized coordinates."""
    type: Literal["polygon"] = "polygon"
    points: Tuple[NormalizedCoord, ...] = Field(..., min_length=2 * MIN_POLYGON_VERTICES)

    @field_validator('points')
    @classmethod
    def validate_pairs(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if len(v) % 2 != 0:
            raise ValueError(f"Polygon points must be (x, y) pairs, got {len(v)} values")
        return v

    @property
    def vertex_count(self) -> int:
        return len(self.points) // 2


class PointAnnotation(_AnnotationBase):
    type: Literal["point"] = "point"
    x: NormalizedCoord
    y: NormalizedCoord


Annotation = Annotated[
    Union[BBoxAnnotation, PolygonAnnotation, PointAnnotation],
    Field(discriminator="type"),
]


class ImageAnnotation(BaseModel):
    """All annotations of one image (JSON keys stay camelCase)."""
    model_config = ConfigDict(populate_by_name=True)

    image_file: str = Field(..., alias="imageFile", min_length=1)
    width: int = Field(0, ge=0, description="Image width (px)")
    height: int = Field(0, ge=0, description="Image height (px)")
    annotations: List[Annotation] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'ImageAnnotation':
        ids = [a.id for a in self.annotations]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate annotation ids in {self.image_file}")
        return self


class ProjectConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_dir: str = Field(..., alias="imageDir", min_length=1)
    output_dir: str = Field(..., alias="outputDir", min_length=1)
    labels: List[Annotated[str, Field(min_length=1)]] = Field(..., min_length=1)


# ============================================================================
# PUBLIC API
# ============================================================================

def load_pipeline_config(path: Union[str, Path]) -> PipelineConfigV1:
    """Load and validate pipeline config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to pipeline.v1.yaml file

    Returns
    -------
    PipelineConfigV1
        Validated pipeline configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the YAML is malformed or fails validation
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")

    try:
        data = fs.load_yaml(path) or {}
        return PipelineConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Pipeline config validation failed at {path}: {e}") from e


def load_image_annotation(path: Union[str, Path]) -> ImageAnnotation:
    """Load and validate a per-image annotation JSON file.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the JSON is malformed or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Annotation file not found: {path}")

    try:
        return ImageAnnotation.model_validate_json(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ValueError(f"Annotation validation failed at {path}: {e}") from e
