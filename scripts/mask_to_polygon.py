#!/usr/bin/env python3
"""Convert a segmentation mask file into a polygon annotation.

Reads a logit mask (.npy) or a greyscale mask image, extracts the polygon
of its largest foreground region and writes it as an image-annotation
document (JSON or YAML, chosen by the output suffix).

Exit codes:
    0  polygon written
    1  mask has no usable region (nothing written)
    2  invalid input (missing file, bad config, bad arguments)

Usage:
    # Print annotation JSON to stdout
    python scripts/mask_to_polygon.py outputs/masks/cat.npy --label cat

    # Append to an existing annotation file with a tighter tolerance
    python scripts/mask_to_polygon.py cat_mask.png --label cat --epsilon 1.0 \
        --output annotations/cat.json --append
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.annotation import factory
from src.segmentation.mask_to_polygon import mask_to_polygon_from_config
from src.utils import fs, validators
from src.utils.logging_config import install_excepthook, push_context, setup_logging

logger = logging.getLogger("mask_to_polygon")

YAML_SUFFIXES = (".yaml", ".yml")


def _load_existing(path: Path) -> validators.ImageAnnotation:
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = fs.load_yaml(path) or {}
            return validators.ImageAnnotation.model_validate(data)
        except Exception as e:
            raise ValueError(f"Annotation validation failed at {path}: {e}") from e
    return validators.load_image_annotation(path)


def _resolve_config(args: argparse.Namespace) -> validators.MaskToPolygonConfig:
    if args.config is not None:
        cfg = validators.load_pipeline_config(args.config).mask_to_polygon
    else:
        cfg = validators.MaskToPolygonConfig()

    overrides = {
        key: value
        for key, value in (("threshold", args.threshold), ("epsilon", args.epsilon))
        if value is not None
    }
    if overrides:
        cfg = validators.MaskToPolygonConfig(**{**cfg.model_dump(), **overrides})
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint for mask → polygon conversion."""
    parser = argparse.ArgumentParser(
        description="Extract the largest region of a segmentation mask as a polygon annotation",
    )
    parser.add_argument("mask", type=Path, help="Mask file (.npy logits or greyscale image)")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Pipeline config (pipeline.v1.yaml); built-in defaults if omitted",
    )
    parser.add_argument("--threshold", type=float, default=None, help="Override logit threshold")
    parser.add_argument("--epsilon", type=float, default=None, help="Override simplification tolerance (px)")
    parser.add_argument("--label", default="object", help="Annotation label (default: object)")
    parser.add_argument(
        "--image-file",
        default=None,
        help="Image file name recorded in the annotation (default: mask file stem)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output annotation file (.json or .yaml); stdout if omitted",
    )
    parser.add_argument(
        "--append",
        action="store_true",
        help="Append to --output if it already exists instead of overwriting",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    setup_logging(log_level="DEBUG" if args.verbose else "INFO", context={"app": "mask_to_polygon"})
    install_excepthook()
    push_context(mask=args.mask.name)

    try:
        cfg = _resolve_config(args)
        mask = fs.load_mask(args.mask)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 2

    height, width = mask.shape
    logger.info(f"Loaded {width}x{height} mask (threshold={cfg.threshold}, epsilon={cfg.epsilon})")

    result = mask_to_polygon_from_config(mask, width, height, cfg)
    if result is None:
        logger.warning("Segmentation produced no usable region")
        return 1

    try:
        polygon = factory.polygon_from_result(args.label, result)
        if args.output is not None and args.append and args.output.exists():
            doc = _load_existing(args.output)
        else:
            doc = factory.create_empty_image_annotation(args.image_file or args.mask.stem)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 2

    doc = factory.with_annotation(doc, polygon, width, height)
    payload = doc.model_dump(mode="json", by_alias=True)

    if args.output is None:
        print(json.dumps(payload, indent=2))
    elif args.output.suffix.lower() in YAML_SUFFIXES:
        fs.atomic_yaml_dump(payload, args.output)
    else:
        fs.atomic_json_dump(payload, args.output)

    logger.info(
        f"Polygon '{args.label}' with {result.vertex_count} vertices"
        + (f" written to {args.output}" if args.output is not None else "")
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
