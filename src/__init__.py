"""SAM Mask Polygon: mask-to-polygon core for interactive image annotation.

This package contains the modules that turn a promptable segmentation
model's logit mask into a compact polygon annotation in normalized image
coordinates.

Architecture layers (strict one-way dependency):
    scripts/ → src/{sam,annotation}/ → src/segmentation/ → src/utils/

Key invariants:
    - Masks are row-major (H, W) logits; foreground is strictly > threshold
    - Pixel coordinates are integer (x, y), top-left origin, +Y down
    - Polygon output is flat [x0, y0, x1, y1, ...] normalized to [0, 1]
    - Pipeline calls are pure: no state survives between invocations
    - YAML-only configs
"""

__version__ = "0.3.0"
