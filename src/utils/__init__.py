"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config and annotation schema validation (validators)
    - Pixel ↔ normalized conversions, image normalization (compute)
    - Polyline geometry: Douglas-Peucker, shoelace area (geometry)
    - Atomic I/O, YAML, mask loading (fs)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (segmentation, sam, annotation).

Convenience imports:
    from src.utils import fs, compute, geometry, validators
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import compute
from . import fs
from . import geometry
from . import logging_config
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'compute',
    'fs',
    'geometry',
    'logging_config',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
