"""Segment-Anything boundary: encoder/decoder capabilities and click sessions.

The networks themselves are external; this package only prepares their
inputs, selects their outputs and keeps per-image prompt state.
"""

from .decoder import (
    Click,
    ClickType,
    DecoderResult,
    MaskDecoder,
    TorchMaskDecoder,
    build_decoder_feeds,
    run_decoder,
    select_best_mask,
)
from .encoder import ImageEncoder, TorchImageEncoder, encode_image, preprocess_image
from .session import SegmentationSession

__all__ = [
    'Click',
    'ClickType',
    'DecoderResult',
    'ImageEncoder',
    'MaskDecoder',
    'SegmentationSession',
    'TorchImageEncoder',
    'TorchMaskDecoder',
    'build_decoder_feeds',
    'encode_image',
    'preprocess_image',
    'run_decoder',
    'select_best_mask',
]
