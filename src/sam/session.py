"""Interactive click-prompt session for one image.

Holds what the annotation view needs between clicks: the image embedding,
image size, the click list and the decoder's current best mask. Every
add/remove re-runs the decoder; commit() turns the current mask into a
polygon annotation and clears the prompt.

Not thread-safe: one session per user/view. The mask → polygon step it
calls is pure and may run anywhere.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from ..annotation import factory
from ..segmentation.mask_to_polygon import mask_to_polygon
from ..utils.validators import PolygonAnnotation, SamPromptConfig
from .decoder import Click, DecoderResult, MaskDecoder, run_decoder

logger = logging.getLogger(__name__)


class SegmentationSession:
    """Click prompts → decoder mask → polygon annotation.

    Parameters
    ----------
    decoder : MaskDecoder
        Inference backend
    cfg : SamPromptConfig, optional
        Prompt geometry; defaults match SAM ViT-B
    """

    def __init__(self, decoder: MaskDecoder, cfg: Optional[SamPromptConfig] = None):
        self.decoder = decoder
        self.cfg = cfg or SamPromptConfig()
        self.embedding: Optional[np.ndarray] = None
        self.width = 0
        self.height = 0
        self.clicks: List[Click] = []
        self.current: Optional[DecoderResult] = None
        self.low_res_mask: Optional[np.ndarray] = None

    @property
    def has_image(self) -> bool:
        return self.embedding is not None

    def set_image(self, embedding: np.ndarray, width: int, height: int) -> None:
        """Attach a new image's embedding; drops any pending prompt."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        self.embedding = np.asarray(embedding, dtype=np.float32)
        self.width = width
        self.height = height
        self.clear_clicks()

    def add_click(self, click: Click) -> DecoderResult:
        """Append a click and re-run the decoder.

        The previous low-res mask is fed back as a mask prompt. If the
        decoder fails the click is dropped and the error propagates.

        Raises
        ------
        RuntimeError
            If no image is attached, or the decoder backend fails
        """
        if self.embedding is None:
            raise RuntimeError("No image embedding loaded. Call set_image() first.")

        self.clicks.append(click)
        try:
            self._decode(previous_mask=self.low_res_mask)
        except Exception:
            self.clicks.pop()
            raise
        return self.current

    def remove_last_click(self) -> Optional[DecoderResult]:
        """Drop the newest click and re-decode from scratch.

        Returns None (and clears the mask) once no clicks remain.
        """
        if not self.clicks:
            return None

        self.clicks.pop()
        self.low_res_mask = None
        if not self.clicks:
            self.current = None
            return None

        self._decode(previous_mask=None)
        return self.current

    def clear_clicks(self) -> None:
        self.clicks = []
        self.current = None
        self.low_res_mask = None

    def reset(self) -> None:
        """Forget the image as well as the prompt."""
        self.embedding = None
        self.width = 0
        self.height = 0
        self.clear_clicks()

    def commit(
        self,
        label: str,
        threshold: float = 0.0,
        epsilon: float = 2.0
    ) -> Optional[PolygonAnnotation]:
        """Convert the current mask to a polygon annotation.

        Returns None when there is no mask or it yields no usable polygon.
        Clicks are cleared in both cases; if building the annotation
        raises (e.g. empty label) the prompt is kept.
        """
        if self.current is None:
            return None

        result = mask_to_polygon(
            self.current.mask, self.current.width, self.current.height, threshold, epsilon
        )
        polygon = factory.polygon_from_result(label, result) if result is not None else None
        if polygon is None:
            logger.info("Segmentation produced no usable region")
        else:
            logger.info(f"Committed '{label}' polygon with {result.vertex_count} vertices")

        self.clear_clicks()
        return polygon

    def _decode(self, previous_mask: Optional[np.ndarray]) -> None:
        result = run_decoder(
            self.decoder,
            self.embedding,
            self.clicks,
            self.width,
            self.height,
            previous_mask=previous_mask,
            cfg=self.cfg,
        )
        self.current = result
        self.low_res_mask = result.low_res_mask
