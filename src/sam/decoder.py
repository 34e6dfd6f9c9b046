"""SAM prompt decoder boundary: click prompts in, best logit mask out.

The decoder is an opaque capability with one call, ``infer(feeds) ->
outputs``. Whatever runs behind it (a local torch module, an exported
graph, a remote service) only has to honour the feed/output names below.

Feeds (all float32):
    image_embeddings  [1, 256, 64, 64]   encoder output
    point_coords      [1, N + 1, 2]      clicks in encoder input space
    point_labels      [1, N + 1]         1 = foreground, 0 = background,
                                         -1 = padding point
    mask_input        [1, 1, 256, 256]   previous low-res logits or zeros
    has_mask_input    [1]                1.0 if mask_input is meaningful
    orig_im_size      [2]                (height, width) in pixels

Outputs:
    masks             [1, M, H, W]       full-resolution logits
    iou_predictions   [1, M]             predicted IoU per mask
    low_res_masks     [1, M, 256, 256]   optional, fed back on next click

Click coordinates are normalized to the image; they are scaled by
long_side / max(width, height) into the encoder's resized frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Protocol, Sequence

import numpy as np
import torch

from ..utils import compute
from ..utils.validators import SamPromptConfig

logger = logging.getLogger(__name__)

PADDING_LABEL = -1.0

OUTPUT_NAMES = ("masks", "iou_predictions", "low_res_masks")


# ---------------------------------------------------------------------------
# Prompt types
# ---------------------------------------------------------------------------


class ClickType(IntEnum):
    """Point prompt polarity."""

    BACKGROUND = 0
    FOREGROUND = 1


@dataclass(frozen=True, slots=True)
class Click:
    """One point prompt.

    Parameters
    ----------
    x, y : float
        Position normalized to the image, in [0, 1].
    click_type : ClickType
        Foreground (include) or background (exclude).
    """

    x: float
    y: float
    click_type: ClickType = ClickType.FOREGROUND

    def __post_init__(self) -> None:
        if not (0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0):
            raise ValueError(
                f"Click must be normalized to [0, 1], got ({self.x}, {self.y})"
            )
        ClickType(self.click_type)


@dataclass(frozen=True)
class DecoderResult:
    """Best mask of one decoder call.

    Parameters
    ----------
    mask : np.ndarray
        Logits, shape (height, width), float32.
    width, height : int
        Mask size in pixels (the original image size).
    iou_score : float
        Decoder's IoU estimate for this mask.
    low_res_mask : np.ndarray | None
        Matching low-res logits, shape (1, 1, S, S), for the next prompt.
    """

    mask: np.ndarray
    width: int
    height: int
    iou_score: float
    low_res_mask: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        if self.mask.shape != (self.height, self.width):
            raise ValueError(
                f"Mask shape {self.mask.shape} doesn't match "
                f"(height, width) = ({self.height}, {self.width})"
            )


class MaskDecoder(Protocol):
    """Anything that maps decoder feeds to decoder outputs."""

    def infer(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        ...


# ---------------------------------------------------------------------------
# Feeds / outputs
# ---------------------------------------------------------------------------


def build_decoder_feeds(
    embedding: np.ndarray,
    clicks: Sequence[Click],
    width: int,
    height: int,
    previous_mask: Optional[np.ndarray] = None,
    cfg: Optional[SamPromptConfig] = None,
) -> Dict[str, np.ndarray]:
    """Assemble the decoder feed dict for a set of clicks.

    Raises
    ------
    ValueError
        If there are no clicks, the embedding or previous mask has the
        wrong size, or the image size is not positive
    """
    cfg = cfg or SamPromptConfig()
    if not clicks:
        raise ValueError("At least one click is required.")

    embedding = np.asarray(embedding, dtype=np.float32)
    if embedding.size != int(np.prod(cfg.embedding_shape)):
        raise ValueError(
            f"Embedding has {embedding.size} values, expected shape {cfg.embedding_shape}"
        )
    embedding = embedding.reshape(cfg.embedding_shape)

    scale = compute.sam_scale(width, height, cfg.long_side)
    num_points = len(clicks) + 1

    point_coords = np.zeros((1, num_points, 2), dtype=np.float32)
    point_labels = np.zeros((1, num_points), dtype=np.float32)
    for i, click in enumerate(clicks):
        point_coords[0, i, 0] = click.x * width * scale
        point_coords[0, i, 1] = click.y * height * scale
        point_labels[0, i] = float(click.click_type)
    point_labels[0, -1] = PADDING_LABEL

    side = cfg.mask_input_size
    if previous_mask is None:
        mask_input = np.zeros((1, 1, side, side), dtype=np.float32)
        has_mask_input = 0.0
    else:
        mask_input = np.asarray(previous_mask, dtype=np.float32)
        if mask_input.size != side * side:
            raise ValueError(
                f"Previous mask has {mask_input.size} values, expected {side}x{side}"
            )
        mask_input = mask_input.reshape(1, 1, side, side)
        has_mask_input = 1.0

    return {
        "image_embeddings": embedding,
        "point_coords": point_coords,
        "point_labels": point_labels,
        "mask_input": mask_input,
        "has_mask_input": np.array([has_mask_input], dtype=np.float32),
        "orig_im_size": np.array([height, width], dtype=np.float32),
    }


def select_best_mask(
    outputs: Dict[str, np.ndarray],
    width: int,
    height: int,
) -> DecoderResult:
    """Pick the candidate mask with the highest predicted IoU.

    Ties resolve to the lowest candidate index.

    Raises
    ------
    ValueError
        If outputs are missing, empty, non-finite or mis-sized
    """
    for name in ("masks", "iou_predictions"):
        if name not in outputs:
            raise ValueError(f"Decoder output '{name}' missing (got {sorted(outputs)})")

    iou = np.asarray(outputs["iou_predictions"], dtype=np.float32).ravel()
    if iou.size == 0:
        raise ValueError("Decoder returned no candidate masks")
    compute.assert_finite(iou, "iou_predictions")

    masks = np.asarray(outputs["masks"], dtype=np.float32)
    if masks.size != iou.size * width * height:
        raise ValueError(
            f"Decoder masks have {masks.size} values, expected {iou.size} x {height} x {width}"
        )
    masks = masks.reshape(iou.size, height, width)

    best = int(np.argmax(iou))

    low_res = None
    if outputs.get("low_res_masks") is not None:
        candidates = np.asarray(outputs["low_res_masks"], dtype=np.float32)
        candidates = candidates.reshape(iou.size, -1)
        side = int(round(np.sqrt(candidates.shape[1])))
        if side * side != candidates.shape[1]:
            raise ValueError(
                f"Decoder low_res_masks have {candidates.shape[1]} values per candidate, "
                "expected a square S x S"
            )
        low_res = candidates[best].reshape(1, 1, side, side).copy()

    logger.debug(f"Selected mask {best}/{iou.size} (iou={iou[best]:.3f})")
    return DecoderResult(
        mask=masks[best].copy(),
        width=width,
        height=height,
        iou_score=float(iou[best]),
        low_res_mask=low_res,
    )


def run_decoder(
    decoder: MaskDecoder,
    embedding: np.ndarray,
    clicks: Sequence[Click],
    width: int,
    height: int,
    previous_mask: Optional[np.ndarray] = None,
    cfg: Optional[SamPromptConfig] = None,
) -> DecoderResult:
    """Build feeds, run ``decoder.infer`` and select the best mask."""
    feeds = build_decoder_feeds(embedding, clicks, width, height, previous_mask, cfg)
    outputs = decoder.infer(feeds)
    return select_best_mask(outputs, width, height)


# ---------------------------------------------------------------------------
# Torch backend
# ---------------------------------------------------------------------------


def _to_numpy(value: Any) -> np.ndarray:
    if isinstance(value, torch.Tensor):
        return value.detach().cpu().float().numpy()
    return np.asarray(value, dtype=np.float32)


class TorchMaskDecoder:
    """MaskDecoder backed by a ``torch.nn.Module``.

    The module is called with the feed names as keyword arguments and
    must return either a dict keyed by output name or a tuple in
    ``OUTPUT_NAMES`` order (``low_res_masks`` optional).

    Parameters
    ----------
    module : torch.nn.Module
        Decoder network; moved to ``device`` and put in eval mode.
    device : str | torch.device | None
        Defaults to CUDA when available, else CPU.
    """

    def __init__(self, module: torch.nn.Module, device: Optional[str] = None):
        self.device = torch.device(device or ("cuda" if torch.cuda.is_available() else "cpu"))
        self.module = module.to(self.device).eval()

    def infer(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        tensors = {
            name: torch.from_numpy(np.ascontiguousarray(value)).to(self.device)
            for name, value in feeds.items()
        }
        try:
            with torch.no_grad():
                raw = self.module(**tensors)
        except Exception as e:
            raise RuntimeError(f"Mask decoder inference failed: {e}") from e

        if isinstance(raw, dict):
            return {name: _to_numpy(raw[name]) for name in OUTPUT_NAMES if name in raw}
        return {name: _to_numpy(value) for name, value in zip(OUTPUT_NAMES, raw)}
