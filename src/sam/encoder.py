"""SAM image encoder boundary: RGB image in, embedding out.

Preprocessing:
    1. Resize longest side to long_side (default 1024), bilinear
    2. Normalize with ImageNet mean/std
    3. Zero-pad bottom/right to long_side x long_side
    → float32 (long_side, long_side, 3), HWC

Output: float32 embedding of cfg.embedding_shape, default [1, 256, 64, 64].

The encoder runs once per image (typically server side); the embedding is
then reused for every click by the decoder.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import numpy as np
import torch
from PIL import Image

from ..utils import compute
from ..utils.validators import SamPromptConfig

logger = logging.getLogger(__name__)


class ImageEncoder(Protocol):
    """Anything that maps a preprocessed image to an embedding."""

    def infer(self, input_image: np.ndarray) -> np.ndarray:
        ...


def preprocess_image(
    image_rgb: np.ndarray,
    cfg: Optional[SamPromptConfig] = None
) -> np.ndarray:
    """Resize, normalize and pad an RGB image for the encoder.

    Parameters
    ----------
    image_rgb : np.ndarray
        uint8 RGB, shape (H, W, 3)
    cfg : SamPromptConfig, optional
        Target side and normalization statistics

    Returns
    -------
    np.ndarray
        float32, shape (long_side, long_side, 3); padding is 0.0

    Raises
    ------
    ValueError
        If the image is empty or not (H, W, 3)
    """
    cfg = cfg or SamPromptConfig()
    image_rgb = np.asarray(image_rgb)
    if image_rgb.ndim != 3 or image_rgb.shape[2] != 3:
        raise ValueError(f"Expected (H, W, 3) RGB image, got shape {image_rgb.shape}")

    orig_h, orig_w = image_rgb.shape[:2]
    if orig_w == 0 or orig_h == 0:
        raise ValueError("Could not read image dimensions")

    new_w, new_h = compute.resized_shape(orig_w, orig_h, cfg.long_side)
    resized = Image.fromarray(image_rgb.astype(np.uint8)).resize(
        (new_w, new_h), Image.Resampling.BILINEAR
    )
    normalized = compute.normalize_imagenet(np.asarray(resized), cfg.pixel_mean, cfg.pixel_std)

    side = cfg.long_side
    tensor = np.zeros((side, side, 3), dtype=np.float32)
    tensor[:new_h, :new_w] = normalized
    logger.debug(f"Preprocessed {orig_w}x{orig_h} → {new_w}x{new_h} padded to {side}x{side}")
    return tensor


def encode_image(
    encoder: ImageEncoder,
    image_rgb: np.ndarray,
    cfg: Optional[SamPromptConfig] = None
) -> np.ndarray:
    """Preprocess an image and run the encoder.

    Returns
    -------
    np.ndarray
        float32 embedding, shape cfg.embedding_shape

    Raises
    ------
    ValueError
        If the embedding size doesn't match cfg.embedding_shape or it
        contains NaN/Inf
    """
    cfg = cfg or SamPromptConfig()
    embedding = np.asarray(encoder.infer(preprocess_image(image_rgb, cfg)), dtype=np.float32)

    expected = int(np.prod(cfg.embedding_shape))
    if embedding.size != expected:
        raise ValueError(
            f"Encoder returned {embedding.size} values, expected shape {cfg.embedding_shape}"
        )
    embedding = embedding.reshape(cfg.embedding_shape)
    compute.assert_finite(embedding, "image_embeddings")
    return embedding


class TorchImageEncoder:
    """ImageEncoder backed by a ``torch.nn.Module``.

    The module receives the (long_side, long_side, 3) float32 tensor as
    its single positional argument.
    """

    def __init__(self, module: torch.nn.Module, device: Optional[str] = None):
        self.device = torch.device(device or ("cuda" if torch.cuda.is_available() else "cpu"))
        self.module = module.to(self.device).eval()

    def infer(self, input_image: np.ndarray) -> np.ndarray:
        tensor = torch.from_numpy(np.ascontiguousarray(input_image, dtype=np.float32)).to(self.device)
        try:
            with torch.no_grad():
                out = self.module(tensor)
        except Exception as e:
            raise RuntimeError(f"Image encoder inference failed: {e}") from e
        return out.detach().cpu().float().numpy()
