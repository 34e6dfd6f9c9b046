"""Numerics and coordinate conversions between pixel and normalized space.

Core utilities:
    - px_to_normalized() / normalized_to_px(): (N, 2) point conversions
    - sam_scale(): resize factor from image size to the encoder's long side
    - normalize_imagenet(): uint8 RGB → float32 mean/std normalized
    - assert_finite(): fail-fast NaN/Inf guard for model outputs

Invariants:
    - Pixel frame: origin top-left, +X right, +Y down
    - Normalized coordinates are pixel coordinates divided by the axis
      dimension (x / width, y / height), nominal range [0, 1]
    - Conversions happen at boundaries only; the contour core works in
      integer pixel space
"""

from typing import Sequence, Tuple

import numpy as np


def _check_dims(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")


def px_to_normalized(points_px: np.ndarray, width: int, height: int) -> np.ndarray:
    """Convert pixel coordinates to normalized coordinates.

    Parameters
    ----------
    points_px : np.ndarray
        Coordinates in pixels, shape (N, 2) with (x, y)
    width, height : int
        Image size in pixels

    Returns
    -------
    np.ndarray
        Normalized coordinates, shape (N, 2), float64

    Raises
    ------
    ValueError
        If width or height is not positive
    """
    _check_dims(width, height)
    pts = np.asarray(points_px, dtype=np.float64).reshape(-1, 2)
    return pts / np.array([width, height], dtype=np.float64)


def normalized_to_px(points_norm: np.ndarray, width: int, height: int) -> np.ndarray:
    """Convert normalized coordinates back to (float) pixel coordinates."""
    _check_dims(width, height)
    pts = np.asarray(points_norm, dtype=np.float64).reshape(-1, 2)
    return pts * np.array([width, height], dtype=np.float64)


def sam_scale(width: int, height: int, long_side: int = 1024) -> float:
    """Scale factor mapping the image's longest side onto ``long_side``."""
    _check_dims(width, height)
    return long_side / max(width, height)


def resized_shape(width: int, height: int, long_side: int = 1024) -> Tuple[int, int]:
    """(new_w, new_h) after scaling the longest side to ``long_side``."""
    scale = sam_scale(width, height, long_side)
    return int(round(width * scale)), int(round(height * scale))


def normalize_imagenet(
    img_u8: np.ndarray,
    mean: Sequence[float] = (0.485, 0.456, 0.406),
    std: Sequence[float] = (0.229, 0.224, 0.225)
) -> np.ndarray:
    """Normalize a uint8 RGB image with per-channel mean/std.

    Parameters
    ----------
    img_u8 : np.ndarray
        RGB image, shape (H, W, 3), values [0, 255]
    mean, std : Sequence[float]
        Channel statistics in [0, 1] units

    Returns
    -------
    np.ndarray
        float32, shape (H, W, 3): (x / 255 - mean) / std
    """
    if img_u8.ndim != 3 or img_u8.shape[2] != 3:
        raise ValueError(f"Expected (H, W, 3) RGB image, got shape {img_u8.shape}")
    x = img_u8.astype(np.float32) / 255.0
    return (x - np.asarray(mean, dtype=np.float32)) / np.asarray(std, dtype=np.float32)


def assert_finite(x: np.ndarray, name: str = "array") -> None:
    """Assert array contains no NaN or Inf values.

    Raises
    ------
    ValueError
        If array contains NaN or Inf
    """
    x = np.asarray(x)
    if not np.isfinite(x).all():
        nan_count = int(np.isnan(x).sum())
        inf_count = int(np.isinf(x).sum())
        raise ValueError(
            f"{name} contains non-finite values: {nan_count} NaNs, {inf_count} Infs. "
            f"Shape: {x.shape}, dtype: {x.dtype}"
        )
