"""Atomic filesystem operations, YAML/JSON handling and mask loading.

Provides:
    - Atomic writes: tmp file → fsync → rename (prevents partial reads)
    - YAML load/save (PyYAML safe_load / safe_dump)
    - JSON dump for annotation files
    - Mask loading from .npy logits or greyscale images (Pillow)
    - Directory creation with exist_ok semantics

The annotation UI polls output files; atomic writes guarantee it never
sees a half-written annotation.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from src.utils import fs
    mask = fs.load_mask("outputs/masks/cat.npy")
    fs.atomic_json_dump(annotation, "outputs/annotations/cat.json")
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
import yaml
from PIL import Image


IMAGE_MASK_SUFFIXES = (".png", ".bmp", ".gif", ".jpg", ".jpeg", ".tif", ".tiff", ".webp")


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    RuntimeError
        If the write or rename fails (tmp file is cleaned up)

    Notes
    -----
    The tmp file lives in the target directory so the rename stays on one
    filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically."""
    atomic_write_bytes(path, text.encode(encoding))


def atomic_json_dump(obj: Any, path: Union[str, Path], indent: int = 2) -> None:
    """Save object as JSON atomically (UTF-8, trailing newline)."""
    atomic_write_text(path, json.dumps(obj, indent=indent, ensure_ascii=False) + "\n")


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically.

    Uses PyYAML safe_dump; key order is preserved.
    """
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (None for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def load_mask(path: Union[str, Path]) -> np.ndarray:
    """Load a segmentation mask as float32 logits, shape (H, W).

    Parameters
    ----------
    path : Union[str, Path]
        ``.npy`` file holding an (H, W) or (1, 1, H, W) logit array, or a
        greyscale/RGB image file

    Returns
    -------
    np.ndarray
        Logits, shape (H, W), dtype float32

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the suffix is unsupported or the array is not 2-D after squeezing

    Notes
    -----
    Image masks are converted to luminance and mapped linearly from
    [0, 255] to [-1, 1]: black is background, white is foreground, and
    mid-grey (127.5) sits exactly on the default 0.0 threshold.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Mask file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".npy":
        mask = np.load(path, allow_pickle=False)
    elif suffix in IMAGE_MASK_SUFFIXES:
        with Image.open(path) as img:
            grey = np.asarray(img.convert("L"), dtype=np.float32)
        mask = grey / 127.5 - 1.0
    else:
        raise ValueError(
            f"Unsupported mask format '{suffix}' for {path}. "
            f"Use .npy or one of {', '.join(IMAGE_MASK_SUFFIXES)}"
        )

    mask = np.squeeze(np.asarray(mask, dtype=np.float32))
    if mask.ndim != 2:
        raise ValueError(f"Mask must be 2-D (H, W) after squeezing, got shape {mask.shape} from {path}")
    return mask


def load_image_rgb(path: Union[str, Path]) -> np.ndarray:
    """Load an image as uint8 RGB, shape (H, W, 3)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    with Image.open(path) as img:
        return np.asarray(img.convert("RGB"), dtype=np.uint8)
