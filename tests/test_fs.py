"""Test atomic filesystem operations and mask loading.

Tests for src.utils.fs:
    - Atomic JSON/YAML writes land complete, leave no tmp file
    - YAML roundtrip preserves structure and key order
    - ensure_dir creates parents
    - load_mask: .npy logits (squeezed), greyscale images mapped to [-1, 1]
    - load_mask error paths (missing, unsupported suffix, not 2-D)

Run:
    pytest tests/test_fs.py -v
"""

import json

import numpy as np
import pytest
from PIL import Image

from src.utils import fs


def test_ensure_dir(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    assert fs.ensure_dir(target) == target
    assert target.is_dir()
    # Second call is a no-op
    fs.ensure_dir(target)


def test_atomic_json_dump(tmp_path):
    path = tmp_path / "out" / "annotation.json"
    payload = {"imageFile": "café.jpg", "annotations": [1, 2, 3]}

    fs.atomic_json_dump(payload, path)

    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert "café" in text  # ensure_ascii=False
    assert json.loads(text) == payload
    assert not path.with_suffix(".json.tmp").exists()


def test_atomic_write_bytes_replaces(tmp_path):
    path = tmp_path / "blob.bin"
    fs.atomic_write_bytes(path, b"first")
    fs.atomic_write_bytes(path, b"second")
    assert path.read_bytes() == b"second"


def test_yaml_roundtrip(tmp_path):
    path = tmp_path / "cfg.yaml"
    data = {"schema": "pipeline.v1", "mask_to_polygon": {"threshold": 0.0, "epsilon": 2.0}}

    fs.atomic_yaml_dump(data, path)
    loaded = fs.load_yaml(path)

    assert loaded == data
    assert list(loaded) == ["schema", "mask_to_polygon"]


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_load_mask_npy_squeezes(tmp_path):
    logits = np.random.default_rng(0).normal(size=(1, 1, 6, 9))
    path = tmp_path / "mask.npy"
    np.save(path, logits)

    mask = fs.load_mask(path)

    assert mask.shape == (6, 9)
    assert mask.dtype == np.float32
    np.testing.assert_allclose(mask, logits[0, 0], rtol=1e-6)


def test_load_mask_image_maps_to_logits(tmp_path):
    grey = np.zeros((4, 5), dtype=np.uint8)
    grey[1:3, 1:4] = 255
    path = tmp_path / "mask.png"
    Image.fromarray(grey).save(path)

    mask = fs.load_mask(path)

    assert mask.shape == (4, 5)
    assert mask[0, 0] == pytest.approx(-1.0)
    assert mask[1, 1] == pytest.approx(1.0)
    assert int((mask > 0).sum()) == 6


def test_load_mask_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_mask(tmp_path / "missing.npy")

    bad_suffix = tmp_path / "mask.txt"
    bad_suffix.write_text("0 1 0")
    with pytest.raises(ValueError, match="Unsupported mask format"):
        fs.load_mask(bad_suffix)

    cube = tmp_path / "cube.npy"
    np.save(cube, np.zeros((2, 3, 4)))
    with pytest.raises(ValueError, match="2-D"):
        fs.load_mask(cube)


def test_load_image_rgb(tmp_path):
    path = tmp_path / "img.png"
    Image.fromarray(np.full((3, 4), 200, dtype=np.uint8)).save(path)

    img = fs.load_image_rgb(path)

    assert img.shape == (3, 4, 3)
    assert img.dtype == np.uint8
    assert (img == 200).all()
