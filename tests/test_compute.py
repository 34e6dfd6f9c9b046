"""Test numerics and coordinate conversions.

Tests for src.utils.compute:
    - px_to_normalized / normalized_to_px: per-axis division, inverse pair
    - sam_scale / resized_shape: longest side maps to long_side
    - normalize_imagenet: channel statistics applied per channel
    - assert_finite: NaN/Inf rejected with counts in the message

Run:
    pytest tests/test_compute.py -v
"""

import numpy as np
import pytest

from src.utils import compute


def test_px_to_normalized_per_axis():
    pts = np.array([[0, 0], [10, 5], [20, 10]], dtype=np.int32)
    out = compute.px_to_normalized(pts, 20, 10)

    assert out.dtype == np.float64
    np.testing.assert_allclose(out, [[0.0, 0.0], [0.5, 0.5], [1.0, 1.0]])


def test_normalized_round_trip():
    rng = np.random.default_rng(3)
    pts = rng.integers(0, 640, size=(50, 2))
    back = compute.normalized_to_px(compute.px_to_normalized(pts, 640, 480), 640, 480)
    np.testing.assert_allclose(back, pts)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 5)])
def test_conversions_reject_bad_dims(width, height):
    with pytest.raises(ValueError, match="positive"):
        compute.px_to_normalized(np.zeros((1, 2)), width, height)
    with pytest.raises(ValueError, match="positive"):
        compute.normalized_to_px(np.zeros((1, 2)), width, height)


def test_sam_scale_and_resized_shape():
    assert compute.sam_scale(800, 600) == pytest.approx(1.28)
    assert compute.sam_scale(600, 800) == pytest.approx(1.28)
    assert compute.resized_shape(800, 600) == (1024, 768)
    assert compute.resized_shape(600, 800) == (768, 1024)
    assert compute.resized_shape(16, 8, long_side=32) == (32, 16)


def test_normalize_imagenet():
    img = np.zeros((2, 3, 3), dtype=np.uint8)
    img[..., 0] = 255
    out = compute.normalize_imagenet(img, mean=(0.5, 0.5, 0.5), std=(0.5, 0.25, 1.0))

    assert out.shape == (2, 3, 3)
    assert out.dtype == np.float32
    np.testing.assert_allclose(out[0, 0], [1.0, -2.0, -0.5], rtol=1e-6)


def test_normalize_imagenet_rejects_grey():
    with pytest.raises(ValueError, match="RGB"):
        compute.normalize_imagenet(np.zeros((4, 4), dtype=np.uint8))


def test_assert_finite():
    compute.assert_finite(np.ones(3), "ok")

    x = np.array([1.0, np.nan, np.inf, -np.inf])
    with pytest.raises(ValueError, match="1 NaNs, 2 Infs"):
        compute.assert_finite(x, "logits")
