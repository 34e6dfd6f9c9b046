"""Flat pixel grids: binarization and border-pixel classification.

A ``PixelGrid`` owns a row-major byte buffer plus its width and height and
is the only 2-D addressing scheme used by the contour core:
``index = y * width + x``. The same type backs both the binary foreground
grid and the per-call visited map, so scanner and tracer share one arena
passed by reference instead of module-level state.

Foreground is strictly greater than the threshold: a logit exactly equal
to the threshold is background.
"""

from typing import Optional, Sequence, Union

import numpy as np

MaskLike = Union[np.ndarray, Sequence[float]]


class PixelGrid:
    """Row-major byte grid with explicit (x, y) → index addressing.

    Parameters
    ----------
    width, height : int
        Grid size in pixels, both > 0
    data : bytearray, optional
        Backing buffer of length width * height; zero-filled when omitted

    Raises
    ------
    ValueError
        If a dimension is not positive or the buffer length mismatches
    """

    __slots__ = ("width", "height", "data")

    def __init__(self, width: int, height: int, data: Optional[bytearray] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        size = width * height
        if data is None:
            data = bytearray(size)
        elif len(data) != size:
            raise ValueError(
                f"Grid buffer length {len(data)} doesn't match {width}x{height} = {size}"
            )
        self.width = width
        self.height = height
        self.data = data

    @classmethod
    def zeros(cls, width: int, height: int) -> "PixelGrid":
        return cls(width, height)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelGrid":
        """Build from an (H, W) array; nonzero cells become 1."""
        arr = np.asarray(arr)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D (H, W) array, got shape {arr.shape}")
        height, width = arr.shape
        cells = (arr != 0).astype(np.uint8)
        return cls(width, height, bytearray(cells.tobytes()))

    def index(self, x: int, y: int) -> int:
        return y * self.width + x

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> int:
        return self.data[y * self.width + x]

    def mark(self, x: int, y: int) -> None:
        self.data[y * self.width + x] = 1

    def count(self) -> int:
        """Number of nonzero cells."""
        return len(self.data) - self.data.count(0)

    def to_array(self) -> np.ndarray:
        """Copy of the buffer as an (H, W) uint8 array."""
        return np.frombuffer(bytes(self.data), dtype=np.uint8).reshape(self.height, self.width)

    def __repr__(self) -> str:
        return f"PixelGrid({self.width}x{self.height}, set={self.count()})"


def binarize(
    mask: MaskLike,
    width: int,
    height: int,
    threshold: float = 0.0
) -> PixelGrid:
    """Threshold a logit mask into a 0/1 grid.

    Parameters
    ----------
    mask : MaskLike
        Logits, flat length width * height (row-major) or shape (H, W)
    width, height : int
        Mask size in pixels
    threshold : float
        Cells strictly greater than this become 1, default 0.0

    Returns
    -------
    PixelGrid
        Fresh binary grid; the input mask is never modified

    Raises
    ------
    ValueError
        If dimensions are not positive, the mask length isn't
        width * height, or a 2-D mask isn't shaped (height, width)

    Notes
    -----
    Comparison happens in float64 so float32 logits are compared against
    the exact threshold value, not a float32-rounded copy of it.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Mask dimensions must be positive, got {width}x{height}")

    arr = np.asarray(mask, dtype=np.float64)
    if arr.ndim == 2 and arr.shape != (height, width):
        raise ValueError(f"Mask shape {arr.shape} doesn't match (height, width) = ({height}, {width})")
    if arr.size != width * height:
        raise ValueError(
            f"Mask length {arr.size} doesn't match {width}x{height} = {width * height}"
        )

    cells = (arr.ravel() > float(threshold)).astype(np.uint8)
    return PixelGrid(width, height, bytearray(cells.tobytes()))


def is_border_pixel(grid: PixelGrid, x: int, y: int) -> bool:
    """True iff a 4-neighbour (left, right, up, down) is off-grid or 0.

    ``(x, y)`` is expected to be a foreground cell.
    """
    for nx, ny in ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)):
        if not grid.in_bounds(nx, ny):
            return True
        if grid.data[grid.index(nx, ny)] == 0:
            return True
    return False


def border_map(grid: PixelGrid) -> np.ndarray:
    """Vectorized is_border_pixel over every foreground cell.

    Returns
    -------
    np.ndarray
        Boolean (H, W); True where the cell is foreground and at least one
        4-neighbour is background or off-grid
    """
    fg = grid.to_array().astype(bool)
    padded = np.pad(fg, 1, mode="constant", constant_values=False)
    interior = (
        padded[:-2, 1:-1]    # up
        & padded[2:, 1:-1]   # down
        & padded[1:-1, :-2]  # left
        & padded[1:-1, 2:]   # right
    )
    return fg & ~interior
