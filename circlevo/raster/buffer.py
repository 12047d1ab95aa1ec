from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from PIL import Image

from circlevo.exceptions import ShapeMismatchError, ValidationError

__all__ = ["RasterBuffer", "Color", "check_same_shape"]

Color = Sequence[int]

CHANNELS = 4
OPAQUE = 255


class RasterBuffer:
    """
    Fixed-size RGBA pixel grid.

    Pixels live in a dense ``(height, width, 4)`` ``uint8`` array, alpha last.
    Dimensions are fixed for the buffer's lifetime; all drawing happens in place.
    """

    __slots__ = ("_pixels",)

    def __init__(self, width: int, height: int, pixels: np.ndarray | None = None):
        if width <= 0 or height <= 0:
            raise ValidationError(
                f"Buffer dimensions must be positive, got {width}x{height}"
            )
        if pixels is None:
            pixels = np.zeros((height, width, CHANNELS), dtype=np.uint8)
        elif pixels.shape != (height, width, CHANNELS):
            raise ShapeMismatchError(
                f"Pixel array shape {pixels.shape} does not match "
                f"{(height, width, CHANNELS)}"
            )
        self._pixels = pixels

    # ---------------- Constructors ----------------

    @classmethod
    def blank(cls, width: int, height: int) -> RasterBuffer:
        """Fully transparent buffer."""
        return cls(width, height)

    @classmethod
    def from_array(cls, array: np.ndarray) -> RasterBuffer:
        """Copy an ``(H, W, 4)`` array (any integer dtype in 0..255) into a new buffer."""
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise ShapeMismatchError(
                f"Expected an (H, W, {CHANNELS}) array, got shape {array.shape}"
            )
        height, width = array.shape[:2]
        return cls(width, height, np.array(array, dtype=np.uint8, copy=True))

    @classmethod
    def from_image(cls, image: Image.Image) -> RasterBuffer:
        return cls.from_array(np.asarray(image.convert("RGBA")))

    # ---------------- Introspection ----------------

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def shape(self) -> tuple[int, int]:
        """``(width, height)``."""
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """Read-only view of the pixel array."""
        view = self._pixels.view()
        view.flags.writeable = False
        return view

    @property
    def is_read_only(self) -> bool:
        return not self._pixels.flags.writeable

    def get_pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return np.array_equal(self._pixels, other._pixels)

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"RasterBuffer({self.width}x{self.height})"

    # ---------------- Drawing ----------------

    def clear_rect(self, x: int, y: int, w: int, h: int) -> None:
        """Set the rectangle (clamped to the buffer) to transparent ``(0, 0, 0, 0)``.

        Negative ``w``/``h`` extend left/up from ``(x, y)``, like the HTML canvas.
        A rectangle entirely outside the buffer is a no-op.
        """
        if w < 0:
            x, w = x + w, -w
        if h < 0:
            y, h = y + h, -h
        x0 = max(0, math.floor(x))
        y0 = max(0, math.floor(y))
        x1 = min(self.width, math.ceil(x + w))
        y1 = min(self.height, math.ceil(y + h))
        if x0 >= x1 or y0 >= y1:
            return
        self._pixels[y0:y1, x0:x1] = 0

    def fill_circle(self, cx: float, cy: float, r: float, color: Color) -> None:
        """Paint every pixel whose centre lies within ``r`` of ``(cx, cy)``.

        The colour's alpha is forced to opaque. ``r <= 0`` paints nothing.
        """
        if r <= 0:
            return
        x0 = max(0, math.floor(cx - r))
        y0 = max(0, math.floor(cy - r))
        x1 = min(self.width, math.ceil(cx + r) + 1)
        y1 = min(self.height, math.ceil(cy + r) + 1)
        if x0 >= x1 or y0 >= y1:
            return

        ys, xs = np.ogrid[y0:y1, x0:x1]
        inside = (xs + 0.5 - cx) ** 2 + (ys + 0.5 - cy) ** 2 <= r * r
        rgba = np.array([color[0], color[1], color[2], OPAQUE], dtype=np.uint8)
        self._pixels[y0:y1, x0:x1][inside] = rgba

    # ---------------- Copies ----------------

    def copy_from(self, other: RasterBuffer) -> None:
        """Deep-copy ``other``'s pixels into this buffer."""
        if other.shape != self.shape:
            raise ShapeMismatchError(
                f"Cannot copy {other.width}x{other.height} buffer into "
                f"{self.width}x{self.height} buffer"
            )
        np.copyto(self._pixels, other._pixels)

    def clone(self) -> RasterBuffer:
        return RasterBuffer(self.width, self.height, self._pixels.copy())

    def to_snapshot(self) -> RasterBuffer:
        """Immutable copy for reporting; any drawing call on it raises."""
        pixels = self._pixels.copy()
        pixels.flags.writeable = False
        return RasterBuffer(self.width, self.height, pixels)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self._pixels))


def check_same_shape(a: RasterBuffer, b: RasterBuffer) -> None:
    if a.shape != b.shape:
        raise ShapeMismatchError(
            f"Buffer shapes differ: {a.width}x{a.height} vs {b.width}x{b.height}"
        )
