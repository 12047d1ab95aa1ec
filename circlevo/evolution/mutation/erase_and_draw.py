from __future__ import annotations

import numpy as np

from circlevo.evolution.mutation.base import MutationOperator
from circlevo.exceptions import MutationError
from circlevo.raster.buffer import RasterBuffer


def rand_below(rng: np.random.Generator, limit: float) -> int:
    """Random integer ``floor(u * limit)`` with ``u`` uniform in [0, 1)."""
    return int(rng.random() * limit)


def rand_opaque_color(rng: np.random.Generator) -> tuple[int, int, int, int]:
    r, g, b = (int(c) for c in rng.integers(0, 256, size=3))
    return r, g, b, 255


class EraseAndDrawMutationOperator(MutationOperator):
    """Repeats ``pairs`` times: clear a random small rectangle, then fill a random circle.

    Rectangles start anywhere in the buffer and span up to ``rect_fraction`` of
    each dimension; circles have an integer radius below ``max_radius`` and a
    random opaque colour. Erasing lets shapes disappear again, so the canvas
    refines instead of only accumulating paint.
    """

    def __init__(
        self, pairs: int = 5, max_radius: float = 5, rect_fraction: float = 0.1
    ):
        if pairs < 1:
            raise MutationError(f"pairs must be at least 1, got {pairs}")
        if max_radius <= 0:
            raise MutationError(f"max_radius must be positive, got {max_radius}")
        if not 0 < rect_fraction <= 1:
            raise MutationError(
                f"rect_fraction must be in (0, 1], got {rect_fraction}"
            )
        self.pairs = pairs
        self.max_radius = max_radius
        self.rect_fraction = rect_fraction

    def mutate(self, buffer: RasterBuffer, rng: np.random.Generator) -> RasterBuffer:
        width, height = buffer.shape
        for _ in range(self.pairs):
            buffer.clear_rect(
                rand_below(rng, width),
                rand_below(rng, height),
                rand_below(rng, width * self.rect_fraction),
                rand_below(rng, height * self.rect_fraction),
            )
            buffer.fill_circle(
                rand_below(rng, width),
                rand_below(rng, height),
                rand_below(rng, self.max_radius),
                rand_opaque_color(rng),
            )
        return buffer

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(pairs={self.pairs}, max_radius={self.max_radius}, "
            f"rect_fraction={self.rect_fraction})"
        )
