from __future__ import annotations

from enum import Enum
from typing import Callable

import numpy as np

from circlevo.exceptions import InvalidConfigError
from circlevo.raster.buffer import RasterBuffer, check_same_shape

FitnessFunction = Callable[[RasterBuffer, RasterBuffer], float]

# Relative luminance weights for R, G, B; alpha counts in full.
PERCEPTUAL_WEIGHTS = np.array([0.212656, 0.715158, 0.072186, 1.0])


class FitnessMetric(str, Enum):
    PERCEPTUAL = "perceptual"
    ALPHA = "alpha"


def channel_mse(a: RasterBuffer, b: RasterBuffer) -> np.ndarray:
    """Mean squared error per RGBA channel, averaged over all W*H pixels."""
    check_same_shape(a, b)
    diff = a.pixels.astype(np.int32) - b.pixels.astype(np.int32)
    return (diff * diff).mean(axis=(0, 1))


def mse_perceptual(target: RasterBuffer, candidate: RasterBuffer) -> float:
    """Luminance-weighted sum of per-channel MSE (alpha weighted 1.0)."""
    return float(channel_mse(target, candidate) @ PERCEPTUAL_WEIGHTS)


def mse_alpha(target: RasterBuffer, candidate: RasterBuffer) -> float:
    """MSE of the alpha channel only; colour is ignored."""
    check_same_shape(target, candidate)
    diff = target.pixels[..., 3].astype(np.int32) - candidate.pixels[..., 3].astype(
        np.int32
    )
    return float((diff * diff).mean())


_METRICS: dict[FitnessMetric, FitnessFunction] = {
    FitnessMetric.PERCEPTUAL: mse_perceptual,
    FitnessMetric.ALPHA: mse_alpha,
}


def resolve_metric(metric: FitnessMetric | str | FitnessFunction) -> FitnessFunction:
    """Map a metric selector to its function.

    Callables pass through unchanged. Unknown selectors raise InvalidConfigError.
    """
    if callable(metric) and not isinstance(metric, (str, FitnessMetric)):
        return metric
    try:
        return _METRICS[FitnessMetric(metric)]
    except ValueError:
        choices = ", ".join(m.value for m in FitnessMetric)
        raise InvalidConfigError(
            f"Unknown fitness metric {metric!r}; expected one of: {choices}"
        ) from None
