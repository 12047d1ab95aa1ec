import numpy as np
import pytest

from circlevo.raster.buffer import RasterBuffer


def solid(width: int, height: int, rgba=(0, 0, 0, 255)) -> RasterBuffer:
    """Buffer filled with a single colour."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return RasterBuffer.from_array(pixels)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def opaque_target():
    return solid(16, 16)


@pytest.fixture
def blank_canvas():
    return RasterBuffer.blank(16, 16)
