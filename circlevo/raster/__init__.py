from circlevo.raster.buffer import Color, RasterBuffer, check_same_shape

__all__ = ["Color", "RasterBuffer", "check_same_shape"]
