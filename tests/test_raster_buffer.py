"""Tests for circlevo.raster.buffer: RasterBuffer."""

import numpy as np
import pytest

from circlevo.exceptions import ShapeMismatchError, ValidationError
from circlevo.raster.buffer import RasterBuffer

from conftest import solid


class TestConstruction:
    def test_blank_is_transparent(self):
        buf = RasterBuffer.blank(5, 3)
        assert buf.shape == (5, 3)
        assert buf.pixels.shape == (3, 5, 4)
        assert not buf.pixels.any()

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValidationError):
            RasterBuffer(0, 4)

    def test_from_array_rejects_wrong_channel_count(self):
        with pytest.raises(ShapeMismatchError):
            RasterBuffer.from_array(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_from_array_copies(self):
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        buf = RasterBuffer.from_array(arr)
        arr[0, 0] = 255
        assert buf.get_pixel(0, 0) == (0, 0, 0, 0)

    def test_pixels_view_is_read_only(self):
        buf = RasterBuffer.blank(2, 2)
        with pytest.raises(ValueError):
            buf.pixels[0, 0, 0] = 1


class TestClearRect:
    def test_clears_inside_and_keeps_outside(self):
        buf = solid(4, 4, (200, 200, 200, 200))
        buf.clear_rect(1, 1, 2, 2)
        for y in range(4):
            for x in range(4):
                expected = (0, 0, 0, 0) if 1 <= x <= 2 and 1 <= y <= 2 else (200,) * 4
                assert buf.get_pixel(x, y) == expected

    def test_clamps_to_buffer(self):
        buf = solid(4, 4)
        buf.clear_rect(-2, -2, 4, 4)
        assert not buf.pixels[0:2, 0:2].any()
        assert (buf.pixels[2:, :, 3] == 255).all()
        assert (buf.pixels[:, 2:, 3] == 255).all()

    @pytest.mark.parametrize("rect", [(10, 10, 3, 3), (-5, 0, 2, 2), (0, 4, 4, 1)])
    def test_out_of_bounds_is_noop(self, rect):
        buf = solid(4, 4)
        buf.clear_rect(*rect)
        assert buf == solid(4, 4)

    def test_zero_size_is_noop(self):
        buf = solid(4, 4)
        buf.clear_rect(1, 1, 0, 3)
        assert buf == solid(4, 4)

    def test_negative_size_extends_up_left(self):
        buf = solid(4, 4)
        buf.clear_rect(3, 3, -2, -2)
        assert not buf.pixels[1:3, 1:3].any()
        assert buf.get_pixel(3, 3) == (0, 0, 0, 255)
        assert buf.get_pixel(0, 0) == (0, 0, 0, 255)


class TestFillCircle:
    def test_zero_radius_is_noop(self):
        buf = RasterBuffer.blank(5, 5)
        buf.fill_circle(2, 2, 0, (255, 0, 0))
        assert not buf.pixels.any()

    def test_fills_pixels_within_radius_with_opaque_color(self):
        buf = RasterBuffer.blank(10, 10)
        buf.fill_circle(5, 5, 2, (10, 20, 30, 40))
        for y in range(10):
            for x in range(10):
                inside = (x + 0.5 - 5) ** 2 + (y + 0.5 - 5) ** 2 <= 4
                expected = (10, 20, 30, 255) if inside else (0, 0, 0, 0)
                assert buf.get_pixel(x, y) == expected

    def test_clipped_at_edges(self):
        buf = RasterBuffer.blank(6, 6)
        buf.fill_circle(0, 0, 3, (1, 2, 3))
        assert buf.get_pixel(0, 0) == (1, 2, 3, 255)
        assert buf.get_pixel(5, 5) == (0, 0, 0, 0)

    def test_fully_outside_is_noop(self):
        buf = RasterBuffer.blank(6, 6)
        buf.fill_circle(-20, -20, 3, (1, 2, 3))
        assert not buf.pixels.any()


class TestCopies:
    def test_copy_from_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            RasterBuffer.blank(3, 3).copy_from(RasterBuffer.blank(3, 4))

    def test_copy_from_is_deep(self):
        src = solid(3, 3, (9, 9, 9, 255))
        dst = RasterBuffer.blank(3, 3)
        dst.copy_from(src)
        src.clear_rect(0, 0, 3, 3)
        assert dst == solid(3, 3, (9, 9, 9, 255))

    def test_clone_is_independent(self):
        buf = RasterBuffer.blank(3, 3)
        twin = buf.clone()
        twin.fill_circle(1, 1, 2, (255, 255, 255))
        assert not buf.pixels.any()
        assert not twin.is_read_only

    def test_snapshot_is_frozen_copy(self):
        buf = RasterBuffer.blank(4, 4)
        snap = buf.to_snapshot()
        buf.fill_circle(2, 2, 2, (255, 0, 0))
        assert snap.is_read_only
        assert not snap.pixels.any()
        with pytest.raises(ValueError):
            snap.fill_circle(2, 2, 2, (255, 0, 0))

    def test_image_round_trip(self):
        buf = RasterBuffer.blank(7, 5)
        buf.fill_circle(3, 2, 2, (12, 34, 56))
        image = buf.to_image()
        assert image.size == (7, 5)
        assert image.mode == "RGBA"
        assert RasterBuffer.from_image(image) == buf
