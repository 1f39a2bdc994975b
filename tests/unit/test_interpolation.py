import numpy as np
import pytest

from graystudio.core import interpolation
from graystudio.core.pixel_buffer import PixelBuffer
from tests.conftest import make_buffer


@pytest.fixture
def quad():
    return make_buffer([
        [(255, 0, 0, 255), (0, 255, 0, 255)],
        [(0, 0, 255, 255), (10, 20, 30, 40)],
    ])


def test_nearest_upscale_replicates_blocks(quad):
    out = interpolation.nearest_neighbor_interpolation(quad, 4, 4)

    assert out.size == (4, 4)
    for y in range(4):
        for x in range(4):
            assert out.pixels[y, x].tolist() == quad.pixels[y // 2, x // 2].tolist()


def test_nearest_downscale_picks_floor_coordinates(random_buffer):
    out = interpolation.nearest_neighbor_interpolation(random_buffer, 3, 2)

    # x * 9 // 3 -> 0, 3, 6 ; y * 7 // 2 -> 0, 3
    assert out.pixels[1, 2].tolist() == random_buffer.pixels[3, 6].tolist()
    assert out.pixels[0, 1].tolist() == random_buffer.pixels[0, 3].tolist()


def test_bilinear_gradient_midpoint():
    src = make_buffer([[(0, 0, 0, 255), (255, 255, 255, 255)]])
    out = interpolation.bilinear_interpolation(src, 3, 1)

    assert out.pixels[0, :, 0].tolist() == [0, 128, 255]
    assert (out.pixels[..., 3] == 255).all()


def test_bilinear_keeps_corners(random_buffer):
    out = interpolation.bilinear_interpolation(random_buffer, 20, 15)

    assert out.pixels[0, 0].tolist() == random_buffer.pixels[0, 0].tolist()
    assert out.pixels[-1, -1].tolist() == random_buffer.pixels[-1, -1].tolist()
    assert out.pixels[0, -1].tolist() == random_buffer.pixels[0, -1].tolist()


def test_bilinear_same_size_is_identity(random_buffer):
    out = interpolation.bilinear_interpolation(random_buffer, 9, 7)

    assert out == random_buffer


def test_single_pixel_target_samples_origin(random_buffer):
    for method in interpolation.METHODS:
        out = interpolation.resize(random_buffer, 1, 1, method)
        assert out.pixels[0, 0].tolist() == random_buffer.pixels[0, 0].tolist()


def test_single_pixel_source_fills_target():
    src = PixelBuffer.filled(1, 1, (9, 8, 7, 6))

    for method in interpolation.METHODS:
        out = interpolation.resize(src, 5, 3, method)
        assert out.size == (5, 3)
        assert (out.pixels == np.array([9, 8, 7, 6], dtype=np.uint8)).all()


@pytest.mark.parametrize("method", interpolation.METHODS)
def test_output_dimensions(method, random_buffer):
    out = interpolation.resize(random_buffer, 13, 4, method)

    assert out.size == (13, 4)
    assert out.pixels.dtype == np.uint8


def test_unknown_method_rejected(random_buffer):
    with pytest.raises(ValueError):
        interpolation.resize(random_buffer, 2, 2, "bicubic")


def test_non_positive_target_rejected(random_buffer):
    with pytest.raises(ValueError):
        interpolation.resize(random_buffer, 0, 2, "nearest")


def test_empty_source_rejected():
    with pytest.raises(ValueError):
        interpolation.resize(PixelBuffer.blank(0, 0), 2, 2)


@pytest.mark.parametrize("resample", [
    interpolation.nearest_neighbor_interpolation,
    interpolation.bilinear_interpolation,
])
def test_empty_source_rejected_by_each_method(resample):
    with pytest.raises(ValueError, match="empty"):
        resample(PixelBuffer.blank(0, 0), 2, 2)


def test_resize_does_not_mutate_source(random_buffer):
    before = random_buffer.pixels.copy()
    interpolation.resize(random_buffer, 4, 4, "bilinear")

    assert np.array_equal(random_buffer.pixels, before)


def test_size_from_percent_keeps_aspect():
    assert interpolation.size_from_percent(800, 600, 50) == (400, 300)
    assert interpolation.size_from_percent(3, 2, 50) == (2, 1)


def test_size_from_percent_without_aspect():
    assert interpolation.size_from_percent(800, 600, 50, keep_aspect=False) == (400, 600)


def test_size_from_percent_rejects_empty_result():
    with pytest.raises(ValueError):
        interpolation.size_from_percent(10, 10, 1)


def test_size_from_pixels():
    assert interpolation.size_from_pixels(800, 600, new_width=400) == (400, 300)
    assert interpolation.size_from_pixels(800, 600, new_height=300) == (400, 300)
    assert interpolation.size_from_pixels(800, 600, 100, 100, keep_aspect=False) == (100, 100)
    assert interpolation.size_from_pixels(800, 600) == (800, 600)


def test_megapixels():
    assert interpolation.megapixels(2000, 1500) == pytest.approx(3.0)
