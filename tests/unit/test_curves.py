import numpy as np
import pytest

from graystudio.core import curves
from graystudio.core.curves import CurvePoints
from graystudio.core.pixel_buffer import PixelBuffer


def test_identity_lut():
    lut = curves.build_lut(0, 0, 255, 255)

    assert lut.dtype == np.uint8
    assert lut.tolist() == list(range(256))


def test_identity_points_constant():
    assert curves.build_lut_from_points(curves.IDENTITY).tolist() == list(range(256))


def test_lut_passes_through_control_points():
    lut = curves.build_lut(64, 32, 192, 224)

    assert lut[0] == 0
    assert lut[64] == 32
    assert lut[192] == 224
    assert lut[255] == 255
    # 32 + 64 * 192 / 128 on the middle segment
    assert lut[128] == 128


def test_lut_first_segment_rounds_half_up():
    lut = curves.build_lut(4, 2, 255, 255)

    # i / 4 * 2 -> 0.5, 1.0, 1.5
    assert lut[1:4].tolist() == [1, 1, 2]


def test_lut_with_zero_x0_starts_at_zero():
    lut = curves.build_lut(0, 128, 255, 255)

    assert lut[0] == 0
    assert lut[255] == 255


def test_lut_is_clamped():
    lut = curves.build_lut(10, 255, 20, 255)

    assert int(lut.max()) == 255
    assert int(lut.min()) == 0


def test_histogram_counts_single_channel(gradient_buffer):
    hist = curves.histogram(gradient_buffer, "red")

    assert hist.shape == (256,)
    assert hist.sum() == 12
    # red is x * 60 for x in 0..3, three rows each
    assert hist[0] == 3
    assert hist[180] == 3


def test_histogram_rgb_pools_three_channels(random_buffer):
    hist = curves.histogram(random_buffer, "rgb")

    assert hist.sum() == 3 * random_buffer.width * random_buffer.height
    separate = sum(curves.histogram(random_buffer, c) for c in ("red", "green", "blue"))
    assert np.array_equal(hist, separate)


def test_channel_histograms_shapes(random_buffer):
    assert len(curves.channel_histograms(random_buffer, "rgb")) == 3
    assert len(curves.channel_histograms(random_buffer, "alpha")) == 1


def test_unknown_channel_rejected(random_buffer):
    with pytest.raises(ValueError):
        curves.histogram(random_buffer, "cyan")
    with pytest.raises(ValueError):
        curves.apply_curve(random_buffer, curves.IDENTITY, "cyan")


def test_apply_lut_single_channel_leaves_others(random_buffer):
    invert = np.arange(255, -1, -1, dtype=np.uint8)
    out = curves.apply_lut(random_buffer, invert, "green")

    assert np.array_equal(out.pixels[..., 1], 255 - random_buffer.pixels[..., 1])
    for c in (0, 2, 3):
        assert np.array_equal(out.pixels[..., c], random_buffer.pixels[..., c])


def test_apply_lut_rgb_keeps_alpha(random_buffer):
    invert = np.arange(255, -1, -1, dtype=np.uint8)
    out = curves.apply_lut(random_buffer, invert, "rgb")

    assert np.array_equal(out.pixels[..., :3], 255 - random_buffer.pixels[..., :3])
    assert np.array_equal(out.pixels[..., 3], random_buffer.pixels[..., 3])


def test_apply_lut_alpha_channel(random_buffer):
    zero = np.zeros(256, dtype=np.uint8)
    out = curves.apply_lut(random_buffer, zero, "alpha")

    assert (out.pixels[..., 3] == 0).all()
    assert np.array_equal(out.pixels[..., :3], random_buffer.pixels[..., :3])


def test_apply_lut_does_not_mutate_input(random_buffer):
    before = random_buffer.pixels.copy()
    curves.apply_curve(random_buffer, CurvePoints(50, 10, 200, 240), "rgb")

    assert np.array_equal(random_buffer.pixels, before)


def test_apply_lut_wrong_length():
    with pytest.raises(ValueError):
        curves.apply_lut(PixelBuffer.blank(1, 1), np.zeros(10, dtype=np.uint8), "rgb")


def test_apply_identity_curve_is_noop(random_buffer):
    assert curves.apply_curve(random_buffer, curves.IDENTITY, "rgb") == random_buffer
