"""
Tone curves: histograms and two-point piecewise-linear LUTs.

A curve is defined by two control points (x0, y0) and (x1, y1) on the
0..255 grid. The LUT runs (0, 0) -> (x0, y0) -> (x1, y1) -> (255, 255).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from PIL import Image

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

CHANNEL_OFFSETS = {"red": 0, "green": 1, "blue": 2, "alpha": 3}
CHANNELS = ("red", "green", "blue", "alpha", "rgb")


@dataclass(frozen=True)
class CurvePoints:
    x0: int = 0
    y0: int = 0
    x1: int = 255
    y1: int = 255

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x0, self.y0, self.x1, self.y1


IDENTITY = CurvePoints()


def _check_channel(channel: str) -> None:
    if channel not in CHANNELS:
        raise ValueError(f"Unknown channel: {channel}")


def histogram(buffer: PixelBuffer, channel: str) -> np.ndarray:
    """
    256-bin sample counts for one channel.

    "rgb" pools red, green and blue into a single histogram, so its bins sum
    to 3 * W * H.
    """
    _check_channel(channel)
    px = buffer.pixels
    if channel == "rgb":
        samples = px[..., :3]
    else:
        samples = px[..., CHANNEL_OFFSETS[channel]]
    return np.bincount(samples.ravel(), minlength=256).astype(np.int64)


def channel_histograms(buffer: PixelBuffer, channel: str) -> list[np.ndarray]:
    """Histograms drawn behind the curve: one per colour for "rgb", else one."""
    _check_channel(channel)
    if channel == "rgb":
        return [histogram(buffer, name) for name in ("red", "green", "blue")]
    return [histogram(buffer, channel)]


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def build_lut(x0: float, y0: float, x1: float, y1: float) -> np.ndarray:
    """
    256-entry uint8 table for the curve through (x0, y0) and (x1, y1).

    Caller keeps x0 <= x1. With x0 == 0 the first segment is a single point
    and entry 0 maps to 0.
    """
    lut = np.zeros(256, dtype=np.uint8)
    for i in range(256):
        if i <= x0:
            v = _round_half_up(i / x0 * y0) if x0 else 0
        elif i <= x1:
            v = _round_half_up(y0 + (i - x0) * (y1 - y0) / (x1 - x0))
        else:
            v = _round_half_up(y1 + (i - x1) * (255 - y1) / (255 - x1))
        lut[i] = min(255, max(0, v))
    return lut


def build_lut_from_points(points: CurvePoints) -> np.ndarray:
    return build_lut(*points.as_tuple())


def apply_lut(buffer: PixelBuffer, lut: np.ndarray, channel: str) -> PixelBuffer:
    """
    Remap samples through the LUT and return a new buffer.

    "rgb" remaps red, green and blue with the same table; a named channel
    remaps only that channel. Other channels pass through unchanged.
    """
    _check_channel(channel)
    lut = [int(v) for v in np.asarray(lut, dtype=np.uint8)]
    if len(lut) != 256:
        raise ValueError(f"LUT must have 256 entries, got {len(lut)}")

    identity = list(range(256))
    if channel == "rgb":
        table = lut * 3 + identity
    else:
        bands = [identity] * 4
        bands[CHANNEL_OFFSETS[channel]] = lut
        table = [v for band in bands for v in band]

    if buffer.is_empty:
        return buffer.copy()

    img_pil = Image.fromarray(np.ascontiguousarray(buffer.pixels)).point(table)
    LOGGER.debug("Applied LUT to %s channel of %dx%d buffer", channel, buffer.width, buffer.height)
    return PixelBuffer(np.array(img_pil, dtype=np.uint8))


def apply_curve(buffer: PixelBuffer, points: CurvePoints, channel: str) -> PixelBuffer:
    return apply_lut(buffer, build_lut_from_points(points), channel)
