"""
Resampling: nearest neighbour and bilinear, plus target-size helpers.
"""

from __future__ import annotations

import math

import numpy as np

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils.log import get_logger

LOGGER = get_logger(__name__)

METHODS = ("nearest", "bilinear")

METHOD_HINTS = {
    "nearest": "Nearest neighbour: simple and fast, with visible pixelation.",
    "bilinear": "Bilinear: smoother result, more work per pixel.",
}


def _check_target(src: PixelBuffer, dst_w: int, dst_h: int) -> None:
    if src.is_empty:
        raise ValueError("Cannot resample an empty buffer")
    if dst_w <= 0 or dst_h <= 0:
        raise ValueError(f"Target size must be positive, got {dst_w}x{dst_h}")


def nearest_neighbor_interpolation(src: PixelBuffer, dst_w: int, dst_h: int) -> PixelBuffer:
    """Each output pixel copies source (floor(x*sw/dw), floor(y*sh/dh))."""
    _check_target(src, dst_w, dst_h)
    src_h, src_w = src.height, src.width

    xs = (np.arange(dst_w, dtype=np.int64) * src_w) // dst_w
    ys = (np.arange(dst_h, dtype=np.int64) * src_h) // dst_h

    out = src.pixels[ys[:, None], xs[None, :]]
    return PixelBuffer(np.ascontiguousarray(out, dtype=np.uint8))


def _source_coords(dst: int, src: int) -> np.ndarray:
    # A 1-pixel target maps everything onto source coordinate 0
    if dst == 1:
        return np.zeros(1, dtype=np.float64)
    return np.arange(dst, dtype=np.float64) * (src - 1) / (dst - 1)


def bilinear_interpolation(src: PixelBuffer, dst_w: int, dst_h: int) -> PixelBuffer:
    """
    Corner-aligned bilinear resampling.

    Output pixel (x, y) samples source position (x*(sw-1)/(dw-1),
    y*(sh-1)/(dh-1)); neighbours past the edge are clamped. Results are
    stored rounded half to even.
    """
    _check_target(src, dst_w, dst_h)
    src_h, src_w = src.height, src.width
    img = src.pixels.astype(np.float64)

    fx = _source_coords(dst_w, src_w)
    fy = _source_coords(dst_h, src_h)
    sx = np.floor(fx).astype(np.int64)
    sy = np.floor(fy).astype(np.int64)
    dx = (fx - sx)[None, :, None]
    dy = (fy - sy)[:, None, None]

    x0 = np.clip(sx, 0, src_w - 1)
    x1 = np.clip(sx + 1, 0, src_w - 1)
    y0 = np.clip(sy, 0, src_h - 1)
    y1 = np.clip(sy + 1, 0, src_h - 1)

    top = img[y0[:, None], x0[None, :]] * (1 - dx) + img[y0[:, None], x1[None, :]] * dx
    bottom = img[y1[:, None], x0[None, :]] * (1 - dx) + img[y1[:, None], x1[None, :]] * dx
    out = top * (1 - dy) + bottom * dy

    return PixelBuffer(np.clip(np.rint(out), 0, 255).astype(np.uint8))


def resize(src: PixelBuffer, dst_w: int, dst_h: int, method: str = "bilinear") -> PixelBuffer:
    if method == "nearest":
        out = nearest_neighbor_interpolation(src, dst_w, dst_h)
    elif method == "bilinear":
        out = bilinear_interpolation(src, dst_w, dst_h)
    else:
        raise ValueError(f"Unknown interpolation method: {method}")
    LOGGER.debug("Resized %dx%d -> %dx%d (%s)", src.width, src.height, dst_w, dst_h, method)
    return out


# ============================================================================
# Target-size helpers
# ============================================================================

def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def size_from_percent(
    width: int,
    height: int,
    percent: float,
    keep_aspect: bool = True,
) -> tuple[int, int]:
    """
    Scale width by percent. With keep_aspect the height follows the
    original aspect ratio, otherwise it is left as-is.
    """
    new_w = _round_half_up(width * percent / 100.0)
    if keep_aspect:
        new_h = _round_half_up(new_w / (width / height))
    else:
        new_h = height
    if new_w <= 0 or new_h <= 0:
        raise ValueError(f"{percent}% of {width}x{height} gives an empty image")
    return new_w, new_h


def size_from_pixels(
    width: int,
    height: int,
    new_width: int | None = None,
    new_height: int | None = None,
    keep_aspect: bool = True,
) -> tuple[int, int]:
    """
    Resolve a pixel target. With keep_aspect, the missing (or, when both
    are given, the height) dimension is derived from the width.
    """
    aspect = width / height
    if new_width is None and new_height is None:
        return width, height
    if keep_aspect:
        if new_width is not None:
            new_h = _round_half_up(new_width / aspect)
            new_w = new_width
        else:
            new_w = _round_half_up(new_height * aspect)
            new_h = new_height
    else:
        new_w = new_width if new_width is not None else width
        new_h = new_height if new_height is not None else height
    if new_w <= 0 or new_h <= 0:
        raise ValueError(f"Target size must be positive, got {new_w}x{new_h}")
    return new_w, new_h


def megapixels(width: int, height: int) -> float:
    return width * height / 1_000_000
